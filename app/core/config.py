"""
ID PASS Lite Card Issuance Configuration
Compatible with Pydantic v2 settings
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional
from pathlib import Path
import json


class Settings(BaseSettings):
    """Application settings for the card issuance service"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore"
    )

    # API Configuration
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "ID PASS Lite Card Issuance Service"
    VERSION: str = "1.0.0"

    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # ID PASS Lite key store
    # Leave IDPASS_P12_FILE empty to run with an ephemeral key store (development only)
    IDPASS_P12_FILE: Optional[str] = None
    IDPASS_STORE_PREFIX: str = "demo"
    IDPASS_STORE_PASSWORD: str = "changeit"
    IDPASS_KEY_PASSWORD: str = "changeit"
    IDPASS_VISIBLE_FIELDS: str = "UIN,fullName,dateOfBirth,gender"

    @property
    def visible_fields_list(self) -> List[str]:
        """Convert IDPASS_VISIBLE_FIELDS (JSON array or comma-separated) to a list"""
        try:
            fields = json.loads(self.IDPASS_VISIBLE_FIELDS)
            if isinstance(fields, str):
                fields = [f.strip() for f in fields.split(",") if f.strip()]
        except ValueError:
            fields = [f.strip() for f in self.IDPASS_VISIBLE_FIELDS.split(",") if f.strip()]
        return fields

    # Card layout editor
    EDITOR_URL: str = "https://editor.idpass.org/api/v1/generate"
    EXPIRE_YEARS: int = 5

    # PDF signing service
    PDF_SIGN_URL: str = "http://keymanager/v1/keymanager/pdf/sign"
    PDF_SIGN_AUTH_TOKEN: Optional[str] = None
    SIGNATURE_REASON: str = "Identity card issuance"
    SIGN_APPLICATION_ID: str = "KERNEL"
    SIGN_REFERENCE_ID: str = "SIGN"
    SIGN_REQUEST_ID: str = "mosip.print.pdf.sign"
    SIGN_REQUEST_VERSION: str = "v1.0"

    # Signature rectangle on the signature page (PDF points)
    SIGN_PAGE_NUMBER: int = 3
    SIGN_LOWER_LEFT_X: int = 5
    SIGN_LOWER_LEFT_Y: int = 2
    SIGN_UPPER_RIGHT_X: int = 232
    SIGN_UPPER_RIGHT_Y: int = 72

    # Static page appended to every card; rendered with reportlab when not set
    SIGNATURE_PAGE_PATH: Optional[str] = None

    HTTP_TIMEOUT_SECONDS: float = 30.0

    def get_p12_path(self) -> Optional[Path]:
        """Get key store path, if one is configured"""
        if not self.IDPASS_P12_FILE:
            return None
        return Path(self.IDPASS_P12_FILE)


settings = Settings()


def get_settings() -> Settings:
    """Get the process-wide application settings instance"""
    return settings
