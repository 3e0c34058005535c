"""
Card Issuance Schemas
Pydantic models for the card issuance API
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, Union

from app.schemas.identity import IdentityRecord


class CardArtifacts(BaseModel):
    """Encoded card and its renderings, held until the layout request is built"""
    record: IdentityRecord
    payload: bytes
    qr_code_png: bytes
    qr_code_svg: bytes
    face_photo_b64: Optional[str] = None
    card_details: Dict[str, Any] = Field(default_factory=dict)


class CardIssueRequest(BaseModel):
    """Schema for issuing a signed ID PASS Lite card"""
    credential_subject: Union[str, Dict[str, Any]] = Field(..., description="Credential subject JSON (string or object)")
    photo: str = Field(..., description="Face photo as a base64 data URI, e.g. data:image/x-jp2;base64,...")
    pin: str = Field(..., description="ID PASS Lite PIN code")
    password: Optional[str] = Field(None, description="Password applied by the signing service")

    class Config:
        json_schema_extra = {
            "example": {
                "credential_subject": {
                    "UIN": "4218452092",
                    "fullName": [{"language": "eng", "value": "Marion Florence Dupont"}],
                    "gender": [{"language": "eng", "value": "Female"}],
                    "dateOfBirth": "1985/01/01"
                },
                "photo": "data:image/x-jp2;base64,AAAADGpQICANCocK...",
                "pin": "12345",
                "password": "Dupont1985"
            }
        }


class QRCodeResponse(BaseModel):
    """Response model for QR code generation"""
    success: bool
    qr_code_png_base64: str
    qr_code_svg_base64: str
    payload_size_bytes: int
    card_details: Dict[str, Any]
    message: str
