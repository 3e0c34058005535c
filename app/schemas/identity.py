"""
Identity Schemas for ID PASS Lite Card Issuance
Pydantic models for the credential subject and the identity record built from it
"""

from pydantic import BaseModel, Field, validator
from typing import Optional, Dict, Any
from datetime import date, datetime


GENDER_FEMALE = 1
GENDER_MALE = 2
GENDER_OTHER = 3

GENDER_LABELS = {
    GENDER_FEMALE: "Female",
    GENDER_MALE: "Male",
    GENDER_OTHER: "Other",
}

GENDER_VALUES = {
    "female": GENDER_FEMALE,
    "f": GENDER_FEMALE,
    "fle": GENDER_FEMALE,
    "male": GENDER_MALE,
    "m": GENDER_MALE,
    "mle": GENDER_MALE,
    "other": GENDER_OTHER,
    "o": GENDER_OTHER,
    "oth": GENDER_OTHER,
}

# Accepted dateOfBirth formats
DATE_FORMATS = ("%Y/%m/%d", "%Y-%m-%d")


def flatten_language_value(value: Any) -> Any:
    """Reduce a MOSIP multi-language value ([{"language", "value"}]) to its first value"""
    if isinstance(value, list):
        if not value:
            return None
        first = value[0]
        if isinstance(first, dict):
            return first.get("value")
        return first
    return value


class IdentityFields(BaseModel):
    """Credential subject fields accepted for an ID PASS Lite card"""
    uin: str = Field(..., alias="UIN", min_length=1, description="Unique identification number")
    full_name: str = Field(..., alias="fullName", min_length=1, description="Full name as printed on the card")
    gender: int = Field(..., description="1 = female, 2 = male, 3 = other")
    date_of_birth: Optional[date] = Field(None, alias="dateOfBirth")
    given_name: Optional[str] = Field(None, alias="givenName")
    surname: Optional[str] = Field(None, alias="surName")
    place_of_birth: Optional[str] = Field(None, alias="placeOfBirth")
    extras: Dict[str, str] = Field(default_factory=dict, description="Additional scalar attributes")

    class Config:
        populate_by_name = True

    @validator("uin", "full_name", "given_name", "surname", "place_of_birth", pre=True)
    def flatten_text(cls, v):
        v = flatten_language_value(v)
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            v = str(v)
        if isinstance(v, str):
            v = v.strip()
        return v

    @validator("gender", pre=True)
    def validate_gender(cls, v):
        v = flatten_language_value(v)
        if isinstance(v, int) and not isinstance(v, bool):
            if v in GENDER_LABELS:
                return v
            raise ValueError(f"Unsupported gender code: {v}")
        if isinstance(v, str) and v.strip().lower() in GENDER_VALUES:
            return GENDER_VALUES[v.strip().lower()]
        raise ValueError(f"Unsupported gender value: {v!r}")

    @validator("date_of_birth", pre=True)
    def parse_date_of_birth(cls, v):
        v = flatten_language_value(v)
        if v is None or isinstance(v, date):
            return v
        if not isinstance(v, str) or not v.strip():
            raise ValueError("dateOfBirth must be a date string")
        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(v.strip(), fmt).date()
            except ValueError:
                continue
        raise ValueError(f"Unsupported dateOfBirth format: {v}")


class IdentityRecord(BaseModel):
    """Immutable identity record consumed by the card encoder"""
    uin: str
    full_name: str
    gender: int
    date_of_birth: Optional[date] = None
    given_name: Optional[str] = None
    surname: Optional[str] = None
    place_of_birth: Optional[str] = None
    pin: str
    photo: Optional[bytes] = None
    extras: Dict[str, str] = Field(default_factory=dict)

    class Config:
        frozen = True

    @property
    def gender_label(self) -> str:
        return GENDER_LABELS.get(self.gender, "Other")

    def details(self) -> Dict[str, Any]:
        """Card details keyed by credential subject field name (no PIN, no photo)"""
        details: Dict[str, Any] = {
            "UIN": self.uin,
            "fullName": self.full_name,
            "gender": self.gender,
        }
        if self.date_of_birth:
            details["dateOfBirth"] = self.date_of_birth.isoformat()
        if self.given_name:
            details["givenName"] = self.given_name
        if self.surname:
            details["surName"] = self.surname
        if self.place_of_birth:
            details["placeOfBirth"] = self.place_of_birth
        details.update(self.extras)
        return details
