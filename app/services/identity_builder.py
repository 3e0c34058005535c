"""
Identity Builder
Maps a credential subject, a PIN and a face photo into an IdentityRecord
"""

import binascii
import json
import logging
from typing import Any, Dict, Union

from pydantic import ValidationError as PydanticValidationError

from app.core.encoding import decode_base64, split_data_uri
from app.core.exceptions import ValidationError, ImageDecodeError
from app.schemas.identity import IdentityFields, IdentityRecord, flatten_language_value
from app.services.image_service import image_service

logger = logging.getLogger(__name__)

# Credential subject keys mapped onto IdentityFields
KNOWN_FIELDS = {
    "UIN", "fullName", "gender", "dateOfBirth",
    "givenName", "surName", "placeOfBirth",
}

# Credential subject keys never copied into the card
IGNORED_FIELDS = {"id", "biometrics", "face", "photo", "individualBiometrics", "encodedPhoto"}


def parse_credential_subject(cs: Union[str, Dict[str, Any]]) -> IdentityFields:
    """
    Parse and validate the credential subject JSON

    Scalar attributes outside the known set are kept as extras.

    Raises:
        ValidationError: malformed JSON or the identity field constraints are not met
    """
    if isinstance(cs, str):
        try:
            data = json.loads(cs)
        except ValueError as e:
            raise ValidationError(f"Credential subject is not valid JSON: {e}") from e
    else:
        data = cs

    if not isinstance(data, dict):
        raise ValidationError("Credential subject must be a JSON object")

    extras: Dict[str, str] = {}
    for key, value in data.items():
        if key in KNOWN_FIELDS or key in IGNORED_FIELDS:
            continue
        value = flatten_language_value(value)
        if isinstance(value, bool) or value is None:
            continue
        if isinstance(value, (str, int, float)):
            text = str(value).strip()
            if text:
                extras[key] = text

    known = {key: data[key] for key in KNOWN_FIELDS if key in data}
    try:
        return IdentityFields(**known, extras=extras)
    except PydanticValidationError as e:
        fields = ", ".join(".".join(str(loc) for loc in err["loc"]) for err in e.errors())
        raise ValidationError(f"Credential subject rejected ({fields})") from e


def decode_photo(photo_b64: str) -> bytes:
    """
    Decode a base64 photo, with or without a data URI header

    Raises:
        ImageDecodeError: empty or undecodable base64
    """
    if not photo_b64:
        raise ImageDecodeError("Photo is empty")

    header, payload = split_data_uri(photo_b64.strip())
    try:
        photo = decode_base64(payload)
    except (binascii.Error, ValueError) as e:
        raise ImageDecodeError(f"Photo is not valid base64: {e}") from e

    if not photo:
        raise ImageDecodeError("Photo is empty")

    logger.debug(f"Decoded photo {header or 'without data URI header'}: {len(photo)} bytes")
    return photo


def build_identity(cs: Union[str, Dict[str, Any]], photo_b64: str, pin: str) -> IdentityRecord:
    """
    Build the identity record for one issuance

    Raises:
        ValidationError: rejected credential subject or empty PIN
        ImageDecodeError: photo cannot be decoded or transcoded to JPEG
    """
    fields = parse_credential_subject(cs)

    if not pin or not pin.strip():
        raise ValidationError("PIN code is required")

    photo = image_service.transcode_to_jpeg(decode_photo(photo_b64))

    return IdentityRecord(
        uin=fields.uin,
        full_name=fields.full_name,
        gender=fields.gender,
        date_of_birth=fields.date_of_birth,
        given_name=fields.given_name,
        surname=fields.surname,
        place_of_birth=fields.place_of_birth,
        pin=pin,
        photo=photo,
        extras=fields.extras,
    )
