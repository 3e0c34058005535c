#!/usr/bin/env python3
"""
Identity Builder Tests
Credential subject validation, photo decoding and identity record construction
"""

import io
import json
from datetime import date

import pytest
from PIL import Image

from app.core.encoding import encode_base64
from app.core.exceptions import ValidationError, ImageDecodeError
from app.schemas.identity import GENDER_FEMALE, GENDER_MALE
from app.services.identity_builder import parse_credential_subject, decode_photo, build_identity


def test_parse_multi_language_credential_subject(credential_subject):
    """Multi-language values reduce to their first entry"""
    fields = parse_credential_subject(json.dumps(credential_subject))

    assert fields.uin == "4218452092"
    assert fields.full_name == "Marion Florence Dupont"
    assert fields.gender == GENDER_FEMALE
    assert fields.date_of_birth == date(1985, 1, 1)
    assert fields.extras == {"email": "marion.dupont@example.org", "phone": "9876543210"}


def test_parse_plain_values():
    fields = parse_credential_subject({
        "UIN": 1234567890,
        "fullName": "John Smith",
        "gender": "M",
        "dateOfBirth": "1990-05-12",
    })

    assert fields.uin == "1234567890"
    assert fields.gender == GENDER_MALE
    assert fields.date_of_birth == date(1990, 5, 12)


def test_date_of_birth_is_optional():
    fields = parse_credential_subject({"UIN": "1", "fullName": "A B", "gender": "Female"})
    assert fields.date_of_birth is None


@pytest.mark.parametrize("missing", ["UIN", "fullName", "gender"])
def test_missing_required_field_rejected(credential_subject, missing):
    """Syntactically valid JSON without a required field is rejected"""
    del credential_subject[missing]
    with pytest.raises(ValidationError):
        parse_credential_subject(credential_subject)


@pytest.mark.parametrize("field,value", [
    ("gender", "Unknown"),
    ("gender", 7),
    ("dateOfBirth", "01.01.1985"),
    ("fullName", "   "),
])
def test_invalid_field_values_rejected(credential_subject, field, value):
    credential_subject[field] = value
    with pytest.raises(ValidationError):
        parse_credential_subject(credential_subject)


@pytest.mark.parametrize("cs", ["{not json", "[1, 2, 3]", "\"text\""])
def test_malformed_credential_subject_rejected(cs):
    with pytest.raises(ValidationError):
        parse_credential_subject(cs)


def test_decode_photo_accepts_data_uri_and_bare_base64(jpeg_photo):
    encoded = encode_base64(jpeg_photo)

    assert decode_photo("data:image/jpeg;base64," + encoded) == jpeg_photo
    assert decode_photo(encoded) == jpeg_photo


def test_decode_photo_accepts_url_safe_base64_without_padding():
    raw = b"\xfb\xff\xfe photo"
    url_safe = encode_base64(raw).replace("+", "-").replace("/", "_").rstrip("=")
    assert decode_photo(url_safe) == raw


@pytest.mark.parametrize("photo", ["", "data:image/x-jp2;base64,", "data:image/x-jp2;base64,@@@@"])
def test_decode_photo_rejects_empty_or_invalid(photo):
    with pytest.raises(ImageDecodeError):
        decode_photo(photo)


def test_build_identity_transcodes_jpeg2000(credential_subject, photo_data_uri):
    """A JPEG 2000 photo ends up as a standard JPEG"""
    record = build_identity(credential_subject, photo_data_uri, "12345")

    assert record.pin == "12345"
    assert record.photo[:2] == b"\xff\xd8"
    image = Image.open(io.BytesIO(record.photo))
    assert image.format == "JPEG"
    assert image.size == (300, 400)


def test_build_identity_rejects_empty_pin(credential_subject, photo_data_uri):
    with pytest.raises(ValidationError):
        build_identity(credential_subject, photo_data_uri, "  ")


def test_build_identity_rejects_undecodable_photo(credential_subject):
    not_an_image = "data:image/x-jp2;base64," + encode_base64(b"definitely not an image")
    with pytest.raises(ImageDecodeError):
        build_identity(credential_subject, not_an_image, "12345")


def test_identity_record_is_immutable(credential_subject, photo_data_uri):
    record = build_identity(credential_subject, photo_data_uri, "12345")
    with pytest.raises(Exception):
        record.uin = "other"


def test_build_identity_keeps_pin_unchanged(credential_subject, photo_data_uri):
    record = build_identity(credential_subject, photo_data_uri, " 1234 ")
    assert record.pin == " 1234 "
