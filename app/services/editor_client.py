"""
Card Editor Client
Lays out the card template through the remote editor service and returns the unsigned PDF
"""

import binascii
import json
import logging
from datetime import date
from typing import Dict, Any, Optional

import requests

from app.core.encoding import decode_base64, split_data_uri, to_data_uri
from app.core.http_session import create_session
from app.core.exceptions import LayoutServiceError
from app.schemas.card import CardArtifacts

logger = logging.getLogger(__name__)

# The editor template names its photo slot "qrcode" on the front side
FRONT_PHOTO_FIELD = "qrcode"
BACK_QR_FIELD = "qrcode"


def format_card_date(value: date) -> str:
    """Card date format yyyy/MM/d (day is not zero-padded)"""
    return f"{value.year:04d}/{value.month:02d}/{value.day}"


def add_years(value: date, years: int) -> date:
    """Add calendar years; 29 February falls back to 28 February"""
    try:
        return value.replace(year=value.year + years)
    except ValueError:
        return value.replace(year=value.year + years, day=28)


def build_layout_payload(artifacts: CardArtifacts, issue_date: date, expire_years: int) -> Dict[str, Any]:
    """Build the editor request: front/back field values for the card template"""
    record = artifacts.record

    front: Dict[str, Any] = {
        "identification_number": record.uin,
        "full_name": record.full_name,
        "sex": record.gender_label,
    }
    if record.date_of_birth is not None:
        front["birth_date"] = format_card_date(record.date_of_birth)
    front["issue_date"] = format_card_date(issue_date)
    front["expiry_date"] = format_card_date(add_years(issue_date, expire_years))
    if artifacts.face_photo_b64:
        front[FRONT_PHOTO_FIELD] = "data:image/jpeg;base64," + artifacts.face_photo_b64

    back = {
        BACK_QR_FIELD: to_data_uri("image/svg+xml", artifacts.qr_code_svg),
    }

    return {
        "create_qr_code": False,
        "fields": {
            "front": front,
            "back": back,
        },
    }


class EditorClient:
    """Client for the card layout editor service"""

    def __init__(self, editor_url: str, expire_years: int, timeout: float = 30.0,
                 session: Optional[requests.Session] = None):
        self.editor_url = editor_url
        self.expire_years = expire_years
        self.timeout = timeout
        self.session = session or create_session()

    def generate(self, artifacts: CardArtifacts, issue_date: Optional[date] = None) -> bytes:
        """
        Post the card fields to the editor and return the unsigned PDF

        Raises:
            LayoutServiceError: network failure, non-2xx status or unusable response body
        """
        payload = build_layout_payload(artifacts, issue_date or date.today(), self.expire_years)
        body = json.dumps(payload, indent=2)

        logger.info(f"Requesting card layout for UIN {artifacts.record.uin} from {self.editor_url}")
        try:
            response = self.session.post(
                self.editor_url,
                data=body.encode("utf-8"),
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Card editor unreachable: {e}")
            raise LayoutServiceError(f"Failed to call card editor: {e}") from e

        if not 200 <= response.status_code < 300:
            logger.error(f"Card editor returned {response.status_code}: {response.text[:200]}")
            raise LayoutServiceError(
                f"Card editor error (status={response.status_code}): {response.text}",
                status_code=response.status_code
            )

        try:
            _header, b64 = split_data_uri(response.json()["files"]["pdf"])
            pdf_bytes = decode_base64(b64)
        except (ValueError, KeyError, TypeError, AttributeError, binascii.Error) as e:
            raise LayoutServiceError(
                f"Card editor returned an unusable response: {e}",
                status_code=response.status_code
            ) from e

        if not pdf_bytes:
            raise LayoutServiceError("Card editor returned an empty PDF", status_code=response.status_code)

        logger.info(f"Card editor returned unsigned PDF ({len(pdf_bytes)} bytes)")
        return pdf_bytes
