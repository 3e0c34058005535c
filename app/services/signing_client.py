"""
PDF Signing Client
Sends the merged card PDF to the remote signing service and returns the signed PDF
"""

import binascii
import logging
from datetime import datetime, timezone
from typing import Optional, Tuple

import requests
from pydantic import ValidationError as PydanticValidationError

from app.core.encoding import decode_base64, encode_base64
from app.core.http_session import create_session
from app.core.exceptions import SigningServiceError
from app.schemas.signature import (
    PDFSignatureRequest, RequestWrapper, ResponseWrapper, SignatureResponse
)

logger = logging.getLogger(__name__)


def utc_timestamp(moment: Optional[datetime] = None) -> str:
    """UTC timestamp as yyyy-MM-ddTHH:mm:ss.SSSZ"""
    moment = (moment or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def build_signature_request(
    pdf_bytes: bytes,
    reason: str,
    password: Optional[str],
    application_id: str = "KERNEL",
    reference_id: str = "SIGN",
    page_number: int = 3,
    signature_box: Tuple[int, int, int, int] = (5, 2, 232, 72),
    request_id: Optional[str] = None,
    version: Optional[str] = None,
    moment: Optional[datetime] = None,
) -> RequestWrapper:
    """Wrap the merged PDF and signer metadata in a signing request envelope"""
    timestamp = utc_timestamp(moment)
    lower_left_x, lower_left_y, upper_right_x, upper_right_y = signature_box

    request = PDFSignatureRequest(
        application_id=application_id,
        reference_id=reference_id,
        data=encode_base64(pdf_bytes),
        time_stamp=timestamp,
        lower_left_x=lower_left_x,
        lower_left_y=lower_left_y,
        upper_right_x=upper_right_x,
        upper_right_y=upper_right_y,
        reason=reason,
        page_number=page_number,
        password=password,
    )
    return RequestWrapper(id=request_id, version=version, requesttime=timestamp, request=request)


class SigningClient:
    """Client for the PDF signing service"""

    def __init__(
        self,
        sign_url: str,
        reason: str,
        application_id: str = "KERNEL",
        reference_id: str = "SIGN",
        page_number: int = 3,
        signature_box: Tuple[int, int, int, int] = (5, 2, 232, 72),
        request_id: Optional[str] = None,
        version: Optional[str] = None,
        auth_token: Optional[str] = None,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.sign_url = sign_url
        self.reason = reason
        self.application_id = application_id
        self.reference_id = reference_id
        self.page_number = page_number
        self.signature_box = signature_box
        self.request_id = request_id
        self.version = version
        self.auth_token = auth_token
        self.timeout = timeout
        self.session = session or create_session()

    def sign(self, pdf_bytes: bytes, password: Optional[str] = None) -> bytes:
        """
        Sign a merged card PDF

        Raises:
            SigningServiceError: network failure, non-2xx status, reported error or missing document
        """
        wrapper = build_signature_request(
            pdf_bytes,
            reason=self.reason,
            password=password,
            application_id=self.application_id,
            reference_id=self.reference_id,
            page_number=self.page_number,
            signature_box=self.signature_box,
            request_id=self.request_id,
            version=self.version,
        )

        headers = {"Content-Type": "application/json"}
        cookies = {"Authorization": self.auth_token} if self.auth_token else None

        logger.info(f"Requesting PDF signature ({len(pdf_bytes)} bytes) from {self.sign_url}")
        try:
            response = self.session.post(
                self.sign_url,
                data=wrapper.model_dump_json(by_alias=True).encode("utf-8"),
                headers=headers,
                cookies=cookies,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Signing service unreachable: {e}")
            raise SigningServiceError(f"Failed to call signing service: {e}") from e

        if not 200 <= response.status_code < 300:
            logger.error(f"Signing service returned {response.status_code}: {response.text[:200]}")
            raise SigningServiceError(
                f"Signing service error (status={response.status_code}): {response.text}",
                status_code=response.status_code
            )

        try:
            envelope = ResponseWrapper.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            raise SigningServiceError(
                f"Signing service returned an unusable response: {e}",
                status_code=response.status_code
            ) from e

        if envelope.errors:
            error = envelope.errors[0]
            logger.error(f"Signing service reported {error.error_code}: {error.message}")
            raise SigningServiceError(error.message or "Signing service reported an error",
                                      status_code=response.status_code)

        try:
            signature = SignatureResponse.model_validate(envelope.response or {})
            signed = decode_base64(signature.data)
        except (PydanticValidationError, binascii.Error, ValueError) as e:
            raise SigningServiceError(
                f"Signing service response carries no signed document: {e}",
                status_code=response.status_code
            ) from e

        if not signed:
            raise SigningServiceError("Signing service returned an empty document", status_code=response.status_code)

        logger.info(f"Received signed PDF ({len(signed)} bytes)")
        return signed
