"""
ID PASS Lite Card Issuance Service
Runs the issuance pipeline: identity -> QR card -> editor layout -> signature page merge -> PDF signature

Shared state (card encoder, signature page) is built once by create_card_issuer()
and only read afterwards, so one CardIssuer serves concurrent requests.
"""

import logging
from datetime import date
from typing import Any, Dict, Optional, Union

from app.core.config import Settings
from app.core.encoding import encode_base64
from app.core.exceptions import ValidationError, ImageDecodeError, EncodingError
from app.schemas.card import CardArtifacts
from app.services.card_encoder import CardEncoder, KeyStore
from app.services.document_merger import load_signature_page, merge_pdfs
from app.services.editor_client import EditorClient
from app.services.identity_builder import build_identity
from app.services.signing_client import SigningClient

logger = logging.getLogger(__name__)


class CardIssuer:
    """Issues signed ID PASS Lite identity card PDFs"""

    def __init__(
        self,
        encoder: CardEncoder,
        signature_page: bytes,
        editor_client: EditorClient,
        signing_client: SigningClient,
    ):
        self.encoder = encoder
        self.signature_page = signature_page
        self.editor_client = editor_client
        self.signing_client = signing_client

    def generate_qr_code(
        self,
        cs: Union[str, Dict[str, Any]],
        photo_b64: str,
        pincode: str,
    ) -> Optional[CardArtifacts]:
        """
        Build the identity record and render its card as PNG and SVG QR codes

        Args:
            cs: Credential subject JSON
            photo_b64: Face photo (data URI or bare base64)
            pincode: ID PASS Lite PIN code

        Returns:
            CardArtifacts, or None when the input is rejected or cannot be encoded
        """
        try:
            record = build_identity(cs, photo_b64, pincode)
            card = self.encoder.new_card(record)
            qr_code_png = card.as_qr_code_png()
            qr_code_svg = card.as_qr_code_svg()
        except (ValidationError, ImageDecodeError, EncodingError) as e:
            logger.warning(f"Card input rejected ({type(e).__name__}): {e}")
            return None

        return CardArtifacts(
            record=record,
            payload=card.payload,
            qr_code_png=qr_code_png,
            qr_code_svg=qr_code_svg,
            face_photo_b64=encode_base64(record.photo) if record.photo else None,
            card_details=card.details,
        )

    def editor_generate(self, artifacts: CardArtifacts, issue_date: Optional[date] = None) -> bytes:
        """Lay out the unsigned card PDF through the editor service"""
        return self.editor_client.generate(artifacts, issue_date)

    def generate_uin_card(self, artifacts: CardArtifacts, password: Optional[str] = None,
                          issue_date: Optional[date] = None) -> bytes:
        """
        Lay out, merge with the signature page, and sign the card

        Raises:
            LayoutServiceError: editor failure; nothing is sent for signing
            MergeError: the editor PDF cannot be merged
            SigningServiceError: signing failure, with the remote message
        """
        unsigned = self.editor_generate(artifacts, issue_date)
        merged = merge_pdfs([unsigned, self.signature_page])
        return self.signing_client.sign(merged, password)

    def issue(
        self,
        cs: Union[str, Dict[str, Any]],
        photo_b64: str,
        pin: str,
        password: Optional[str] = None,
    ) -> Optional[bytes]:
        """
        Issue a signed identity card PDF

        Returns:
            Signed PDF bytes, or None when the credential subject, photo or PIN is rejected

        Raises:
            LayoutServiceError, MergeError, SigningServiceError
        """
        artifacts = self.generate_qr_code(cs, photo_b64, pin)
        if artifacts is None:
            return None

        logger.info(f"Issuing card for UIN {artifacts.record.uin}")
        signed = self.generate_uin_card(artifacts, password)
        logger.info(f"Card issued for UIN {artifacts.record.uin} ({len(signed)} bytes)")
        return signed


def create_card_issuer(settings: Settings) -> CardIssuer:
    """Initialise the process-wide card issuer from settings"""
    p12_path = settings.get_p12_path()
    if p12_path is not None:
        key_store = KeyStore.from_file(
            p12_path,
            settings.IDPASS_STORE_PREFIX,
            settings.IDPASS_STORE_PASSWORD,
            settings.IDPASS_KEY_PASSWORD,
        )
    else:
        key_store = KeyStore.generate(settings.IDPASS_STORE_PREFIX, settings.IDPASS_KEY_PASSWORD)

    signature_box = (
        settings.SIGN_LOWER_LEFT_X,
        settings.SIGN_LOWER_LEFT_Y,
        settings.SIGN_UPPER_RIGHT_X,
        settings.SIGN_UPPER_RIGHT_Y,
    )

    encoder = CardEncoder(key_store, settings.visible_fields_list)
    signature_page = load_signature_page(settings.SIGNATURE_PAGE_PATH, signature_box)

    editor_client = EditorClient(
        settings.EDITOR_URL,
        expire_years=settings.EXPIRE_YEARS,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )
    signing_client = SigningClient(
        settings.PDF_SIGN_URL,
        reason=settings.SIGNATURE_REASON,
        application_id=settings.SIGN_APPLICATION_ID,
        reference_id=settings.SIGN_REFERENCE_ID,
        page_number=settings.SIGN_PAGE_NUMBER,
        signature_box=signature_box,
        request_id=settings.SIGN_REQUEST_ID,
        version=settings.SIGN_REQUEST_VERSION,
        auth_token=settings.PDF_SIGN_AUTH_TOKEN,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )

    logger.info(
        f"Card issuer ready: key store '{key_store.store_prefix}', "
        f"visible fields {encoder.visible_fields}, editor {settings.EDITOR_URL}"
    )
    return CardIssuer(encoder, signature_page, editor_client, signing_client)
