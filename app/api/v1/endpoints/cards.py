"""
Card Issuance API endpoints
Issues signed ID PASS Lite card PDFs and previews card QR codes
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from app.core.encoding import encode_base64
from app.core.exceptions import LayoutServiceError, MergeError, SigningServiceError
from app.schemas.card import CardIssueRequest, QRCodeResponse
from app.services.card_issuer import CardIssuer

logger = logging.getLogger(__name__)
router = APIRouter()


def get_card_issuer(request: Request) -> CardIssuer:
    """Card issuer initialised at application startup"""
    return request.app.state.card_issuer


@router.post("/issue", summary="Issue Signed Identity Card")
def issue_card(
    card_request: CardIssueRequest,
    issuer: CardIssuer = Depends(get_card_issuer)
):
    """
    Issue a signed ID PASS Lite identity card

    Returns the signed 3-page PDF (card front, card back, signature page).
    """
    try:
        pdf_bytes = issuer.issue(
            card_request.credential_subject,
            card_request.photo,
            card_request.pin,
            card_request.password,
        )
    except (LayoutServiceError, SigningServiceError) as e:
        logger.error(f"Card issuance failed at remote service: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=e.message
        )
    except MergeError as e:
        logger.error(f"Card issuance failed during merge: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to assemble card document: {e}"
        )

    if pdf_bytes is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Credential subject, photo or PIN rejected"
        )

    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f"attachment; filename=idcard_{datetime.now().strftime('%Y%m%d_%H%M%S')}.pdf",
            "Content-Length": str(len(pdf_bytes)),
            "Cache-Control": "no-cache, no-store, must-revalidate",
        }
    )


@router.post("/qrcode", response_model=QRCodeResponse, summary="Generate Card QR Code")
def generate_qr_code(
    card_request: CardIssueRequest,
    issuer: CardIssuer = Depends(get_card_issuer)
) -> QRCodeResponse:
    """
    Encode the card and return its QR code without calling the editor or signing services
    """
    artifacts = issuer.generate_qr_code(
        card_request.credential_subject,
        card_request.photo,
        card_request.pin,
    )
    if artifacts is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Credential subject, photo or PIN rejected"
        )

    return QRCodeResponse(
        success=True,
        qr_code_png_base64=encode_base64(artifacts.qr_code_png),
        qr_code_svg_base64=encode_base64(artifacts.qr_code_svg),
        payload_size_bytes=len(artifacts.payload),
        card_details=artifacts.card_details,
        message="QR code generated successfully"
    )
