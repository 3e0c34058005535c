"""
Pydantic schemas for request/response validation
"""

# Identity schemas
from app.schemas.identity import IdentityFields, IdentityRecord

# Card schemas
from app.schemas.card import CardArtifacts, CardIssueRequest, QRCodeResponse

# Signing service envelopes
from app.schemas.signature import (
    PDFSignatureRequest, RequestWrapper, ResponseWrapper, ErrorDTO, SignatureResponse
)
