"""
Issuance pipeline exceptions

One exception type per pipeline stage. Remote-service errors carry the
HTTP status code and the message reported by the remote side.
"""

from typing import Optional


class CardIssuanceError(Exception):
    """Base exception for card issuance errors"""
    pass


class ValidationError(CardIssuanceError):
    """Credential subject or PIN does not satisfy the identity field constraints"""
    pass


class ImageDecodeError(CardIssuanceError):
    """Face photo could not be decoded or transcoded"""
    pass


class EncodingError(CardIssuanceError):
    """Card could not be encoded or rendered as a QR code"""
    pass


class CardDecodingError(EncodingError):
    """Card payload is corrupt, not ours, or the PIN does not match"""
    pass


class MergeError(CardIssuanceError):
    """Unsigned card could not be merged with the signature page"""
    pass


class RemoteServiceError(CardIssuanceError):
    """Base exception for failures reported by a remote HTTP service"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class LayoutServiceError(RemoteServiceError):
    """Card editor service failed or returned an unusable response"""
    pass


class SigningServiceError(RemoteServiceError):
    """PDF signing service failed or reported an error"""
    pass
