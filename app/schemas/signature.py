"""
PDF Signature Schemas
Request/response envelopes exchanged with the PDF signing service
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any


class PDFSignatureRequest(BaseModel):
    """Signing request body: the document plus where and why to sign it"""
    application_id: str = Field(..., alias="applicationId")
    reference_id: str = Field(..., alias="referenceId")
    data: str = Field(..., description="Base64-encoded PDF")
    time_stamp: str = Field(..., alias="timeStamp")
    lower_left_x: int = Field(..., alias="lowerLeftX")
    lower_left_y: int = Field(..., alias="lowerLeftY")
    upper_right_x: int = Field(..., alias="upperRightX")
    upper_right_y: int = Field(..., alias="upperRightY")
    reason: str
    page_number: int = Field(..., alias="pageNumber")
    password: Optional[str] = None

    class Config:
        populate_by_name = True


class RequestWrapper(BaseModel):
    """Standard request envelope"""
    id: Optional[str] = None
    version: Optional[str] = None
    requesttime: str
    metadata: Optional[Dict[str, Any]] = None
    request: PDFSignatureRequest


class ErrorDTO(BaseModel):
    """Error entry reported by the signing service"""
    error_code: Optional[str] = Field(None, alias="errorCode")
    message: Optional[str] = None

    class Config:
        populate_by_name = True


class ResponseWrapper(BaseModel):
    """Standard response envelope"""
    id: Optional[str] = None
    version: Optional[str] = None
    responsetime: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    response: Optional[Dict[str, Any]] = None
    errors: Optional[List[ErrorDTO]] = None


class SignatureResponse(BaseModel):
    """Signed document returned in ResponseWrapper.response"""
    data: str
    timestamp: Optional[str] = None
