from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional


class EnquiryCreate(BaseModel):
    question: str = Field(..., min_length=1, max_length=2000)


class EnquiryUpdate(BaseModel):
    question: str = Field(..., min_length=1, max_length=2000)


class EnquiryReply(BaseModel):
    reply: str = Field(..., min_length=1, max_length=2000)


class EnquiryResponse(BaseModel):
    """Response schema for enquiry"""

    model_config = ConfigDict(from_attributes=True)

    enquiry_id: str
    applicant_nric: str
    project_name: str
    question: str
    created_at: datetime
    reply: Optional[str] = None
    replied_by: Optional[str] = None
    replied_at: Optional[datetime] = None
    is_answered: bool


class EnquiryList(BaseModel):
    enquiries: list[EnquiryResponse]
    total: int


class EnquiryActionResponse(BaseModel):
    """Result of an enquiry change"""

    enquiry: EnquiryResponse
    message: str
    persisted: bool = True
