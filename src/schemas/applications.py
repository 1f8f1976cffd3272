from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional

from ..domain.enums import ApplicationStatus, FlatType


class ApplicationCreate(BaseModel):
    """Schema for submitting a new application"""

    project_name: str = Field(..., min_length=1, max_length=255)
    flat_type: str = Field(..., min_length=1, max_length=50, examples=["2-Room", "3-Room"])


class ApplicationResponse(BaseModel):
    """Response schema for application"""

    model_config = ConfigDict(from_attributes=True)

    application_id: str
    applicant_nric: str
    project_name: str
    selected_flat_type: FlatType
    status: ApplicationStatus
    withdrawal_requested: bool
    created_at: datetime
    booked_at: Optional[datetime] = None


class ApplicationList(BaseModel):
    """List of applications"""

    applications: list[ApplicationResponse]
    total: int


class TransitionResponse(BaseModel):
    """Result of a state-changing action"""

    application: ApplicationResponse
    message: str
    persisted: bool = True
