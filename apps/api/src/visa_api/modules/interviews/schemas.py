"""Interview schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from visa_api.modules.interviews.models import InterviewStatus


class InterviewCreate(BaseModel):
    assigned_officer_id: UUID
    scheduled_at: datetime
    location: str = Field(..., min_length=1, max_length=300)
    notes: str | None = Field(None, max_length=5000)


class InterviewReschedule(BaseModel):
    scheduled_at: datetime
    location: str | None = Field(None, min_length=1, max_length=300)
    notes: str | None = Field(None, max_length=5000)


class InterviewComplete(BaseModel):
    outcome: str = Field(..., min_length=1, max_length=5000)
    notes: str | None = Field(None, max_length=5000)


class OfficerSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    first_name: str
    last_name: str
    email: str


class InterviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    application_id: UUID
    assigned_officer_id: UUID
    scheduler_id: UUID
    assigned_officer: OfficerSummary | None = None
    scheduler: OfficerSummary | None = None
    scheduled_at: datetime
    location: str
    status: InterviewStatus
    notes: str | None
    outcome: str | None
    confirmed: bool
    confirmed_at: datetime | None
    created_at: datetime
    updated_at: datetime
