"""
Visa Application Schemas

Pydantic schemas for request validation and response serialization.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from visa_api.modules.applications.models import ApplicationStatus, Gender, MaritalStatus


class ApplicationCreate(BaseModel):
    """Request body for POST /applications."""

    visa_type_id: UUID


class StatusUpdateRequest(BaseModel):
    """Request body for PUT /applications/{id}/status."""

    status: ApplicationStatus
    rejection_reason: str | None = Field(None, max_length=2000)

    @model_validator(mode="after")
    def _reason_required_for_rejection(self) -> "StatusUpdateRequest":
        if self.status == ApplicationStatus.REJECTED and not (
            self.rejection_reason and self.rejection_reason.strip()
        ):
            raise ValueError("rejection_reason is required when rejecting an application")
        return self


class PersonalInfoUpsert(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    date_of_birth: date
    gender: Gender
    marital_status: MaritalStatus | None = None
    nationality: str = Field(..., min_length=2, max_length=100)
    passport_number: str = Field(..., min_length=5, max_length=30)
    passport_issue_date: date
    passport_expiry_date: date
    passport_issuing_country: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    phone: str = Field(..., min_length=5, max_length=30)
    address: str = Field(..., min_length=1, max_length=500)
    city: str = Field(..., min_length=1, max_length=100)
    country: str = Field(..., min_length=2, max_length=100)
    postal_code: str | None = Field(None, max_length=20)
    occupation: str | None = Field(None, max_length=100)

    @model_validator(mode="after")
    def _dates_are_ordered(self) -> "PersonalInfoUpsert":
        if self.passport_issue_date >= self.passport_expiry_date:
            raise ValueError("passport_expiry_date must be after passport_issue_date")
        if self.date_of_birth >= self.passport_issue_date:
            raise ValueError("date_of_birth must be before passport_issue_date")
        return self


class PersonalInfoResponse(PersonalInfoUpsert):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    application_id: UUID
    email: str


class TravelInfoUpsert(BaseModel):
    purpose_of_travel: str = Field(..., min_length=1, max_length=200)
    intended_entry_date: date
    intended_exit_date: date
    port_of_entry: str = Field(..., min_length=1, max_length=100)
    accommodation_address: str = Field(..., min_length=1, max_length=500)
    host_name: str | None = Field(None, max_length=200)
    host_phone: str | None = Field(None, max_length=30)
    itinerary: str | None = Field(None, max_length=5000)
    previous_visits: int = Field(0, ge=0)
    final_destination: str | None = Field(None, max_length=100)


class TravelInfoResponse(TravelInfoUpsert):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    application_id: UUID


class FinancialInfoUpdate(BaseModel):
    funding_source: str = Field(..., min_length=1, max_length=100)
    monthly_income: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)


class UserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    first_name: str
    last_name: str


class VisaTypeSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    slug: str
    fee: Decimal


class ApplicationResponse(BaseModel):
    """A visa application as returned to clients."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    application_number: str
    status: ApplicationStatus
    user_id: UUID
    visa_type_id: UUID
    officer_id: UUID | None
    submission_date: datetime | None
    decision_date: datetime | None
    expiry_date: datetime | None
    rejection_reason: str | None
    funding_source: str | None
    monthly_income: Decimal | None
    created_at: datetime
    updated_at: datetime


class ApplicationDetailResponse(ApplicationResponse):
    """Application with its satellite records, for the detail view."""

    visa_type: VisaTypeSummary | None = None
    applicant: UserSummary | None = None
    officer: UserSummary | None = None
    personal_info: PersonalInfoResponse | None = None
    travel_info: TravelInfoResponse | None = None


class ApplicationListResponse(BaseModel):
    items: list[ApplicationResponse]
    total: int
    skip: int
    limit: int


class NoteCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)


class NoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    application_id: UUID
    officer_id: UUID
    content: str
    created_at: datetime
    updated_at: datetime
