"""
Visa Application Models

The VisaApplication aggregate and its owned satellite records:
personal info, travel info and officer notes.
"""

import enum
import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from visa_api.modules.shared.models import BaseModel
from visa_api.modules.users.models import User
from visa_api.modules.visa_types.models import VisaType


class ApplicationStatus(str, enum.Enum):
    """Status of a visa application."""

    PENDING = "PENDING"
    SUBMITTED = "SUBMITTED"
    UNDER_REVIEW = "UNDER_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class Gender(str, enum.Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"
    OTHER = "OTHER"


class MaritalStatus(str, enum.Enum):
    SINGLE = "SINGLE"
    MARRIED = "MARRIED"
    DIVORCED = "DIVORCED"
    WIDOWED = "WIDOWED"


class VisaApplication(BaseModel):
    """
    A visa application, the aggregate root of the workflow.

    Created PENDING with no satellite records. submission_date is set once,
    on the PENDING -> SUBMITTED transition.
    """

    __tablename__ = "visa_applications"

    application_number: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    visa_type_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("visa_types.id", ondelete="RESTRICT"),
        nullable=False,
    )
    officer_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    status: Mapped[ApplicationStatus] = mapped_column(
        Enum(ApplicationStatus, name="application_status"),
        nullable=False,
        default=ApplicationStatus.PENDING,
    )
    submission_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    decision_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    expiry_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Financial info
    funding_source: Mapped[str | None] = mapped_column(String(100), nullable=True)
    monthly_income: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    # Relationships
    applicant: Mapped[User] = relationship(User, foreign_keys=[user_id], lazy="selectin")
    officer: Mapped[User | None] = relationship(User, foreign_keys=[officer_id], lazy="selectin")
    visa_type: Mapped[VisaType] = relationship(VisaType, lazy="selectin")
    personal_info: Mapped["PersonalInfo | None"] = relationship(
        "PersonalInfo",
        back_populates="application",
        uselist=False,
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    travel_info: Mapped["TravelInfo | None"] = relationship(
        "TravelInfo",
        back_populates="application",
        uselist=False,
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_visa_applications_user_visa_type", "user_id", "visa_type_id"),
        Index("ix_visa_applications_officer_status", "officer_id", "status"),
        Index("ix_visa_applications_status", "status"),
        # At most one unsubmitted draft per (user, visa type)
        Index(
            "uq_visa_applications_open_draft",
            "user_id",
            "visa_type_id",
            unique=True,
            postgresql_where=text("status = 'PENDING' AND submission_date IS NULL"),
        ),
    )

    def __repr__(self) -> str:
        return f"<VisaApplication({self.application_number}, status={self.status.value})>"


class PersonalInfo(BaseModel):
    """Applicant's identity and passport details. One per application."""

    __tablename__ = "personal_info"

    application_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("visa_applications.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    date_of_birth: Mapped[date] = mapped_column(Date, nullable=False)
    gender: Mapped[Gender] = mapped_column(Enum(Gender, name="gender"), nullable=False)
    marital_status: Mapped[MaritalStatus | None] = mapped_column(
        Enum(MaritalStatus, name="marital_status"), nullable=True
    )
    nationality: Mapped[str] = mapped_column(String(100), nullable=False)

    passport_number: Mapped[str] = mapped_column(String(30), nullable=False)
    passport_issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    passport_expiry_date: Mapped[date] = mapped_column(Date, nullable=False)
    passport_issuing_country: Mapped[str] = mapped_column(String(100), nullable=False)

    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(30), nullable=False)
    address: Mapped[str] = mapped_column(String(500), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    country: Mapped[str] = mapped_column(String(100), nullable=False)
    postal_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    occupation: Mapped[str | None] = mapped_column(String(100), nullable=True)

    application: Mapped[VisaApplication] = relationship(
        VisaApplication, back_populates="personal_info"
    )


class TravelInfo(BaseModel):
    """Planned trip details. One per application."""

    __tablename__ = "travel_info"

    application_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("visa_applications.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )

    purpose_of_travel: Mapped[str] = mapped_column(String(200), nullable=False)
    intended_entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    intended_exit_date: Mapped[date] = mapped_column(Date, nullable=False)
    port_of_entry: Mapped[str] = mapped_column(String(100), nullable=False)
    accommodation_address: Mapped[str] = mapped_column(String(500), nullable=False)
    host_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    host_phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    itinerary: Mapped[str | None] = mapped_column(Text, nullable=True)
    previous_visits: Mapped[int] = mapped_column(default=0, nullable=False)
    final_destination: Mapped[str | None] = mapped_column(String(100), nullable=True)

    application: Mapped[VisaApplication] = relationship(
        VisaApplication, back_populates="travel_info"
    )


class ApplicationNote(BaseModel):
    """Internal officer note. Never shown to the applicant."""

    __tablename__ = "application_notes"

    application_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("visa_applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    officer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
