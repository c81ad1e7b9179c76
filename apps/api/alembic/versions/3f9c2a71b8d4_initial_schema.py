"""initial schema

Revision ID: 3f9c2a71b8d4
Revises:
Create Date: 2026-10-19

Creates every table of the visa workflow:
1. users and visa_types (referenced by everything else)
2. visa_applications with personal_info, travel_info and application_notes
3. documents and document_requests
4. interviews, payments, notifications, messages and audit_logs

Enum types are created up front with checkfirst so a partially migrated
database can be re-run.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "3f9c2a71b8d4"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


ENUMS = {
    "user_role": ("APPLICANT", "OFFICER", "ADMIN"),
    "application_status": ("PENDING", "SUBMITTED", "UNDER_REVIEW", "APPROVED", "REJECTED"),
    "gender": ("MALE", "FEMALE", "OTHER"),
    "marital_status": ("SINGLE", "MARRIED", "DIVORCED", "WIDOWED"),
    "verification_status": ("PENDING", "VERIFIED", "REJECTED"),
    "document_request_status": ("SENT", "SUBMITTED", "CANCELLED"),
    "interview_status": ("SCHEDULED", "RESCHEDULED", "COMPLETED", "CANCELLED"),
    "payment_status": ("PENDING", "COMPLETED", "FAILED", "REFUNDED"),
    "notification_type": (
        "APPLICATION_SUBMITTED",
        "STATUS_CHANGED",
        "DOCUMENT_VERIFIED",
        "DOCUMENT_REJECTED",
        "DOCUMENT_REQUESTED",
        "INTERVIEW_SCHEDULED",
        "PAYMENT_RECEIVED",
    ),
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _base_columns() -> list[sa.Column]:
    """id, created_at and updated_at shared by every BaseModel table."""
    return [
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def _fk(column: str, target: str, ondelete: str, nullable: bool = False) -> sa.Column:
    return sa.Column(
        column,
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey(target, ondelete=ondelete),
        nullable=nullable,
    )


def upgrade() -> None:
    bind = op.get_bind()
    for name in ENUMS:
        postgresql.ENUM(*ENUMS[name], name=name).create(bind, checkfirst=True)

    op.create_table(
        "users",
        *_base_columns(),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column("role", _enum("user_role"), nullable=False),
        sa.Column("permissions", postgresql.JSON(), nullable=False),
        sa.Column("department", sa.String(100), nullable=True),
        sa.Column("title", sa.String(100), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])

    op.create_table(
        "visa_types",
        *_base_columns(),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("slug", sa.String(150), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("fee", sa.Numeric(10, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("processing_days", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
    )
    op.create_index("ix_visa_types_slug", "visa_types", ["slug"], unique=True)

    op.create_table(
        "visa_applications",
        *_base_columns(),
        sa.Column("application_number", sa.String(20), nullable=False, unique=True),
        _fk("user_id", "users.id", "CASCADE"),
        _fk("visa_type_id", "visa_types.id", "RESTRICT"),
        _fk("officer_id", "users.id", "SET NULL", nullable=True),
        sa.Column("status", _enum("application_status"), nullable=False),
        sa.Column("submission_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("decision_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expiry_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("funding_source", sa.String(100), nullable=True),
        sa.Column("monthly_income", sa.Numeric(12, 2), nullable=True),
    )
    op.create_index(
        "ix_visa_applications_user_visa_type", "visa_applications", ["user_id", "visa_type_id"]
    )
    op.create_index(
        "ix_visa_applications_officer_status", "visa_applications", ["officer_id", "status"]
    )
    op.create_index("ix_visa_applications_status", "visa_applications", ["status"])
    # At most one unsubmitted draft per (user, visa type)
    op.create_index(
        "uq_visa_applications_open_draft",
        "visa_applications",
        ["user_id", "visa_type_id"],
        unique=True,
        postgresql_where=sa.text("status = 'PENDING' AND submission_date IS NULL"),
    )

    op.create_table(
        "personal_info",
        *_base_columns(),
        _fk("application_id", "visa_applications.id", "CASCADE"),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("date_of_birth", sa.Date(), nullable=False),
        sa.Column("gender", _enum("gender"), nullable=False),
        sa.Column("marital_status", _enum("marital_status"), nullable=True),
        sa.Column("nationality", sa.String(100), nullable=False),
        sa.Column("passport_number", sa.String(30), nullable=False),
        sa.Column("passport_issue_date", sa.Date(), nullable=False),
        sa.Column("passport_expiry_date", sa.Date(), nullable=False),
        sa.Column("passport_issuing_country", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(30), nullable=False),
        sa.Column("address", sa.String(500), nullable=False),
        sa.Column("city", sa.String(100), nullable=False),
        sa.Column("country", sa.String(100), nullable=False),
        sa.Column("postal_code", sa.String(20), nullable=True),
        sa.Column("occupation", sa.String(100), nullable=True),
        sa.UniqueConstraint("application_id"),
    )

    op.create_table(
        "travel_info",
        *_base_columns(),
        _fk("application_id", "visa_applications.id", "CASCADE"),
        sa.Column("purpose_of_travel", sa.String(200), nullable=False),
        sa.Column("intended_entry_date", sa.Date(), nullable=False),
        sa.Column("intended_exit_date", sa.Date(), nullable=False),
        sa.Column("port_of_entry", sa.String(100), nullable=False),
        sa.Column("accommodation_address", sa.String(500), nullable=False),
        sa.Column("host_name", sa.String(200), nullable=True),
        sa.Column("host_phone", sa.String(30), nullable=True),
        sa.Column("itinerary", sa.Text(), nullable=True),
        sa.Column("previous_visits", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("final_destination", sa.String(100), nullable=True),
        sa.UniqueConstraint("application_id"),
    )

    op.create_table(
        "application_notes",
        *_base_columns(),
        _fk("application_id", "visa_applications.id", "CASCADE"),
        _fk("officer_id", "users.id", "CASCADE"),
        sa.Column("content", sa.Text(), nullable=False),
    )
    op.create_index(
        "ix_application_notes_application_id", "application_notes", ["application_id"]
    )

    op.create_table(
        "documents",
        *_base_columns(),
        _fk("application_id", "visa_applications.id", "CASCADE"),
        sa.Column("document_type", sa.String(100), nullable=False),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("file_path", sa.String(1024), nullable=False),
        sa.Column("file_size", sa.BigInteger(), nullable=False),
        sa.Column(
            "upload_date",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("verification_status", _enum("verification_status"), nullable=False),
        _fk("verified_by", "users.id", "SET NULL", nullable=True),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
    )
    op.create_index(
        "ix_documents_application_type", "documents", ["application_id", "document_type"]
    )

    op.create_table(
        "document_requests",
        *_base_columns(),
        _fk("application_id", "visa_applications.id", "CASCADE"),
        _fk("officer_id", "users.id", "CASCADE"),
        sa.Column("document_name", sa.String(200), nullable=False),
        sa.Column("additional_details", sa.Text(), nullable=True),
        sa.Column("status", _enum("document_request_status"), nullable=False),
        _fk("document_id", "documents.id", "SET NULL", nullable=True),
    )
    op.create_index(
        "ix_document_requests_application_id", "document_requests", ["application_id"]
    )

    op.create_table(
        "interviews",
        *_base_columns(),
        _fk("application_id", "visa_applications.id", "CASCADE"),
        _fk("assigned_officer_id", "users.id", "RESTRICT"),
        _fk("scheduler_id", "users.id", "RESTRICT"),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("location", sa.String(300), nullable=False),
        sa.Column("status", _enum("interview_status"), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("outcome", sa.Text(), nullable=True),
        sa.Column("confirmed", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_interviews_application_id", "interviews", ["application_id"])
    op.create_index("ix_interviews_assigned_officer_id", "interviews", ["assigned_officer_id"])

    op.create_table(
        "payments",
        *_base_columns(),
        _fk("application_id", "visa_applications.id", "CASCADE"),
        _fk("user_id", "users.id", "CASCADE"),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("payment_status", _enum("payment_status"), nullable=False),
        sa.Column("provider_payment_id", sa.String(255), nullable=True, unique=True),
    )
    op.create_index("ix_payments_application_id", "payments", ["application_id"])
    op.create_index("ix_payments_user_id", "payments", ["user_id"])

    op.create_table(
        "notifications",
        *_base_columns(),
        _fk("user_id", "users.id", "CASCADE"),
        _fk("application_id", "visa_applications.id", "CASCADE", nullable=True),
        sa.Column("type", _enum("notification_type"), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default="false"),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])

    op.create_table(
        "messages",
        *_base_columns(),
        _fk("application_id", "visa_applications.id", "CASCADE"),
        _fk("sender_id", "users.id", "CASCADE"),
        _fk("recipient_id", "users.id", "CASCADE"),
        _fk("reply_to_id", "messages.id", "SET NULL", nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default="false"),
    )
    op.create_index("ix_messages_sender_id", "messages", ["sender_id"])
    op.create_index(
        "ix_messages_application_created", "messages", ["application_id", "created_at"]
    )
    op.create_index("ix_messages_recipient_unread", "messages", ["recipient_id", "is_read"])

    op.create_table(
        "audit_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("user_role", sa.String(20), nullable=True),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("entity_type", sa.String(32), nullable=False),
        sa.Column("entity_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("details", postgresql.JSON(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    )
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_entity_id", "audit_logs", ["entity_id"])


def downgrade() -> None:
    for table in (
        "audit_logs",
        "messages",
        "notifications",
        "payments",
        "interviews",
        "document_requests",
        "documents",
        "application_notes",
        "travel_info",
        "personal_info",
        "visa_applications",
        "visa_types",
        "users",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for name in reversed(list(ENUMS)):
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)
