"""SQLAlchemy table definitions.

These map to the frozen dataclass domain models in app/models/.
Repos convert between rows and dataclasses; nothing outside
app/repos/pg_*.py touches these classes.

Uniqueness that the engine relies on lives here, not in service code:
  - enrollments: one row per (user_id, course_id)
  - certificates: one row per (user_id, course_id) and per certificate_number
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import ARRAY, TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.engine import Base

ENROLLMENT_USER_COURSE_KEY = "uq_enrollments_user_course"
CERTIFICATE_USER_COURSE_KEY = "uq_certificates_user_course"
CERTIFICATE_NUMBER_KEY = "uq_certificates_number"


# --- Catalog ---


class CourseRow(Base):
    __tablename__ = "courses"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    # Soft reference; users live in the identity service
    instructor_id: Mapped[str] = mapped_column(String(320), nullable=False)
    instructor_name: Mapped[str] = mapped_column(
        String(255), nullable=False, default=""
    )
    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    duration: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )  # seconds; derived, see content_reconciler


class ModuleRow(Base):
    __tablename__ = "course_modules"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    course_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False
    )
    order: Mapped[int] = mapped_column("position", Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)

    __table_args__ = (
        UniqueConstraint("course_id", "position", name="uq_course_modules_position"),
    )


class LessonRow(Base):
    __tablename__ = "lessons"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    module_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("course_modules.id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    order: Mapped[int] = mapped_column("position", Integer, nullable=False)
    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_free: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    video_duration: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("video_duration >= 0", name="ck_lessons_video_duration"),
        Index("ix_lessons_module_id", "module_id"),
    )


# --- Progress ---


class EnrollmentRow(Base):
    __tablename__ = "enrollments"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[str] = mapped_column(String(320), nullable=False)
    course_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default="active"
    )  # active|completed|expired
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed_lessons: Mapped[list[uuid.UUID]] = mapped_column(
        ARRAY(UUID(as_uuid=True)), nullable=False, default=list
    )
    started_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )
    expires_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name=ENROLLMENT_USER_COURSE_KEY),
        CheckConstraint("progress BETWEEN 0 AND 100", name="ck_enrollments_progress"),
        CheckConstraint(
            "(status = 'completed') = (completed_at IS NOT NULL)",
            name="ck_enrollments_completed_at",
        ),
        Index("ix_enrollments_course_status", "course_id", "status"),
    )


class CertificateRow(Base):
    __tablename__ = "certificates"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[str] = mapped_column(String(320), nullable=False)
    course_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False
    )
    certificate_number: Mapped[str] = mapped_column(String(32), nullable=False)
    recipient_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    certificate_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    issued_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name=CERTIFICATE_USER_COURSE_KEY),
        UniqueConstraint("certificate_number", name=CERTIFICATE_NUMBER_KEY),
    )


class NotificationRow(Base):
    __tablename__ = "notifications"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[str] = mapped_column(String(320), nullable=False)
    type: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    link: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    __table_args__ = (Index("ix_notifications_user_id", "user_id"),)
