from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Certificate:
    """Permanent proof of completion.

    At most one per (user_id, course_id), and ``certificate_number`` is
    globally unique; both are enforced by the repository, not by callers.
    Only ``certificate_url`` is ever written after creation (backfill).
    ``recipient_name`` is the learner's display name at issue time, kept so
    the file can be re-rendered and the number verified without a user lookup.
    """

    id: UUID
    user_id: str
    course_id: UUID
    certificate_number: str
    issued_at: datetime
    certificate_url: str | None = None
    recipient_name: str = ""

    @staticmethod
    def new(
        *,
        user_id: str,
        course_id: UUID,
        certificate_number: str,
        issued_at: datetime,
        recipient_name: str = "",
        certificate_url: str | None = None,
    ) -> Certificate:
        return Certificate(
            id=uuid4(),
            user_id=user_id,
            course_id=course_id,
            certificate_number=certificate_number,
            issued_at=issued_at,
            certificate_url=certificate_url,
            recipient_name=recipient_name,
        )
