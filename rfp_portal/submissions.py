"""
rfp_portal/submissions.py

Submission repository: the server-side store of submitted proposals.

Operations:
- create(actor, content)                 vendor files a new proposal (Pending)
- resubmit(actor, submission_id, content) vendor replaces an editable proposal (back to Pending)
- get(actor, submission_id)              vendor: own only; admin: any
- list_for_vendor(actor)                 vendor dashboard
- list_all(actor, status=None)           admin dashboard (pull / polling interface)
- start_review(actor, submission_id)     admin marks a Pending proposal as Under Review

IMPORTANT:
- Edit-ability is checked here on every resubmission, independent of what the
  client displayed.
- Only vendors whose account is approved (Vendor.is_active) may create or
  resubmit. Anyone else gets Forbidden.
- Submission.version is an optimistic lock: if an admin transition and a vendor
  resubmission race, the loser gets InvalidTransition with the winner's status.
- Transaction pattern: flush -> audit -> commit (once).
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional, Union

from sqlalchemy.orm import joinedload
from sqlalchemy.orm.exc import StaleDataError

from .audit import log_action, serialize_model
from .content import Content, PartialContent
from .errors import Forbidden, InvalidTransition, NotFound
from .extensions import db
from .lifecycle import SubmissionStatus, resubmission_status, start_review as _start_review_status
from .models import Submission, Vendor
from .security import Actor, require_admin, require_vendor
from .validation import promote

logger = logging.getLogger(__name__)

DEFAULT_RFP_TYPE = "Private Aviation Workflow Modernization"


@dataclass
class SubmissionRecord:
    """What the wizard needs to know about a stored submission."""

    id: int
    vendor_id: int
    status: SubmissionStatus
    content: PartialContent = field(default_factory=PartialContent)
    submitted_at: Optional[str] = None

    @classmethod
    def from_model(cls, submission: Submission) -> "SubmissionRecord":
        return cls(
            id=submission.id,
            vendor_id=submission.vendor_id,
            status=submission.review_status,
            content=submission.to_content(),
            submitted_at=submission.submitted_at.isoformat() if submission.submitted_at else None,
        )

    @classmethod
    def from_dict(cls, data: dict) -> "SubmissionRecord":
        return cls(
            id=int(data["id"]),
            vendor_id=int(data["vendor_id"]),
            status=SubmissionStatus.parse(data["status"]),
            content=PartialContent.model_validate(data.get("content") or {}),
            submitted_at=data.get("submitted_at"),
        )


class SubmissionGateway(ABC):
    """What the wizard controller consumes (in-process repository or HTTP client)."""

    @abstractmethod
    def fetch(self, actor: Actor, submission_id: int) -> SubmissionRecord:
        ...

    @abstractmethod
    def create(self, actor: Actor, content: Content) -> SubmissionRecord:
        ...

    @abstractmethod
    def update(self, actor: Actor, submission_id: int, content: Content) -> SubmissionRecord:
        ...


class SubmissionRepository(SubmissionGateway):
    """SQLAlchemy-backed repository (runs inside the Flask app context)."""

    def __init__(self, rfp_type: str = DEFAULT_RFP_TYPE, clock: Callable[[], datetime] = datetime.utcnow):
        self.rfp_type = rfp_type
        self._clock = clock

    # -----------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------
    def get(self, actor: Actor, submission_id: int) -> Submission:
        """
        Load a submission visible to `actor`.

        Another vendor's submission is reported as NotFound so ids cannot be probed.
        """
        if actor is None:
            raise Forbidden("Not authenticated")

        submission = db.session.get(Submission, submission_id)
        if submission is None:
            raise NotFound(f"Submission {submission_id} not found")

        if actor.is_admin:
            return submission
        if actor.vendor_id is None or submission.vendor_id != actor.vendor_id:
            raise NotFound(f"Submission {submission_id} not found")
        return submission

    def list_for_vendor(self, actor: Actor) -> List[Submission]:
        vendor_id = require_vendor(actor)
        return (
            Submission.query.filter_by(vendor_id=vendor_id)
            .order_by(Submission.submitted_at.desc(), Submission.id.desc())
            .all()
        )

    def list_all(self, actor: Actor, status: Union[str, SubmissionStatus, None] = None) -> List[Submission]:
        require_admin(actor)
        q = Submission.query.options(joinedload(Submission.vendor))
        if status:
            q = q.filter(Submission.status == SubmissionStatus.parse(status).value)
        return q.order_by(Submission.submitted_at.desc(), Submission.id.desc()).all()

    # -----------------------------------------------------------------
    # Writes
    # -----------------------------------------------------------------
    def create_submission(self, actor: Actor, content: Union[Content, PartialContent]) -> Submission:
        vendor_id = _require_approved_vendor(actor)
        content = _as_content(content)
        now = self._clock()

        submission = Submission(
            vendor_id=vendor_id,
            rfp_type=self.rfp_type,
            status=SubmissionStatus.PENDING.value,
            submitted_at=now,
        )
        submission.apply_content(content)

        db.session.add(submission)
        db.session.flush()
        log_action(submission, "CREATE", actor, before=None, after=serialize_model(submission))
        db.session.commit()

        logger.info("Vendor %s submitted proposal %s", vendor_id, submission.id)
        return submission

    def resubmit(self, actor: Actor, submission_id: int, content: Union[Content, PartialContent]) -> Submission:
        vendor_id = _require_approved_vendor(actor)
        submission = self.get(actor, submission_id)
        content = _as_content(content)

        before_snapshot = serialize_model(submission)
        previous = submission.review_status
        target = resubmission_status(previous)

        submission.apply_content(content)
        submission.status = target.value
        submission.submitted_at = self._clock()

        try:
            db.session.flush()
        except StaleDataError:
            db.session.rollback()
            fresh = db.session.get(Submission, submission_id)
            raise InvalidTransition(
                "Submission changed while it was being resubmitted",
                status=fresh.status if fresh else None,
            ) from None

        log_action(submission, "RESUBMIT", actor, before=before_snapshot, after=serialize_model(submission))
        db.session.commit()

        logger.info(
            "Vendor %s resubmitted proposal %s (%s -> %s)",
            vendor_id, submission.id, previous.value, target.value,
        )
        return submission

    def start_review(self, actor: Actor, submission_id: int) -> Submission:
        require_admin(actor)
        submission = self.get(actor, submission_id)
        before_snapshot = serialize_model(submission)

        submission.status = _start_review_status(submission.status).value
        submission.status_changed_at = self._clock()

        try:
            db.session.flush()
        except StaleDataError:
            db.session.rollback()
            fresh = db.session.get(Submission, submission_id)
            raise InvalidTransition(
                "Submission changed while review was being started",
                status=fresh.status if fresh else None,
            ) from None

        log_action(submission, "START_REVIEW", actor, before=before_snapshot, after=serialize_model(submission))
        db.session.commit()
        return submission

    # -----------------------------------------------------------------
    # SubmissionGateway (used by an in-process wizard)
    # -----------------------------------------------------------------
    def fetch(self, actor: Actor, submission_id: int) -> SubmissionRecord:
        return SubmissionRecord.from_model(self.get(actor, submission_id))

    def create(self, actor: Actor, content: Content) -> SubmissionRecord:
        return SubmissionRecord.from_model(self.create_submission(actor, content))

    def update(self, actor: Actor, submission_id: int, content: Content) -> SubmissionRecord:
        return SubmissionRecord.from_model(self.resubmit(actor, submission_id, content))


def _require_approved_vendor(actor: Actor) -> int:
    """Only vendors whose account is approved (active) may submit or resubmit."""
    vendor_id = require_vendor(actor)
    vendor = db.session.get(Vendor, vendor_id)
    if vendor is None or not vendor.is_active:
        raise Forbidden("Vendor account not approved")
    return vendor_id


def _as_content(content: Union[Content, PartialContent]) -> Content:
    if isinstance(content, Content):
        return content
    return promote(content)
