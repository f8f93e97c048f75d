"""
rfp_portal/admin_actions.py

Admin review actions on submissions.

Vocabulary:
- approve   -> Approved
- shortlist -> Shortlisted
- decline   -> Rejected

Order of checks (each failure leaves the submission untouched):
1) actor must be an admin                       -> Forbidden
2) action must be in the vocabulary             -> UnsupportedAction
3) submission must exist                        -> NotFound
4) current status must accept the action        -> InvalidTransition (with current status)

Notes replace the stored admin notes; an omitted note clears them.

IMPORTANT:
- Two admins acting on the same submission at the same time: the optimistic
  version check lets exactly one commit. The other receives InvalidTransition
  carrying the status the winner produced.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm.exc import StaleDataError

from .audit import log_action, serialize_model
from .errors import InvalidTransition, NotFound
from .extensions import db
from .lifecycle import next_status, parse_action
from .models import Submission
from .security import Actor, require_admin

logger = logging.getLogger(__name__)


class AdminActionProcessor:
    """Applies approve / shortlist / decline to stored submissions."""

    def __init__(self, clock: Callable[[], datetime] = datetime.utcnow):
        self._clock = clock

    def apply(self, actor: Actor, submission_id: int, action: str, notes: Optional[str] = None) -> Submission:
        require_admin(actor)
        review_action = parse_action(action)

        submission = db.session.get(Submission, submission_id)
        if submission is None:
            raise NotFound(f"Submission {submission_id} not found")

        try:
            target = next_status(submission.status, review_action)
        except InvalidTransition:
            logger.warning(
                "Rejected %s on submission %s (status %s) by %s",
                review_action.value, submission_id, submission.status, actor.label,
            )
            raise

        before_snapshot = serialize_model(submission)
        previous = submission.status

        submission.status = target.value
        submission.admin_notes = notes or ""
        submission.status_changed_at = self._clock()

        try:
            db.session.flush()
        except StaleDataError:
            db.session.rollback()
            fresh = db.session.get(Submission, submission_id)
            current = fresh.status if fresh else None
            logger.warning(
                "Concurrent change on submission %s; %s by %s not applied (now %s)",
                submission_id, review_action.value, actor.label, current,
            )
            raise InvalidTransition(
                f"Submission {submission_id} was changed by someone else",
                status=current,
            ) from None

        log_action(
            submission,
            review_action.value.upper(),
            actor,
            before=before_snapshot,
            after=serialize_model(submission),
        )
        db.session.commit()

        logger.info(
            "Submission %s: %s -> %s by %s",
            submission_id, previous, target.value, actor.label,
        )
        return submission
