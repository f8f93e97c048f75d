"""
rfp_portal/lifecycle.py

Submission state machine.

Statuses (as stored and shown):
- Pending        submitted, waiting for review
- Under Review   an admin has started looking at it
- Shortlisted    terminal for the vendor
- Approved       terminal
- Rejected       terminal

"Draft" is not a submission status: draft content lives only in the draft store.

Rules:
- Admin review actions (approve / shortlist / decline) are accepted only from
  Pending or Under Review. Terminal submissions reject every action, including
  a repeat of the action that made them terminal.
- A vendor resubmission is accepted only inside the edit-ability window
  (Pending / Under Review) and always lands on Pending.
- can_edit() is the single edit-ability predicate; the server checks it on every
  update whatever the client believes the status is.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Optional, Union

from .errors import InvalidTransition, UnsupportedAction


class SubmissionStatus(str, Enum):
    PENDING = "Pending"
    UNDER_REVIEW = "Under Review"
    SHORTLISTED = "Shortlisted"
    APPROVED = "Approved"
    REJECTED = "Rejected"

    @classmethod
    def parse(cls, value: Union[str, "SubmissionStatus", None]) -> "SubmissionStatus":
        """Accept the stored label, the enum name, or an enum member."""
        if isinstance(value, cls):
            return value
        raw = (value or "").strip()
        for member in cls:
            if raw == member.value or raw.upper().replace(" ", "_") == member.name:
                return member
        raise ValueError(f"Unknown submission status: {value!r}")


class ReviewAction(str, Enum):
    APPROVE = "approve"
    SHORTLIST = "shortlist"
    DECLINE = "decline"


EDITABLE_STATUSES = frozenset({SubmissionStatus.PENDING, SubmissionStatus.UNDER_REVIEW})

# (from status, action) -> to status. Missing pairs are invalid transitions.
TRANSITIONS: Dict[tuple, SubmissionStatus] = {
    (SubmissionStatus.PENDING, ReviewAction.APPROVE): SubmissionStatus.APPROVED,
    (SubmissionStatus.PENDING, ReviewAction.SHORTLIST): SubmissionStatus.SHORTLISTED,
    (SubmissionStatus.PENDING, ReviewAction.DECLINE): SubmissionStatus.REJECTED,
    (SubmissionStatus.UNDER_REVIEW, ReviewAction.APPROVE): SubmissionStatus.APPROVED,
    (SubmissionStatus.UNDER_REVIEW, ReviewAction.SHORTLIST): SubmissionStatus.SHORTLISTED,
    (SubmissionStatus.UNDER_REVIEW, ReviewAction.DECLINE): SubmissionStatus.REJECTED,
}


def can_edit(status: Union[str, SubmissionStatus, None]) -> bool:
    """True iff a vendor may still modify a submission in this status."""
    try:
        return SubmissionStatus.parse(status) in EDITABLE_STATUSES
    except ValueError:
        return False


def parse_action(raw: Union[str, ReviewAction, None]) -> ReviewAction:
    """Map a raw action string to ReviewAction or raise UnsupportedAction."""
    if isinstance(raw, ReviewAction):
        return raw
    value = (raw or "").strip().lower() if isinstance(raw, str) else ""
    try:
        return ReviewAction(value)
    except ValueError:
        allowed = ", ".join(a.value for a in ReviewAction)
        raise UnsupportedAction(f"Unsupported action {raw!r}", details=f"expected one of: {allowed}") from None


def next_status(current: Union[str, SubmissionStatus], action: Union[str, ReviewAction]) -> SubmissionStatus:
    """
    Apply the transition table.

    Raises UnsupportedAction for unknown actions and InvalidTransition when the
    current status does not accept the action.
    """
    review_action = parse_action(action)
    status = SubmissionStatus.parse(current)
    target: Optional[SubmissionStatus] = TRANSITIONS.get((status, review_action))
    if target is None:
        raise InvalidTransition(
            f"Cannot {review_action.value} a submission that is {status.value}",
            status=status.value,
        )
    return target


def start_review(current: Union[str, SubmissionStatus]) -> SubmissionStatus:
    """Pending -> Under Review. Anything else is an invalid transition."""
    status = SubmissionStatus.parse(current)
    if status is not SubmissionStatus.PENDING:
        raise InvalidTransition(
            f"Cannot start review of a submission that is {status.value}",
            status=status.value,
        )
    return SubmissionStatus.UNDER_REVIEW


def resubmission_status(current: Union[str, SubmissionStatus]) -> SubmissionStatus:
    """
    Status after a vendor resubmits.

    Editable submissions restart review at Pending; frozen ones reject the edit.
    """
    status = SubmissionStatus.parse(current)
    if status not in EDITABLE_STATUSES:
        raise InvalidTransition(
            f"Submission is {status.value} and can no longer be edited",
            status=status.value,
        )
    return SubmissionStatus.PENDING
