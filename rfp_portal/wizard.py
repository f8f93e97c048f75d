"""
rfp_portal/wizard.py

Five-step proposal wizard (the controller behind the vendor form).

Steps:
1) Company Info  2) Solution Fit  3) Technical Capabilities
4) Implementation & Pricing  5) References & Fit  -> Submitted

Modes:
- create: hydrated from the vendor's draft (if any); edits are autosaved to
  the draft store from step 2 onwards.
- edit:   hydrated from an existing editable submission; the draft store is not
  touched and autosave is off.

IMPORTANT:
- Required-field checks run here, before any store or repository call.
- Navigation saves immediately. A failed save shows up in save_state and
  never blocks moving between steps.
- submit() never discards the working copy on failure; the vendor can retry.
- Once submitted, the instance is closed. Open a new one to edit again.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Union

from pydantic import ValidationError

from .autosave import AutosaveScheduler, SaveState
from .content import (
    CONSENT_FIELDS,
    FIRST_STEP,
    LAST_STEP,
    STEP_TITLES,
    IntegrationScore,
    PartialContent,
    Reference,
    completion_percentage,
)
from .drafts import DraftSnapshot, DraftStore
from .errors import InvalidTransition, PortalError, ValidationFailed, WizardClosed
from .lifecycle import can_edit
from .security import Actor, require_vendor
from .submissions import SubmissionGateway, SubmissionRecord
from .validation import promote, step_errors, validate_step

logger = logging.getLogger(__name__)

# Registration profile keys that override draft values on entry.
PROFILE_FIELDS = ("company_name", "contact_person", "email", "phone", "website", "company_description")


class WizardMode(str, Enum):
    CREATE = "create"
    EDIT = "edit"


class StepFormController:
    def __init__(
        self,
        actor: Actor,
        drafts: DraftStore,
        submissions: SubmissionGateway,
        profile: Optional[Mapping[str, Any]] = None,
        debounce_seconds: float = 2.0,
        display_seconds: float = 3.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.actor = actor
        self.vendor_id = require_vendor(actor)
        self.drafts = drafts
        self.submissions = submissions
        self.profile = dict(profile or {})

        self.autosave = AutosaveScheduler(
            self._write_draft,
            debounce_seconds=debounce_seconds,
            display_seconds=display_seconds,
            clock=clock,
        )

        self.mode = WizardMode.CREATE
        self.current_step = FIRST_STEP
        self.working_copy = PartialContent()
        self.submission_id: Optional[int] = None
        self.submitted = False
        self._loaded_saved_at: Optional[datetime] = None

    @classmethod
    def from_config(
        cls,
        actor: Actor,
        drafts: DraftStore,
        submissions: SubmissionGateway,
        config: Mapping[str, Any],
        profile: Optional[Mapping[str, Any]] = None,
    ) -> "StepFormController":
        """Build a controller with autosave timings taken from app config."""
        return cls(
            actor,
            drafts,
            submissions,
            profile=profile,
            debounce_seconds=config.get("AUTOSAVE_DEBOUNCE_SECONDS", 2.0),
            display_seconds=config.get("AUTOSAVE_STATUS_DISPLAY_SECONDS", 3.0),
        )

    # -----------------------------------------------------------------
    # Entry
    # -----------------------------------------------------------------
    def open_create(self) -> "StepFormController":
        """Start (or resume) a new proposal from the vendor's draft."""
        snapshot = self.drafts.load(self.vendor_id)

        content = snapshot.content if snapshot else PartialContent()
        self.working_copy = self._with_profile(content)
        self._loaded_saved_at = snapshot.last_saved_at if snapshot else None

        self.mode = WizardMode.CREATE
        self.submission_id = None
        self.current_step = FIRST_STEP
        self.submitted = False
        self.autosave.enabled = True
        return self

    def open_edit(self, submission_id: int) -> "StepFormController":
        """Edit an existing submission while it is still inside its edit-ability window."""
        record = self.submissions.fetch(self.actor, submission_id)
        if not can_edit(record.status):
            raise InvalidTransition(
                f"Submission is {record.status.value} and can no longer be edited",
                status=record.status.value,
            )

        self.working_copy = record.content.model_copy(deep=True)
        self._loaded_saved_at = None

        self.mode = WizardMode.EDIT
        self.submission_id = record.id
        self.current_step = FIRST_STEP
        self.submitted = False
        self.autosave.cancel()
        self.autosave.enabled = False
        return self

    # -----------------------------------------------------------------
    # Read-only views
    # -----------------------------------------------------------------
    @property
    def step_title(self) -> str:
        return STEP_TITLES[self.current_step]

    @property
    def save_state(self) -> SaveState:
        return self.autosave.state

    @property
    def last_saved_at(self) -> Optional[datetime]:
        return self.autosave.last_saved_at or self._loaded_saved_at

    def completion_percentage(self) -> int:
        return completion_percentage(self.working_copy)

    def step_errors(self, step: Optional[int] = None) -> Dict[str, str]:
        return step_errors(step or self.current_step, self.working_copy)

    # -----------------------------------------------------------------
    # Mutations
    # -----------------------------------------------------------------
    def set_field(self, name: str, value: Any) -> None:
        self.update(**{name: value})

    def update(self, **fields: Any) -> None:
        """Set several top-level content fields at once."""
        self._ensure_open()
        unknown = sorted(name for name in fields if name not in PartialContent.model_fields)
        if unknown:
            raise ValidationFailed(
                f"Unknown field(s): {', '.join(unknown)}",
                fields={name: "Unknown field." for name in unknown},
            )

        data = self.working_copy.model_dump()
        data.update(fields)
        try:
            self.working_copy = PartialContent.model_validate(data)
        except ValidationError as exc:
            fields_with_errors = {
                ".".join(str(part) for part in err["loc"]): err["msg"] for err in exc.errors()
            }
            raise ValidationFailed("Invalid value.", fields=fields_with_errors) from exc
        self._changed()

    def set_integration_score(self, system: str, score: Union[IntegrationScore, str, None]) -> None:
        scores = dict(self.working_copy.integration_scores)
        if score in (None, ""):
            scores.pop(system, None)
        else:
            scores[system] = score
        self.update(integration_scores=scores)

    def set_reference(self, index: int, **fields: str) -> None:
        if index not in (1, 2):
            raise ValueError("reference index must be 1 or 2")
        name = f"reference{index}"
        current: Reference = getattr(self.working_copy, name)
        self.update(**{name: {**current.model_dump(), **fields}})

    def poll(self) -> None:
        """Give the autosave deadline a chance to fire."""
        self.autosave.poll()

    # -----------------------------------------------------------------
    # Navigation
    # -----------------------------------------------------------------
    def advance(self) -> int:
        self._ensure_open()
        validate_step(self.current_step, self.working_copy)
        self._save_immediately()
        self.current_step = min(self.current_step + 1, LAST_STEP)
        return self.current_step

    def retreat(self) -> int:
        self._ensure_open()
        if self.current_step > FIRST_STEP:
            self._save_immediately()
            self.current_step -= 1
        return self.current_step

    # -----------------------------------------------------------------
    # Drafts
    # -----------------------------------------------------------------
    def save_draft(self) -> Optional[DraftSnapshot]:
        """Explicit "Save Draft". Outcome is reported through save_state."""
        self._ensure_open()
        return self._save_immediately()

    def discard_draft(self) -> bool:
        """
        Delete the stored draft and start over from an empty form.

        In edit mode there is no draft to delete: unsaved edits are dropped by
        reloading the stored submission, and the vendor's create-mode draft is
        left alone.
        """
        self._ensure_open()
        self.autosave.cancel()
        if self.mode is WizardMode.EDIT:
            self.open_edit(self.submission_id)
            return False

        deleted = self.drafts.delete(self.vendor_id)
        self.working_copy = self._with_profile(PartialContent())
        self._loaded_saved_at = None
        self.autosave.last_saved_at = None
        self.current_step = FIRST_STEP
        return deleted

    # -----------------------------------------------------------------
    # Submit
    # -----------------------------------------------------------------
    def submit(self) -> SubmissionRecord:
        self._ensure_open()

        missing = {name: "This field is required." for name in CONSENT_FIELDS if not getattr(self.working_copy, name)}
        if missing:
            raise ValidationFailed("Both confirmations are required before submitting.", fields=missing)

        content = promote(self.working_copy)

        # A debounce firing after submit would resurrect the draft.
        self.autosave.cancel()

        if self.submission_id is None:
            record = self.submissions.create(self.actor, content)
        else:
            record = self.submissions.update(self.actor, self.submission_id, content)

        try:
            self.drafts.delete(self.vendor_id)
        except PortalError as exc:
            logger.warning("Submitted %s but could not delete draft for vendor %s: %s", record.id, self.vendor_id, exc)

        self.submission_id = record.id
        self.submitted = True
        self.autosave.enabled = False
        return record

    # -----------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------
    def _ensure_open(self) -> None:
        if self.submitted:
            raise WizardClosed("This proposal has already been submitted")

    def _changed(self) -> None:
        if self.mode is WizardMode.CREATE and self.current_step > FIRST_STEP:
            self.autosave.notify(self.working_copy)

    def _save_immediately(self) -> Optional[DraftSnapshot]:
        if self.mode is WizardMode.EDIT:
            return None
        return self.autosave.save_now(self.working_copy)

    def _write_draft(self, content: PartialContent) -> DraftSnapshot:
        return self.drafts.save(self.vendor_id, content)

    def _with_profile(self, content: PartialContent) -> PartialContent:
        overrides = {key: self.profile[key] for key in PROFILE_FIELDS if self.profile.get(key)}
        if not overrides:
            return content
        return content.model_copy(update=overrides)
