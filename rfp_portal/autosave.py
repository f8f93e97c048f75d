"""
rfp_portal/autosave.py

Debounced, best-effort draft persistence for the proposal wizard.

The scheduler holds at most one pending deadline. Every mutation re-arms it, so
a burst of edits produces one save of the content present when the burst ends.
There are no background threads: the host (wizard, UI loop, test) calls poll()
and the save runs if the deadline has passed.

Observable state:
- idle     nothing to report
- saving   a save is in flight
- saved    last save succeeded (shown for `display_seconds`, then idle)
- error    last save failed   (shown for `display_seconds`, then idle)

A failed save never raises to the editor. Any PortalError from the store counts
as a failure: it is logged, the state turns to `error`, and the next successful
save clears it.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from .content import PartialContent, is_structurally_empty
from .drafts import DraftSnapshot
from .errors import PortalError

logger = logging.getLogger(__name__)


class SaveState(str, Enum):
    IDLE = "idle"
    SAVING = "saving"
    SAVED = "saved"
    ERROR = "error"


class AutosaveScheduler:
    """Single-deadline debouncer around a draft save callable."""

    def __init__(
        self,
        save_fn: Callable[[PartialContent], DraftSnapshot],
        debounce_seconds: float = 2.0,
        display_seconds: float = 3.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._save_fn = save_fn
        self.debounce_seconds = float(debounce_seconds)
        self.display_seconds = float(display_seconds)
        self._clock = clock

        self.enabled = True

        self._deadline: Optional[float] = None
        self._pending: Optional[PartialContent] = None

        self._state = SaveState.IDLE
        self._state_since = clock()
        self._seq = 0
        self._applied_seq = 0

        self.last_saved_at: Optional[datetime] = None
        self.last_error: Optional[PortalError] = None

    # -----------------------------------------------------------------
    # State
    # -----------------------------------------------------------------
    @property
    def state(self) -> SaveState:
        if self._state in (SaveState.SAVED, SaveState.ERROR):
            if self._clock() - self._state_since >= self.display_seconds:
                self._set_state(SaveState.IDLE)
        return self._state

    @property
    def has_pending(self) -> bool:
        return self._deadline is not None

    # -----------------------------------------------------------------
    # Scheduling
    # -----------------------------------------------------------------
    def notify(self, content: PartialContent) -> None:
        """Record a mutation and (re)arm the debounce deadline."""
        if not self.enabled:
            return
        self._pending = content.model_copy(deep=True)
        self._deadline = self._clock() + self.debounce_seconds

    def cancel(self) -> None:
        self._deadline = None
        self._pending = None

    def poll(self) -> Optional[DraftSnapshot]:
        """Run the pending save if its deadline has passed."""
        if self._deadline is None or self._clock() < self._deadline:
            return None
        content = self._pending
        self.cancel()
        return self._run(content)

    def save_now(self, content: PartialContent) -> Optional[DraftSnapshot]:
        """Forced save: drops the pending deadline and saves immediately."""
        self.cancel()
        return self._run(content)

    # -----------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------
    def _run(self, content: Optional[PartialContent]) -> Optional[DraftSnapshot]:
        if content is None or is_structurally_empty(content):
            return None

        self._seq += 1
        seq = self._seq
        self._set_state(SaveState.SAVING)

        try:
            snapshot = self._save_fn(content)
        except PortalError as exc:
            logger.warning("Autosave failed: %s", exc)
            self._finish(seq, SaveState.ERROR, error=exc)
            return None

        self._finish(seq, SaveState.SAVED, snapshot=snapshot)
        return snapshot

    def _finish(
        self,
        seq: int,
        state: SaveState,
        snapshot: Optional[DraftSnapshot] = None,
        error: Optional[PortalError] = None,
    ) -> None:
        # An older attempt finishing late must not overwrite a newer outcome.
        if seq < self._applied_seq:
            return
        self._applied_seq = seq
        if snapshot is not None:
            self.last_saved_at = snapshot.last_saved_at
            self.last_error = None
        if error is not None:
            self.last_error = error
        self._set_state(state)

    def _set_state(self, state: SaveState) -> None:
        self._state = state
        self._state_since = self._clock()
