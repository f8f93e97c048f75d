"""
rfp_portal/drafts.py

Draft store: one in-progress proposal per vendor.

Contract (shared by SqlDraftStore and the HTTP client in client.py):
- load(vendor_id)          -> DraftSnapshot or None. Absence is a normal outcome.
- save(vendor_id, content) -> DraftSnapshot. Full replace, last write wins,
                              last_saved_at stamped at the store.
- delete(vendor_id)        -> True if a draft was removed, False if there was none.
                              Deleting twice is not an error.
- Any storage failure raises DraftStoreUnavailable. It is never reported as
  "no draft".

Concurrent saves for the same vendor settle on whichever write reached the
database last. Two tabs editing the same proposal therefore overwrite each
other; that is an accepted limitation of the single-slot design.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .content import PartialContent
from .errors import DraftStoreUnavailable
from .extensions import db
from .models import Draft

logger = logging.getLogger(__name__)


@dataclass
class DraftSnapshot:
    """A stored draft as seen by callers."""

    vendor_id: int
    content: PartialContent
    last_saved_at: datetime

    def to_dict(self) -> dict:
        return {
            "draft": self.content.to_payload(),
            "last_saved": self.last_saved_at.isoformat() if self.last_saved_at else None,
        }


class DraftStore(ABC):
    """Abstract single-slot draft persistence."""

    @abstractmethod
    def load(self, vendor_id: int) -> Optional[DraftSnapshot]:
        ...

    @abstractmethod
    def save(self, vendor_id: int, content: PartialContent) -> DraftSnapshot:
        ...

    @abstractmethod
    def delete(self, vendor_id: int) -> bool:
        ...


class SqlDraftStore(DraftStore):
    """Draft store backed by the application database (Flask-SQLAlchemy session)."""

    def __init__(self, clock: Callable[[], datetime] = datetime.utcnow):
        self._clock = clock

    # -----------------------------------------------------------------
    # Contract
    # -----------------------------------------------------------------
    def load(self, vendor_id: int) -> Optional[DraftSnapshot]:
        try:
            draft = Draft.query.filter_by(vendor_id=vendor_id).first()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise DraftStoreUnavailable("Draft store unavailable", details=str(exc)) from exc

        if draft is None:
            return None
        return self._snapshot(draft)

    def save(self, vendor_id: int, content: PartialContent) -> DraftSnapshot:
        now = self._clock()
        try:
            self._write(vendor_id, content, now)
        except IntegrityError:
            # Another request created the row between our read and insert: overwrite it.
            db.session.rollback()
            try:
                self._write(vendor_id, content, now)
            except SQLAlchemyError as exc:
                db.session.rollback()
                raise DraftStoreUnavailable("Draft store unavailable", details=str(exc)) from exc
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise DraftStoreUnavailable("Draft store unavailable", details=str(exc)) from exc

        logger.debug("Saved draft for vendor %s at %s", vendor_id, now.isoformat())
        return DraftSnapshot(vendor_id=vendor_id, content=content.model_copy(deep=True), last_saved_at=now)

    def delete(self, vendor_id: int) -> bool:
        try:
            deleted = Draft.query.filter_by(vendor_id=vendor_id).delete(synchronize_session=False)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise DraftStoreUnavailable("Draft store unavailable", details=str(exc)) from exc

        if deleted:
            logger.debug("Deleted draft for vendor %s", vendor_id)
        return bool(deleted)

    # -----------------------------------------------------------------
    # Maintenance
    # -----------------------------------------------------------------
    def purge_stale(self, older_than_days: int = 30) -> int:
        """Delete drafts not saved for more than `older_than_days`. Returns the count."""
        cutoff = self._clock() - timedelta(days=older_than_days)
        try:
            removed = Draft.query.filter(Draft.last_saved_at < cutoff).delete(synchronize_session=False)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise DraftStoreUnavailable("Draft store unavailable", details=str(exc)) from exc

        logger.info("Purged %s draft(s) older than %s days", removed, older_than_days)
        return int(removed or 0)

    # -----------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------
    def _write(self, vendor_id: int, content: PartialContent, now: datetime) -> Draft:
        draft = Draft.query.filter_by(vendor_id=vendor_id).first()
        if draft is None:
            draft = Draft(vendor_id=vendor_id)
            db.session.add(draft)
        draft.content = content
        draft.last_saved_at = now
        db.session.commit()
        return draft

    @staticmethod
    def _snapshot(draft: Draft) -> DraftSnapshot:
        try:
            content = draft.content
        except ValueError as exc:
            # JSONDecodeError and pydantic ValidationError are both ValueErrors
            logger.error("Stored draft for vendor %s is unreadable: %s", draft.vendor_id, exc)
            raise DraftStoreUnavailable("Stored draft is unreadable", details=str(exc)) from exc
        return DraftSnapshot(vendor_id=draft.vendor_id, content=content, last_saved_at=draft.last_saved_at)

