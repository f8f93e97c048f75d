"""
rfp_portal/audit.py

Audit logging helper utilities.

Goals:
- Capture WHO did WHAT to WHICH entity, with BEFORE/AFTER snapshots.
- Store an actor label snapshot to preserve identity even if the account changes later.
- Store IP address for traceability when running inside a request.

IMPORTANT:
- This helper ADDS AuditLog entries to the current SQLAlchemy session.
  The calling service controls transaction boundaries (commit/rollback).
- The actor is passed in explicitly; audit never reads current_user.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

from flask import has_request_context, request

from .extensions import db
from .models import AuditLog
from .security import Actor


def _safe_str(value: Any) -> Optional[str]:
    """
    Convert a value to a stable string representation suitable for JSON and DB storage.

    - For Decimal/datetime/etc: str(value) is typically safe.
    - For None: return None.
    """
    if value is None:
        return None
    return str(value)


def serialize_model(instance: Any) -> Dict[str, Optional[str]]:
    """
    Convert a SQLAlchemy model instance to a dict snapshot based on table columns.

    NOTES:
    - Captures only scalar column values (not relationships).
    - Values are converted to string for JSON safety and SQLite/PostgreSQL portability.
    """
    data: Dict[str, Optional[str]] = {}
    for column in instance.__table__.columns:
        data[column.name] = _safe_str(getattr(instance, column.name))
    return data


def log_action(
    entity: Any,
    action: str,
    actor: Optional[Actor],
    *,
    before: Optional[Dict[str, Any]] = None,
    after: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """
    Add an AuditLog entry to the current db session.

    Parameters:
        entity: SQLAlchemy model instance with .id (flush first)
        action: CREATE / RESUBMIT / APPROVE / SHORTLIST / DECLINE / START_REVIEW ...
        actor: who performed it (None for anonymous/system)
        before: dict snapshot (optional)
        after: dict snapshot (optional)
    """
    entity_id = getattr(entity, "id", None)
    if entity_id is None:
        raise ValueError("log_action entity must have an 'id' attribute (after flush).")

    entry = AuditLog(
        user_id=actor.user_id if actor else None,
        actor_snapshot=actor.label if actor else None,
        entity_type=entity.__class__.__name__,
        entity_id=int(entity_id),
        action=str(action),
        before_data=json.dumps(before, ensure_ascii=False) if before else None,
        after_data=json.dumps(after, ensure_ascii=False) if after else None,
        ip_address=request.remote_addr if has_request_context() else None,
    )
    db.session.add(entry)
    return entry
