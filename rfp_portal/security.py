"""
rfp_portal/security.py

Access control helpers for the RFP portal.

Key rules:
- UI is never trusted; all permission checks are server-side.
- Admin: reviews every submission, never owns drafts.
- Vendor: sees and edits only its own drafts and submissions.

The core services never read Flask-Login's current_user. Routes turn the
logged-in user into an explicit Actor value (current_actor()) and pass it into
every operation, so the same services run unchanged from CLI commands and tests.

IMPORTANT:
- Decorators must preserve wrapped function metadata to avoid Flask endpoint collisions.
  We use functools.wraps everywhere.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Optional

from flask_login import current_user

from .errors import Forbidden


@dataclass(frozen=True)
class Actor:
    """Identity attached to a core operation."""

    user_id: Optional[int]
    vendor_id: Optional[int] = None
    is_admin: bool = False
    label: Optional[str] = None

    @classmethod
    def from_user(cls, user: Any) -> "Actor":
        return cls(
            user_id=getattr(user, "id", None),
            vendor_id=getattr(user, "vendor_id", None),
            is_admin=bool(getattr(user, "is_admin", False)),
            label=getattr(user, "email", None),
        )


def require_vendor(actor: Actor) -> int:
    """Return the actor's vendor id or raise Forbidden."""
    if actor is None or actor.vendor_id is None:
        raise Forbidden("Vendor account required")
    return actor.vendor_id


def require_admin(actor: Actor) -> None:
    if actor is None or not actor.is_admin:
        raise Forbidden("Admin account required")


def current_actor() -> Actor:
    """Actor for the logged-in user of the current request."""
    if not current_user.is_authenticated:
        raise Forbidden("Not authenticated")
    return Actor.from_user(current_user)


def admin_required(view_func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator: admin-only."""
    @wraps(view_func)
    def wrapper(*args: Any, **kwargs: Any):
        require_admin(current_actor())
        return view_func(*args, **kwargs)

    return wrapper


def vendor_required(view_func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator: logged-in user must be linked to a Vendor."""
    @wraps(view_func)
    def wrapper(*args: Any, **kwargs: Any):
        require_vendor(current_actor())
        return view_func(*args, **kwargs)

    return wrapper
