"""
rfp_portal/seed.py

Bootstrap helpers used by the Flask CLI.

Rules:
- Safe to run multiple times (idempotent).
- seed_admin() creates the first admin account, or resets the password of an
  existing admin with the same email. It never turns a vendor account into an
  admin.
"""

from __future__ import annotations

from .extensions import db
from .models import User


def seed_admin(email: str, password: str) -> tuple[User, bool]:
    """
    Create or refresh an admin user.

    Returns (user, created).
    """
    email = (email or "").strip().lower()
    if not email or not password:
        raise ValueError("Email and password are required.")

    user = User.query.filter_by(email=email).first()
    if user is not None:
        if not user.is_admin:
            raise ValueError(f"{email} belongs to a non-admin account.")
        user.set_password(password)
        user.is_active = True
        db.session.commit()
        return user, False

    user = User(email=email, is_admin=True, is_active=True, vendor_id=None)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return user, True
