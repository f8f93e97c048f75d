"""
Authentication routes (JSON).

Provides:
- POST /auth/login   {email, password} -> starts a Flask-Login session
- POST /auth/logout

Rules:
- Only active users may log in. Vendor users also need an approved vendor.
- Credentials are checked against the Werkzeug password hash.
- Unknown email and wrong password get the same answer.
"""

from datetime import datetime

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user

from ...errors import Forbidden
from ...extensions import db
from ...models import User

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


def _user_payload(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "is_admin": bool(user.is_admin),
        "vendor_id": user.vendor_id,
    }


# ============================================================
# LOGIN
# ============================================================

@auth_bp.route("/login", methods=["POST"])
def login():
    """Authenticate a vendor or admin."""
    body = request.get_json(silent=True) or {}
    email = str(body.get("email") or "").strip().lower()
    password = str(body.get("password") or "")

    user = User.query.filter_by(email=email).first()
    if not user or not user.check_password(password):
        raise Forbidden("Invalid email or password")

    if not user.is_active:
        raise Forbidden("Account is inactive")

    if user.vendor is not None and not user.vendor.is_active:
        raise Forbidden("Vendor account not approved")

    login_user(user)
    user.last_login_at = datetime.utcnow()
    db.session.commit()

    return jsonify({"success": True, "user": _user_payload(user)})


# ============================================================
# LOGOUT
# ============================================================

@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    """Log out the current user."""
    email = current_user.email
    logout_user()
    return jsonify({"success": True, "message": f"{email} logged out"})
