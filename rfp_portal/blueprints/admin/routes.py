"""
rfp_portal/blueprints/admin/routes.py

Admin review endpoints.

- GET  /api/admin/submissions?status=...            every submission (dashboard polling)
- POST /api/admin/submissions/<id>/action           {action, notes}
- POST /api/admin/submission-action                 {submissionId, action, notes}
- POST /api/admin/submissions/<id>/start-review     Pending -> Under Review

Actions: approve -> Approved, shortlist -> Shortlisted, decline -> Rejected.

SECURITY:
- All endpoints are admin-only (server-side).
- Transition rules live in lifecycle.py; this module only adapts HTTP.
"""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required

from ...admin_actions import AdminActionProcessor
from ...errors import ValidationFailed
from ...lifecycle import SubmissionStatus
from ...security import admin_required, current_actor
from ...submissions import SubmissionRepository

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


def _admin_row(submission) -> dict:
    row = submission.to_summary()
    row["admin_notes"] = submission.admin_notes
    row["status_changed_at"] = submission.status_changed_at.isoformat() if submission.status_changed_at else None
    return row


def _apply(submission_id: int, body: dict):
    submission = AdminActionProcessor().apply(
        current_actor(),
        submission_id,
        body.get("action"),
        body.get("notes"),
    )
    return jsonify({"success": True, "submission": submission.to_dict(include_admin_notes=True)})


@admin_bp.route("/submissions", methods=["GET"])
@login_required
@admin_required
def list_submissions():
    status = (request.args.get("status") or "").strip() or None
    if status:
        try:
            status = SubmissionStatus.parse(status)
        except ValueError:
            raise ValidationFailed("Unknown status filter.", fields={"status": f"Unknown status {status!r}."}) from None

    repo = SubmissionRepository(rfp_type=current_app.config["RFP_TYPE"])
    rows = repo.list_all(current_actor(), status=status)
    return jsonify({"success": True, "submissions": [_admin_row(s) for s in rows]})


@admin_bp.route("/submissions/<int:submission_id>/action", methods=["POST"])
@login_required
@admin_required
def submission_action(submission_id: int):
    return _apply(submission_id, request.get_json(silent=True) or {})


@admin_bp.route("/submission-action", methods=["POST"])
@login_required
@admin_required
def submission_action_by_body():
    body = request.get_json(silent=True) or {}
    raw_id = body.get("submissionId")
    try:
        submission_id = int(raw_id)
    except (TypeError, ValueError):
        raise ValidationFailed("submissionId is required.", fields={"submissionId": "Missing or not a number."}) from None
    return _apply(submission_id, body)


@admin_bp.route("/submissions/<int:submission_id>/start-review", methods=["POST"])
@login_required
@admin_required
def start_review(submission_id: int):
    repo = SubmissionRepository(rfp_type=current_app.config["RFP_TYPE"])
    submission = repo.start_review(current_actor(), submission_id)
    return jsonify({"success": True, "submission": submission.to_dict(include_admin_notes=True)})
