"""
rfp_portal/blueprints/submissions/routes.py

Vendor submission endpoints.

- GET  /api/submissions        the vendor's own submissions (summaries)
- POST /api/submissions        file a new proposal      body {"content": {...}}
- GET  /api/submissions/<id>   one submission (vendor: own only; admin: any)
- PUT  /api/submissions/<id>   resubmit edited content  body {"content": {...}}

IMPORTANT:
- Content is validated server-side again; the wizard's checks are a convenience.
- A resubmission is accepted only while the submission is Pending or Under
  Review, and always puts it back to Pending.
"""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required

from ...security import current_actor, vendor_required
from ...submissions import SubmissionRepository
from ...validation import load_partial

submissions_bp = Blueprint("submissions", __name__, url_prefix="/api/submissions")


def _repository() -> SubmissionRepository:
    return SubmissionRepository(rfp_type=current_app.config["RFP_TYPE"])


def _content_from_body():
    body = request.get_json(silent=True)
    data = body.get("content") if isinstance(body, dict) and "content" in body else body
    return load_partial(data)


# ---------------------------------------------------------------------
# List / create
# ---------------------------------------------------------------------
@submissions_bp.route("", methods=["GET"])
@login_required
@vendor_required
def list_submissions():
    rows = _repository().list_for_vendor(current_actor())
    return jsonify({"success": True, "submissions": [s.to_summary() for s in rows]})


@submissions_bp.route("", methods=["POST"])
@login_required
@vendor_required
def create_submission():
    submission = _repository().create_submission(current_actor(), _content_from_body())
    return jsonify({"success": True, "submission": submission.to_dict()}), 201


# ---------------------------------------------------------------------
# Single submission
# ---------------------------------------------------------------------
@submissions_bp.route("/<int:submission_id>", methods=["GET"])
@login_required
def get_submission(submission_id: int):
    actor = current_actor()
    submission = _repository().get(actor, submission_id)
    return jsonify({"success": True, "submission": submission.to_dict(include_admin_notes=actor.is_admin)})


@submissions_bp.route("/<int:submission_id>", methods=["PUT"])
@login_required
@vendor_required
def update_submission(submission_id: int):
    submission = _repository().resubmit(current_actor(), submission_id, _content_from_body())
    return jsonify({"success": True, "submission": submission.to_dict()})
