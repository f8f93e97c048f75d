"""
rfp_portal/blueprints/drafts/routes.py

Draft endpoints for the logged-in vendor.

- GET    /api/drafts   load:   {success, draft, last_saved} (draft is null when none)
- PUT    /api/drafts   save:   body {"draft": {...}} or the content object itself
- POST   /api/drafts   same as PUT
- DELETE /api/drafts   delete: {success, deleted}; deleting twice is fine

IMPORTANT:
- The vendor comes from the session, never from the request body.
- A save replaces the whole draft. Fields left out of the body are reset.
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_login import login_required

from ...drafts import SqlDraftStore
from ...security import current_actor, require_vendor, vendor_required
from ...validation import load_partial

drafts_bp = Blueprint("drafts", __name__, url_prefix="/api/drafts")


@drafts_bp.route("", methods=["GET"])
@login_required
@vendor_required
def load_draft():
    vendor_id = require_vendor(current_actor())
    snapshot = SqlDraftStore().load(vendor_id)
    if snapshot is None:
        return jsonify({"success": True, "draft": None, "last_saved": None})
    return jsonify({"success": True, **snapshot.to_dict()})


@drafts_bp.route("", methods=["PUT", "POST"])
@login_required
@vendor_required
def save_draft():
    vendor_id = require_vendor(current_actor())
    body = request.get_json(silent=True)
    data = body.get("draft") if isinstance(body, dict) and "draft" in body else body

    snapshot = SqlDraftStore().save(vendor_id, load_partial(data))
    return jsonify({"success": True, "last_saved": snapshot.last_saved_at.isoformat()})


@drafts_bp.route("", methods=["DELETE"])
@login_required
@vendor_required
def delete_draft():
    vendor_id = require_vendor(current_actor())
    deleted = SqlDraftStore().delete(vendor_id)
    return jsonify({"success": True, "deleted": deleted})
