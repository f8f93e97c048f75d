"""
RFP Vendor Portal – Domain Models

- Vendor: registered company profile (company info auto-fills wizard step 1)
- User: login account; vendor users link 1-1 to a Vendor, admins have none
- Draft: single-slot, vendor-private working copy of a proposal (JSON blob)
- Submission: authoritative proposal record with a review status
- AuditLog: who changed which submission, with before/after snapshots

IMPORTANT:
- A Submission row is never in a draft state. Draft content lives only in Draft.
- UI is never trusted. Status changes go through lifecycle.py server-side.
"""

from __future__ import annotations

import json
from datetime import datetime
from decimal import Decimal

from flask_login import UserMixin
from werkzeug.security import check_password_hash, generate_password_hash

from .content import Content, PartialContent, parse_cost
from .extensions import db
from .lifecycle import SubmissionStatus, can_edit


# ---------------------------------------------------------------------
# Vendors & users
# ---------------------------------------------------------------------
class Vendor(db.Model):
    """Registered vendor company."""

    __tablename__ = "vendors"

    id = db.Column(db.Integer, primary_key=True)

    vendor_name = db.Column(db.String(255), nullable=False, index=True)
    contact_person = db.Column(db.String(255), nullable=True)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    phone = db.Column(db.String(50), nullable=True)
    website = db.Column(db.String(255), nullable=True)
    services = db.Column(db.Text, nullable=True)

    is_active = db.Column(db.Boolean, default=True, nullable=False, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    user = db.relationship(
        "User",
        back_populates="vendor",
        uselist=False,
        cascade="all, delete",
    )

    def company_profile(self) -> dict:
        """Wizard step 1 values taken from registration."""
        return {
            "company_name": self.vendor_name or "",
            "contact_person": self.contact_person or "",
            "email": self.email or "",
            "phone": self.phone or "",
            "website": self.website or "",
            "company_description": self.services or "",
        }

    def __repr__(self):
        return f"<Vendor {self.vendor_name}>"


class User(UserMixin, db.Model):
    """System login user. Vendor users link to exactly one Vendor."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)

    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)

    is_admin = db.Column(db.Boolean, default=False, nullable=False, index=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    vendor_id = db.Column(
        db.Integer,
        db.ForeignKey("vendors.id", ondelete="CASCADE"),
        nullable=True,
        unique=True,
        index=True,
    )

    last_login_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    vendor = db.relationship("Vendor", back_populates="user")

    def set_password(self, password: str):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    def __repr__(self):
        return f"<User {self.email}>"


# ---------------------------------------------------------------------
# Drafts
# ---------------------------------------------------------------------
class Draft(db.Model):
    """One in-progress proposal per vendor. Replaced wholesale on every save."""

    __tablename__ = "drafts"

    id = db.Column(db.Integer, primary_key=True)

    vendor_id = db.Column(
        db.Integer,
        db.ForeignKey("vendors.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )

    content_json = db.Column(db.Text, nullable=False, default="{}")
    last_saved_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)

    vendor = db.relationship("Vendor", backref=db.backref("draft", uselist=False, cascade="all, delete-orphan"))

    @property
    def content(self) -> PartialContent:
        return PartialContent.model_validate(json.loads(self.content_json or "{}"))

    @content.setter
    def content(self, value: PartialContent):
        self.content_json = json.dumps(value.to_payload(), ensure_ascii=False, sort_keys=True)

    def __repr__(self):
        return f"<Draft vendor={self.vendor_id} saved={self.last_saved_at}>"


# ---------------------------------------------------------------------
# Submissions
# ---------------------------------------------------------------------
# Plain text content columns (same names as the content schema)
TEXT_CONTENT_FIELDS = (
    "company_name",
    "website",
    "contact_person",
    "email",
    "phone",
    "company_description",
    "client_workflow_description",
    "request_capture_description",
    "internal_workflow_description",
    "reporting_capabilities",
    "data_architecture",
    "step2_questions",
    "security_measures",
    "step3_questions",
    "implementation_timeline",
    "project_start_date",
    "implementation_phases",
    "monthly_cost",
    "step4_questions",
    "solution_fit",
)
BOOL_CONTENT_FIELDS = ("pci_compliant", "pii_compliant", "info_accurate", "contact_consent")
JSON_CONTENT_FIELDS = ("integration_scores", "reference1", "reference2")


class Submission(db.Model):
    __tablename__ = "submissions"

    id = db.Column(db.Integer, primary_key=True)

    vendor_id = db.Column(
        db.Integer,
        db.ForeignKey("vendors.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    rfp_type = db.Column(db.String(255), nullable=False, index=True)

    # Step 1
    company_name = db.Column(db.String(255), nullable=False)
    website = db.Column(db.String(255))
    contact_person = db.Column(db.String(255))
    email = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(50))
    company_description = db.Column(db.Text)

    # Step 2
    client_workflow_description = db.Column(db.Text)
    request_capture_description = db.Column(db.Text)
    internal_workflow_description = db.Column(db.Text)
    reporting_capabilities = db.Column(db.Text)
    data_architecture = db.Column(db.Text)
    step2_questions = db.Column(db.Text)

    # Step 3
    integration_scores = db.Column(db.Text)  # JSON {system: score}
    security_measures = db.Column(db.Text)
    pci_compliant = db.Column(db.Boolean, default=False, nullable=False)
    pii_compliant = db.Column(db.Boolean, default=False, nullable=False)
    step3_questions = db.Column(db.Text)

    # Step 4
    implementation_timeline = db.Column(db.String(255))
    project_start_date = db.Column(db.String(50))
    implementation_phases = db.Column(db.Text)
    upfront_cost = db.Column(db.Numeric(12, 2))
    monthly_cost = db.Column(db.Text)
    step4_questions = db.Column(db.Text)

    # Step 5
    reference1 = db.Column(db.Text)  # JSON {name, company, email, reason}
    reference2 = db.Column(db.Text)
    solution_fit = db.Column(db.Text)
    info_accurate = db.Column(db.Boolean, default=False, nullable=False)
    contact_consent = db.Column(db.Boolean, default=False, nullable=False)

    # Review
    status = db.Column(db.String(30), nullable=False, default=SubmissionStatus.PENDING.value, index=True)
    admin_notes = db.Column(db.Text, nullable=True)
    status_changed_at = db.Column(db.DateTime, nullable=True)

    # Optimistic lock: concurrent transitions on the same row cannot both apply.
    version = db.Column(db.Integer, nullable=False, default=1)

    submitted_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    vendor = db.relationship("Vendor", backref=db.backref("submissions", lazy=True))

    __mapper_args__ = {"version_id_col": version}

    @property
    def review_status(self) -> SubmissionStatus:
        return SubmissionStatus.parse(self.status)

    @property
    def can_edit(self) -> bool:
        return can_edit(self.status)

    def apply_content(self, content: Content):
        """Overwrite every content column from promoted content."""
        for name in TEXT_CONTENT_FIELDS:
            setattr(self, name, getattr(content, name) or None)
        for name in BOOL_CONTENT_FIELDS:
            setattr(self, name, bool(getattr(content, name)))

        payload = content.to_payload()
        for name in JSON_CONTENT_FIELDS:
            setattr(self, name, json.dumps(payload[name], ensure_ascii=False, sort_keys=True))

        self.upfront_cost = parse_cost(content.upfront_cost)

    def to_content(self) -> PartialContent:
        """Content as a wizard working copy (edit mode)."""
        data = {name: getattr(self, name) or "" for name in TEXT_CONTENT_FIELDS}
        data.update({name: bool(getattr(self, name)) for name in BOOL_CONTENT_FIELDS})
        for name in JSON_CONTENT_FIELDS:
            raw = getattr(self, name)
            data[name] = json.loads(raw) if raw else {}
        data["upfront_cost"] = _cost_text(self.upfront_cost)
        return PartialContent.model_validate(data)

    def to_summary(self) -> dict:
        """List-row representation for dashboards."""
        return {
            "id": self.id,
            "vendor_id": self.vendor_id,
            "vendor_name": self.vendor.vendor_name if self.vendor else None,
            "rfp_type": self.rfp_type,
            "company_name": self.company_name,
            "contact_person": self.contact_person,
            "email": self.email,
            "status": self.status,
            "can_edit": self.can_edit,
            "submitted_at": _iso(self.submitted_at),
            "updated_at": _iso(self.updated_at),
            "implementation_timeline": self.implementation_timeline,
            "upfront_cost": _cost_text(self.upfront_cost),
            "monthly_cost": self.monthly_cost,
        }

    def to_dict(self, include_admin_notes: bool = False) -> dict:
        data = self.to_summary()
        data["content"] = self.to_content().to_payload()
        data["status_changed_at"] = _iso(self.status_changed_at)
        if include_admin_notes:
            data["admin_notes"] = self.admin_notes
        return data

    def __repr__(self):
        return f"<Submission {self.id} {self.status}>"


def _iso(value):
    return value.isoformat() if value else None


def _cost_text(value) -> str:
    if value is None:
        return ""
    return str(Decimal(str(value)).quantize(Decimal("0.01")))


# ---------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------
class AuditLog(db.Model):
    """Who did what to which record."""

    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    actor_snapshot = db.Column(db.String(255), nullable=True)

    entity_type = db.Column(db.String(50), nullable=False, index=True)
    entity_id = db.Column(db.Integer, nullable=False, index=True)

    action = db.Column(db.String(30), nullable=False, index=True)

    before_data = db.Column(db.Text, nullable=True)
    after_data = db.Column(db.Text, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
