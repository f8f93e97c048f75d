"""
rfp_portal/content.py

Proposal content schema shared by drafts and submissions.

Two types model the same field shape:
- PartialContent: every field optional (blank defaults). This is what a Draft holds.
- Content: the promoted, submission-ready form. Required fields are non-blank,
  the contact email is well formed and both consents are given.

The only way from one to the other is validation.promote(), called at submit.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Annotated, Any, Dict, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints, field_validator


# ---------------------------------------------------------------------
# Integration capability matrix
# ---------------------------------------------------------------------
class IntegrationScore(str, Enum):
    PROVEN = "can-integrate-proven"
    UNPROVEN = "can-integrate-unproven"
    CANNOT = "cannot-integrate"


# system key -> label shown to vendors
INTEGRATION_SYSTEMS: Dict[str, str] = {
    "zendesk": "Zendesk (ticketing)",
    "oracle_sql": "Oracle SQL (database)",
    "quickbooks": "QuickBooks (accounting)",
    "slack": "Slack (messaging)",
    "brex": "Brex (payments)",
    "avinode": "Avinode (charter scheduling)",
}


# ---------------------------------------------------------------------
# Field layout
# ---------------------------------------------------------------------
STEP_TITLES = {
    1: "Company Info",
    2: "Solution Fit",
    3: "Technical Capabilities",
    4: "Implementation & Pricing",
    5: "References & Fit",
}

FIRST_STEP = 1
LAST_STEP = 5

CONSENT_FIELDS = ("info_accurate", "contact_consent")

# Overall readiness is measured against this list, whatever step is on screen.
COMPLETION_FIELDS = (
    "company_name",
    "contact_person",
    "email",
    "company_description",
    "client_workflow_description",
    "request_capture_description",
    "internal_workflow_description",
    "reporting_capabilities",
    "data_architecture",
    "security_measures",
    "implementation_timeline",
    "project_start_date",
    "implementation_phases",
    "solution_fit",
    "info_accurate",
    "contact_consent",
)


# ---------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------
class Reference(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    company: str = ""
    email: str = ""
    reason: str = ""


class PartialContent(BaseModel):
    """Draft content. Nothing is required; blanks are the "unanswered" value."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    # Step 1: company information
    company_name: str = ""
    website: str = ""
    contact_person: str = ""
    email: str = ""
    phone: str = ""
    company_description: str = ""

    # Step 2: solution fit
    client_workflow_description: str = ""
    request_capture_description: str = ""
    internal_workflow_description: str = ""
    reporting_capabilities: str = ""
    data_architecture: str = ""
    step2_questions: str = ""

    # Step 3: technical capabilities
    integration_scores: Dict[str, IntegrationScore] = Field(default_factory=dict)
    security_measures: str = ""
    pci_compliant: bool = False
    pii_compliant: bool = False
    step3_questions: str = ""

    # Step 4: implementation & pricing
    implementation_timeline: str = ""
    project_start_date: str = ""
    implementation_phases: str = ""
    upfront_cost: str = ""
    monthly_cost: str = ""
    step4_questions: str = ""

    # Step 5: references & fit
    reference1: Reference = Field(default_factory=Reference)
    reference2: Reference = Field(default_factory=Reference)
    solution_fit: str = ""
    info_accurate: bool = False
    contact_consent: bool = False

    @field_validator("integration_scores", mode="before")
    @classmethod
    def _known_systems_only(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, Mapping):
            unknown = sorted(k for k in value if k not in INTEGRATION_SYSTEMS)
            if unknown:
                raise ValueError(f"unknown integration system(s): {', '.join(unknown)}")
            # "" is how an unanswered select arrives from a form: treat as absent.
            return {k: v for k, v in value.items() if v not in (None, "")}
        return value

    @field_validator("upfront_cost", mode="before")
    @classmethod
    def _cost_as_text(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
            return str(value)
        return value

    def to_payload(self) -> Dict[str, Any]:
        """JSON-safe dict (enum values as strings)."""
        return self.model_dump(mode="json")


NonBlank = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class Content(PartialContent):
    """Submission-ready content. Build it with validation.promote()."""

    company_name: NonBlank
    email: EmailStr

    client_workflow_description: NonBlank
    request_capture_description: NonBlank
    internal_workflow_description: NonBlank
    reporting_capabilities: NonBlank
    data_architecture: NonBlank

    security_measures: NonBlank

    implementation_timeline: NonBlank
    project_start_date: NonBlank
    implementation_phases: NonBlank

    solution_fit: NonBlank
    info_accurate: Literal[True]
    contact_consent: Literal[True]

    @field_validator("upfront_cost")
    @classmethod
    def _cost_is_numeric(cls, value: str) -> str:
        if value.strip() and parse_cost(value) is None:
            raise ValueError("must be a number")
        return value

    @property
    def upfront_cost_amount(self) -> Decimal:
        return parse_cost(self.upfront_cost) or Decimal("0.00")


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------
def parse_cost(value: Optional[str]) -> Optional[Decimal]:
    """Parse a money amount typed by a vendor ("12,500.00", "$900")."""
    if value is None:
        return None
    raw = str(value).strip().replace("$", "").replace(",", "")
    if raw == "":
        return None
    try:
        amount = Decimal(raw)
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _is_filled(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, Mapping):
        return any(_is_filled(v) for v in value.values())
    if isinstance(value, BaseModel):
        return any(_is_filled(v) for v in value.model_dump().values())
    if isinstance(value, Enum):
        return True
    return value is not None


def is_structurally_empty(content: PartialContent) -> bool:
    """True when no field (nested ones included) holds a non-empty value."""
    return not any(_is_filled(getattr(content, name)) for name in PartialContent.model_fields)


def field_is_satisfied(content: PartialContent, field_name: str) -> bool:
    """Required-field rule: strings non-blank, booleans true."""
    value = getattr(content, field_name)
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip() != ""
    return _is_filled(value)


def completion_percentage(content: PartialContent) -> int:
    """Share of COMPLETION_FIELDS satisfied, 0-100, halves rounded up."""
    filled = sum(1 for name in COMPLETION_FIELDS if field_is_satisfied(content, name))
    ratio = Decimal(filled * 100) / Decimal(len(COMPLETION_FIELDS))
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
