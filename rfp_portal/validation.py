"""
rfp_portal/validation.py

Per-step form validation for the proposal wizard, plus promotion of a draft's
PartialContent to submission-ready Content.

Each wizard step has a WTForms form describing its required fields and format
checks. The forms are plain wtforms.Form subclasses (no request, no CSRF) so the
wizard controller can validate a working copy anywhere, before any network call.
"""

from __future__ import annotations

from typing import Dict

from pydantic import ValidationError
from werkzeug.datastructures import MultiDict
from wtforms import BooleanField, Form, StringField
from wtforms.validators import URL, DataRequired, Email, Optional

from .content import (
    FIRST_STEP,
    INTEGRATION_SYSTEMS,
    LAST_STEP,
    Content,
    IntegrationScore,
    PartialContent,
)
from .errors import ValidationFailed


class CompanyInfoForm(Form):
    company_name = StringField("Company name", validators=[DataRequired()])
    email = StringField("Email", validators=[DataRequired(), Email(check_deliverability=False)])
    website = StringField("Website", validators=[Optional(), URL(require_tld=True)])
    contact_person = StringField("Contact person")
    phone = StringField("Phone")
    company_description = StringField("Company description")


class SolutionFitForm(Form):
    client_workflow_description = StringField("Client workflow", validators=[DataRequired()])
    request_capture_description = StringField("Request capture", validators=[DataRequired()])
    internal_workflow_description = StringField("Internal workflow", validators=[DataRequired()])
    reporting_capabilities = StringField("Reporting capabilities", validators=[DataRequired()])
    data_architecture = StringField("Data architecture", validators=[DataRequired()])


class TechnicalForm(Form):
    security_measures = StringField("Security measures", validators=[DataRequired()])


class ImplementationForm(Form):
    implementation_timeline = StringField("Implementation timeline", validators=[DataRequired()])
    project_start_date = StringField("Project start date", validators=[DataRequired()])
    implementation_phases = StringField("Implementation phases", validators=[DataRequired()])


class ReferencesForm(Form):
    solution_fit = StringField("Solution fit", validators=[DataRequired()])
    # DataRequired rejects False, so an unticked consent blocks the step.
    info_accurate = BooleanField("Information is accurate", validators=[DataRequired()])
    contact_consent = BooleanField("Consent to be contacted", validators=[DataRequired()])


STEP_FORMS = {
    1: CompanyInfoForm,
    2: SolutionFitForm,
    3: TechnicalForm,
    4: ImplementationForm,
    5: ReferencesForm,
}


def _formdata(form_cls, content: PartialContent) -> MultiDict:
    """Present content the way a browser would post it (unticked box = "")."""
    values = {}
    for name in form_cls().data:
        value = getattr(content, name)
        if isinstance(value, bool):
            values[name] = "y" if value else ""
        else:
            values[name] = value or ""
    return MultiDict(values)


def _first_errors(form: Form) -> Dict[str, str]:
    return {name: errors[0] for name, errors in form.errors.items() if errors}


def _integration_errors(content: PartialContent) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    for system, score in content.integration_scores.items():
        if system not in INTEGRATION_SYSTEMS:
            errors[f"integration_scores.{system}"] = "Unknown integration system."
        elif not isinstance(score, IntegrationScore):
            errors[f"integration_scores.{system}"] = "Unknown capability score."
    return errors


def step_errors(step: int, content: PartialContent) -> Dict[str, str]:
    """
    Return {field: reason} for everything blocking `step`.

    An empty dict means the step is complete.
    """
    if step < FIRST_STEP or step > LAST_STEP:
        raise ValueError(f"step must be between {FIRST_STEP} and {LAST_STEP}, got {step}")

    form_cls = STEP_FORMS[step]
    form = form_cls(formdata=_formdata(form_cls, content))
    form.validate()
    errors = _first_errors(form)

    if step == 3:
        errors.update(_integration_errors(content))
    return errors


def validate_step(step: int, content: PartialContent) -> None:
    """Raise ValidationFailed naming each missing/invalid field of `step`."""
    errors = step_errors(step, content)
    if errors:
        raise ValidationFailed(
            f"Step {step} is incomplete: {', '.join(sorted(errors))}",
            fields=errors,
        )


def all_step_errors(content: PartialContent) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    for step in range(FIRST_STEP, LAST_STEP + 1):
        errors.update(step_errors(step, content))
    return errors


def load_partial(data) -> PartialContent:
    """
    Build PartialContent from untrusted input (JSON body, stored draft).

    Structural problems (unknown integration systems, wrong types) raise
    ValidationFailed rather than pydantic's ValidationError.
    """
    if isinstance(data, PartialContent):
        return PartialContent.model_validate(data.model_dump())
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationFailed("Content must be a JSON object.")
    try:
        return PartialContent.model_validate(data)
    except ValidationError as exc:
        raise ValidationFailed("Malformed proposal content.", fields=_pydantic_fields(exc)) from exc


def promote(content: PartialContent) -> Content:
    """
    Convert a draft working copy into submission-ready Content.

    Fails with ValidationFailed listing every missing or malformed field across
    all five steps.
    """
    errors = all_step_errors(content)
    if errors:
        raise ValidationFailed(
            f"Proposal is incomplete: {', '.join(sorted(errors))}",
            fields=errors,
        )
    try:
        return Content.model_validate(content.model_dump())
    except ValidationError as exc:
        raise ValidationFailed("Proposal is incomplete.", fields=_pydantic_fields(exc)) from exc


def _pydantic_fields(exc: ValidationError) -> Dict[str, str]:
    fields: Dict[str, str] = {}
    for err in exc.errors():
        name = ".".join(str(part) for part in err.get("loc", ())) or "content"
        fields.setdefault(name, err.get("msg", "Invalid value."))
    return fields
