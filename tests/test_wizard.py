"""Step form controller, driven against in-memory draft and submission stores."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

import pytest

from rfp_portal.autosave import SaveState
from rfp_portal.content import Content, PartialContent
from rfp_portal.drafts import DraftSnapshot, DraftStore
from rfp_portal.errors import DraftStoreUnavailable, Forbidden, InvalidTransition, ValidationFailed, WizardClosed
from rfp_portal.lifecycle import SubmissionStatus
from rfp_portal.security import Actor
from rfp_portal.submissions import SubmissionGateway, SubmissionRecord
from rfp_portal.wizard import StepFormController, WizardMode

VENDOR = Actor(user_id=7, vendor_id=3, label="ops@skyline-software.example")


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeDraftStore(DraftStore):
    def __init__(self):
        self.drafts: Dict[int, DraftSnapshot] = {}
        self.saves: List[PartialContent] = []
        self.loads = 0
        self.fail_save = False
        self.fail_delete = False

    def load(self, vendor_id: int) -> Optional[DraftSnapshot]:
        self.loads += 1
        return self.drafts.get(vendor_id)

    def save(self, vendor_id: int, content: PartialContent) -> DraftSnapshot:
        if self.fail_save:
            raise DraftStoreUnavailable("store down")
        self.saves.append(content.model_copy(deep=True))
        snapshot = DraftSnapshot(vendor_id, content.model_copy(deep=True), datetime(2026, 3, 1, 9, len(self.saves)))
        self.drafts[vendor_id] = snapshot
        return snapshot

    def delete(self, vendor_id: int) -> bool:
        if self.fail_delete:
            raise DraftStoreUnavailable("store down")
        return self.drafts.pop(vendor_id, None) is not None


class FakeSubmissions(SubmissionGateway):
    def __init__(self):
        self.records: Dict[int, SubmissionRecord] = {}
        self.created: List[Content] = []
        self.updated: List[Content] = []
        self.error: Optional[Exception] = None

    def fetch(self, actor: Actor, submission_id: int) -> SubmissionRecord:
        return self.records[submission_id]

    def create(self, actor: Actor, content: Content) -> SubmissionRecord:
        if self.error:
            raise self.error
        self.created.append(content)
        record = SubmissionRecord(len(self.records) + 100, actor.vendor_id, SubmissionStatus.PENDING, content)
        self.records[record.id] = record
        return record

    def update(self, actor: Actor, submission_id: int, content: Content) -> SubmissionRecord:
        if self.error:
            raise self.error
        self.updated.append(content)
        record = SubmissionRecord(submission_id, actor.vendor_id, SubmissionStatus.PENDING, content)
        self.records[submission_id] = record
        return record


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def drafts():
    return FakeDraftStore()


@pytest.fixture
def submissions():
    return FakeSubmissions()


@pytest.fixture
def wizard(drafts, submissions, clock):
    return StepFormController(VENDOR, drafts, submissions, clock=clock).open_create()


def _fill_and_reach_last_step(wizard, content: PartialContent) -> None:
    wizard.update(**content.model_dump())
    for _ in range(4):
        wizard.advance()


class TestEntry:
    def test_requires_vendor(self, drafts, submissions):
        with pytest.raises(Forbidden):
            StepFormController(Actor(user_id=1, is_admin=True), drafts, submissions)

    def test_no_draft_starts_empty(self, wizard, drafts):
        assert drafts.loads == 1
        assert wizard.working_copy == PartialContent()
        assert wizard.last_saved_at is None
        assert wizard.current_step == 1
        assert wizard.mode is WizardMode.CREATE

    def test_resumes_draft(self, drafts, submissions):
        saved_at = datetime(2026, 2, 27, 16, 30)
        drafts.drafts[VENDOR.vendor_id] = DraftSnapshot(
            VENDOR.vendor_id, PartialContent(company_name="Skyline", security_measures="SSO"), saved_at
        )
        wizard = StepFormController(VENDOR, drafts, submissions).open_create()
        assert wizard.working_copy.security_measures == "SSO"
        assert wizard.last_saved_at == saved_at

    def test_profile_overrides_draft_company_info(self, drafts, submissions):
        drafts.drafts[VENDOR.vendor_id] = DraftSnapshot(
            VENDOR.vendor_id, PartialContent(company_name="Old Name", phone="111"), datetime(2026, 1, 1)
        )
        profile = {"company_name": "Skyline Software", "phone": "", "email": "ops@skyline-software.example"}
        wizard = StepFormController(VENDOR, drafts, submissions, profile=profile).open_create()
        assert wizard.working_copy.company_name == "Skyline Software"
        assert wizard.working_copy.email == "ops@skyline-software.example"
        # blank profile values do not wipe the draft
        assert wizard.working_copy.phone == "111"

    def test_load_failure_is_surfaced(self, submissions):
        class BrokenStore(FakeDraftStore):
            def load(self, vendor_id):
                raise DraftStoreUnavailable("store down")

        with pytest.raises(DraftStoreUnavailable):
            StepFormController(VENDOR, BrokenStore(), submissions).open_create()


class TestNavigation:
    def test_step_one_name_and_email_saved_on_advance(self, wizard, drafts):
        wizard.set_field("company_name", "Skyline Software")
        wizard.set_field("email", "ops@skyline-software.example")

        assert wizard.advance() == 2
        assert drafts.saves == [
            PartialContent(company_name="Skyline Software", email="ops@skyline-software.example")
        ]

    def test_advance_blocked_without_any_save(self, wizard, drafts):
        wizard.set_field("company_name", "Skyline Software")
        with pytest.raises(ValidationFailed) as exc_info:
            wizard.advance()
        assert set(exc_info.value.fields) == {"email"}
        assert wizard.current_step == 1
        assert drafts.saves == []

    def test_retreat_saves_then_moves_back(self, wizard, drafts):
        wizard.update(company_name="Skyline", email="ops@skyline-software.example")
        wizard.advance()
        wizard.set_field("data_architecture", "Postgres")
        assert wizard.retreat() == 1
        assert drafts.saves[-1].data_architecture == "Postgres"

    def test_retreat_on_first_step_is_noop(self, wizard, drafts):
        wizard.set_field("company_name", "Skyline")
        assert wizard.retreat() == 1
        assert drafts.saves == []

    def test_advance_clamped_at_last_step(self, wizard, full_content):
        _fill_and_reach_last_step(wizard, full_content())
        assert wizard.current_step == 5
        assert wizard.advance() == 5

    def test_save_failure_does_not_block_navigation(self, wizard, drafts):
        drafts.fail_save = True
        wizard.update(company_name="Skyline", email="ops@skyline-software.example")
        assert wizard.advance() == 2
        assert wizard.save_state is SaveState.ERROR


class TestAutosave:
    def test_first_step_edits_not_autosaved(self, wizard, drafts, clock):
        wizard.set_field("company_name", "Skyline")
        clock.advance(10)
        wizard.poll()
        assert drafts.saves == []

    def test_later_step_edits_debounced(self, wizard, drafts, clock):
        wizard.update(company_name="Skyline", email="ops@skyline-software.example")
        wizard.advance()
        saves_after_nav = len(drafts.saves)

        for text in ("P", "Po", "Postgres"):
            wizard.set_field("data_architecture", text)
            clock.advance(0.5)
            wizard.poll()
        clock.advance(2)
        wizard.poll()

        assert len(drafts.saves) == saves_after_nav + 1
        assert drafts.saves[-1].data_architecture == "Postgres"
        assert wizard.save_state is SaveState.SAVED

    def test_manual_save(self, wizard, drafts):
        wizard.set_field("company_name", "Skyline")
        snapshot = wizard.save_draft()
        assert snapshot is not None
        assert wizard.last_saved_at == snapshot.last_saved_at

    def test_discard_draft(self, wizard, drafts):
        wizard.update(company_name="Skyline", email="ops@skyline-software.example")
        wizard.advance()
        assert wizard.discard_draft() is True
        assert wizard.working_copy == PartialContent()
        assert wizard.current_step == 1
        assert wizard.discard_draft() is False


class TestFields:
    def test_unknown_field(self, wizard):
        with pytest.raises(ValidationFailed):
            wizard.set_field("favourite_colour", "blue")

    def test_integration_score(self, wizard):
        wizard.set_integration_score("avinode", "can-integrate-proven")
        wizard.set_integration_score("avinode", "")
        assert wizard.working_copy.integration_scores == {}

    def test_unknown_integration_system(self, wizard):
        with pytest.raises(ValidationFailed):
            wizard.set_integration_score("salesforce", "can-integrate-proven")

    def test_reference_fields_merge(self, wizard):
        wizard.set_reference(2, name="Lee Park")
        wizard.set_reference(2, company="Northwind Jets")
        assert wizard.working_copy.reference2.name == "Lee Park"
        assert wizard.working_copy.reference2.company == "Northwind Jets"

    def test_completion_spans_all_steps(self, wizard):
        wizard.update(security_measures="SSO", solution_fit="Strong", info_accurate=True, contact_consent=True)
        assert wizard.current_step == 1
        assert wizard.completion_percentage() == 25


class TestSubmit:
    def test_requires_both_consents(self, wizard, submissions, full_content):
        _fill_and_reach_last_step(wizard, full_content())
        wizard.update(contact_consent=False)
        with pytest.raises(ValidationFailed) as exc_info:
            wizard.submit()
        assert set(exc_info.value.fields) == {"contact_consent"}
        assert submissions.created == []

    def test_creates_submission_and_clears_draft(self, wizard, drafts, submissions, full_content):
        _fill_and_reach_last_step(wizard, full_content())
        assert VENDOR.vendor_id in drafts.drafts

        record = wizard.submit()

        assert record.status is SubmissionStatus.PENDING
        assert isinstance(submissions.created[0], Content)
        assert VENDOR.vendor_id not in drafts.drafts
        assert wizard.submitted

    def test_closed_after_submit(self, wizard, full_content):
        _fill_and_reach_last_step(wizard, full_content())
        wizard.submit()
        for call in (wizard.advance, wizard.retreat, wizard.submit, wizard.save_draft):
            with pytest.raises(WizardClosed):
                call()

    def test_pending_autosave_cancelled_by_submit(self, wizard, drafts, clock, full_content):
        _fill_and_reach_last_step(wizard, full_content())
        wizard.set_field("step4_questions", "None")
        wizard.submit()
        clock.advance(10)
        wizard.autosave.poll()
        assert VENDOR.vendor_id not in drafts.drafts

    def test_draft_delete_failure_does_not_fail_submit(self, wizard, drafts, full_content):
        _fill_and_reach_last_step(wizard, full_content())
        drafts.fail_delete = True
        record = wizard.submit()
        assert record.id
        assert wizard.submitted

    def test_repository_failure_keeps_data(self, wizard, submissions, full_content):
        _fill_and_reach_last_step(wizard, full_content())
        before = wizard.working_copy.model_copy(deep=True)
        submissions.error = DraftStoreUnavailable("network down")

        with pytest.raises(DraftStoreUnavailable):
            wizard.submit()

        assert wizard.current_step == 5
        assert wizard.working_copy == before
        assert not wizard.submitted

        submissions.error = None
        assert wizard.submit().status is SubmissionStatus.PENDING

    def test_incomplete_content_not_sent(self, wizard, submissions, full_content):
        _fill_and_reach_last_step(wizard, full_content())
        wizard.update(security_measures="")
        with pytest.raises(ValidationFailed) as exc_info:
            wizard.submit()
        assert "security_measures" in exc_info.value.fields
        assert submissions.created == []


class TestEditMode:
    @pytest.fixture
    def existing(self, submissions, full_content):
        record = SubmissionRecord(42, VENDOR.vendor_id, SubmissionStatus.UNDER_REVIEW, full_content())
        submissions.records[42] = record
        return record

    def test_bypasses_draft_store(self, drafts, submissions, existing, clock):
        wizard = StepFormController(VENDOR, drafts, submissions, clock=clock).open_edit(42)
        assert wizard.mode is WizardMode.EDIT
        assert drafts.loads == 0

        wizard.advance()
        wizard.set_field("data_architecture", "Postgres 16")
        clock.advance(10)
        wizard.poll()
        wizard.retreat()
        assert drafts.saves == []

    def test_submit_updates_existing(self, drafts, submissions, existing):
        wizard = StepFormController(VENDOR, drafts, submissions).open_edit(42)
        wizard.set_field("monthly_cost", "4,000")
        record = wizard.submit()
        assert record.id == 42
        assert record.status is SubmissionStatus.PENDING
        assert submissions.updated[0].monthly_cost == "4,000"
        assert submissions.created == []

    def test_frozen_submission_cannot_be_opened(self, drafts, submissions, full_content):
        submissions.records[9] = SubmissionRecord(9, VENDOR.vendor_id, SubmissionStatus.APPROVED, full_content())
        with pytest.raises(InvalidTransition) as exc_info:
            StepFormController(VENDOR, drafts, submissions).open_edit(9)
        assert exc_info.value.status == "Approved"

    def test_discard_keeps_create_mode_draft(self, drafts, submissions, existing, full_content):
        drafts.save(VENDOR.vendor_id, PartialContent(company_name="New proposal"))
        wizard = StepFormController(VENDOR, drafts, submissions).open_edit(42)
        wizard.set_field("monthly_cost", "4,000")
        wizard.advance()

        assert wizard.discard_draft() is False
        assert drafts.drafts[VENDOR.vendor_id].content.company_name == "New proposal"
        assert wizard.working_copy.monthly_cost == full_content().monthly_cost
        assert wizard.mode is WizardMode.EDIT
        assert wizard.current_step == 1
