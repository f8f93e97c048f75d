"""
Pytest configuration and shared fixtures.

- app:      application on TestConfig (in-memory SQLite, tables created)
- app_ctx:  pushes an app context for service-level tests
- client:   Flask test client
- make_vendor / vendor_actor / admin_actor: accounts, returned as Actor values
- full_content: factory for submission-ready proposal content
"""

from __future__ import annotations

from typing import Generator

import pytest

from config import TestConfig
from rfp_portal import create_app
from rfp_portal.content import PartialContent
from rfp_portal.extensions import db as _db
from rfp_portal.models import User, Vendor
from rfp_portal.security import Actor

VENDOR_PASSWORD = "vendor-pass-123"
ADMIN_PASSWORD = "admin-pass-123"


# ============================================================================
# Application
# ============================================================================

@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        _db.create_all()
    yield app
    with app.app_context():
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def app_ctx(app) -> Generator[None, None, None]:
    with app.app_context():
        yield
        _db.session.remove()


@pytest.fixture
def db(app_ctx):
    return _db


@pytest.fixture
def client(app):
    return app.test_client()


# ============================================================================
# Accounts
# ============================================================================

@pytest.fixture
def make_vendor(app):
    """Create a vendor company plus its login; returns the vendor's Actor."""

    def _make(email: str = "ops@skyline-software.example", name: str = "Skyline Software") -> Actor:
        with app.app_context():
            vendor = Vendor(
                vendor_name=name,
                contact_person="Dana Reyes",
                email=email,
                phone="+1 555 0100",
                website="https://skyline-software.example",
                services="Charter operations software",
            )
            _db.session.add(vendor)
            _db.session.flush()

            user = User(email=email, vendor_id=vendor.id)
            user.set_password(VENDOR_PASSWORD)
            _db.session.add(user)
            _db.session.commit()
            return Actor.from_user(user)

    return _make


@pytest.fixture
def vendor_actor(make_vendor) -> Actor:
    return make_vendor()


@pytest.fixture
def other_vendor_actor(make_vendor) -> Actor:
    return make_vendor(email="bids@jetdesk.example", name="JetDesk")


@pytest.fixture
def admin_actor(app) -> Actor:
    with app.app_context():
        user = User(email="reviewer@aviation.example", is_admin=True)
        user.set_password(ADMIN_PASSWORD)
        _db.session.add(user)
        _db.session.commit()
        return Actor.from_user(user)


def login(client, email: str, password: str):
    return client.post("/auth/login", json={"email": email, "password": password})


@pytest.fixture
def vendor_client(app, vendor_actor):
    client = app.test_client()
    assert login(client, vendor_actor.label, VENDOR_PASSWORD).status_code == 200
    return client


@pytest.fixture
def admin_client(app, admin_actor):
    client = app.test_client()
    assert login(client, admin_actor.label, ADMIN_PASSWORD).status_code == 200
    return client


# ============================================================================
# Content
# ============================================================================

@pytest.fixture
def full_content():
    """Factory for content that passes every step of the wizard."""

    def _make(**overrides) -> PartialContent:
        data = {
            "company_name": "Skyline Software",
            "website": "https://skyline-software.example",
            "contact_person": "Dana Reyes",
            "email": "ops@skyline-software.example",
            "phone": "+1 555 0100",
            "company_description": "Charter operations software for Part 135 operators.",
            "client_workflow_description": "Clients request quotes through a branded portal.",
            "request_capture_description": "Requests land in a shared queue with SLA timers.",
            "internal_workflow_description": "Dispatch, crew and billing share one trip record.",
            "reporting_capabilities": "Scheduled and ad-hoc reports, CSV and PDF export.",
            "data_architecture": "Postgres with a read replica for reporting.",
            "integration_scores": {"avinode": "can-integrate-proven", "slack": "can-integrate-unproven"},
            "security_measures": "SSO, field-level encryption, yearly pen test.",
            "pci_compliant": True,
            "implementation_timeline": "12 weeks",
            "project_start_date": "2026-01-15",
            "implementation_phases": "Discovery, configuration, migration, go-live.",
            "upfront_cost": "45000.00",
            "monthly_cost": "3,500 per month",
            "reference1": {"name": "Sam Ortiz", "company": "Blue Air", "email": "sam@blueair.example", "reason": "Same fleet size"},
            "solution_fit": "Built for charter brokers and operators alike.",
            "info_accurate": True,
            "contact_consent": True,
        }
        data.update(overrides)
        return PartialContent.model_validate(data)

    return _make
