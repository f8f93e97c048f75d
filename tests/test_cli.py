"""Flask CLI commands: init-db, seed-admin, purge-drafts."""

from __future__ import annotations

from datetime import datetime, timedelta

from rfp_portal.extensions import db
from rfp_portal.models import Draft, User


def test_init_db(app):
    result = app.test_cli_runner().invoke(args=["init-db"])
    assert result.exit_code == 0
    assert "Database tables created" in result.output


def test_seed_admin_is_idempotent(app):
    runner = app.test_cli_runner()

    first = runner.invoke(args=["seed-admin", "Root@Portal.example", "first-pass"])
    assert "created" in first.output

    second = runner.invoke(args=["seed-admin", "root@portal.example", "second-pass"])
    assert "updated" in second.output

    with app.app_context():
        users = User.query.filter_by(email="root@portal.example").all()
        assert len(users) == 1
        assert users[0].is_admin
        assert users[0].check_password("second-pass")


def test_seed_admin_refuses_vendor_account(app, vendor_actor):
    result = app.test_cli_runner().invoke(args=["seed-admin", vendor_actor.label, "x"])
    assert result.exit_code != 0
    assert "non-admin" in result.output


def test_purge_drafts(app, vendor_actor, other_vendor_actor):
    with app.app_context():
        db.session.add(Draft(vendor_id=vendor_actor.vendor_id, last_saved_at=datetime.utcnow() - timedelta(days=45)))
        db.session.add(Draft(vendor_id=other_vendor_actor.vendor_id, last_saved_at=datetime.utcnow()))
        db.session.commit()

    result = app.test_cli_runner().invoke(args=["purge-drafts"])
    assert "Removed 1 draft(s) older than 30 days" in result.output

    result = app.test_cli_runner().invoke(args=["purge-drafts", "--days", "0"])
    assert "Removed 1 draft(s)" in result.output
