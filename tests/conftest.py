"""
Shared pytest fixtures for the Turning Point 360 test suite.

Provides:
    - db: Fresh local SQLite Database per test (Turso credentials cleared)
    - client_id / programme_id: Pre-created client and programme
    - templates: Onboarding, self and peer templates for the programme
    - coachee: Pre-created coachee
    - ctx: NominationContext with a fixed clock
"""

import pytest

from database import Database
from nominations import NominationContext

FIXED_NOW = "2026-01-15T09:30:00+00:00"


@pytest.fixture()
def db(tmp_path, monkeypatch):
    """Local SQLite database in a temp directory."""
    for var in ("TURSO_DATABASE_URL", "TURSO_AUTH_TOKEN", "ENFORCE_NOMINEE_VALIDATION"):
        monkeypatch.delenv(var, raising=False)
    return Database(str(tmp_path / "test.db"))


@pytest.fixture()
def client_id(db):
    return db.add_client("Acme Ltd")


@pytest.fixture()
def programme_id(db, client_id):
    return db.add_programme(client_id, "Leadership 2026")


@pytest.fixture()
def templates(db, programme_id):
    return {
        "onboarding": db.add_template(programme_id, "Onboarding", "onboarding"),
        "self": db.add_template(programme_id, "Self", "self"),
        "peer": db.add_template(programme_id, "Peer", "peer"),
    }


@pytest.fixture()
def coachee(db, programme_id):
    coachee_id = db.add_coachee(programme_id, "Jane Coachee", "jane.coachee@acme.example")
    return db.get_coachee(coachee_id)


@pytest.fixture()
def ctx(db):
    return NominationContext(db, clock=lambda: FIXED_NOW, actor="admin@acme.example")


@pytest.fixture()
def strict_ctx(db):
    return NominationContext(db, enforce_validation=True, clock=lambda: FIXED_NOW)
