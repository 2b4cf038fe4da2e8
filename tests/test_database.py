"""
Database layer unit tests.

Tests cover:
  - Schema constraints (statuses, relationship types, unique emails)
  - Transactions roll back on error
  - Batch claiming and guarded nomination updates
  - Listing, filtering and stats queries
"""
import pytest

from errors import PersistenceError
from nominations import create_pending, process_nomination


class TestSchema:
    def test_init_is_idempotent(self, db):
        db.init_database()
        db.init_database()
        assert db.get_all_clients() == []

    def test_local_connection_info(self, db):
        info = db.get_connection_info()
        assert info["type"] == "Local SQLite"
        assert info["path"].endswith("test.db")
        assert db.is_turso is False

    def test_invalid_status_rejected(self, db, coachee):
        with pytest.raises(PersistenceError):
            with db.transaction() as conn:
                conn.execute(
                    "INSERT INTO nominations (coachee_id, relationship_type, status, created_at) "
                    "VALUES (?, 'Peer', 'maybe', '2026-01-01')",
                    (coachee["id"],),
                )

    def test_invalid_relationship_rejected(self, db, coachee):
        with pytest.raises(PersistenceError):
            with db.transaction() as conn:
                conn.execute(
                    "INSERT INTO nominations (coachee_id, relationship_type, created_at) "
                    "VALUES (?, 'Friend', '2026-01-01')",
                    (coachee["id"],),
                )

    def test_nominee_email_unique_case_insensitive(self, db):
        db.add_nominee("Ryan Lloyd", "ryan@acme.example")
        with pytest.raises(PersistenceError):
            db.add_nominee("Ryan L", "RYAN@acme.example")

    def test_coachee_email_stored_lowercase(self, db, programme_id):
        coachee_id = db.add_coachee(programme_id, " Tom Brown ", " Tom@Acme.Example ")
        coachee = db.get_coachee(coachee_id)
        assert coachee["email"] == "tom@acme.example"
        assert coachee["full_name"] == "Tom Brown"
        assert coachee["programme_name"] == "Leadership 2026"
        assert coachee["client_name"] == "Acme Ltd"
        assert db.get_coachee_by_email("TOM@acme.example")["id"] == coachee_id


class TestTransactions:
    def test_rollback_on_error(self, db):
        with pytest.raises(RuntimeError):
            with db.transaction() as conn:
                conn.execute("INSERT INTO clients (name) VALUES ('Rolled Back')")
                raise RuntimeError("boom")
        assert db.get_all_clients() == []

    def test_commit_on_success(self, db):
        with db.transaction() as conn:
            conn.execute("INSERT INTO clients (name) VALUES ('Kept')")
        assert [c["name"] for c in db.get_all_clients()] == ["Kept"]


class TestNominationStorage:
    def test_claim_batch_once(self, db, coachee):
        with db.transaction() as conn:
            assert db.claim_batch(conn, "response:9", coachee["id"]) is True
            assert db.claim_batch(conn, "response:9", coachee["id"]) is False

    def test_guarded_update_only_matches_pending(self, ctx, db, coachee):
        nomination = create_pending(ctx, coachee["id"], [{"name": "Ryan", "relationship_type": "Peer"}])[0]
        process_nomination(ctx, nomination["id"], {"kind": "reject"})

        with db.transaction() as conn:
            changed = db.update_pending_nomination(conn, nomination["id"], "approved", "2026-02-01", None)
        assert changed == 0
        assert db.get_nomination(nomination["id"])["status"] == "rejected"

    def test_filters_and_stats(self, ctx, db, coachee):
        nominations = create_pending(ctx, coachee["id"], [
            {"name": "Ryan Lloyd", "relationship_type": "Peer"},
            {"name": "Hannah Cole", "relationship_type": "Direct Report"},
            {"name": "Margaret Hale", "relationship_type": "Senior Leader"},
        ])
        process_nomination(ctx, nominations[0]["id"], {"kind": "approve_by_email", "email": "ryan@acme.example"})
        process_nomination(ctx, nominations[1]["id"], {"kind": "reject"})

        assert [n["pending_nominee_name"] for n in db.get_nominations(status="pending")] == ["Margaret Hale"]
        assert [n["pending_nominee_name"] for n in db.get_nominations(relationship_type="Peer")] == ["Ryan Lloyd"]
        assert len(db.get_nominations(programme_id=coachee["programme_id"])) == 3
        assert db.get_nominations(programme_id=9999) == []

        stats = db.get_dashboard_stats()
        assert stats["total_coachees"] == 1
        assert stats["total_nominees"] == 1
        assert stats["pending_nominations"] == 1
        assert stats["approved_nominations"] == 1
        assert stats["rejected_nominations"] == 1

        counts = {c["id"]: c for c in db.get_coachees()}
        assert counts[coachee["id"]]["nomination_count"] == 3
        assert counts[coachee["id"]]["pending_count"] == 1

    def test_delete_coachee_removes_nominations(self, ctx, db, coachee, templates):
        create_pending(ctx, coachee["id"], [{"name": "Ryan", "relationship_type": "Peer"}], batch_key="response:1")
        db.save_assessment_response(coachee["id"], templates["onboarding"], coachee["email"], {})

        db.delete_coachee(coachee["id"])

        assert db.get_coachee(coachee["id"]) is None
        assert db.get_nominations() == []


class TestNomineeSearch:
    def test_search_by_name_or_email(self, db):
        db.add_nominee("Ryan Lloyd", "ryan@acme.example")
        db.add_nominee("Priya Shah", "pshah@other.example")

        assert [n["full_name"] for n in db.search_nominees("LLOYD")] == ["Ryan Lloyd"]
        assert [n["full_name"] for n in db.search_nominees("other.example")] == ["Priya Shah"]
        assert len(db.search_nominees("")) == 2
