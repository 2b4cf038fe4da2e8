"""
Assessment progress unit tests.

Tests cover:
  - Peer progress counting from in-memory rows
  - Peer progress loaded from the database
  - The onboarding -> self -> peer journey
"""
import pytest

from nominations import create_pending, process_nomination
from progress import calculate_peer_progress, get_assessment_journey, get_peer_progress


def _approved(nominee_id, email):
    return {"status": "approved", "nominee_id": nominee_id, "nominee_email": email}


class TestCalculatePeerProgress:
    def test_counts_completed_case_insensitively(self):
        nominations = [
            _approved(1, "ryan@acme.example"),
            _approved(2, "priya@acme.example"),
            _approved(3, "tom@acme.example"),
        ]
        responses = [
            {"respondent_email": "RYAN@acme.example", "submitted_at": "2026-01-20"},
            {"respondent_email": "priya@acme.example ", "submitted_at": "2026-01-21"},
        ]
        assert calculate_peer_progress(nominations, responses) == {
            "total": 3, "completed": 2, "pending": 1,
        }

    def test_ignores_pending_rejected_and_unlinked(self):
        nominations = [
            {"status": "pending", "nominee_id": None, "nominee_email": None},
            {"status": "rejected", "nominee_id": 4, "nominee_email": "x@acme.example"},
            {"status": "approved", "nominee_id": None, "nominee_email": None},
            _approved(1, "ryan@acme.example"),
        ]
        assert calculate_peer_progress(nominations, [])["total"] == 1

    def test_unsubmitted_responses_not_counted(self):
        nominations = [_approved(1, "ryan@acme.example")]
        responses = [{"respondent_email": "ryan@acme.example", "submitted_at": None}]
        assert calculate_peer_progress(nominations, responses)["completed"] == 0

    def test_empty(self):
        assert calculate_peer_progress([], []) == {"total": 0, "completed": 0, "pending": 0}


class TestPeerProgressFromDatabase:
    @pytest.fixture()
    def approved_peers(self, ctx, coachee):
        pending = create_pending(ctx, coachee["id"], [
            {"name": "Ryan Lloyd", "relationship_type": "Peer"},
            {"name": "Priya Shah", "relationship_type": "Peer"},
            {"name": "Tom Brown", "relationship_type": "Peer"},
            {"name": "Rejected Person", "relationship_type": "Peer"},
        ])
        for nomination, email in zip(pending[:3], ["ryan@acme.example", "priya@acme.example", "tom@acme.example"]):
            process_nomination(ctx, nomination["id"], {"kind": "approve_by_email", "email": email})
        process_nomination(ctx, pending[3]["id"], {"kind": "reject"})
        return pending

    def test_three_approved_two_responded(self, db, coachee, templates, approved_peers):
        db.save_assessment_response(coachee["id"], templates["peer"], "Ryan@Acme.example", {})
        db.save_assessment_response(coachee["id"], templates["peer"], "priya@acme.example", {})

        assert get_peer_progress(db, coachee["id"]) == {"total": 3, "completed": 2, "pending": 1}

    def test_responses_to_other_templates_ignored(self, db, coachee, templates, approved_peers):
        db.save_assessment_response(coachee["id"], templates["self"], "ryan@acme.example", {})
        assert get_peer_progress(db, coachee["id"])["completed"] == 0

    def test_unknown_coachee(self, db):
        assert get_peer_progress(db, 9999) == {"total": 0, "completed": 0, "pending": 0}


class TestAssessmentJourney:
    def test_new_coachee_starts_with_onboarding(self, db, coachee, templates):
        journey = get_assessment_journey(db, coachee["id"])
        assert journey["next_step"] == "onboarding"
        assert journey["onboarding"] == {"completed": False, "template_id": templates["onboarding"]}
        assert journey["peer"] == {"total": 0, "completed": 0, "pending": 0}

    def test_self_unlocks_after_onboarding(self, db, coachee, templates):
        db.save_assessment_response(coachee["id"], templates["onboarding"], coachee["email"], {})
        journey = get_assessment_journey(db, coachee["id"])
        assert journey["onboarding"]["completed"] is True
        assert journey["next_step"] == "self"

    def test_complete_journey(self, db, coachee, templates):
        db.save_assessment_response(coachee["id"], templates["onboarding"], coachee["email"], {})
        db.save_assessment_response(coachee["id"], templates["self"], coachee["email"].upper(), {})
        assert get_assessment_journey(db, coachee["id"])["next_step"] is None

    def test_unknown_coachee(self, db):
        assert get_assessment_journey(db, 9999) is None
