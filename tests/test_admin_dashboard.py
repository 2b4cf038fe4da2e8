"""
Admin dashboard helper tests.

Only the helpers behind the tabs are covered; rendering is left to Streamlit.
"""
from admin_dashboard import create_programme, format_timestamp, group_by_coachee, nominations_to_frame
from nominations import create_pending, process_nomination


def test_group_by_coachee_keeps_first_seen_order(ctx, db, programme_id, coachee):
    other_id = db.add_coachee(programme_id, "Tom Brown", "tom@acme.example")
    create_pending(ctx, coachee["id"], [{"name": "Ryan", "relationship_type": "Peer"}])
    create_pending(ctx, other_id, [{"name": "Priya", "relationship_type": "Peer"}])
    create_pending(ctx, coachee["id"], [{"name": "Hannah", "relationship_type": "Direct Report"}])

    groups = group_by_coachee(db.get_nominations_for_coachee(coachee["id"]) +
                              db.get_nominations_for_coachee(other_id))

    assert [g["coachee"]["full_name"] for g in groups] == ["Jane Coachee", "Tom Brown"]
    assert [n["pending_nominee_name"] for n in groups[0]["nominations"]] == ["Ryan", "Hannah"]
    assert groups[0]["coachee"]["client_name"] == "Acme Ltd"


def test_nominations_frame_for_export(ctx, db, coachee):
    nominations = create_pending(ctx, coachee["id"], [
        {"name": "Ryan Lloyd", "relationship_type": "Peer"},
        {"name": "Hannah Cole", "relationship_type": "Direct Report"},
    ])
    process_nomination(ctx, nominations[0]["id"], {"kind": "approve_by_email", "email": "ryan@acme.example"})

    df = nominations_to_frame(db.get_nominations_for_coachee(coachee["id"]))

    assert list(df["Nominee"]) == ["Ryan Lloyd", "Hannah Cole"]
    assert list(df["Nominee Email"]) == ["ryan@acme.example", ""]
    assert list(df["Status"]) == ["approved", "pending"]
    assert "Coachee,Programme,Client" in df.to_csv(index=False)


def test_nominations_frame_empty():
    assert nominations_to_frame([]).empty


def test_format_timestamp():
    assert format_timestamp(None) == '—'
    assert format_timestamp("2026-01-15T09:30:00+00:00") == "15 Jan 2026 09:30"
    assert format_timestamp("2026-01-15 09:30:00") == "15 Jan 2026 09:30"


class TestCreateProgramme:
    def test_creates_programme_with_templates(self, db, client_id):
        success, message = create_programme(db, client_id, " Leaders 2027 ")
        assert success is True
        assert message == "Added Leaders 2027"

        programme = [p for p in db.get_programmes(client_id) if p["name"] == "Leaders 2027"][0]
        assert set(db.get_templates_for_programme(programme["id"])) == {"onboarding", "self", "peer"}

    def test_store_failure_reported_not_raised(self, db):
        success, message = create_programme(db, 9999, "Orphan Programme")
        assert success is False
        assert message.startswith("Could not add programme:")
        assert db.get_programmes() == []
