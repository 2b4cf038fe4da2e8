"""
Coachee CSV import unit tests.

Tests cover:
  - Column detection and row-level error messages
  - Import skips coachees that already exist
"""
import pytest

from coachee_import import import_coachees, parse_coachee_csv
from errors import ValidationError


class TestParseCoacheeCsv:
    def test_parses_rows_and_normalises_email(self):
        coachees, errors = parse_coachee_csv(
            "name,email\nJane Smith, Jane.Smith@Acme.Example\nTom Brown,tom@acme.example\n"
        )
        assert errors == []
        assert coachees == [
            {"full_name": "Jane Smith", "email": "jane.smith@acme.example"},
            {"full_name": "Tom Brown", "email": "tom@acme.example"},
        ]

    @pytest.mark.parametrize("header", ["full_name,email", "Full Name,E-mail", " NAME , EMAIL "])
    def test_alternative_headers(self, header):
        coachees, _ = parse_coachee_csv(f"{header}\nJane Smith,jane@acme.example")
        assert coachees == [{"full_name": "Jane Smith", "email": "jane@acme.example"}]

    def test_row_errors_count_header_as_row_one(self):
        coachees, errors = parse_coachee_csv(
            "name,email\n"
            "Jane Smith,jane@acme.example\n"
            ",missing@acme.example\n"
            "Bad Email,not-an-email\n"
            "Jane Again,JANE@acme.example\n"
        )
        assert [c["email"] for c in coachees] == ["jane@acme.example"]
        assert errors == [
            "Row 3: Missing name or email",
            "Row 4: Invalid email format (not-an-email)",
            "Row 5: Duplicate email (jane@acme.example)",
        ]

    def test_short_row_reported_missing(self):
        _, errors = parse_coachee_csv("name,email\nJane Smith\n")
        assert errors == ["Row 2: Missing name or email"]

    @pytest.mark.parametrize("text", ["", "   \n  "])
    def test_empty_input(self, text):
        with pytest.raises(ValidationError, match="Please paste CSV data"):
            parse_coachee_csv(text)

    def test_missing_columns(self):
        with pytest.raises(ValidationError, match="must contain"):
            parse_coachee_csv("first,last\nJane,Smith")


class TestImportCoachees:
    def test_adds_new_and_skips_existing(self, db, programme_id, coachee):
        result = import_coachees(
            db, programme_id,
            "name,email\nJane Coachee,JANE.COACHEE@acme.example\nTom Brown,tom@acme.example\n",
        )
        assert result["added"] == 1
        assert result["skipped"] == 1
        assert result["errors"] == ["1 coachee(s) skipped (already exist)"]
        assert {c["email"] for c in db.get_coachees(programme_id)} == {
            "jane.coachee@acme.example", "tom@acme.example",
        }

    def test_row_errors_returned(self, db, programme_id):
        result = import_coachees(db, programme_id, "name,email\nTom,bad\n")
        assert result == {"added": 0, "skipped": 0, "errors": ["Row 2: Invalid email format (bad)"]}
