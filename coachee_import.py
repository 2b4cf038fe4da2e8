#!/usr/bin/env python3
"""
CSV import of coachees for Turning Point 360.

Accepts pasted CSV text with a name column ("name", "full_name" or
"full name") and an email column ("email" or "e-mail").
"""

import io
import logging

import pandas as pd

from errors import ValidationError
from framework import is_valid_email, normalize_email

logger = logging.getLogger(__name__)

NAME_COLUMNS = ('name', 'full_name', 'full name')
EMAIL_COLUMNS = ('email', 'e-mail')


def _find_column(columns, candidates):
    for column in columns:
        if column.strip().lower() in candidates:
            return column
    return None


def _cell(value):
    # Short rows come back as NaN
    return value.strip() if isinstance(value, str) else ''


def parse_coachee_csv(csv_text):
    """
    Parse coachee rows from CSV text.

    Row numbers in messages count the header as row 1.

    Returns:
        (coachees, errors) where coachees is a list of {'full_name', 'email'}
        with emails lower-cased and duplicates within the file removed.

    Raises:
        ValidationError if the text is empty or the required columns are missing.
    """
    if not csv_text or not csv_text.strip():
        raise ValidationError("Please paste CSV data")

    try:
        df = pd.read_csv(
            io.StringIO(csv_text.strip()),
            dtype=str,
            keep_default_na=False,
            skipinitialspace=True,
            skip_blank_lines=False,
        )
    except pd.errors.ParserError as e:
        raise ValidationError(f"Could not read CSV: {e}") from e

    name_col = _find_column(df.columns, NAME_COLUMNS)
    email_col = _find_column(df.columns, EMAIL_COLUMNS)
    if name_col is None or email_col is None:
        raise ValidationError('CSV must contain "name" (or "full_name") and "email" columns')

    coachees = []
    errors = []
    seen = set()

    for position, row in enumerate(df.itertuples(index=False), start=2):
        values = dict(zip(df.columns, row))
        name = _cell(values.get(name_col))
        raw_email = _cell(values.get(email_col))

        if not name or not raw_email:
            errors.append(f"Row {position}: Missing name or email")
            continue

        if not is_valid_email(raw_email):
            errors.append(f"Row {position}: Invalid email format ({raw_email})")
            continue

        email = normalize_email(raw_email)
        if email in seen:
            errors.append(f"Row {position}: Duplicate email ({email})")
            continue
        seen.add(email)

        coachees.append({'full_name': name, 'email': email})

    return coachees, errors


def import_coachees(db, programme_id, csv_text):
    """
    Import coachees from CSV into a programme, skipping ones that already exist.

    Returns:
        {'added': int, 'skipped': int, 'errors': [str, ...]}
    """
    coachees, errors = parse_coachee_csv(csv_text)

    existing = db.get_existing_coachee_emails([c['email'] for c in coachees])
    new_coachees = [c for c in coachees if c['email'] not in existing]
    skipped = len(coachees) - len(new_coachees)

    if skipped:
        errors.append(f"{skipped} coachee(s) skipped (already exist)")

    if new_coachees:
        db.add_coachees(programme_id, new_coachees)

    logger.info("Imported %d coachee(s) into programme %s (%d skipped, %d row error(s))",
                len(new_coachees), programme_id, skipped, len(errors) - (1 if skipped else 0))

    return {'added': len(new_coachees), 'skipped': skipped, 'errors': errors}
