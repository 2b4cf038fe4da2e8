#!/usr/bin/env python3
"""
Nomination lifecycle for Turning Point 360.

A nomination is created `pending` from an onboarding submission and is moved
exactly once, by an admin decision, to `approved` or `rejected`:

    pending -> approved   (approve_by_email, approve_existing)
    pending -> rejected   (reject)

Usage:
    from nominations import NominationContext, process_nomination

    ctx = NominationContext(db)
    nomination = process_nomination(
        ctx, nomination_id,
        {'kind': 'approve_by_email', 'email': 'jane@example.com'},
        admin_notes="Confirmed with coachee",
    )
"""

import logging
import uuid
from datetime import datetime, timezone

from errors import ConflictError, NominationError, NotFoundError, ValidationError
from framework import (
    DECISION_APPROVE_BY_EMAIL,
    DECISION_APPROVE_EXISTING,
    DECISION_KINDS,
    DECISION_REJECT,
    NOMINATION_TRANSITIONS,
    RELATIONSHIP_TYPES,
    STATUS_APPROVED,
    STATUS_PENDING,
    STATUS_REJECTED,
    is_valid_email,
    normalize_email,
)

logger = logging.getLogger(__name__)


def _utc_now():
    return datetime.now(timezone.utc).isoformat(timespec='seconds')


class NominationContext:
    """
    Per-request state handed to every lifecycle operation.

    Args:
        db: The Database the operation reads and writes.
        enforce_validation: Block nomination creation when nominee names fail
            validation. Off by default so onboarding data is never lost.
        actor: Who is acting (admin email, coachee email). Logged only.
        clock: Callable returning the timestamp to record, ISO formatted.
    """

    def __init__(self, db, enforce_validation=False, actor=None, clock=None):
        self.db = db
        self.enforce_validation = enforce_validation
        self.actor = actor
        self.clock = clock or _utc_now

    def now(self):
        return self.clock()


def create_pending(ctx, coachee_id, candidates, batch_key=None):
    """
    Create one pending nomination per candidate in a single batch insert.

    Args:
        ctx: NominationContext
        coachee_id: Owning coachee
        candidates: List of {'name', 'relationship_type'} from the onboarding parser
        batch_key: Optional idempotency key, e.g. 'response:17'. A key that has
            already been used returns the nominations created the first time.

    Returns:
        List of nomination dicts in input order.

    Raises:
        NotFoundError, ValidationError, PersistenceError
    """
    for index, candidate in enumerate(candidates, start=1):
        if candidate.get('relationship_type') not in RELATIONSHIP_TYPES:
            raise ValidationError(
                f"Nominee {index} has an unknown relationship type: {candidate.get('relationship_type')!r}",
                details={'relationship_type': candidate.get('relationship_type')},
            )

    created_at = ctx.now()

    with ctx.db.transaction() as conn:
        if not ctx.db.get_coachee(coachee_id, conn=conn):
            raise NotFoundError("Coachee", coachee_id)

        if batch_key is None:
            if not candidates:
                return []
            # Ad-hoc batches still get a key so the rows can be read back in order
            batch_key = f"adhoc:{uuid.uuid4().hex}"

        if not ctx.db.claim_batch(conn, batch_key, coachee_id):
            logger.info("Nomination batch %s already created for coachee %s; not re-inserting",
                        batch_key, coachee_id)
            return ctx.db.get_nominations_for_batch(batch_key, conn=conn)

        records = [
            {
                'coachee_id': coachee_id,
                'nominee_id': None,
                'relationship_type': candidate['relationship_type'],
                'pending_nominee_name': candidate['name'],
                'status': STATUS_PENDING,
                'admin_notes': None,
                'batch_key': batch_key,
                'created_at': created_at,
                'processed_at': None,
            }
            for candidate in candidates
        ]
        ctx.db.insert_nominations(conn, records)
        nominations = ctx.db.get_nominations_for_batch(batch_key, conn=conn)

    logger.info("Created %d pending nomination(s) for coachee %s", len(nominations), coachee_id)
    return nominations


def _clean_notes(admin_notes):
    if admin_notes is None:
        return None
    if not isinstance(admin_notes, str):
        raise ValidationError("Admin notes must be text", details={'admin_notes': 'not text'})
    admin_notes = admin_notes.strip()
    return admin_notes or None


def _check_decision(decision):
    """Validate the shape of a decision. Returns the normalised decision."""
    if not isinstance(decision, dict) or decision.get('kind') not in DECISION_KINDS:
        raise ValidationError(
            "Unknown decision",
            details={'kind': decision.get('kind') if isinstance(decision, dict) else decision},
        )

    kind = decision['kind']

    if kind == DECISION_APPROVE_BY_EMAIL:
        raw_email = decision.get('email')
        if not isinstance(raw_email, str) or not raw_email.strip():
            raise ValidationError("Please enter an email address", details={'email': 'required'})
        email = normalize_email(raw_email)
        if not is_valid_email(email):
            raise ValidationError("Please enter a valid email address", details={'email': raw_email})
        return {'kind': kind, 'email': email}

    if kind == DECISION_APPROVE_EXISTING:
        nominee_id = decision.get('nominee_id')
        if not nominee_id:
            raise ValidationError("Please select an existing nominee", details={'nominee_id': 'required'})
        return {'kind': kind, 'nominee_id': nominee_id}

    return {'kind': DECISION_REJECT}


def process_nomination(ctx, nomination_id, decision, admin_notes=None):
    """
    Apply an admin decision to a pending nomination.

    Args:
        ctx: NominationContext
        nomination_id: Nomination to process
        decision: {'kind': 'approve_by_email', 'email': ...},
                  {'kind': 'approve_existing', 'nominee_id': ...} or
                  {'kind': 'reject'}
        admin_notes: Optional free text; blank notes are stored as NULL

    Returns:
        The updated nomination dict.

    Raises:
        NotFoundError, ConflictError, ValidationError, PersistenceError
    """
    db = ctx.db

    nomination = db.get_nomination(nomination_id)
    if not nomination:
        raise NotFoundError("Nomination", nomination_id)
    if not NOMINATION_TRANSITIONS[nomination['status']]:
        raise ConflictError("Nomination", nomination_id, nomination['status'])

    decision = _check_decision(decision)
    notes = _clean_notes(admin_notes)
    processed_at = ctx.now()

    with db.transaction() as conn:
        nominee_id = None

        if decision['kind'] == DECISION_APPROVE_BY_EMAIL:
            existing = db.get_nominee_by_email(decision['email'], conn=conn)
            if existing:
                nominee_id = existing['id']
                logger.info("Linking nomination %s to existing nominee %s", nomination_id, nominee_id)
            else:
                nominee_id = db.add_nominee(nomination['pending_nominee_name'], decision['email'], conn=conn)
                logger.info("Created nominee %s (%s) for nomination %s",
                            nominee_id, decision['email'], nomination_id)
            new_status = STATUS_APPROVED

        elif decision['kind'] == DECISION_APPROVE_EXISTING:
            if not db.get_nominee(decision['nominee_id'], conn=conn):
                raise NotFoundError("Nominee", decision['nominee_id'])
            nominee_id = decision['nominee_id']
            new_status = STATUS_APPROVED

        else:
            new_status = STATUS_REJECTED

        changed = db.update_pending_nomination(
            conn, nomination_id, new_status, processed_at, notes, nominee_id=nominee_id
        )
        if changed != 1:
            # Processed by someone else since we read it; roll back any new nominee
            current = db.get_nomination(nomination_id, conn=conn)
            raise ConflictError("Nomination", nomination_id, current['status'] if current else 'unknown')

        updated = db.get_nomination(nomination_id, conn=conn)

    logger.info("Nomination %s %s by %s", nomination_id, new_status, ctx.actor or 'admin')
    return updated


def apply_decision(ctx, nomination_id, decision, admin_notes=None):
    """
    Process a nomination and report the outcome instead of raising.

    Returns:
        (success, message)
    """
    try:
        nomination = process_nomination(ctx, nomination_id, decision, admin_notes)
    except NominationError as e:
        logger.warning("Could not process nomination %s: %s", nomination_id, e)
        return False, str(e)

    name = nomination.get('nominee_name') or nomination.get('pending_nominee_name')
    if nomination['status'] == STATUS_APPROVED:
        return True, f"Approved {name} ({nomination.get('nominee_email')})"
    return True, f"Rejected nomination for {name}"


def summarise_statuses(nominations):
    """Count nominations by status."""
    counts = {status: 0 for status in NOMINATION_TRANSITIONS}
    for nomination in nominations:
        counts[nomination['status']] = counts.get(nomination['status'], 0) + 1
    return counts
