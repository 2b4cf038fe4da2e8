#!/usr/bin/env python3
"""
Processing of onboarding assessment responses for Turning Point 360.

Extracts nominee names from the onboarding answers, checks them, and turns
them into pending nominations once the response itself has been saved.

Expected onboarding answers:
    {
        "peers": "Name One\\nName Two\\nName Three",
        "directReports": "Name One\\nName Two",
        "seniorLeaders": "Name One"
    }
"""

import json
import logging
from collections.abc import Mapping

from errors import NominationError, NotFoundError, ValidationError
from framework import MAX_NOMINEE_NAME_LENGTH, ONBOARDING_RELATIONSHIP_KEYS
from nominations import create_pending

logger = logging.getLogger(__name__)


def parse_nominees_from_onboarding(onboarding_response):
    """
    Parse nominee names from an onboarding response.

    Keys are read in the order declared in ONBOARDING_RELATIONSHIP_KEYS.
    Missing or non-string answers are skipped; blank lines are dropped.

    Returns:
        List of {'name', 'relationship_type'} dicts.
    """
    nominees = []

    if not isinstance(onboarding_response, Mapping):
        return nominees

    for key, relationship_type in ONBOARDING_RELATIONSHIP_KEYS.items():
        names_text = onboarding_response.get(key)
        if not names_text or not isinstance(names_text, str):
            continue

        for line in names_text.split('\n'):
            name = line.strip()
            if name:
                nominees.append({'name': name, 'relationship_type': relationship_type})

    return nominees


def validate_nominee_names(nominees):
    """
    Check parsed nominees. Advisory only: the list is not modified.

    Returns:
        {'valid': bool, 'errors': [str, ...]}
    """
    errors = []

    for index, nominee in enumerate(nominees, start=1):
        name = nominee.get('name') or ''

        if not name.strip():
            errors.append(f"Nominee {index} has an empty name")

        if len(name) > MAX_NOMINEE_NAME_LENGTH:
            errors.append(
                f"Nominee {index} has a name that's too long (max {MAX_NOMINEE_NAME_LENGTH} characters)"
            )

    return {
        'valid': len(errors) == 0,
        'errors': errors,
    }


def convert_onboarding_to_nominations(ctx, coachee_id, answers, batch_key=None):
    """
    Parse, validate and create pending nominations for one onboarding response.

    Validation failures only log warnings unless ctx.enforce_validation is set,
    in which case a ValidationError is raised and nothing is created.

    Returns:
        (nominations, validation)
    """
    candidates = parse_nominees_from_onboarding(answers)
    validation = validate_nominee_names(candidates)

    if not validation['valid']:
        if ctx.enforce_validation:
            raise ValidationError(
                "Nominee list failed validation",
                details={'errors': validation['errors']},
            )
        for message in validation['errors']:
            logger.warning("Coachee %s onboarding: %s (continuing)", coachee_id, message)

    nominations = create_pending(ctx, coachee_id, candidates, batch_key=batch_key)
    return nominations, validation


def submit_onboarding_response(ctx, coachee_id, template_id, respondent_email, answers):
    """
    Save an onboarding response, then derive nominations from it.

    The response is saved first; a failure there propagates. A failure while
    creating nominations is logged and returned in the result, and the saved
    response is kept. The response id is used as the nomination batch key, so
    re-running the conversion for the same response creates nothing new.

    Returns:
        {
            'response_id': int,
            'nominations': [nomination dicts],
            'validation': {'valid', 'errors'},
            'nomination_error': str or None,
        }
    """
    response_id = ctx.db.save_assessment_response(coachee_id, template_id, respondent_email, answers)
    logger.info("Saved onboarding response %s for coachee %s", response_id, coachee_id)

    result = {
        'response_id': response_id,
        'nominations': [],
        'validation': validate_nominee_names(parse_nominees_from_onboarding(answers)),
        'nomination_error': None,
    }

    try:
        nominations, validation = convert_onboarding_to_nominations(
            ctx, coachee_id, answers, batch_key=f"response:{response_id}"
        )
        result['nominations'] = nominations
        result['validation'] = validation
    except NominationError as e:
        logger.error("Could not create nominations for response %s", response_id, exc_info=True)
        result['nomination_error'] = str(e)

    return result


def retry_onboarding_nominations(ctx, response_id):
    """
    Re-run nomination creation for a saved onboarding response.

    Safe to repeat: the batch key ties nominations to the response, so a
    response that was already converted returns its existing nominations.
    """
    response = ctx.db.get_response(response_id)
    if not response:
        raise NotFoundError("Assessment response", response_id)

    answers = json.loads(response['answers_json'] or '{}')
    nominations, _ = convert_onboarding_to_nominations(
        ctx, response['coachee_id'], answers, batch_key=f"response:{response_id}"
    )
    return nominations
