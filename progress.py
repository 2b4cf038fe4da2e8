#!/usr/bin/env python3
"""
Assessment progress for coachees in Turning Point 360.

Peer completion is inferred by matching a submitted response's respondent
email against the approved nominee's email, case-insensitively. Responses
carry no nomination id, so email is the only link available.
"""

from framework import STATUS_APPROVED, normalize_email


def calculate_peer_progress(nominations, responses):
    """
    Count approved nominations that have a matching submitted response.

    Args:
        nominations: Nomination dicts with 'status', 'nominee_id' and 'nominee_email'
        responses: Response dicts with 'respondent_email' and 'submitted_at'

    Returns:
        {'total': int, 'completed': int, 'pending': int}
    """
    approved = [
        n for n in nominations
        if n.get('status') == STATUS_APPROVED and n.get('nominee_id') is not None
    ]

    responded = {
        normalize_email(r.get('respondent_email'))
        for r in responses
        if r.get('submitted_at') is not None and r.get('respondent_email')
    }

    completed = 0
    for nomination in approved:
        nominee_email = normalize_email(nomination.get('nominee_email'))
        if nominee_email and nominee_email in responded:
            completed += 1

    return {
        'total': len(approved),
        'completed': completed,
        'pending': len(approved) - completed,
    }


def get_peer_progress(db, coachee_id, peer_template_id=None):
    """Load a coachee's approved nominations and peer responses and count them."""
    if peer_template_id is None:
        coachee = db.get_coachee(coachee_id)
        if not coachee:
            return {'total': 0, 'completed': 0, 'pending': 0}
        peer_template_id = db.get_templates_for_programme(coachee['programme_id']).get('peer')

    nominations = db.get_nominations_for_coachee(coachee_id, status=STATUS_APPROVED)
    responses = db.get_responses(coachee_id, template_id=peer_template_id) if peer_template_id else []
    return calculate_peer_progress(nominations, responses)


def get_assessment_journey(db, coachee_id):
    """
    Work out where a coachee is in the onboarding -> self -> peer journey.

    Returns:
        {
            'onboarding': {'completed', 'template_id'},
            'self': {'completed', 'template_id'},
            'peer': {'total', 'completed', 'pending'},
            'next_step': 'onboarding' | 'self' | None,
        }
        or None if the coachee does not exist.
    """
    coachee = db.get_coachee(coachee_id)
    if not coachee:
        return None

    templates = db.get_templates_for_programme(coachee['programme_id'])
    own_responses = db.get_responses(coachee_id, respondent_email=coachee['email'])
    completed_template_ids = {r['assessment_template_id'] for r in own_responses}

    journey = {}
    for template_type in ('onboarding', 'self'):
        template_id = templates.get(template_type)
        journey[template_type] = {
            'completed': template_id is not None and template_id in completed_template_ids,
            'template_id': template_id,
        }

    journey['peer'] = get_peer_progress(db, coachee_id, peer_template_id=templates.get('peer'))

    # Self-assessment unlocks once onboarding is done
    if not journey['onboarding']['completed'] and journey['onboarding']['template_id']:
        journey['next_step'] = 'onboarding'
    elif not journey['self']['completed'] and journey['self']['template_id']:
        journey['next_step'] = 'self'
    else:
        journey['next_step'] = None

    return journey
