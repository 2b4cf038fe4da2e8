#!/usr/bin/env python3
"""
Framework configuration for Turning Point 360.

Contains the relationship categories, nomination statuses, assessment
template types and display configuration.
"""

import re

# ============================================
# ONBOARDING RELATIONSHIP KEYS
# ============================================

# Onboarding answer key -> relationship type label. Order matters: nominees
# are emitted peers first, then direct reports, then senior leaders.
ONBOARDING_RELATIONSHIP_KEYS = {
    'peers': 'Peer',
    'directReports': 'Direct Report',
    'seniorLeaders': 'Senior Leader',
}

RELATIONSHIP_TYPES = list(ONBOARDING_RELATIONSHIP_KEYS.values())

ONBOARDING_QUESTIONS = {
    'peers': "Who are the peers you would like to give you feedback? (one name per line)",
    'directReports': "Which of your direct reports would you like to give you feedback? (one name per line)",
    'seniorLeaders': "Which senior leaders would you like to give you feedback? (one name per line)",
}

# ============================================
# NOMINATION STATUSES
# ============================================

STATUS_PENDING = 'pending'
STATUS_APPROVED = 'approved'
STATUS_REJECTED = 'rejected'

NOMINATION_STATUSES = [STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED]

# pending is the only state with outgoing transitions
NOMINATION_TRANSITIONS = {
    STATUS_PENDING: {STATUS_APPROVED, STATUS_REJECTED},
    STATUS_APPROVED: set(),
    STATUS_REJECTED: set(),
}

STATUS_DISPLAY = {
    STATUS_PENDING: '⏱️ Pending',
    STATUS_APPROVED: '✅ Approved',
    STATUS_REJECTED: '✗ Rejected',
}

# ============================================
# DECISIONS
# ============================================

DECISION_APPROVE_BY_EMAIL = 'approve_by_email'
DECISION_APPROVE_EXISTING = 'approve_existing'
DECISION_REJECT = 'reject'

DECISION_KINDS = [DECISION_APPROVE_BY_EMAIL, DECISION_APPROVE_EXISTING, DECISION_REJECT]

# ============================================
# ASSESSMENT TEMPLATES
# ============================================

TEMPLATE_TYPES = {
    'onboarding': 'Onboarding',
    'self': 'Self-Assessment',
    'peer': 'Peer Assessment',
}

# ============================================
# COLOURS
# ============================================

COLOURS = {
    'blue': '#0d6efd',
    'green': '#198754',
    'purple': '#6f42c1',
    'grey': '#6c757d',
    'amber': '#ffc107',
    'red': '#dc3545',
    'brand_green': '#024731',
}

RELATIONSHIP_COLORS = {
    'Peer': COLOURS['blue'],
    'Direct Report': COLOURS['green'],
    'Senior Leader': COLOURS['purple'],
}

# ============================================
# LIMITS
# ============================================

MAX_NOMINEE_NAME_LENGTH = 255

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')


def normalize_email(email):
    """Trim and lower-case an email address. Returns '' for missing values."""
    if not email:
        return ''
    return email.strip().lower()


def is_valid_email(email):
    """Return True if the (already trimmed) email has a local@domain.tld shape."""
    return bool(email) and EMAIL_PATTERN.match(email) is not None
