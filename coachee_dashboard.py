#!/usr/bin/env python3
"""
Coachee dashboard for Turning Point 360.

Allows coachees to:
- See where they are in the onboarding, self and peer assessment journey
- Nominate peers, direct reports and senior leaders via the onboarding assessment
- Track how many approved peers have responded
"""

import streamlit as st

import config
from framework import (
    ONBOARDING_QUESTIONS,
    RELATIONSHIP_COLORS,
    RELATIONSHIP_TYPES,
    STATUS_DISPLAY,
    STATUS_PENDING,
)
from nominations import NominationContext
from onboarding_processor import parse_nominees_from_onboarding, submit_onboarding_response
from progress import get_assessment_journey


def render_coachee_dashboard(db, coachee):
    """Render the dashboard for one coachee."""

    coachee_id = coachee['id']

    # Header
    st.markdown('<p class="main-title">TURNING POINT 360</p>', unsafe_allow_html=True)
    st.markdown('<p class="subtitle">Your Feedback Journey</p>', unsafe_allow_html=True)

    st.markdown(f"""
    <div style="background: white; padding: 1.5rem; border-radius: 12px; box-shadow: 0 2px 8px rgba(0,0,0,0.08); margin-bottom: 1.5rem;">
        <h3 style="margin: 0 0 0.5rem 0; color: #024731;">Welcome, {coachee['full_name']}</h3>
        <p style="color: #666; margin: 0;">{coachee.get('client_name', '')} · {coachee.get('programme_name', '')}</p>
    </div>
    """, unsafe_allow_html=True)

    journey = get_assessment_journey(db, coachee_id)
    if journey is None:
        st.error("We couldn't find your record. Please contact your programme coordinator.")
        return

    render_journey_overview(journey)

    st.markdown("---")

    tab1, tab2 = st.tabs(["📝 Onboarding", "📊 Peer Progress"])

    with tab1:
        render_onboarding_section(db, coachee, journey)

    with tab2:
        render_peer_progress_section(db, coachee_id, journey['peer'])


def render_journey_overview(journey):
    """Render the status cards for each assessment stage."""

    col1, col2, col3 = st.columns(3)

    with col1:
        if journey['onboarding']['completed']:
            st.success("✓ Onboarding Complete")
        elif journey['onboarding']['template_id']:
            st.warning("○ Onboarding Pending")
        else:
            st.info("○ Onboarding Not Available")

    with col2:
        if journey['self']['completed']:
            st.success("✓ Self-Assessment Complete")
        elif journey['next_step'] == 'self':
            st.warning("○ Self-Assessment Pending")
        else:
            st.info("○ Self-Assessment Locked")

    with col3:
        peer = journey['peer']
        if peer['total'] > 0:
            st.metric("Peer Responses", f"{peer['completed']} of {peer['total']}")
        else:
            st.metric("Peer Responses", "0")


def render_onboarding_section(db, coachee, journey):
    """Onboarding form, or the nominations it produced once submitted."""

    coachee_id = coachee['id']
    template_id = journey['onboarding']['template_id']

    if journey['onboarding']['completed']:
        st.subheader("Your Nominations")
        st.caption("Your programme coordinator will confirm each person's email before inviting them.")
        nominations = db.get_nominations_for_coachee(coachee_id)
        if not nominations:
            st.info("No nominations were recorded from your onboarding assessment.")
            return
        for relationship in RELATIONSHIP_TYPES:
            group = [n for n in nominations if n['relationship_type'] == relationship]
            if not group:
                continue
            colour = RELATIONSHIP_COLORS.get(relationship, '#666')
            st.markdown(f"<span style='color: {colour}; font-weight: 600;'>{relationship}</span>",
                        unsafe_allow_html=True)
            for nomination in group:
                name = nomination.get('nominee_name') or nomination['pending_nominee_name']
                st.write(f"{STATUS_DISPLAY[nomination['status']]} · {name}")
        return

    if not template_id:
        st.info("Your onboarding assessment hasn't been set up yet.")
        return

    st.subheader("Onboarding Assessment")
    st.write("Tell us who you'd like feedback from. Enter one name per line.")

    with st.form("onboarding_form"):
        answers = {}
        for key, question in ONBOARDING_QUESTIONS.items():
            answers[key] = st.text_area(question, height=120, key=f"onboarding_{key}")

        submitted = st.form_submit_button("Submit Onboarding", type="primary", use_container_width=True)

    if not submitted:
        return

    if not parse_nominees_from_onboarding(answers):
        st.error("Please nominate at least one person")
        return

    ctx = NominationContext(
        db,
        enforce_validation=config.enforce_nominee_validation(),
        actor=coachee['email'],
    )
    result = submit_onboarding_response(ctx, coachee_id, template_id, coachee['email'], answers)

    if result['nomination_error']:
        st.warning("Your answers were saved. Your coordinator will finish setting up your nominations.")
    else:
        st.success(f"✓ Thank you. {len(result['nominations'])} nomination(s) sent for review.")
    for message in result['validation']['errors']:
        st.caption(f"  • {message}")
    st.rerun()


def render_peer_progress_section(db, coachee_id, peer):
    """Show how many approved peers have responded, by name."""

    pending_review = db.get_nominations_for_coachee(coachee_id, status=STATUS_PENDING)
    if pending_review:
        st.caption(f"{len(pending_review)} nomination(s) awaiting coordinator review")

    if peer['total'] == 0:
        st.info("None of your nominations have been approved yet.")
        return

    st.progress(peer['completed'] / peer['total'])
    st.write(f"**{peer['completed']}** of **{peer['total']}** responses received · "
             f"{peer['pending']} outstanding")
