#!/usr/bin/env python3
"""
TURNING POINT 360 - Nomination Management
==========================================

A Streamlit application for collecting 360 feedback nominations from coachees
and letting administrators confirm who should be invited.

Features:
- Onboarding assessment where coachees name their peers, direct reports and senior leaders
- Admin dashboard for approving or rejecting each nomination
- Peer assessment progress tracking

Run with: streamlit run app.py
"""

import logging

import streamlit as st

import config
from admin_dashboard import render_admin_dashboard
from coachee_dashboard import render_coachee_dashboard
from database import Database
from framework import (
    DECISION_APPROVE_BY_EMAIL,
    STATUS_PENDING,
    TEMPLATE_TYPES,
)
from logging_config import configure_logging
from nominations import NominationContext, process_nomination
from onboarding_processor import submit_onboarding_response

configure_logging()
logger = logging.getLogger(__name__)

DEFAULT_ADMIN_CODE = "turningpoint360"

# Page config
st.set_page_config(
    page_title="Turning Point 360",
    page_icon="🧭",
    layout="wide",
    initial_sidebar_state="collapsed"
)

st.markdown("""
<style>
    @import url('https://fonts.googleapis.com/css2?family=Cormorant+Garamond:wght@400;500;600;700&family=Source+Sans+Pro:wght@300;400;600&display=swap');

    .stApp {
        background: linear-gradient(180deg, #FAFAFA 0%, #F0F0F0 100%);
    }

    h1, h2, h3 {
        font-family: 'Cormorant Garamond', serif !important;
        color: #024731 !important;
    }

    .main-title {
        font-family: 'Cormorant Garamond', serif;
        font-size: 2.8rem;
        font-weight: 600;
        color: #024731;
        text-align: center;
        margin-bottom: 0.5rem;
        letter-spacing: 0.05em;
    }

    .subtitle {
        font-family: 'Source Sans Pro', sans-serif;
        font-size: 1.1rem;
        color: #666;
        text-align: center;
        margin-bottom: 2rem;
        font-weight: 300;
    }

    .stButton > button {
        font-family: 'Source Sans Pro', sans-serif;
        font-weight: 600;
        letter-spacing: 0.05em;
    }

    /* Hide Streamlit branding */
    #MainMenu {visibility: hidden;}
    footer {visibility: hidden;}
</style>
""", unsafe_allow_html=True)

# Initialize database
db = Database()


def load_demo_data_if_empty():
    """Load demo data if no clients exist."""
    if db.get_all_clients():
        return

    logger.info("Empty database, loading demo data")

    client_id = db.add_client("Northwind Group")
    programme_id = db.add_programme(client_id, "Leadership Accelerator 2026")
    templates = {
        template_type: db.add_template(programme_id, f"Leadership Accelerator {label}", template_type)
        for template_type, label in TEMPLATE_TYPES.items()
    }

    db.add_coachees(programme_id, [
        {'full_name': 'Sarah Mitchell', 'email': 'sarah.mitchell@northwind.example'},
        {'full_name': 'James Thompson', 'email': 'james.thompson@northwind.example'},
        {'full_name': 'Emma Richardson', 'email': 'emma.richardson@northwind.example'},
    ])

    onboarding_answers = {
        'sarah.mitchell@northwind.example': {
            'peers': "Ryan Lloyd\nPriya Shah\nTom Brown",
            'directReports': "Hannah Cole\nOliver Grant",
            'seniorLeaders': "Margaret Hale",
        },
        'james.thompson@northwind.example': {
            'peers': "Sarah Mitchell\nDaniel Ward",
            'directReports': "Lucy Adams",
            'seniorLeaders': "",
        },
    }

    ctx = NominationContext(db, actor='demo')
    for email, answers in onboarding_answers.items():
        coachee = db.get_coachee_by_email(email)
        submit_onboarding_response(ctx, coachee['id'], templates['onboarding'], email, answers)

    # Approve Sarah's peers and record one peer response
    sarah = db.get_coachee_by_email('sarah.mitchell@northwind.example')
    for nomination in db.get_nominations_for_coachee(sarah['id'], status=STATUS_PENDING):
        if nomination['relationship_type'] != 'Peer':
            continue
        email = nomination['pending_nominee_name'].lower().replace(' ', '.') + '@northwind.example'
        process_nomination(ctx, nomination['id'], {'kind': DECISION_APPROVE_BY_EMAIL, 'email': email})

    db.save_assessment_response(sarah['id'], templates['peer'], 'ryan.lloyd@northwind.example', {})


load_demo_data_if_empty()


def get_route():
    """Determine which page to show based on URL parameters."""
    params = st.query_params

    # Coachee dashboard link
    if 'coachee' in params:
        return 'coachee', params['coachee']

    # Check for admin access
    if 'admin' in params:
        return 'admin', None

    # Default to landing page
    return 'landing', None


def render_landing_page():
    """Render the main landing/info page."""
    st.markdown('<p class="main-title">TURNING POINT 360</p>', unsafe_allow_html=True)
    st.markdown('<p class="subtitle">Leadership Feedback Programme</p>', unsafe_allow_html=True)

    col1, col2, col3 = st.columns([1, 2, 1])

    with col2:
        st.markdown("""
        <div style="background: white; padding: 2rem; border-radius: 12px; box-shadow: 0 4px 20px rgba(0,0,0,0.08); text-align: center;">
            <h3 style="margin-bottom: 1rem;">Welcome</h3>
            <p style="color: #666; line-height: 1.8;">
                This platform collects nominations for your 360-degree feedback.
            </p>
            <p style="color: #666; line-height: 1.8; margin-top: 1rem;">
                If you've received a coachee link, please use that link to access your dashboard.
            </p>
            <p style="color: #999; font-size: 0.9rem; margin-top: 2rem;">
                For administrator access, please contact your programme coordinator.
            </p>
        </div>
        """, unsafe_allow_html=True)

        with st.expander("🔐 Administrator Access"):
            admin_code = st.text_input("Enter admin code:", type="password")
            if st.button("Access Dashboard"):
                if admin_code == config.get_setting('app', 'admin_code', 'ADMIN_CODE', DEFAULT_ADMIN_CODE):
                    st.session_state['admin_authenticated'] = True
                    st.query_params["admin"] = "true"
                    st.rerun()
                else:
                    st.error("Invalid code")


def main():
    """Main application entry point."""
    route, param = get_route()

    if route == 'coachee':
        coachee = db.get_coachee_by_email(param)
        if coachee:
            render_coachee_dashboard(db, db.get_coachee(coachee['id']))
        else:
            st.error("Invalid coachee link. Please contact your programme coordinator.")

    elif route == 'admin' and st.session_state.get('admin_authenticated'):
        render_admin_dashboard(db)

    else:
        render_landing_page()


if __name__ == "__main__":
    main()
