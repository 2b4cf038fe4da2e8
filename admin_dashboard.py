#!/usr/bin/env python3
"""
Admin dashboard for Turning Point 360.
Provides the management interface for nominations, coachees and nominees.
"""
import streamlit as st
import pandas as pd
from datetime import datetime

import config
from coachee_import import import_coachees
from errors import NominationError
from framework import (
    DECISION_APPROVE_BY_EMAIL,
    DECISION_APPROVE_EXISTING,
    DECISION_REJECT,
    NOMINATION_STATUSES,
    RELATIONSHIP_TYPES,
    STATUS_DISPLAY,
    STATUS_PENDING,
    TEMPLATE_TYPES,
)
from nominations import NominationContext, apply_decision, summarise_statuses
from onboarding_processor import retry_onboarding_nominations
from progress import get_peer_progress


def _admin_context(db):
    return NominationContext(
        db,
        enforce_validation=config.enforce_nominee_validation(),
        actor=st.session_state.get('admin_user', 'admin'),
    )


def format_timestamp(value):
    """Format a stored timestamp for display. Unset values show as a dash."""
    if not value:
        return '—'
    try:
        return datetime.fromisoformat(str(value)).strftime('%d %b %Y %H:%M')
    except ValueError:
        return str(value)[:16]


def group_by_coachee(nominations):
    """Group nominations by coachee, keeping the order coachees first appear in."""
    groups = {}
    for nomination in nominations:
        coachee_id = nomination['coachee_id']
        if coachee_id not in groups:
            groups[coachee_id] = {
                'coachee': {
                    'id': coachee_id,
                    'full_name': nomination.get('coachee_name'),
                    'email': nomination.get('coachee_email'),
                    'programme_name': nomination.get('programme_name'),
                    'client_name': nomination.get('client_name'),
                },
                'nominations': [],
            }
        groups[coachee_id]['nominations'].append(nomination)
    return list(groups.values())


def nominations_to_frame(nominations):
    """Build the nominations table shown to admins and used for CSV export."""
    rows = []
    for n in nominations:
        rows.append({
            'Coachee': n.get('coachee_name'),
            'Programme': n.get('programme_name'),
            'Client': n.get('client_name'),
            'Nominee': n.get('nominee_name') or n.get('pending_nominee_name'),
            'Nominee Email': n.get('nominee_email') or '',
            'Relationship': n['relationship_type'],
            'Status': n['status'],
            'Admin Notes': n.get('admin_notes') or '',
            'Created': n.get('created_at'),
            'Processed': n.get('processed_at'),
        })
    return pd.DataFrame(rows, columns=[
        'Coachee', 'Programme', 'Client', 'Nominee', 'Nominee Email',
        'Relationship', 'Status', 'Admin Notes', 'Created', 'Processed',
    ])


def create_programme(db, client_id, name, with_templates=True):
    """
    Add a programme, optionally with one template per assessment type.

    Returns:
        (success, message)
    """
    try:
        programme_id = db.add_programme(client_id, name)
        if with_templates:
            for template_type, label in TEMPLATE_TYPES.items():
                db.add_template(programme_id, f"{name.strip()} {label}", template_type)
    except NominationError as e:
        return False, f"Could not add programme: {e}"
    return True, f"Added {name.strip()}"


def render_admin_dashboard(db):
    """Render the admin dashboard."""

    # Header
    st.markdown('<p class="main-title">TURNING POINT 360</p>', unsafe_allow_html=True)
    st.markdown('<p class="subtitle">Administrator Dashboard</p>', unsafe_allow_html=True)

    # Navigation tabs
    tab1, tab2, tab3, tab4, tab5 = st.tabs(
        ["📊 Overview", "📝 Nominations", "👥 Coachees", "🔎 Nominees", "⚙️ Settings"]
    )

    with tab1:
        render_overview_tab(db)

    with tab2:
        render_nominations_tab(db)

    with tab3:
        render_coachees_tab(db)

    with tab4:
        render_nominees_tab(db)

    with tab5:
        render_settings_tab(db)


def render_overview_tab(db):
    """Render the overview/stats tab."""

    stats = db.get_dashboard_stats()

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.metric("Coachees", stats['total_coachees'])
    with col2:
        st.metric("Nominees", stats['total_nominees'])
    with col3:
        st.metric("Pending Nominations", stats['pending_nominations'])
    with col4:
        st.metric("Approved Nominations", stats['approved_nominations'])

    st.markdown("---")
    st.subheader("Peer Assessment Progress")

    coachees = db.get_coachees()
    if not coachees:
        st.info("No coachees added yet. Go to the 'Coachees' tab to add them.")
        return

    rows = []
    for coachee in coachees:
        progress = get_peer_progress(db, coachee['id'])
        rows.append({
            'Coachee': coachee['full_name'],
            'Programme': coachee['programme_name'],
            'Pending Nominations': coachee['pending_count'],
            'Approved Peers': progress['total'],
            'Completed': progress['completed'],
            'Outstanding': progress['pending'],
        })

    st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)


def render_nominations_tab(db):
    """Render the nominations list with filters and the process form."""

    st.subheader("Nominations")
    st.caption("Process nominations from onboarding assessments by adding email addresses "
               "or linking to existing nominees")

    col1, col2, col3 = st.columns(3)
    with col1:
        status_filter = st.selectbox(
            "Status",
            options=['all'] + NOMINATION_STATUSES,
            format_func=lambda x: 'All' if x == 'all' else STATUS_DISPLAY[x],
        )
    with col2:
        relationship_filter = st.selectbox("Relationship", options=['All Types'] + RELATIONSHIP_TYPES)
    with col3:
        programmes = db.get_programmes()
        programme_options = {None: "All Programmes"}
        programme_options.update({p['id']: f"{p['name']} ({p['client_name']})" for p in programmes})
        programme_filter = st.selectbox(
            "Programme",
            options=list(programme_options.keys()),
            format_func=lambda x: programme_options[x],
        )

    nominations = db.get_nominations(
        status=None if status_filter == 'all' else status_filter,
        relationship_type=None if relationship_filter == 'All Types' else relationship_filter,
        programme_id=programme_filter,
    )

    counts = summarise_statuses(nominations)
    st.markdown(" · ".join(f"{STATUS_DISPLAY[s]}: **{counts[s]}**" for s in NOMINATION_STATUSES))

    if not nominations:
        if status_filter != 'all':
            st.info(f"No {status_filter} nominations match your filters.")
        else:
            st.info("Nominations will appear here after coachees complete onboarding assessments.")
    else:
        for group in group_by_coachee(nominations):
            coachee = group['coachee']
            st.markdown(f"#### {coachee['full_name']}")
            st.caption(f"{coachee['email']} · {coachee['programme_name']} · {coachee['client_name']}")

            for nomination in group['nominations']:
                render_nomination_row(db, nomination)

            st.divider()

    render_unconverted_responses(db)


def render_nomination_row(db, nomination):
    """Render a single nomination and, if pending, the form to process it."""

    name = nomination.get('nominee_name') or nomination['pending_nominee_name']
    label = f"{name} · {nomination['relationship_type']} · {STATUS_DISPLAY[nomination['status']]}"

    with st.expander(label, expanded=False):
        col1, col2 = st.columns(2)
        with col1:
            st.write(f"**Name given at onboarding:** {nomination['pending_nominee_name']}")
            if nomination.get('nominee_email'):
                st.write(f"**Nominee email:** {nomination['nominee_email']}")
        with col2:
            st.write(f"**Created:** {format_timestamp(nomination['created_at'])}")
            st.write(f"**Processed:** {format_timestamp(nomination['processed_at'])}")

        if nomination['status'] != STATUS_PENDING:
            if nomination.get('admin_notes'):
                st.caption(f"Notes: {nomination['admin_notes']}")
            return

        render_process_form(db, nomination)


def render_process_form(db, nomination):
    """Approve by email, link to an existing nominee, or reject."""

    nomination_id = nomination['id']
    pre_linked = nomination.get('nominee_id') is not None

    if pre_linked:
        method = 'existing'
    else:
        method = st.radio(
            "Processing Method",
            options=['email', 'existing'],
            format_func=lambda x: "Add Email & Create New Nominee" if x == 'email' else "Link to Existing Nominee",
            key=f"method_{nomination_id}",
            horizontal=True,
        )

    with st.form(f"process_nomination_{nomination_id}"):
        email = None
        selected_nominee_id = nomination.get('nominee_id')

        if method == 'email':
            email = st.text_input(
                "Email Address *",
                placeholder="e.g., ryan.lloyd@company.com",
                help="If a nominee with this email already exists, they will be linked automatically.",
            )
        else:
            nominees = db.get_all_nominees()
            nominee_options = {n['id']: f"{n['full_name']} ({n['email']})" for n in nominees}
            if not nominee_options:
                st.info("No nominees exist yet. Use 'Add Email & Create New Nominee' instead.")
            else:
                ids = list(nominee_options.keys())
                selected_nominee_id = st.selectbox(
                    "Select Existing Nominee *",
                    options=ids,
                    index=ids.index(selected_nominee_id) if selected_nominee_id in ids else 0,
                    format_func=lambda x: nominee_options[x],
                )

        admin_notes = st.text_area(
            "Admin Notes (optional)",
            value=nomination.get('admin_notes') or '',
            placeholder="Add any notes about this nomination...",
            height=80,
        )

        col_approve, col_reject = st.columns(2)
        with col_approve:
            approve_clicked = st.form_submit_button("✅ Approve", type="primary", use_container_width=True)
        with col_reject:
            reject_clicked = st.form_submit_button("✗ Reject Nomination", use_container_width=True)

    ctx = _admin_context(db)

    if approve_clicked:
        if method == 'email':
            decision = {'kind': DECISION_APPROVE_BY_EMAIL, 'email': email}
        else:
            decision = {'kind': DECISION_APPROVE_EXISTING, 'nominee_id': selected_nominee_id}

        success, message = apply_decision(ctx, nomination_id, decision, admin_notes)
        if success:
            st.success(message)
            st.rerun()
        else:
            st.error(message)

    confirm_key = f"confirm_reject_{nomination_id}"
    if reject_clicked:
        st.session_state[confirm_key] = True

    if st.session_state.get(confirm_key):
        st.warning("Are you sure you want to reject this nomination?")
        col_yes, col_no = st.columns(2)
        with col_yes:
            if st.button("Yes, reject", key=f"yes_reject_{nomination_id}", type="primary"):
                st.session_state[confirm_key] = False
                success, message = apply_decision(ctx, nomination_id, {'kind': DECISION_REJECT}, admin_notes)
                if success:
                    st.success(message)
                    st.rerun()
                else:
                    st.error(message)
        with col_no:
            if st.button("Cancel", key=f"no_reject_{nomination_id}"):
                st.session_state[confirm_key] = False
                st.rerun()


def render_unconverted_responses(db):
    """Onboarding responses whose nominations were never created."""

    responses = db.get_unconverted_onboarding_responses()
    if not responses:
        return

    st.markdown("---")
    st.subheader("Onboarding Responses Without Nominations")
    st.caption("Nomination creation failed for these responses. Retrying will not create duplicates.")

    for response in responses:
        col1, col2 = st.columns([4, 1])
        with col1:
            st.write(f"**{response['coachee_name']}** · submitted {format_timestamp(response['submitted_at'])}")
        with col2:
            if st.button("Retry", key=f"retry_response_{response['id']}"):
                try:
                    created = retry_onboarding_nominations(_admin_context(db), response['id'])
                    st.success(f"Created {len(created)} nomination(s)")
                    st.rerun()
                except NominationError as e:
                    st.error(f"Could not create nominations: {e}")


def render_coachees_tab(db):
    """Render client, programme and coachee management."""

    clients = db.get_all_clients()
    programmes = db.get_programmes()

    col1, col2 = st.columns(2)

    with col1:
        with st.form("add_client_form"):
            st.markdown("**Add Client**")
            client_name = st.text_input("Client Name *")
            if st.form_submit_button("Add Client"):
                if client_name.strip():
                    try:
                        db.add_client(client_name)
                        st.success(f"Added {client_name}")
                        st.rerun()
                    except NominationError as e:
                        st.error(f"Could not add client: {e}")
                else:
                    st.error("Please enter a client name")

    with col2:
        with st.form("add_programme_form"):
            st.markdown("**Add Programme**")
            client_options = {c['id']: c['name'] for c in clients}
            client_id = st.selectbox(
                "Client",
                options=list(client_options.keys()),
                format_func=lambda x: client_options[x],
            )
            programme_name = st.text_input("Programme Name *")
            with_templates = st.checkbox("Create onboarding, self and peer templates", value=True)
            if st.form_submit_button("Add Programme", disabled=not clients):
                if programme_name.strip():
                    success, message = create_programme(db, client_id, programme_name, with_templates)
                    if success:
                        st.success(message)
                        st.rerun()
                    else:
                        st.error(message)
                else:
                    st.error("Please enter a programme name")

    if not programmes:
        st.info("Add a client and programme before adding coachees.")
        return

    st.markdown("---")

    programme_options = {p['id']: f"{p['name']} ({p['client_name']})" for p in programmes}
    programme_id = st.selectbox(
        "Select Programme",
        options=list(programme_options.keys()),
        format_func=lambda x: programme_options[x],
    )

    col1, col2 = st.columns(2)

    with col1:
        with st.form("add_coachee_form"):
            st.markdown("**Add Coachee**")
            full_name = st.text_input("Full Name *")
            email = st.text_input("Email *")
            if st.form_submit_button("Add Coachee"):
                if full_name.strip() and email.strip():
                    try:
                        db.add_coachee(programme_id, full_name, email)
                        st.success(f"Added {full_name}")
                        st.rerun()
                    except NominationError as e:
                        st.error(f"Could not add coachee: {e}")
                else:
                    st.error("Please enter a name and email")

    with col2:
        with st.form("import_coachees_form"):
            st.markdown("**Import from CSV**")
            csv_text = st.text_area(
                "Paste CSV (columns: name, email)",
                placeholder="name,email\nJane Smith,jane.smith@company.com",
                height=120,
            )
            if st.form_submit_button("Import"):
                try:
                    result = import_coachees(db, programme_id, csv_text)
                    if result['added']:
                        st.success(f"Imported {result['added']} coachee(s)")
                    for message in result['errors']:
                        st.caption(f"  • {message}")
                except NominationError as e:
                    st.error(str(e))

    st.markdown("---")
    st.subheader("Coachees")

    coachees = db.get_coachees(programme_id)
    if not coachees:
        st.info("No coachees in this programme yet.")
        return

    for coachee in coachees:
        col1, col2, col3 = st.columns([3, 2, 1])
        with col1:
            st.markdown(f"**{coachee['full_name']}**")
            st.caption(coachee['email'])
        with col2:
            st.caption(f"{coachee['nomination_count']} nominations · {coachee['pending_count']} pending")
        with col3:
            if st.button("Delete", key=f"delete_coachee_{coachee['id']}", type="secondary"):
                if st.session_state.get(f"confirm_delete_{coachee['id']}"):
                    db.delete_coachee(coachee['id'])
                    st.success(f"Deleted {coachee['full_name']}")
                    st.rerun()
                else:
                    st.session_state[f"confirm_delete_{coachee['id']}"] = True
                    st.warning("This also deletes their nominations and responses. Click again to confirm.")


def render_nominees_tab(db):
    """Search the nominee directory."""

    st.subheader("Nominees")
    term = st.text_input("Search nominees by name or email", placeholder="Search...")
    nominees = db.search_nominees(term)

    if not nominees:
        st.info("No nominees found." if term else "Nominees are created when nominations are approved.")
        return

    df = pd.DataFrame(nominees)[['full_name', 'email', 'created_at']]
    df.columns = ['Name', 'Email', 'Added']
    st.dataframe(df, use_container_width=True, hide_index=True)


def render_settings_tab(db):
    """Render database info and export."""

    st.subheader("App Information")

    conn_info = db.get_connection_info()
    stats = db.get_dashboard_stats()

    col1, col2 = st.columns(2)

    with col1:
        st.write(f"**Database:** {conn_info['type']}")
        if conn_info['type'] == 'Turso Cloud':
            st.write(f"**URL:** {conn_info['url'][:50]}...")
        else:
            st.write(f"**Path:** {conn_info.get('path', 'N/A')}")
        st.write(f"**Status:** {conn_info['status']}")
        enforced = config.enforce_nominee_validation()
        st.write(f"**Nominee validation:** {'Enforced' if enforced else 'Warn only'}")

    with col2:
        st.write(f"**Pending nominations:** {stats['pending_nominations']}")
        st.write(f"**Approved nominations:** {stats['approved_nominations']}")
        st.write(f"**Rejected nominations:** {stats['rejected_nominations']}")
        st.write(f"**Assessment responses:** {stats['total_responses']}")

    st.markdown("---")
    st.markdown("**Export Data**")
    st.write("Download all nominations as CSV for backup.")

    nominations = db.get_nominations()
    if nominations:
        csv = nominations_to_frame(nominations).to_csv(index=False)
        st.download_button(
            "📥 Download Nominations CSV",
            csv,
            f"nominations_export_{datetime.now().strftime('%Y%m%d')}.csv",
            "text/csv"
        )
    else:
        st.info("No data to export.")
