"""
Streamlit user interface for the rights issue portal.

This module defines a multi-page web application using Streamlit.
Shareholders search the register by name, open their profile, download
a pre-filled paper form or complete the eight step online application
and download the generated allotment form.  Registrar staff use the
admin pages to monitor progress, filter and page through submissions,
export them as CSV, inspect uploaded files and set a review status.

All data comes from the REST API through :class:`PortalClient`; if the
API is unreachable the pages report an error instead of failing.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import pandas as pd  # type: ignore
import streamlit as st  # type: ignore

from rights_portal.backend.documents import DISCLAIMERS
from rights_portal.config import RESOURCE_DOCUMENTS, get_portal_mode, get_registrar_email
from rights_portal.frontend import wizard
from rights_portal.frontend.api import ApiError, PortalClient
from rights_portal.offer import RightsOffer, declaration, load_offer

PUBLIC_PAGES = ("home", "search_results", "shareholder", "application", "submitted")
ADMIN_PAGES = ("admin", "admin_submission")
PAGE_SIZE = 10

STATUS_BADGES = {
    "completed": "🟢 Completed",
    "pending": "🟡 Pending",
    "rejected": "🔴 Rejected",
}

SELLER_PROTOCOL = [
    "Access the Rights Circular via our portal.",
    "Endorse the units to be accepted or renounced.",
    "Complete the Rights Demat/Migration form.",
    "Authorize your stockbroker via a formal cover letter.",
]
BUYER_PROTOCOL = [
    "Update KYC information with your preferred stockbroker.",
    "Ensure broker submits executed transfer form to CSCS.",
]


def _reset_session() -> None:
    """Initialise default values in the Streamlit session state."""
    state_defaults = {
        "page": "home",  # current page
        "search_term": "",
        "search_page": 1,
        "shareholder_id": None,
        "form": None,  # wizard form state
        "step": wizard.FIRST_STEP,
        "stockbrokers": None,
        "submitted": None,  # submission returned by the API
        "admin_page": 1,
        "admin_search": "",
        "admin_status": "All Status",
        "admin_submission_id": None,
        "admin_token": None,  # entered on the admin sign-in page
    }
    for key, default in state_defaults.items():
        if key not in st.session_state:
            st.session_state[key] = default


@st.cache_resource
def get_client() -> PortalClient:
    """Shared client for the public pages; it never carries admin credentials."""
    return PortalClient()


def get_admin_client() -> Optional[PortalClient]:
    """Per-session client authenticated with the token the admin user entered."""
    token = st.session_state.admin_token
    if token is None:
        return None
    client = st.session_state.get("admin_client")
    if client is None or client.token != token:
        client = PortalClient(token=token)
        st.session_state.admin_client = client
    return client


def sign_out_admin() -> None:
    st.session_state.admin_token = None
    st.session_state.pop("admin_client", None)


def go(page: str, **state: Any) -> None:
    """Navigate to ``page`` after updating session values."""
    for key, value in state.items():
        st.session_state[key] = value
    st.session_state.page = page
    st.rerun()


def _naira(value: Any) -> str:
    try:
        return f"₦{float(value or 0):,.2f}"
    except (TypeError, ValueError):
        return str(value)


def _units(value: Any) -> str:
    try:
        return f"{int(float(value or 0)):,}"
    except (TypeError, ValueError):
        return str(value)


# Public pages


def show_home(client: PortalClient, offer: RightsOffer) -> None:
    """Landing page with the name search, resources and trading guide."""
    st.caption("Invest in the Future")
    st.title(f"{offer.company.upper()} RIGHTS ISSUE")
    st.write(
        "Access the official portal for shareholder rights applications. "
        "Manage your entitlements with ease and precision."
    )
    st.info(f"**OFFICIAL DECLARATION:** {declaration(offer)}")

    left, right = st.columns([2, 1])
    with left:
        st.subheader("Shareholder Portal")
        st.write("Verify account status and begin application")
        with st.form("search_form"):
            name = st.text_input(
                "Registered Full Name",
                value=st.session_state.search_term,
                placeholder="Enter your name exactly as registered...",
                help="Minimum 2 characters required for database lookup.",
            )
            submitted = st.form_submit_button("Locate my entitlements", type="primary")
        if submitted:
            term = name.strip()
            if len(term) < 2:
                st.error("Please enter at least 2 characters to search")
            else:
                with st.spinner("Synchronizing records…"):
                    try:
                        response = client.search_shareholders(term, 1, PAGE_SIZE)
                    except ApiError as e:
                        st.error(f"Error searching for shareholders. Please try again. ({e.message})")
                        response = None
                if response is not None:
                    results = response["data"]
                    if not results:
                        st.error("No shareholders found with that name")
                    elif response["pagination"]["total"] == 1:
                        go("shareholder", shareholder_id=results[0]["id"], search_term=term)
                    else:
                        go("search_results", search_term=term, search_page=1)
        st.warning(
            "**Accessing your records.** If your records aren't found under your primary name, "
            "try common variations or contact our registrar support immediately at "
            f"{get_registrar_email()}."
        )
    with right:
        st.subheader("Documentation")
        for title, url in RESOURCE_DOCUMENTS.items():
            st.link_button(title, url, use_container_width=True)
        with st.expander("Trading Guide"):
            st.markdown("**Seller Protocol**")
            st.markdown("\n".join(f"{i}. {step}" for i, step in enumerate(SELLER_PROTOCOL, 1)))
            st.markdown("**Buyer Protocol**")
            st.markdown("\n".join(f"{i}. {step}" for i, step in enumerate(BUYER_PROTOCOL, 1)))


def show_search_results(client: PortalClient) -> None:
    term = st.session_state.search_term
    if st.button("← Back to Search"):
        go("home")
    if not term:
        st.write("No search term provided.")
        return
    page = st.session_state.search_page
    try:
        response = client.search_shareholders(term, page, PAGE_SIZE)
    except ApiError as e:
        st.error(f"Error fetching search results: {e.message}")
        return
    pagination = response["pagination"]
    st.header("Search Results")
    st.write(f'Found {pagination["total"]} shareholder(s) matching "{term}"')
    st.caption(f'Page {pagination["page"]} of {pagination["totalPages"]}')
    if not response["data"]:
        st.write("No shareholders found.")
    for shareholder in response["data"]:
        col1, col2 = st.columns([4, 1])
        col1.markdown(f"**{shareholder['name']}**  \n# {shareholder['reg_account_number']}")
        if col2.button("Select", key=f"select_{shareholder['id']}"):
            go("shareholder", shareholder_id=shareholder["id"])
    _pager(page, pagination["totalPages"], "search_page")


def _pager(page: int, total_pages: int, state_key: str) -> None:
    prev_col, label_col, next_col = st.columns([1, 2, 1])
    if prev_col.button("Previous", disabled=page <= 1, key=f"{state_key}_prev"):
        st.session_state[state_key] = page - 1
        st.rerun()
    label_col.write(f"Page {page} of {total_pages}")
    if next_col.button("Next", disabled=page >= total_pages, key=f"{state_key}_next"):
        st.session_state[state_key] = page + 1
        st.rerun()


def _load_shareholder(client: PortalClient) -> Optional[Dict[str, Any]]:
    shareholder_id = st.session_state.shareholder_id
    if shareholder_id is None:
        return None
    try:
        return client.get_shareholder_by_id(shareholder_id)
    except ApiError as e:
        st.error(f"Error loading shareholder details: {e.message}")
        return None


def show_shareholder(client: PortalClient) -> None:
    if st.button("← Back to Search"):
        go("home")
    shareholder = _load_shareholder(client)
    if not shareholder:
        st.write("Shareholder not found.")
        return
    st.header("Shareholder Information")
    details = pd.DataFrame(
        [
            ("Reg Account Number", shareholder["reg_account_number"]),
            ("Name", shareholder["name"]),
            ("Holdings", _units(shareholder["holdings"])),
            ("Rights Issue", _units(shareholder["rights_issue"])),
            ("Holdings After", _units(shareholder["holdings_after"])),
            ("Amount Payable", _naira(shareholder["amount_due"])),
        ],
        columns=["Field", "Value"],
    )
    st.table(details.set_index("Field"))

    st.subheader("Choose Your Option")
    paper, online = st.columns(2)
    with paper:
        st.markdown("**Download Pre-filled Form**")
        st.write("Download a PDF form with your details pre-filled. Print, sign, and submit with payment receipt.")
        if st.button("Generate PDF form"):
            with st.spinner("Generating your pre-filled form…"):
                try:
                    st.session_state.prefilled_pdf = client.download_basic_pdf(shareholder)
                except ApiError as e:
                    st.error(f"Failed to download form. Please try again. ({e.message})")
        if st.session_state.get("prefilled_pdf"):
            st.download_button(
                label="Download PDF Form",
                data=st.session_state.prefilled_pdf,
                file_name=wizard.prefilled_filename(shareholder["reg_account_number"], shareholder["name"]),
                mime="application/pdf",
            )
    with online:
        st.markdown("**Submit Online**")
        st.write("Fill out the digital form online and submit electronically with your payment receipt.")
        if st.button("Submit Online", type="primary"):
            go("application", form=wizard.new_form(shareholder), step=wizard.FIRST_STEP, submitted=None)


def _field(form: Dict[str, Any], key: str, label: str, offer: RightsOffer, kind: str = "text", **kwargs: Any) -> None:
    """Render one wizard input and push changes through ``wizard.update_field``."""
    current = form[key]
    if kind == "checkbox":
        value = st.checkbox(label, value=bool(current), **kwargs)
    elif kind == "number":
        value = st.number_input(label, min_value=0, step=1, value=int(float(current or 0)), **kwargs)
        value = "" if value == 0 and current in ("", None) else str(int(value))
    else:
        value = st.text_input(label, value=str(current or ""), **kwargs)
    if value != current:
        wizard.update_field(form, key, value, offer)


def _upload(form: Dict[str, Any], field: str, label: str, index: Optional[int] = None) -> None:
    uploaded = st.file_uploader(label, type=["jpg", "jpeg", "png", "pdf"], key=f"upload_{field}_{index}")
    slot = form[field] if index is None else form[field][index]
    if uploaded is not None and (not slot or slot["name"] != uploaded.name or slot["size"] != uploaded.size):
        error = wizard.attach_file(form, field, uploaded.name, uploaded.type, uploaded.getvalue(), index)
        if error:
            st.error(error)
        else:
            st.toast("File uploaded successfully")
    slot = form[field] if index is None else form[field][index]
    if slot:
        st.caption(f"✓ {slot['name']} ({slot['size'] / 1024:,.0f} KB)")


def _step_ownership(form: Dict[str, Any], offer: RightsOffer) -> None:
    col1, col2, col3 = st.columns(3)
    col1.metric("Registration Number", form["reg_account_number"])
    col2.metric("Verified Holdings", _units(form["holdings"]))
    col3.metric("Provisional Allotment", f"{_units(form['rights_issue'])} units")
    st.caption(
        f"Based on {offer.ratio_label} held as at qualification date {offer.qualification_date}."
    )
    st.markdown(
        f"**Option A: Full Acceptance** – accept in full at {_naira(offer.price)} per share with additional request option.  \n"
        "**Option B: Partial/Renunciation** – accept a portion and renounce the balance for trading on NGX."
    )


def _step_guidelines(form: Dict[str, Any], offer: RightsOffer) -> None:
    st.write(
        "Read the Rights Circular before applying. Payment must be made in full on acceptance; "
        "applications without proof of payment and a valid signature will not be processed."
    )
    _field(form, "instructions_read", "I have read and agree to the participation protocols", offer, "checkbox")


def _step_stockbroker(form: Dict[str, Any], offer: RightsOffer, stockbrokers: List[Dict[str, Any]]) -> None:
    codes = [""] + [b["id"] for b in stockbrokers]
    current = form["stockbroker"] if form["stockbroker"] in codes else ""
    choice = st.selectbox(
        "Assigned Stockbroker *",
        codes,
        index=codes.index(current),
        format_func=lambda code: wizard.stockbroker_label(stockbrokers, code) if code else "Select an option",
    )
    if choice != form["stockbroker"]:
        wizard.update_field(form, "stockbroker", choice, offer)
    _field(form, "chn", "CHN Identifier *", offer)


def _step_participation(form: Dict[str, Any], offer: RightsOffer) -> None:
    options = list(wizard.ACTION_TYPES)
    current = form["action_type"] if form["action_type"] in options else None
    choice = st.radio(
        "Participation type",
        options,
        index=options.index(current) if current else None,
        format_func=lambda key: wizard.ACTION_TYPES[key],
        captions=[
            "Secure your entire assigned allotment with option to request more.",
            "Exercise part of your rights and renounce the remainder.",
        ],
    )
    if choice and choice != form["action_type"]:
        wizard.update_field(form, "action_type", choice, offer)


def _step_payment(form: Dict[str, Any], offer: RightsOffer) -> None:
    if form["action_type"] == "full_acceptance":
        _field(form, "accept_full", "I/We accept in full, the provisional allotment shown on the front of this form.", offer, "checkbox")
        _field(form, "apply_additional", "Apply for additional shares exceeding my current entitlement", offer, "checkbox")
        if form["apply_additional"]:
            col1, col2 = st.columns(2)
            with col1:
                _field(form, "additional_shares", "Units Requested", offer, "number")
            col2.metric("Value", _naira(form["additional_amount"]))
            _field(form, "accept_smaller_allotment", "I/We agree to accept a smaller allotment than applied for", offer, "checkbox")
        st.metric("Total Consideration", _naira(wizard.calculate_total_payment(form)))
        col1, col2, col3 = st.columns(3)
        with col1:
            _field(form, "bank_name", "Payment Bank", offer)
        with col2:
            _field(form, "cheque_number", "Cheque Number", offer, help="Only for cheque payments")
        with col3:
            _field(form, "branch", "Branch", offer)
    else:
        col1, col2, col3 = st.columns(3)
        with col1:
            _field(form, "shares_accepted", "Units Accepted", offer, "number")
        with col2:
            _field(form, "amount_payable", "Consideration (₦)", offer)
        with col3:
            _field(form, "shares_renounced", "Rights Renounced", offer, "number")
        _field(form, "accept_partial", "Confirm Partial Allotment", offer, "checkbox")
        _field(form, "renounce_rights", "Authorize Rights Trading", offer, "checkbox")


def _step_mandate(form: Dict[str, Any], offer: RightsOffer) -> None:
    col1, col2 = st.columns(2)
    with col1:
        _field(form, "contact_name", "Legal Beneficiary Name *", offer)
        _field(form, "mobile_phone", "Mobile Number *", offer)
        _field(form, "daytime_phone", "Daytime Phone", offer)
    with col2:
        _field(form, "next_of_kin", "Alternate Contact", offer)
        _field(form, "email", "Email Address *", offer)
    st.markdown("**E-Dividend Payment Profile**")
    col1, col2 = st.columns(2)
    with col1:
        _field(form, "bank_name_edividend", "Mandate Bank *", offer)
        _field(form, "account_number", "Account Reference *", offer)
    with col2:
        _field(form, "bank_branch_edividend", "Bank Branch", offer)
        _field(form, "bvn", "BVN identifier *", offer)
    with st.expander("Corporate applicants"):
        _field(form, "corporate_signatory_names", "Authorised signatory names", offer)
        _field(form, "corporate_designations", "Designations", offer)


def _step_signatures(form: Dict[str, Any]) -> None:
    kind = st.radio(
        "Signature Type",
        ["single", "joint"],
        index=0 if form["signature_type"] == "single" else 1,
        format_func=str.title,
        horizontal=True,
    )
    if kind != form["signature_type"]:
        wizard.set_signature_type(form, kind)
        st.rerun()
    _upload(form, "receipt", "Payment receipt (JPG, PNG or PDF, max 5MB)")
    for index in range(len(form["signatures"])):
        col1, col2 = st.columns([5, 1])
        with col1:
            _upload(form, "signatures", f"Signature {index + 1}", index)
        if form["signature_type"] == "joint" and len(form["signatures"]) > 2:
            if col2.button("Remove", key=f"remove_signature_{index}"):
                wizard.remove_signature_slot(form, index)
                st.rerun()
    if form["signature_type"] == "joint" and st.button("+ Add Signature"):
        wizard.add_signature_slot(form)
        st.rerun()


def _step_summary(form: Dict[str, Any], stockbrokers: List[Dict[str, Any]]) -> None:
    st.markdown("**Shareholder Information**")
    st.write(
        f"{form['name']} · {form['reg_account_number']} · holdings {_units(form['holdings'])} · "
        f"rights {_units(form['rights_issue'])}"
    )
    st.markdown("**Stockbroker & CHN Details**")
    st.write(f"{wizard.stockbroker_label(stockbrokers, form['stockbroker'])} · CHN {form['chn']}")
    st.markdown("**Action Details**")
    if form["action_type"] == "full_acceptance":
        st.write(
            f"Full acceptance · additional units {form['additional_shares'] or 0} · "
            f"total payable {_naira(wizard.calculate_total_payment(form))}"
        )
    else:
        st.write(
            f"Partial acceptance · accepted {form['shares_accepted']} · renounced {form['shares_renounced'] or 0} · "
            f"payable {_naira(form['amount_payable'])}"
        )
    st.markdown("**Personal & Bank Information**")
    st.write(
        f"{form['contact_name']} · {form['mobile_phone']} · {form['email']} · "
        f"{form['bank_name_edividend']} {form['account_number']} · BVN {form['bvn']}"
    )
    st.markdown("**Signature & Receipt**")
    signed = len([s for s in form["signatures"] if s])
    st.write(f"{form['signature_type'].title()} signature · {signed} uploaded · receipt {'attached' if form['receipt'] else 'missing'}")
    with st.expander("Disclaimer", expanded=True):
        for text in DISCLAIMERS:
            st.caption(text)


def show_application(client: PortalClient, offer: RightsOffer) -> None:
    """The eight step online application."""
    form = st.session_state.form
    if form is None:
        go("home")
        return
    if st.session_state.stockbrokers is None:
        try:
            st.session_state.stockbrokers = client.get_stockbrokers()
        except ApiError:
            st.session_state.stockbrokers = []
    stockbrokers = st.session_state.stockbrokers
    step = st.session_state.step
    current = wizard.STEPS[step - 1]
    st.progress(step / wizard.LAST_STEP, text=f"Step {step} of {wizard.LAST_STEP}")
    st.header(current["title"])
    st.caption(current["description"])
    st.caption(
        f"{form['name']} · {form['reg_account_number']} · Amount due {_naira(form['amount_due'])}"
    )

    if step == 1:
        _step_ownership(form, offer)
    elif step == 2:
        _step_guidelines(form, offer)
    elif step == 3:
        _step_stockbroker(form, offer, stockbrokers)
    elif step == 4:
        _step_participation(form, offer)
    elif step == 5:
        _step_payment(form, offer)
    elif step == 6:
        _step_mandate(form, offer)
    elif step == 7:
        _step_signatures(form)
    else:
        _step_summary(form, stockbrokers)

    st.divider()
    back, forward = st.columns(2)
    if back.button("Previous", disabled=step == wizard.FIRST_STEP):
        st.session_state.step = wizard.previous_step(step)
        st.rerun()
    if step < wizard.LAST_STEP:
        if forward.button("Next", type="primary"):
            new_step, errors = wizard.next_step(step, form)
            if errors:
                for error in errors:
                    st.error(error)
            else:
                st.session_state.step = new_step
                st.rerun()
    elif forward.button("Submit application", type="primary"):
        _submit(client, form)


def _submit(client: PortalClient, form: Dict[str, Any]) -> None:
    missing = [
        wizard.STEPS[step - 1]["title"]
        for step in range(wizard.FIRST_STEP, wizard.LAST_STEP)
        if not wizard.is_step_valid(form, step)
    ]
    if missing:
        st.error(f"Required fields missing: {', '.join(missing)}")
        return
    data, files = wizard.build_submission(form, st.session_state.shareholder_id)
    with st.spinner("Synchronizing application…"):
        try:
            submission = client.submit_rights_form(data, files)
        except ApiError as e:
            st.error(e.message or "Submission failed")
            return
    st.toast("Successfully submitted")
    go("submitted", submitted=submission)


def show_submitted(client: PortalClient) -> None:
    submission = st.session_state.submitted
    form = st.session_state.form
    if not submission or form is None:
        go("home")
        return
    st.success("Application Lodged")
    st.write(
        "Your rights issue acceptance has been recorded. Please retain your transaction document for future reference."
    )
    col1, col2 = st.columns(2)
    col1.metric("Shareholder Name", submission["name"])
    col2.metric("Account Reference", submission["reg_account_number"])
    col1.metric("Settlement Total", _naira(submission.get("amount_payable")))
    col2.metric("Execution Time", str(submission.get("created_at", ""))[:19].replace("T", " "))
    if st.button("Prepare allotment form"):
        try:
            st.session_state.allotment_pdf = client.preview_rights_form(
                wizard.preview_payload(form, st.session_state.shareholder_id)
            )
        except ApiError as e:
            st.error(f"Preview generation failed: {e.message}")
    if st.session_state.get("allotment_pdf"):
        st.download_button(
            "Download form",
            data=st.session_state.allotment_pdf,
            file_name=wizard.allotment_filename(submission["reg_account_number"]),
            mime="application/pdf",
        )
    if st.button("Exit Session"):
        for key in ("form", "submitted", "allotment_pdf", "prefilled_pdf", "stockbrokers"):
            st.session_state.pop(key, None)
        _reset_session()
        go("home", step=wizard.FIRST_STEP)


# Admin pages


def show_admin_login() -> None:
    """Ask for the admin bearer token; it is kept only in this browser session."""
    st.header("Admin Sign In")
    with st.form("admin_login"):
        token = st.text_input("Admin token", type="password")
        submitted = st.form_submit_button("Sign in", type="primary")
    if submitted:
        st.session_state.admin_token = token.strip()
        st.session_state.pop("admin_client", None)
        st.rerun()


def show_admin(client: PortalClient) -> None:
    """Dashboard statistics and the paginated submissions table."""
    st.header("Admin Dashboard")
    try:
        stats = client.get_dashboard()
    except ApiError as e:
        if e.status_code == 401:
            sign_out_admin()
            st.error("Invalid admin token. Please sign in again.")
            return
        st.error(f"Error loading dashboard statistics: {e.message}")
        return
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Total Shareholders", f"{stats['totalShareholders']:,}")
    col2.metric("Completed Forms", stats["completedForms"])
    col3.metric("Pending Forms", stats["pendingForms"])
    col4.metric("Completion Rate", f"{stats['completionRate']}%")
    review_summary = stats.get("review")
    if review_summary and review_summary["flagged_submissions"]:
        st.warning(
            f"{review_summary['flagged_submissions']} of {review_summary['total_submissions']} "
            "submissions have consistency issues to review"
        )

    try:
        st.download_button(
            "Export CSV",
            data=client.export_submissions_csv(),
            file_name="submissions.csv",
            mime="text/csv",
        )
    except ApiError as e:
        st.error(f"Error exporting data: {e.message}")

    st.subheader("Form Submissions")
    with st.form("admin_filters"):
        col1, col2 = st.columns([3, 1])
        search = col1.text_input(
            "Search", value=st.session_state.admin_search, placeholder="Search by name, reg number, or email..."
        )
        statuses = ["All Status", "Completed", "Pending", "Rejected"]
        status = col2.selectbox("Status", statuses, index=statuses.index(st.session_state.admin_status))
        if st.form_submit_button("Search"):
            st.session_state.admin_search = search
            st.session_state.admin_status = status
            st.session_state.admin_page = 1

    page = st.session_state.admin_page
    status_filter = None if st.session_state.admin_status == "All Status" else st.session_state.admin_status.lower()
    try:
        response = client.list_submissions(page, PAGE_SIZE, st.session_state.admin_search or None, status_filter)
    except ApiError as e:
        st.error(f"Error loading submissions: {e.message}")
        return
    rows = response["data"]
    pagination = response["pagination"]
    if not rows:
        st.write("No submissions found.")
        return
    table = pd.DataFrame([
        {
            "ID": row["id"],
            "Reg Account": row["reg_account_number"],
            "Name": row["name"],
            "Action": wizard.ACTION_TYPES.get(row["action_type"], row["action_type"]),
            "Amount": _naira(row["amount_payable"]),
            "Status": STATUS_BADGES.get(row["status"], row["status"]),
            "Signature": "✓" if row["signature_paths"] else "✗",
            "Receipt": "✓" if row["receipt_path"] else "✗",
        }
        for row in rows
    ])
    st.dataframe(table, hide_index=True, use_container_width=True)
    total = pagination["totalCount"]
    st.caption(f"Showing {(page - 1) * PAGE_SIZE + 1} to {min(page * PAGE_SIZE, total)} of {total} results")
    choice = st.selectbox("Open submission", [row["id"] for row in rows], format_func=lambda i: f"#{i}")
    if st.button("View Details"):
        go("admin_submission", admin_submission_id=choice)
    if pagination["totalPages"] > 1:
        _pager(page, pagination["totalPages"], "admin_page")


def _file_actions(client: PortalClient, label: str, file_id: Optional[str], filename: str) -> None:
    st.markdown(f"**{label}**")
    if not file_id:
        st.caption("Missing")
        return
    col1, col2 = st.columns(2)
    if col1.button("View", key=f"view_{file_id}"):
        try:
            content, media_type = client.stream_file(file_id)
        except ApiError as e:
            st.error(f"Error loading file: {e.message}")
        else:
            if media_type.startswith("image/"):
                st.image(content, caption=filename)
            else:
                st.info(f"{filename} is a {media_type} document; use Download to open it.")
    try:
        data = client.download_file(file_id, wizard.attachment_name(filename))
    except ApiError as e:
        col2.error(f"Error downloading file: {e.message}")
    else:
        col2.download_button("Download", data=data, file_name=filename, key=f"download_{file_id}")


def show_admin_submission(client: PortalClient) -> None:
    if st.button("← Back to Admin Dashboard"):
        go("admin")
    submission_id = st.session_state.admin_submission_id
    try:
        submission = client.get_rights_submission_by_id(submission_id)
    except ApiError as e:
        st.error(f"Error loading submission details: {e.message}")
        return
    st.header(f"Rights Submission Details #{submission['id']}")
    st.subheader("Basic Information")
    info = {
        "CHN": submission.get("chn") or "N/A",
        "Reg Account Number": submission.get("reg_account_number") or "N/A",
        "Name": submission.get("name") or "N/A",
        "Holdings": _units(submission.get("holdings")),
        "Rights Issue": _units(submission.get("rights_issue")),
        "Acceptance Type": wizard.ACTION_TYPES.get(submission.get("action_type"), "N/A"),
        "Amount Payable": _naira(submission.get("amount_payable")),
        "Status": STATUS_BADGES.get(submission["status"], submission["status"]),
        "Submitted": str(submission.get("created_at", ""))[:19].replace("T", " "),
    }
    st.table(pd.DataFrame(list(info.items()), columns=["Field", "Value"]).set_index("Field"))

    analysis = submission.get("review") or {"issues": [], "summary": {"total_issues": 0}}
    st.subheader("Review")
    if not analysis["issues"]:
        st.success("No consistency issues detected")
    for issue in analysis["issues"]:
        st.warning(f"{issue['description']} (severity: {issue['severity']}) – {issue['suggestion']}")

    statuses = list(STATUS_BADGES)
    new_status = st.selectbox("Set status", statuses, index=statuses.index(submission["status"]), format_func=str.title)
    if st.button("Update status") and new_status != submission["status"]:
        try:
            client.update_submission_status(submission["id"], new_status)
        except ApiError as e:
            st.error(f"Failed to update status: {e.message}")
        else:
            st.toast(f"Submission marked {new_status}")
            st.rerun()

    st.subheader("Uploaded Files")
    _file_actions(client, "Filled Form (PDF)", submission.get("filled_form_path"),
                  wizard.submission_filename("filled_form", submission))
    _file_actions(client, "Payment Receipt", submission.get("receipt_path"),
                  wizard.submission_filename("receipt", submission))
    signatures = submission.get("signature_paths") or []
    st.caption(f"{len(signatures)} Signatures")
    for index, file_id in enumerate(signatures):
        _file_actions(client, f"Signature {index + 1}", file_id,
                      wizard.submission_filename("signature", submission).replace("-signature-", f"-signature-{index + 1}-"))


# Notices


def show_notice(mode: str, offer: RightsOffer) -> None:
    """Full page notice shown instead of the public pages when the portal is not open."""
    if mode == "closed":
        st.title("Rights Issue Closed")
        st.write(
            "The Rights Issue application period has officially ended. "
            "We appreciate your interest and participation."
        )
    else:
        st.title(f"{offer.company} Rights Issue")
        st.header("Coming Soon")
        st.write("Dear Shareholder, Stay tuned for updates!")
    st.write(f"For enquiries contact {get_registrar_email()}")
    st.caption("APEL Registrars Limited")


def main() -> None:
    """Entry point for the Streamlit application."""
    st.set_page_config(
        page_title="Rights Issue Portal",
        page_icon="📈",
        layout="wide",
    )
    _reset_session()
    offer = load_offer()
    client = get_client()
    mode = get_portal_mode()
    with st.sidebar:
        st.title("Navigation")
        if st.button("Shareholder Portal", use_container_width=True):
            go("home")
        if st.button("Admin", use_container_width=True):
            go("admin", admin_page=1)
        if st.session_state.admin_token is not None and st.button("Sign out", use_container_width=True):
            sign_out_admin()
            go("home")
        if st.session_state.page == "application":
            st.divider()
            current_step = st.session_state.step
            for step in wizard.STEPS:
                if step["id"] == current_step:
                    st.success(f"→ {step['id']}. {step['title']}")
                elif step["id"] < current_step:
                    st.info(f"✓ {step['id']}. {step['title']}")
                else:
                    st.text(f"{step['id']}. {step['title']}")
    page = st.session_state.page
    if page in ADMIN_PAGES:
        admin_client = get_admin_client()
        if admin_client is None:
            show_admin_login()
        elif page == "admin":
            show_admin(admin_client)
        else:
            show_admin_submission(admin_client)
        return
    # submissions already lodged can still see their confirmation
    if mode != "open" and page != "submitted":
        show_notice(mode, offer)
        return
    if page == "search_results":
        show_search_results(client)
    elif page == "shareholder":
        show_shareholder(client)
    elif page == "application":
        show_application(client, offer)
    elif page == "submitted":
        show_submitted(client)
    else:
        show_home(client, offer)


if __name__ == "__main__":
    main()
