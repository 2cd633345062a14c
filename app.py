import streamlit as st
import pandas as pd
from pathlib import Path
import sys
from datetime import date

# Add current directory to path
sys.path.append(str(Path(__file__).parent))

from config import get_settings
from database import init_db
from logger import configure_logging, get_logger, set_user_context
from auth import AuthService
from data_client import CancelToken, DataClient
from errors import AuthError, DataAccessError, LoadCancelled, ValidationError
from formatting import format_currency, format_signed
from routes import PROTECTED_ROUTES, resolve
from reports import load_dashboard, load_report
from editors import (
    TRANSACTION_TYPES,
    TYPE_FILTERS,
    WALLET_COLORS,
    WALLET_TYPES,
    TransactionEditor,
    WalletEditor,
    filter_by_type,
)
from assistant import AssistantResponder, Conversation
from export import EXPORT_MIME_TYPE, export_filename, monthly_csv
from dashboard import _kpis, cat_spend, income_vs_expense_monthly, net_trend

# --- Configuration ---
settings = get_settings()
st.set_page_config(page_title=settings.app_title, layout="wide", page_icon="💰")
configure_logging(settings.log_level, settings.log_file)
log = get_logger("app")
CURRENCY, LOCALE = settings.currency, settings.locale


@st.cache_resource
def get_services():
    init_db()
    return DataClient(), AuthService()


client, auth_service = get_services()


def money(amount):
    return format_currency(amount, CURRENCY, LOCALE)


# --- Session & navigation ---
def current_session():
    session = st.session_state.get("session")
    if session is not None and not auth_service.is_active(session):
        st.session_state["session"] = None
        return None
    return session


def view_token() -> CancelToken:
    """A fresh token per script run; the previous run's loads are cancelled."""
    previous = st.session_state.get("view_token")
    if previous is not None:
        previous.cancel()
    token = CancelToken()
    st.session_state["view_token"] = token
    return token


def go(path: str):
    st.query_params["page"] = path
    st.rerun()


def start_session(session):
    st.session_state["session"] = session
    st.session_state.pop("conversation", None)
    set_user_context(session.user_id)
    go("/")


def end_session():
    auth_service.sign_out(st.session_state.get("session"))
    for key in ("session", "conversation", "tx_form", "editing_tx", "editing_wallet", "pending_delete"):
        st.session_state.pop(key, None)
    go("/login")


def confirm_delete(kind: str, row_id: str, label: str) -> bool:
    """Two-step delete: first click arms it, second click confirms."""
    pending = st.session_state.get("pending_delete")
    if pending != (kind, row_id):
        if st.button("🗑️", key=f"del_{kind}_{row_id}", help=f"Delete {label}"):
            st.session_state["pending_delete"] = (kind, row_id)
            st.rerun()
        return False

    st.warning(f"Are you sure you want to delete this {kind}?")
    yes, no = st.columns(2)
    if yes.button("Yes, delete", key=f"yes_{kind}_{row_id}", type="primary"):
        st.session_state.pop("pending_delete", None)
        return True
    if no.button("Cancel", key=f"no_{kind}_{row_id}"):
        st.session_state.pop("pending_delete", None)
        st.rerun()
    return False


# --- Public pages ---
def login_page():
    st.title(f"💰 {settings.app_title}")
    st.subheader("Sign in to your account")
    with st.form("login_form"):
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Sign In", use_container_width=True)
    if submitted:
        try:
            start_session(auth_service.sign_in(email, password))
        except (AuthError, DataAccessError) as e:
            st.error(str(e))

    col1, col2 = st.columns(2)
    if col1.button("Create an account"):
        go("/register")
    if col2.button("Forgot password?"):
        go("/forgot-password")


def register_page():
    st.title("Create Account")
    with st.form("register_form"):
        full_name = st.text_input("Full Name")
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        confirm = st.text_input("Confirm Password", type="password")
        submitted = st.form_submit_button("Create Account", use_container_width=True)
    if submitted:
        try:
            start_session(auth_service.sign_up(email, password, full_name, confirm_password=confirm))
        except (ValidationError, AuthError, DataAccessError) as e:
            st.error(str(e))
    if st.button("Already have an account? Sign in"):
        go("/login")


def forgot_password_page():
    st.title("Reset Password")
    with st.form("forgot_form"):
        email = st.text_input("Email")
        submitted = st.form_submit_button("Send reset link", use_container_width=True)
    if submitted:
        result = auth_service.request_password_reset(email)
        (st.success if result.ok else st.error)(result.text)
    if st.button("Back to sign in"):
        go("/login")


# --- Authenticated pages ---
def dashboard_page(session, token):
    st.header("📊 Dashboard")
    data = load_dashboard(client, session, cancel=token)

    _kpis(
        [("Total Balance", data.stats.total_balance), ("Income", data.stats.income), ("Expenses", data.stats.expenses)],
        CURRENCY, LOCALE,
    )

    col1, col2 = st.columns(2)
    with col1:
        st.subheader("Your Wallets")
        if not data.wallets:
            st.info("No wallets yet.")
            if st.button("Create Your First Wallet"):
                go("/wallets")
        for w in data.wallets:
            st.markdown(
                f"<span style='color:{w['color']}'>●</span> **{w['name']}** ({w['type']}) — {money(w['balance'])}",
                unsafe_allow_html=True,
            )
    with col2:
        st.subheader("Recent Transactions")
        if not data.recent_transactions:
            st.info("No transactions yet.")
            if st.button("Add Your First Transaction"):
                go("/transactions")
        for t in data.recent_transactions:
            wallet_name = (t.get("wallet") or {}).get("name", "")
            st.markdown(
                f"**{t['description']}** · {wallet_name} · {t['date']:%b %d, %Y} — "
                f"{format_signed(t['amount'], t['type'], CURRENCY, LOCALE)}"
            )


def wallets_page(session, token):
    st.header("👛 Wallets")
    editor = WalletEditor(client, session, cancel=token)
    editor.load()

    editing_id = st.session_state.get("editing_wallet")
    editing = next((w for w in editor.wallets if w["id"] == editing_id), None)
    form = editor.edit_form(editing) if editing else editor.new_form()

    with st.expander("✏️ Edit Wallet" if editing else "➕ Add Wallet", expanded=editing is not None):
        with st.form("wallet_form", clear_on_submit=editing is None):
            form.name = st.text_input("Wallet Name", value=form.name, placeholder="e.g., Personal Account")
            c1, c2 = st.columns(2)
            form.type = c1.selectbox("Type", WALLET_TYPES, index=WALLET_TYPES.index(form.type))
            form.color = c2.selectbox("Color", WALLET_COLORS, index=WALLET_COLORS.index(form.color) if form.color in WALLET_COLORS else 0)
            c3, c4 = st.columns(2)
            form.currency = c3.text_input("Currency", value=form.currency, max_chars=3)
            form.balance = c4.number_input("Balance", value=float(form.balance), step=0.01, format="%.2f")
            submitted = st.form_submit_button("Save Changes" if editing else "Create Wallet")
        if submitted:
            try:
                ok = editor.update(editing["id"], form) if editing else editor.create(form)
            except ValidationError as e:
                st.error(str(e))
            else:
                if ok:
                    st.session_state.pop("editing_wallet", None)
                    st.rerun()
                st.error("Could not save the wallet. Please try again.")
        if editing and st.button("Cancel editing"):
            st.session_state.pop("editing_wallet", None)
            st.rerun()

    if not editor.wallets:
        st.info("No wallets yet. Create one to start tracking.")
        return

    for w in editor.wallets:
        c1, c2, c3 = st.columns([6, 1, 1])
        c1.markdown(
            f"<span style='color:{w['color']}'>●</span> **{w['name']}** · {w['type']} · {w['currency']}<br>{money(w['balance'])}",
            unsafe_allow_html=True,
        )
        if c2.button("✏️", key=f"edit_wallet_{w['id']}"):
            st.session_state["editing_wallet"] = w["id"]
            st.rerun()
        with c3:
            if confirm_delete("wallet", w["id"], w["name"]):
                editor.delete(w["id"], confirmed=True)
                st.rerun()


def transactions_page(session, token):
    st.header("💳 Transactions")
    editor = TransactionEditor(client, session, cancel=token)
    editor.load()

    form = st.session_state.get("tx_form") or editor.new_form()
    st.session_state["tx_form"] = form
    editing_id = st.session_state.get("editing_tx")

    with st.expander("✏️ Edit Transaction" if editing_id else "➕ Add Transaction", expanded=editing_id is not None):
        # Outside the form so switching type re-filters the category list immediately
        new_type = st.radio("Type", TRANSACTION_TYPES, index=TRANSACTION_TYPES.index(form.type), horizontal=True)
        if new_type != form.type:
            form.set_type(new_type)

        options = editor.category_options(form)
        category_ids = [None] + [c["id"] for c in options]
        category_names = {c["id"]: c["name"] for c in options}
        wallet_ids = [w["id"] for w in editor.wallets]
        wallet_names = {w["id"]: w["name"] for w in editor.wallets}

        with st.form("tx_form_fields"):
            form.amount = st.text_input("Amount", value=str(form.amount), placeholder="0.00")
            form.description = st.text_input("Description", value=form.description, placeholder="e.g., Grocery shopping")
            form.wallet_id = st.selectbox(
                "Wallet", wallet_ids,
                index=wallet_ids.index(form.wallet_id) if form.wallet_id in wallet_ids else 0,
                format_func=lambda i: wallet_names.get(i, ""),
            ) if wallet_ids else ""
            form.category_id = st.selectbox(
                "Category", category_ids,
                index=category_ids.index(form.category_id) if form.category_id in category_ids else 0,
                format_func=lambda i: "No category" if i is None else category_names[i],
            )
            form.date = st.date_input("Date", value=form.date)
            submitted = st.form_submit_button("Save Changes" if editing_id else "Add Transaction")
        if submitted:
            try:
                ok = editor.update(editing_id, form) if editing_id else editor.create(form)
            except ValidationError as e:
                st.error(str(e))
            else:
                if ok:
                    st.session_state.pop("tx_form", None)
                    st.session_state.pop("editing_tx", None)
                    st.rerun()
                st.error("Could not save the transaction. Please try again.")
        if editing_id and st.button("Cancel editing"):
            st.session_state.pop("tx_form", None)
            st.session_state.pop("editing_tx", None)
            st.rerun()

    filter_type = st.radio("Show", TYPE_FILTERS, horizontal=True, format_func=str.title)
    rows = filter_by_type(editor.transactions, filter_type)
    if not rows:
        st.info("No transactions found.")
        return

    for t in rows:
        c1, c2, c3, c4 = st.columns([5, 2, 1, 1])
        category = (t.get("category") or {}).get("name")
        wallet_name = (t.get("wallet") or {}).get("name", "")
        c1.markdown(f"**{t['description']}**  \n{wallet_name}{' · ' + category if category else ''} · {t['date']:%b %d, %Y}")
        c2.markdown(f":{'green' if t['type'] == 'income' else 'red'}[{format_signed(t['amount'], t['type'], CURRENCY, LOCALE)}]")
        if c3.button("✏️", key=f"edit_tx_{t['id']}"):
            st.session_state["tx_form"] = editor.edit_form(t)
            st.session_state["editing_tx"] = t["id"]
            st.rerun()
        with c4:
            if confirm_delete("transaction", t["id"], t["description"]):
                editor.delete(t["id"], confirmed=True)
                st.rerun()


def reports_page(session, token):
    st.header("📈 Reports")
    report = load_report(client, session, cancel=token)

    st.download_button(
        "⬇️ Export CSV",
        data=monthly_csv(report.monthly),
        file_name=export_filename(date.today()),
        mime=EXPORT_MIME_TYPE,
    )

    _kpis(
        [("Total Income", report.stats.total_income), ("Total Expenses", report.stats.total_expense), ("Net Balance", report.stats.net_balance)],
        CURRENCY, LOCALE,
    )

    col1, col2 = st.columns(2)
    with col1:
        st.plotly_chart(income_vs_expense_monthly(report.monthly), use_container_width=True)
    with col2:
        if report.categories:
            st.plotly_chart(cat_spend(report.categories), use_container_width=True)
        else:
            st.info("No expense data available")
    st.plotly_chart(net_trend(report.monthly), use_container_width=True)

    with st.expander("See monthly table"):
        st.dataframe(
            pd.DataFrame([{"Month": m.month, "Income": m.income, "Expense": m.expense, "Net": m.net} for m in report.monthly]),
            use_container_width=True,
        )


def settings_page(session, token):
    st.header("⚙️ Settings")

    profile = auth_service.get_profile(session)
    st.subheader("Profile")
    with st.form("profile_form"):
        full_name = st.text_input("Full Name", value=profile["full_name"])
        st.text_input("Email", value=profile["email"], disabled=True)
        if st.form_submit_button("Save Profile"):
            result = auth_service.update_profile(session, full_name)
            (st.success if result.ok else st.error)(result.text)

    st.subheader("Change Password")
    with st.form("password_form", clear_on_submit=True):
        new_password = st.text_input("New Password", type="password")
        confirm_password = st.text_input("Confirm New Password", type="password")
        if st.form_submit_button("Update Password"):
            result = auth_service.update_password(session, new_password, confirm_password)
            (st.success if result.ok else st.error)(result.text)

    st.subheader("Danger Zone")
    st.caption("Deleting your account permanently removes all your wallets, transactions and chat history.")
    sure = st.checkbox("I want to delete my account. This action cannot be undone.")
    really_sure = st.checkbox("This will permanently delete all my data. I am absolutely sure.", disabled=not sure)
    if st.button("Delete Account", type="primary", disabled=not (sure and really_sure)):
        result = auth_service.delete_account(session, confirmed=sure and really_sure)
        if result.ok:
            end_session()
        st.error(result.text)


def assistant_panel(session):
    st.subheader("💬 AI Assistant")
    conversation = st.session_state.get("conversation")
    if conversation is None:
        conversation = Conversation(AssistantResponder(client, session, currency=CURRENCY, locale=LOCALE))
        st.session_state["conversation"] = conversation

    for message in conversation.messages[-8:]:
        with st.chat_message(message.role):
            st.markdown(message.content.replace("\n", "  \n"))

    with st.form("assistant_form", clear_on_submit=True):
        prompt = st.text_input("Ask me anything...", placeholder="e.g., What is my balance?")
        if st.form_submit_button("Send") and prompt.strip():
            conversation.send(prompt)
            st.rerun()


PAGES = {
    "/": dashboard_page,
    "/wallets": wallets_page,
    "/transactions": transactions_page,
    "/reports": reports_page,
    "/settings": settings_page,
    "/login": login_page,
    "/register": register_page,
    "/forgot-password": forgot_password_page,
}


# --- Main App ---
session = current_session()
# each script run has its own thread context
set_user_context(session.user_id if session else None)
requested = st.query_params.get("page", "/")
path = resolve(requested, signed_in=session is not None)
if path != requested:
    st.query_params["page"] = path

if session is None:
    PAGES[path]()
else:
    token = view_token()
    with st.sidebar:
        st.title(f"💰 {settings.app_title}")
        st.caption(session.email)
        for route, label in PROTECTED_ROUTES.items():
            if st.button(label, key=f"nav_{route}", use_container_width=True, type="primary" if route == path else "secondary"):
                go(route)
        st.divider()
        if st.button("🚪 Sign Out", use_container_width=True):
            end_session()
        st.divider()
        assistant_panel(session)

    try:
        PAGES[path](session, token)
    except LoadCancelled:
        # A newer run of this page owns the view now
        log.debug("Dropped results of a superseded load for %s", path)
        st.stop()
