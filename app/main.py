"""
Streamlit Frontend for SnapLedger

The screen users interact with daily: upload a screenshot of their
payment history, check what was read, fix anything that's wrong, save.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Explicit confirmation before anything is saved
3. Clear error messages in simple language
4. Visual feedback for all operations

The UI enforces the human-in-the-loop principle:
- User sees every extracted line item
- User edits, removes or accepts them
- Nothing is saved without an explicit "Save" action
"""

import asyncio
from datetime import date
from decimal import Decimal
from uuid import NAMESPACE_URL, UUID, uuid5

import streamlit as st

from snapledger.audit import create_correlation_id
from snapledger.config import get_settings, validate_all_settings
from snapledger.models.ledger import (
    UNCATEGORIZED_NAME,
    ConfirmedLineItem,
    ExtractedLineItem,
    StatisticsPeriod,
    TransactionType,
)
from snapledger.orchestrator import AppComponents, InvalidImageError, create_app_components
from snapledger.services.storage import PermissionDeniedError, StorageError
from snapledger.services.vision import AnalysisError


# Used when AUTH_LOCAL_USER_ID isn't set
LOCAL_FALLBACK_USER_ID = uuid5(NAMESPACE_URL, "snapledger:local-user")


# Page configuration
st.set_page_config(
    page_title="SnapLedger",
    page_icon="🧾",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .success-box {
        padding: 20px;
        background-color: #d4edda;
        border-radius: 10px;
        border-left: 5px solid #28a745;
        margin: 10px 0;
    }
    .warning-box {
        padding: 20px;
        background-color: #fff3cd;
        border-radius: 10px;
        border-left: 5px solid #ffc107;
        margin: 10px 0;
    }
    .error-box {
        padding: 20px;
        background-color: #f8d7da;
        border-radius: 10px;
        border-left: 5px solid #dc3545;
        margin: 10px 0;
    }
</style>
""", unsafe_allow_html=True)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components() -> AppComponents:
    """Get or create application components (cached)."""
    components = create_app_components(use_storage=True)
    try:
        run_async(components.category_service.seed_defaults())
    except Exception as e:
        st.warning(f"Could not store default categories: {e}")
    return components


def current_user_id() -> UUID:
    return get_settings().auth.local_user_id or LOCAL_FALLBACK_USER_ID


def format_money(amount: Decimal) -> str:
    currency = get_settings().app.currency_code
    if amount == amount.to_integral_value():
        return f"{currency} {amount:,.0f}"
    return f"{currency} {amount:,.2f}"


def main():
    """Main application entry point."""
    components = get_components()
    user_id = current_user_id()

    # Sidebar navigation
    st.sidebar.title("🧾 SnapLedger")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📤 Add from Screenshot", "📋 Transactions", "📊 Statistics", "🏷️ Categories", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    st.sidebar.markdown(
        """
        **How to use:**
        1. Upload a screenshot of your payment history
        2. Review the transactions that were found
        3. Save the ones you want to keep
        """
    )

    # Route to appropriate page
    if page == "📤 Add from Screenshot":
        render_upload_page(components, user_id)
    elif page == "📋 Transactions":
        render_transactions_page(components, user_id)
    elif page == "📊 Statistics":
        render_statistics_page(components, user_id)
    elif page == "🏷️ Categories":
        render_categories_page(components, user_id)
    elif page == "⚙️ Settings":
        render_settings_page(components)


def _reset_upload_state():
    st.session_state.upload_state = "idle"
    st.session_state.extracted_items = []
    st.session_state.rejected_items = []
    st.session_state.save_report = None


def render_upload_page(components: AppComponents, user_id: UUID):
    """Render the screenshot upload and review page."""
    st.title("📤 Add from Screenshot")
    st.markdown("Upload a screenshot of your bank or card app.")

    # Initialize session state
    if "upload_state" not in st.session_state:
        _reset_upload_state()  # idle, reviewing, saved

    app_settings = get_settings().app
    flow = components.analysis_flow

    # Step 1: Upload
    uploaded_file = st.file_uploader(
        "Choose a screenshot",
        type=app_settings.supported_formats_list,
        help="A screenshot of your payment history works best",
    )

    if uploaded_file and st.session_state.upload_state == "idle":
        if st.button("🔍 Analyze Screenshot", type="primary"):
            with st.spinner("Reading your screenshot... Please wait."):
                try:
                    result = run_async(flow.analyze(
                        owner_id=user_id,
                        image_bytes=uploaded_file.getvalue(),
                        filename=uploaded_file.name,
                        mime_type=uploaded_file.type,
                        correlation_id=create_correlation_id(),
                    ))
                except InvalidImageError as e:
                    st.error(str(e))
                    st.stop()
                except AnalysisError:
                    st.markdown("""
                    <div class="error-box">
                        <h4>❌ Analysis Failed</h4>
                        <p>We couldn't read this screenshot. Please try again.</p>
                    </div>
                    """, unsafe_allow_html=True)
                    st.stop()

            st.session_state.extracted_items = result.items
            st.session_state.rejected_items = result.rejected
            st.session_state.upload_state = "reviewing"
            st.rerun()

    # Step 2: Review and Confirm
    if st.session_state.upload_state == "reviewing":
        render_review(components, user_id)

    # Step 3: Result
    if st.session_state.upload_state == "saved":
        report = st.session_state.save_report
        if report.is_partial:
            st.markdown(f"""
            <div class="warning-box">
                <h4>⚠️ {report.summary_message}</h4>
            </div>
            """, unsafe_allow_html=True)
        else:
            st.markdown(f"""
            <div class="success-box">
                <h3>✅ {report.summary_message}</h3>
            </div>
            """, unsafe_allow_html=True)

        if st.button("📤 Upload Another Screenshot"):
            _reset_upload_state()
            st.rerun()


def render_review(components: AppComponents, user_id: UUID):
    """Editable list of extracted line items."""
    items: list[ExtractedLineItem] = st.session_state.extracted_items
    rejected = st.session_state.rejected_items

    st.markdown("---")
    st.subheader("📋 Review Transactions")

    if rejected:
        with st.expander(f"⚠️ {len(rejected)} item(s) could not be read"):
            for r in rejected:
                st.markdown(f"**{r.name or 'Unnamed'}**: " + "; ".join(i.message for i in r.issues))

    if not items:
        st.info("No transactions were found in this screenshot.")
        if st.button("Start Over"):
            _reset_upload_state()
            st.rerun()
        return

    catalog = run_async(components.analysis_flow.load_catalog(user_id))
    confirmed: list[ConfirmedLineItem] = []

    for index, item in enumerate(items):
        with st.container(border=True):
            col1, col2, col3 = st.columns([3, 2, 2])
            with col1:
                name = st.text_input("Name", value=item.name, key=f"name_{index}")
                keep = st.checkbox("Keep", value=True, key=f"keep_{index}")
            with col2:
                transaction_type = st.selectbox(
                    "Type",
                    options=list(TransactionType),
                    index=list(TransactionType).index(item.transaction_type),
                    format_func=lambda t: t.value.title(),
                    key=f"type_{index}",
                )
                amount = st.number_input(
                    "Amount",
                    value=float(item.amount),
                    min_value=0.0,
                    key=f"amount_{index}",
                )
            with col3:
                transaction_date = st.date_input(
                    "Date", value=item.transaction_date, key=f"date_{index}",
                )
                options = catalog.names_for(transaction_type)
                if item.category_label and item.category_label not in options:
                    options = [item.category_label] + options
                options = options + [UNCATEGORIZED_NAME]
                label = item.category_label or UNCATEGORIZED_NAME
                category_label = st.selectbox(
                    "Category",
                    options=options,
                    index=options.index(label) if label in options else len(options) - 1,
                    key=f"category_{index}",
                )

            if item.is_new_category and catalog.find_by_name(category_label) is None:
                st.caption(f"🆕 '{category_label}' will be created")
            for issue in item.issues:
                st.caption(f"⚠️ {issue.message}")

        if keep and amount > 0 and name.strip():
            is_uncategorized = category_label == UNCATEGORIZED_NAME
            confirmed.append(ConfirmedLineItem(
                name=name,
                amount=Decimal(str(amount)),
                transaction_date=transaction_date,
                transaction_type=transaction_type,
                category_label="" if is_uncategorized else category_label,
                is_new_category=not is_uncategorized and item.is_new_category,
                suggested_icon=item.suggested_icon,
                suggested_color=item.suggested_color,
            ))

    expense_total = sum(
        (i.amount for i in confirmed if i.transaction_type == TransactionType.EXPENSE),
        Decimal("0"),
    )
    income_total = sum(
        (i.amount for i in confirmed if i.transaction_type == TransactionType.INCOME),
        Decimal("0"),
    )
    st.markdown(
        f"**Expenses:** {format_money(expense_total)} &nbsp; "
        f"**Income:** {format_money(income_total)}"
    )

    col1, col2 = st.columns(2)
    with col1:
        if st.button(f"✅ Save {len(confirmed)} Transaction(s)", type="primary", disabled=not confirmed):
            report = run_async(components.save_flow.save_items(user_id, confirmed))
            if report.is_failure:
                st.error(report.summary_message)
            else:
                st.session_state.save_report = report
                st.session_state.upload_state = "saved"
                st.rerun()
    with col2:
        if st.button("❌ Discard / Start Over"):
            _reset_upload_state()
            st.rerun()


def render_transactions_page(components: AppComponents, user_id: UUID):
    """Render the transactions list page."""
    st.title("📋 Transactions")

    col1, col2 = st.columns(2)
    with col1:
        date_from = st.date_input("From", value=date.today().replace(day=1))
    with col2:
        date_to = st.date_input("To", value=date.today())

    transactions = run_async(components.save_flow.list_transactions(
        user_id, date_from=date_from, date_to=date_to,
    ))
    catalog = run_async(components.category_service.list_categories(user_id))

    if not transactions:
        st.info("No transactions in this period yet.")
        return

    for transaction in transactions:
        category = catalog.get(transaction.category_id)
        sign = "+" if transaction.transaction_type == TransactionType.INCOME else "-"
        col1, col2, col3 = st.columns([4, 2, 1])
        with col1:
            st.markdown(
                f"**{transaction.name}** · {category.name if category else UNCATEGORIZED_NAME}"
                f"  \n{transaction.transaction_date.isoformat()}"
            )
        with col2:
            st.markdown(f"{sign}{format_money(transaction.amount)}")
        with col3:
            if st.button("🗑️", key=f"delete_{transaction.id}"):
                run_async(components.save_flow.delete_transaction(user_id, transaction.id))
                st.rerun()


def render_statistics_page(components: AppComponents, user_id: UUID):
    """Render totals and category breakdown for a period."""
    st.title("📊 Statistics")

    if "stats_offset" not in st.session_state:
        st.session_state.stats_offset = 0

    period = st.radio(
        "Period",
        options=list(StatisticsPeriod),
        index=2,
        format_func=lambda p: p.value.title(),
        horizontal=True,
    )

    col1, col2 = st.columns(2)
    with col1:
        if st.button("◀ Previous"):
            st.session_state.stats_offset -= 1
    with col2:
        if st.button("Next ▶", disabled=st.session_state.stats_offset >= 0):
            st.session_state.stats_offset += 1

    summary = run_async(components.statistics_service.summarize(
        user_id, period, st.session_state.stats_offset,
    ))

    st.caption(f"{summary.start.isoformat()} – {summary.end.isoformat()}")
    col1, col2, col3 = st.columns(3)
    col1.metric("Income", format_money(summary.total_income))
    col2.metric("Expenses", format_money(summary.total_expense))
    col3.metric("Balance", format_money(summary.balance))

    for title, totals in (
        ("Expenses by category", summary.expenses_by_category),
        ("Income by category", summary.income_by_category),
    ):
        st.subheader(title)
        if not totals:
            st.info("Nothing recorded.")
            continue
        st.bar_chart({t.name: float(t.amount) for t in totals})


def render_categories_page(components: AppComponents, user_id: UUID):
    """List categories and let the user delete their own."""
    st.title("🏷️ Categories")

    catalog = run_async(components.category_service.list_categories(user_id))

    for category in catalog:
        col1, col2 = st.columns([5, 1])
        with col1:
            tag = "default" if category.is_default else "yours"
            st.markdown(
                f"**{category.name}** · {category.category_type.value} · {category.icon.value} ({tag})"
            )
        with col2:
            if not category.is_default and st.button("🗑️", key=f"cat_{category.id}"):
                try:
                    reassigned = run_async(
                        components.category_service.delete_category(user_id, category.id)
                    )
                    st.success(f"Deleted. {reassigned} transaction(s) are now uncategorized.")
                    st.rerun()
                except PermissionDeniedError as e:
                    st.error(str(e))


def render_settings_page(components: AppComponents):
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    status = validate_all_settings()

    services = [
        ("Google Sheets (Storage)", "google_sheets"),
        ("Gemini (AI)", "gemini"),
        ("Authentication", "auth"),
        ("Application", "app"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file with your API keys. "
        "See `.env.example` for the required variables."
    )

    st.markdown("---")
    st.markdown("### Recent Activity")

    try:
        events = run_async(components.audit_logger.recent_events(limit=20))
    except StorageError as e:
        st.warning(f"Could not load audit log: {e}")
        events = []
    if not events:
        st.info("No audit events recorded yet.")
    for event in events:
        line = f"`{event.timestamp:%Y-%m-%d %H:%M:%S}` **{event.event_type.value}** {event.description}"
        if event.severity.value in ("error", "critical"):
            st.error(line)
        elif event.severity.value == "warning":
            st.warning(line)
        else:
            st.markdown(line)


if __name__ == "__main__":
    main()
