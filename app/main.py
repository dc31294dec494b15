"""
Streamlit Frontend for TripShare

This is the interface companions use on the road to plan a trip, log
who paid for what and check the weather at the destination.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Balances always recomputed from the expense list
3. Clear error messages in simple language
4. "Not set up yet" is a prompt, not an error
5. No hidden actions

There is no login: the sidebar asks who you are, and that name is used as
both your user id and your companion display name.
"""

import asyncio
from datetime import date, timedelta

import streamlit as st
from pydantic import ValidationError

from tripshare.audit import create_correlation_id
from tripshare.config import get_settings, validate_all_settings
from tripshare.ledger import convert_amount, format_signed, group_expenses_by_day, round_for_display
from tripshare.models.expense import Currency, ExpenseDraft
from tripshare.models.ledger import BalanceDirection
from tripshare.models.memory import MemoryCreate, MemoryUpdate
from tripshare.models.trip import Trip
from tripshare.orchestrator import (
    AppComponents,
    PermissionDeniedError,
    create_app_components,
)
from tripshare.services.storage import StorageError
from tripshare.validation import CompanionValidationError, ExpenseValidationError, ExpenseValidator
from tripshare.weather import (
    ConfigurationIncompleteError,
    ICON_EMOJI,
    LocationNotFoundError,
    WeatherSourceError,
    weather_icon,
    weather_label,
)


# Page configuration
st.set_page_config(
    page_title="TripShare",
    page_icon="🧳",
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
    .big-number {
        font-size: 2.5em;
        font-weight: bold;
        color: #2c3e50;
    }
    .owed { color: #28a745; font-weight: bold; }
    .owes { color: #dc3545; font-weight: bold; }
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
    return create_app_components(use_storage=True)


def main():
    """Main application entry point."""
    components = get_components()

    st.sidebar.title("🧳 TripShare")
    st.sidebar.markdown("---")

    user = st.sidebar.text_input("Your name", key="user_name").strip()

    trips = run_async(components.trip_flow.list_trips())
    trip = None
    if trips:
        trip = st.sidebar.selectbox(
            "Trip",
            options=trips,
            format_func=lambda t: t.name,
        )

    st.sidebar.markdown("---")
    page = st.sidebar.radio(
        "Navigate to:",
        ["🗺️ Trips", "💸 Expenses", "🌤️ Weather", "📝 Memories", "⚙️ Settings"],
        index=0,
    )

    if not components.uses_sheets:
        st.sidebar.warning("Running on in-memory storage. Data is lost on restart.")

    if page == "🗺️ Trips":
        render_trips_page(components, trip, user)
    elif page == "⚙️ Settings":
        render_settings_page(components)
    elif trip is None:
        st.info("Create a trip on the Trips page first.")
    elif not user:
        st.info("Enter your name in the sidebar to continue.")
    elif page == "💸 Expenses":
        render_expenses_page(components, trip, user)
    elif page == "🌤️ Weather":
        render_weather_page(components, trip)
    elif page == "📝 Memories":
        render_memories_page(components, trip, user)


def render_trips_page(components: AppComponents, trip, user: str):
    """Create trips and edit the selected trip's setup and companions."""
    st.title("🗺️ Trips")
    flow = components.trip_flow

    with st.expander("➕ New trip", expanded=trip is None):
        with st.form("new_trip"):
            name = st.text_input("Trip name")
            destination = st.text_input("Destination", help="e.g. 京都 or Kyoto")
            col1, col2 = st.columns(2)
            with col1:
                start = st.date_input("Start date", value=date.today() + timedelta(days=7))
            with col2:
                end = st.date_input("End date", value=date.today() + timedelta(days=11))
            if st.form_submit_button("Create trip", type="primary"):
                if not user:
                    st.error("Enter your name in the sidebar first.")
                else:
                    try:
                        run_async(flow.create_trip(
                            name=name,
                            owner_id=user,
                            destination=destination,
                            start_date=start,
                            end_date=end,
                        ))
                        st.success("Trip created!")
                        st.rerun()
                    except ValidationError as e:
                        st.error(f"Please check the trip details: {e.errors()[0]['msg']}")

    if trip is None:
        return

    if user:
        # Self-healing: make sure the viewer is on the roster
        trip = run_async(flow.ensure_companion(trip.id, user))

    st.markdown(f"## {trip.name}")
    st.image(trip.cover_image, use_container_width=True)

    st.markdown("### Setup")
    with st.form("trip_setup"):
        destination = st.text_input("Destination", value=trip.destination or "")
        col1, col2 = st.columns(2)
        with col1:
            start = st.date_input("Start date", value=trip.start_date or date.today())
        with col2:
            end = st.date_input("End date", value=trip.end_date or date.today())
        if st.form_submit_button("Save setup"):
            try:
                run_async(flow.update_setup(
                    trip.id,
                    destination=destination or None,
                    start_date=start,
                    end_date=end,
                ))
                st.success("Saved")
                st.rerun()
            except ValidationError as e:
                st.error(f"Please check the dates: {e.errors()[0]['msg']}")

    st.markdown("### Companions")
    for companion in trip.companions:
        col1, col2 = st.columns([4, 1])
        col1.markdown(f"👤 {companion}")
        if col2.button("Remove", key=f"remove_{companion}"):
            run_async(flow.remove_companion(trip.id, companion))
            st.rerun()

    with st.form("add_companion", clear_on_submit=True):
        new_name = st.text_input("Add companion")
        if st.form_submit_button("Add"):
            try:
                run_async(flow.add_companion(trip.id, new_name, create_correlation_id()))
                st.rerun()
            except CompanionValidationError as e:
                st.error(e.reason)

    if user and st.button("🚪 Leave this trip"):
        run_async(flow.leave_trip(trip.id, user))
        st.rerun()

    st.markdown("### Itinerary")
    items = run_async(flow.list_itinerary(trip.id))
    for item in items:
        when = item.start_time.strftime("%H:%M") if item.start_time else ""
        st.markdown(f"**{item.day.isoformat()}** {when} {item.title}"
                    + (f" · {item.location}" if item.location else ""))

    if trip.date_range:
        with st.form("add_item", clear_on_submit=True):
            day = st.selectbox("Day", options=trip.date_range.dates())
            title = st.text_input("What")
            location = st.text_input("Where (optional)")
            if st.form_submit_button("Add to itinerary"):
                try:
                    run_async(flow.add_itinerary_item(
                        trip.id, day=day, title=title, location=location or None,
                    ))
                    st.rerun()
                except (ValidationError, ValueError) as e:
                    st.error(str(e))


def render_expenses_page(components: AppComponents, trip: Trip, user: str):
    """Render expenses, balances and the quick converter."""
    st.title(f"💸 Expenses · {trip.name}")
    flow = components.expense_flow
    settings = get_settings().app

    summary = run_async(flow.get_summary(trip.id, viewer_id=user, viewer_name=user))

    st.markdown("### Total spent")
    if summary.totals:
        cols = st.columns(len(summary.totals))
        for col, (currency, total) in zip(cols, sorted(summary.totals.items())):
            col.markdown(
                f"<div class='big-number'>{round_for_display(total):,}</div>{currency}",
                unsafe_allow_html=True,
            )
    else:
        st.info("No expenses yet.")

    st.markdown("### Balances")
    for person in summary.participants:
        label = person.name if person.in_roster else f"{person.name} (not on trip)"
        if person.is_settled:
            st.markdown(f"👤 **{label}**: ✅ settled")
            continue
        parts = []
        for line in person.lines:
            css = "owed" if line.direction == BalanceDirection.OWED else "owes"
            signed = line.amount if line.direction == BalanceDirection.OWED else -line.amount
            parts.append(f"<span class='{css}'>{format_signed(signed)} {line.currency}</span>")
        st.markdown(f"👤 **{label}**: " + " · ".join(parts), unsafe_allow_html=True)

    st.markdown("---")
    st.markdown("### Add expense")
    with st.form("add_expense", clear_on_submit=True):
        item_name = st.text_input("Item")
        col1, col2 = st.columns(2)
        with col1:
            amount = st.number_input("Amount", min_value=0.0, step=100.0)
        with col2:
            currencies = [c.value for c in Currency]
            default = settings.default_currency
            currency = st.selectbox(
                "Currency",
                options=currencies,
                index=currencies.index(default) if default in currencies else 0,
            )
        payer = st.selectbox(
            "Paid by",
            options=trip.companions,
            index=trip.companions.index(user) if user in trip.companions else 0,
        )
        involved = st.multiselect("Split between", options=trip.companions, default=trip.companions)

        if st.form_submit_button("Save expense", type="primary"):
            draft = ExpenseDraft(
                item_name=item_name,
                amount=str(amount) if amount else None,
                currency=currency,
                payer=payer or "",
                involved=involved,
            )
            try:
                _, result = run_async(flow.add_expense(trip.id, draft, create_correlation_id()))
                st.success("Expense saved!")
                for warning in result.warnings:
                    st.warning(warning)
                st.rerun()
            except ExpenseValidationError as e:
                st.error(ExpenseValidator(settings.large_expense_threshold).get_user_friendly_summary(e.result))
            except StorageError as e:
                st.error(f"Could not save: {e}")

    st.markdown("---")
    st.markdown("### History")
    expenses = run_async(flow.list_expenses(trip.id))
    for day, day_expenses in group_expenses_by_day(expenses):
        st.markdown(f"**{day.isoformat()}**")
        for expense in day_expenses:
            col1, col2 = st.columns([5, 1])
            col1.markdown(
                f"{expense.item_name} · {expense.currency} {round_for_display(expense.amount):,} "
                f"· paid by {expense.payer or '?'} "
                f"· split {', '.join(expense.split_details) or 'nobody'}"
            )
            if col2.button("🗑️", key=f"del_{expense.id}"):
                run_async(flow.delete_expense(expense.id))
                st.rerun()

    st.markdown("---")
    st.markdown("### Quick converter")
    col1, col2, col3 = st.columns(3)
    with col1:
        foreign = st.number_input("Amount", min_value=0.0, value=1000.0, key="conv_amount")
    with col2:
        rate = st.number_input("Rate", min_value=0.0, value=settings.default_conversion_rate,
                               format="%.4f", key="conv_rate")
    with col3:
        st.metric(settings.default_currency, f"{convert_amount(foreign, rate):,}")


def render_weather_page(components: AppComponents, trip: Trip):
    """Render forecast and last-year weather for the trip days."""
    st.title(f"🌤️ Weather · {trip.name}")

    try:
        report = run_async(components.weather_flow.get_trip_weather(trip.id))
    except ConfigurationIncompleteError as e:
        st.warning(f"Trip {e.missing} not set. Finish the setup on the Trips page to see the weather.")
        return
    except LocationNotFoundError:
        st.error(f"Couldn't find '{trip.destination}' on the map. Try a different spelling.")
        return
    except WeatherSourceError:
        st.error("Weather service is unavailable right now. Please try again later.")
        return

    st.markdown(f"📍 {report.location.label}")

    if not report.has_data:
        st.info("No weather data available for these dates.")
        return

    if report.has_historical:
        st.caption("Days marked 📅 are beyond the forecast range and show last year's weather.")

    cols = st.columns(min(len(report.segments), 7))
    for i, segment in enumerate(report.segments):
        with cols[i % len(cols)]:
            icon = ICON_EMOJI[weather_icon(segment.weather_code)]
            hi = f"{segment.max_temp:.0f}°" if segment.max_temp is not None else "–"
            lo = f"{segment.min_temp:.0f}°" if segment.min_temp is not None else "–"
            st.markdown(
                f"**{segment.date.strftime('%m/%d')}**"
                + (" 📅" if segment.is_historical else "")
                + f"\n\n{icon} {weather_label(segment.weather_code)}\n\n{hi} / {lo}"
            )


def render_memories_page(components: AppComponents, trip: Trip, user: str):
    """Render the user's private memories on itinerary items."""
    st.title(f"📝 Memories · {trip.name}")
    st.caption("Only you can see your memories.")

    items = run_async(components.trip_flow.list_itinerary(trip.id))
    if not items:
        st.info("Add itinerary items on the Trips page to attach memories to them.")
        return

    flow = components.memory_flow
    memories = run_async(flow.list_memories(trip.id, user))
    by_item = {}
    for memory in memories:
        by_item.setdefault(memory.trip_item_id, []).append(memory)

    for item in items:
        st.markdown(f"#### {item.day.isoformat()} · {item.title}")
        for memory in by_item.get(item.id, []):
            col1, col2 = st.columns([5, 1])
            col1.markdown(
                f"{memory.mood_emoji or ''} {memory.content or ''}"
                + (f" [link]({memory.external_link})" if memory.external_link else "")
            )
            if col2.button("🗑️", key=f"del_mem_{memory.id}"):
                try:
                    run_async(flow.delete_memory(memory.id, user))
                    st.rerun()
                except PermissionDeniedError as e:
                    st.error(str(e))

        with st.form(f"memory_{item.id}", clear_on_submit=True):
            content = st.text_area("Memory", key=f"content_{item.id}")
            mood = st.text_input("Mood emoji", key=f"mood_{item.id}")
            link = st.text_input("Link (optional)", key=f"link_{item.id}")
            if st.form_submit_button("Save memory"):
                try:
                    run_async(flow.create_memory(user, MemoryCreate(
                        trip_item_id=item.id,
                        content=content,
                        mood_emoji=mood or None,
                        external_link=link or None,
                    )))
                    st.rerun()
                except ValidationError as e:
                    st.error(e.errors()[0]["msg"])

    mine = [m for m in memories if m.content]
    if mine:
        st.markdown("---")
        st.markdown("### Edit a memory")
        memory = st.selectbox("Memory", options=mine, format_func=lambda m: m.content[:40])
        new_content = st.text_area("New text", value=memory.content or "")
        if st.button("Update"):
            run_async(flow.update_memory(memory.id, user, MemoryUpdate(content=new_content)))
            st.rerun()


def render_settings_page(components: AppComponents):
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    status = validate_all_settings()

    services = [
        ("Google Sheets (Storage)", "google_sheets"),
        ("Open-Meteo (Weather)", "weather"),
        ("App", "app"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    if not components.uses_sheets:
        st.warning("Google Sheets is not connected; trips are kept in memory only.")

    st.markdown("---")
    st.markdown("### Recent activity")
    try:
        events = run_async(components.audit_logger.recent_events(limit=20))
    except StorageError as e:
        st.error(f"Could not load the audit log: {e}")
        events = []
    for event in events:
        st.markdown(f"`{event.timestamp:%Y-%m-%d %H:%M}` {event.description}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file with your settings. "
        "See `.env.example` for the available variables."
    )


if __name__ == "__main__":
    main()
