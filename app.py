"""
Options Chain Scatter Plot — Streamlit Dashboard
Strike price vs expiration, bubble size = open interest, colour = call/put.
Data: Polygon.io options reference API (first page only).

Run:
    streamlit run app.py
"""

from datetime import datetime

import plotly.express as px
import streamlit as st

from analyzer import chain_summary, open_interest_by_expiration
from config import configure_logging, load_settings
from fetcher import client_from_settings
from interaction import HoverController, tooltip_lines, tooltip_text
from models import contracts_to_frame
from orchestrator import FetchOrchestrator, FetchStatus
from renderer import render_scene, to_figure
from scales import responsive_viewport

settings = load_settings()
configure_logging(settings.LOG_LEVEL)

st.set_page_config(
    page_title="Options Data Visualization",
    page_icon="📊",
    layout="wide",
)


def _request_refetch():
    st.session_state["refetch_requested"] = True


# ── Sidebar ────────────────────────────────────────────────────────────────────
with st.sidebar:
    st.header("⚙️ Configuration")
    ticker = st.text_input("Underlying ticker", value=settings.ticker).strip().upper() or settings.ticker
    expiry_filter = st.text_input("Expiration date filter (YYYY-MM-DD, optional)", value="").strip() or None
    container_width = st.slider("Chart width (px)", 632, 1232, 1032, 8)
    st.button("🔄 Refresh", type="primary", use_container_width=True, on_click=_request_refetch)

st.title("📊 Options Data Visualization")
st.caption(f"Interactive {ticker} options chain analysis — powered by Polygon.io")

# ── Fetch ──────────────────────────────────────────────────────────────────────
orch = st.session_state.get("orchestrator")
needs_fetch = st.session_state.pop("refetch_requested", False)
if orch is None or orch.ticker != ticker or orch.expiration_date != expiry_filter:
    orch = FetchOrchestrator(
        client_from_settings(settings),
        ticker,
        expiration_date=expiry_filter,
        active=settings.POLYGON_ACTIVE_ONLY,
    )
    st.session_state["orchestrator"] = orch
    needs_fetch = True

if needs_fetch:
    with st.spinner("Loading options data..."):
        orch.refetch()
    st.session_state["last_updated"] = datetime.now()

state = orch.state
last_updated = st.session_state.get("last_updated")
if last_updated:
    st.caption(f"Last updated {last_updated.strftime('%H:%M:%S')}")

# ── Error / empty states ───────────────────────────────────────────────────────
if state.status is FetchStatus.ERROR:
    st.error(f"**Failed to load options data**\n\n{state.error}")
    if state.error_kind == "ConfigurationError":
        st.info("Add `POLYGON_API_KEY=...` to your environment or `.env` file, then restart the app.", icon="🔑")
    st.button("↻ Retry", on_click=_request_refetch)
    st.stop()

if state.status is FetchStatus.LOADING:
    st.info("Loading options data...")
    st.stop()

if state.is_empty:
    st.info(
        "**No Data Available**\n\nNo options data found for the selected criteria.",
        icon="📉",
    )
    st.stop()

contracts = state.data

# ── Summary metrics ────────────────────────────────────────────────────────────
summary = chain_summary(contracts)
c1, c2, c3, c4 = st.columns(4)
c1.metric("Total Contracts", f"{summary.total_contracts:,}")
c2.metric("Call Options", f"{summary.calls:,}")
c3.metric("Put Options", f"{summary.puts:,}")
c4.metric("Total Open Interest", f"{summary.total_open_interest:,}")
if summary.open_interest_missing:
    st.caption(
        f"⚠️ {summary.open_interest_missing:,} contract(s) had no open interest reported; "
        "they are drawn at minimum size and counted as 0 above."
    )

st.divider()

# ── Scatter plot ───────────────────────────────────────────────────────────────
st.subheader("🔵 Options Chain Scatter Plot")
st.caption("Strike price vs expiration date with open interest sizing — hover or click circles for details")

scene = render_scene(contracts, responsive_viewport(container_width))
hover = HoverController(scene)

# Sequence numbers are process-wide, so a new dataset never inherits an old selection.
chart_key = f"scatter-{orch.latest_seq}"
selection = (st.session_state.get(chart_key) or {}).get("selection") or {}
points = [p for p in selection.get("points", []) if p.get("curve_number") == 0]
if points and 0 <= points[0].get("point_index", -1) < len(scene.marks):
    ox, oy = scene.origin
    p = points[0]
    scene.dispatch("pointerenter", p["point_index"], p["x"] + ox, p["y"] + oy)

fig = to_figure(
    scene,
    styles=hover.styles(),
    hover_texts=[tooltip_text(m.contract) for m in scene.marks],
)

col_chart, col_detail = st.columns([4, 1])
with col_chart:
    st.plotly_chart(
        fig,
        key=chart_key,
        on_select="rerun",
        selection_mode="points",
        use_container_width=False,
    )
with col_detail:
    st.markdown("**Selected contract**")
    if hover.state:
        head, *rest = tooltip_lines(hover.state.contract)
        st.markdown(f"**{head}**")
        for line in rest:
            st.write(line)
        st.caption(f"at ({hover.state.local_x:.0f}, {hover.state.local_y:.0f}) px in plot")
    else:
        st.caption("Click a circle to pin its details here.")

# ── Open interest by expiration ────────────────────────────────────────────────
st.subheader("🗺️ Open Interest by Expiration")
oi_df = open_interest_by_expiration(contracts)
fig_oi = px.bar(
    oi_df, x="expiration_date", y=["call", "put"],
    barmode="group",
    color_discrete_map={"call": scene.scales.color("call"), "put": scene.scales.color("put")},
    labels={"value": "Open Interest", "expiration_date": "Expiration", "variable": "Type"},
    title=f"{ticker} — Open Interest by Expiration",
)
st.plotly_chart(fig_oi, use_container_width=True)

# ── Raw data ───────────────────────────────────────────────────────────────────
with st.expander("🗃️ Raw Chain Data"):
    raw_df = contracts_to_frame(contracts)
    st.dataframe(raw_df, use_container_width=True, hide_index=True)
    st.download_button(
        "⬇️ Download CSV",
        raw_df.to_csv(index=False),
        f"options_chain_{ticker}.csv",
        "text/csv",
    )
