"""Streamlit dashboard for SafetyMap."""

from __future__ import annotations

import logging
import os
import sys

import pandas as pd
import streamlit as st

project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from safetymap.common.config import AppConfig, load_config, resolve_config_path
from safetymap.common.errors import ValidationError
from safetymap.common.logging_setup import configure_logging
from safetymap.common.models import ReviewDraft, utcnow
from safetymap.dashboard import state as machine
from safetymap.dashboard.aggregates import PERIODS, ReviewFilters, nearby_summary, recent_reviews
from safetymap.dashboard.render import build_deck, build_snapshot, diff_markers, rating_class, time_ago
from safetymap.dashboard.session import DashboardSession, Notification, Outcome
from safetymap.routing.directions import DirectionsProvider
from safetymap.store.gateway import ReviewStoreGateway

logger = logging.getLogger(__name__)

NOTIFY = {
    "success": st.success,
    "info": st.info,
    "warning": st.warning,
    "error": st.error,
}
STAT_LABELS = {
    "totalReviews": "Total reviews",
    "avgSafety": "Avg safety",
    "avgInfra": "Avg infrastructure",
    "recentReviews": "Last 7 days",
}


@st.cache_resource
def build_session(config: AppConfig) -> DashboardSession:
    gateway = ReviewStoreGateway(config.store.base_url, timeout=config.store.timeout_seconds)
    provider = None
    if config.routing.api_key:
        provider = DirectionsProvider.from_api_key(config.routing.api_key, config.routing.travel_mode)
    else:
        logger.warning("%s is not set; route search disabled.", config.routing.api_key_env)
    return DashboardSession(gateway, provider)


def _apply(outcome: Outcome) -> None:
    st.session_state["dashboard"] = outcome.state
    if outcome.notification:
        st.session_state.setdefault("notifications", []).append(outcome.notification)


def _show_notifications() -> None:
    for note in st.session_state.pop("notifications", []):
        NOTIFY.get(note.level, st.info)(note.message)


def _route_controls(session: DashboardSession, dashboard) -> None:
    st.sidebar.subheader("Route")
    origin = st.sidebar.text_input("Origin", key="route_origin")
    destination = st.sidebar.text_input("Destination", key="route_destination")
    col_go, col_clear = st.sidebar.columns(2)
    if col_go.button("Find Route"):
        _apply(session.search_route(dashboard, origin, destination))
        st.rerun()
    if col_clear.button("Clear"):
        _apply(session.clear_route(dashboard))
        st.rerun()


def _filter_controls(session: DashboardSession, dashboard) -> None:
    st.sidebar.subheader("Filters")
    min_safety = st.sidebar.slider("Safety", 1, 5, value=dashboard.filters.min_safety, format="%d+")
    min_infra = st.sidebar.slider("Infrastructure", 1, 5, value=dashboard.filters.min_infrastructure, format="%d+")
    period = st.sidebar.selectbox("Period", PERIODS, index=PERIODS.index(dashboard.filters.period))
    col_apply, col_reset = st.sidebar.columns(2)
    if col_apply.button("Apply"):
        filters = ReviewFilters(min_safety=min_safety, min_infrastructure=min_infra, period=period)
        _apply(session.apply_filters(dashboard, filters))
        st.rerun()
    if col_reset.button("Reset"):
        _apply(session.reset_filters(dashboard))
        st.rerun()


def _review_form(session: DashboardSession, dashboard, config: AppConfig) -> None:
    with st.expander("Add a review"):
        with st.form("review_form", clear_on_submit=True):
            lat = st.number_input("Latitude", -90.0, 90.0, value=config.dashboard.default_lat, format="%.6f")
            lng = st.number_input("Longitude", -180.0, 180.0, value=config.dashboard.default_lng, format="%.6f")
            safety = st.slider("Safety rating", 1, 5, value=3)
            infra = st.slider("Infrastructure rating", 1, 5, value=3)
            address = st.text_input("Address")
            description = st.text_area("Description")
            if st.form_submit_button("Save review"):
                draft = ReviewDraft(
                    lat=float(lat),
                    lng=float(lng),
                    safety_rating=int(safety),
                    infrastructure_rating=int(infra),
                    description=description,
                    address=address or None,
                    timestamp=utcnow(),
                )
                try:
                    draft.validate()
                except ValidationError as exc:
                    st.session_state.setdefault("notifications", []).append(Notification(exc.message, "warning"))
                else:
                    _apply(session.submit_review(dashboard, draft))
                st.rerun()

        summary = nearby_summary(dashboard.reviews, lat, lng)
        if summary:
            NOTIFY[summary.level](summary.message)


def _review_details(session: DashboardSession, dashboard) -> None:
    st.subheader("Recent reviews")
    recent = recent_reviews(dashboard.reviews, st.session_state["recent_limit"])
    if not recent:
        st.info("No reviews yet.")
        return
    now = utcnow()
    table = pd.DataFrame(
        [
            {
                "id": r.id,
                "safety": f"S: {r.safety_rating} ({rating_class(r.safety_rating)})",
                "infrastructure": f"I: {r.infrastructure_rating} ({rating_class(r.infrastructure_rating)})",
                "description": r.description[:60],
                "when": time_ago(r.timestamp, now),
            }
            for r in recent
        ]
    )
    st.dataframe(table, use_container_width=True, hide_index=True)

    by_id = {r.id: r for r in dashboard.reviews}
    selected = st.selectbox("Review", options=list(by_id), format_func=lambda i: by_id[i].address or f"Review {i}")
    review = by_id[selected]
    st.markdown(
        f"**{review.address or 'Unknown Location'}**  \n"
        f"Added on {review.timestamp:%Y-%m-%d}  \n"
        f"Safety: {review.safety_rating}/5 · Infrastructure: {review.infrastructure_rating}/5  \n"
        f"{review.description}  \n"
        f"Location: {review.lat:.6f}, {review.lng:.6f}"
    )
    if st.button("Delete review"):
        _apply(session.delete_review(dashboard, review.id))
        st.rerun()


def main() -> None:
    config = load_config(resolve_config_path())
    configure_logging(config.logging.level)
    session = build_session(config)

    st.set_page_config(page_title="SafetyMap", layout="wide")
    st.title("SafetyMap")
    st.caption("Community safety and infrastructure reviews, with route proximity.")
    st.session_state["recent_limit"] = config.dashboard.recent_limit

    if "dashboard" not in st.session_state:
        initial = machine.initial_state(
            buffer_m=config.routing.buffer_meters,
            recent_days=config.dashboard.recent_days,
        )
        _apply(session.load(initial))
    if st.sidebar.button("Refresh data now"):
        _apply(session.load(st.session_state["dashboard"]))

    dashboard = st.session_state["dashboard"]
    _route_controls(session, dashboard)
    _filter_controls(session, dashboard)
    show_heatmap = st.sidebar.toggle("Heat map", value=False)
    _show_notifications()

    snapshot = build_snapshot(dashboard)
    diff = diff_markers(st.session_state.get("snapshot"), snapshot)
    if diff.changed:
        logger.debug("Markers: +%d -%d", len(diff.added), len(diff.removed))
    st.session_state["snapshot"] = snapshot

    columns = st.columns(4)
    for column, (key, label) in zip(columns, STAT_LABELS.items()):
        column.metric(label, snapshot.stats.get(key) or "—")
    st.caption(f"Mode: {snapshot.mode.value.replace('_', ' ')} · {snapshot.badge}")

    st.pydeck_chart(
        build_deck(
            snapshot,
            center=(config.dashboard.default_lat, config.dashboard.default_lng),
            zoom=config.dashboard.zoom,
            show_heatmap=show_heatmap,
            heatmap_radius=config.dashboard.heatmap_radius,
        )
    )

    _review_form(session, dashboard, config)
    _review_details(session, dashboard)


if __name__ == "__main__":
    main()
