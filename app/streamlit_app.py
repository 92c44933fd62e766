"""Interactive Streamlit dashboard for built trips.

Pages:
  a) Trips overview (table + summary metrics)
  b) Trip map (pydeck PathLayer, one color per trip)
  c) Rejects (counts by reason + raw log)

Read-only consumption of the trips GeoJSON and the rejects log.

Run:
    streamlit run app/streamlit_app.py
"""

from __future__ import annotations

from typing import Optional

import pandas as pd
import pydeck as pdk
import streamlit as st

from app.utils import (
    default_view_state,
    filter_trips,
    read_rejects,
    read_trips,
    reject_counts,
    resolve_paths,
)


st.set_page_config(page_title="Trips Dashboard", layout="wide")

st.title("Trips Dashboard")


@st.cache_data(show_spinner=False)
def _load_trips(path: str) -> Optional[pd.DataFrame]:
    return read_trips(path)


@st.cache_data(show_spinner=False)
def _load_rejects(path: str) -> Optional[pd.DataFrame]:
    return read_rejects(path)


def page_overview(trips: pd.DataFrame):
    st.subheader("Trips overview")
    c1, c2, c3, c4 = st.columns(4)
    with c1:
        st.metric("Trips", len(trips))
    with c2:
        st.metric("Devices", trips["device_id"].nunique())
    with c3:
        st.metric("Total distance (km)", f"{trips['total_distance_km'].sum():.1f}")
    with c4:
        st.metric("Max speed (km/h)", f"{trips['max_speed_kmh'].max():.1f}")
    st.dataframe(trips.drop(columns=["path", "rgb"], errors="ignore"), use_container_width=True)


def page_map(trips: pd.DataFrame):
    st.subheader("Trip map")
    c_lat, c_lon, zoom = default_view_state(trips)
    layer = pdk.Layer(
        "PathLayer",
        data=trips[["trip_id", "device_id", "path", "rgb"]],
        get_path="path",
        get_color="rgb",
        width_scale=1,
        width_min_pixels=3,
        pickable=True,
    )
    view_state = pdk.ViewState(latitude=c_lat, longitude=c_lon, zoom=zoom)
    deck = pdk.Deck(initial_view_state=view_state, layers=[layer], tooltip={"text": "{trip_id} ({device_id})"})
    st.pydeck_chart(deck, use_container_width=True, height=600)


def page_rejects(rejects: Optional[pd.DataFrame]):
    st.subheader("Rejects")
    if rejects is None:
        st.warning("No rejects log found.")
        return
    st.dataframe(reject_counts(rejects), use_container_width=True)
    st.markdown("#### Log")
    st.dataframe(rejects, use_container_width=True)


def main():
    st.sidebar.header("Artifacts")
    defaults = resolve_paths()
    trips_path = st.sidebar.text_input("Trips GeoJSON", value=defaults["trips"])
    rejects_path = st.sidebar.text_input("Rejects log", value=defaults["rejects"])

    trips = _load_trips(trips_path)
    rejects = _load_rejects(rejects_path)

    page = st.sidebar.radio("Select page", options=["Trips overview", "Trip map", "Rejects"])
    if page == "Rejects":
        page_rejects(rejects)
        return

    if trips is None or trips.empty:
        st.warning(f"No trips found at '{trips_path}'.")
        return

    devices = sorted(trips["device_id"].astype(str).unique().tolist())
    selected = st.sidebar.multiselect("Devices", options=devices)
    min_points = st.sidebar.number_input("Min points per trip", min_value=2, value=2, step=1)
    trips = filter_trips(trips, devices=selected, min_points=min_points)
    if trips.empty:
        st.info("No trips in selection.")
        return

    if page == "Trips overview":
        page_overview(trips)
    else:
        page_map(trips)


if __name__ == "__main__":
    main()
