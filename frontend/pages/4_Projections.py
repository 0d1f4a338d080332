"""frontend/pages/4_Projections.py

Chronological stock projection per material group.

Each bar is one demand item (order or forecast bucket) in consumption order.
Bars are coloured by whether the stock left before the item covers it.
"""

from __future__ import annotations

import altair as alt
import pandas as pd
import requests
import streamlit as st

from utils.api import api_get, error_detail, require_login

SUFFICIENCY_COLORS = {"sufficient": "#2ca02c", "insufficient": "#d62728"}

st.title("📉 Stock Projection")
require_login()

try:
    payload = api_get("/projections")
except requests.RequestException as exc:
    st.error(f"Failed to load projections: {error_detail(exc)}")
    st.stop()

st.caption(f"Data generation {payload.get('generation')}")

for group in payload.get("groups", []):
    st.subheader(f"{group['group_name']} ({group['group_key']})")
    c1, c2, c3 = st.columns(3)
    c1.metric("Current stock", f"{group['current_stock']:.0f}")
    c2.metric("Stock after all demand", f"{group['final_stock']:.0f}")
    c3.metric("Short items", sum(1 for item in group["items"] if not item["sufficient"]))

    if group["all_insufficient"]:
        st.error("No stock recorded for this group: every demand item is insufficient.")
        continue
    if not group["items"]:
        st.info("No open demand for this group.")
        continue

    df = pd.DataFrame(group["items"])
    df["sequence"] = range(1, len(df) + 1)
    df["verdict"] = df["sufficient"].map({True: "sufficient", False: "insufficient"})
    df["label"] = df["date"] + " · " + df["part_number"] + " · " + df["kind"]

    bars = (
        alt.Chart(df)
        .mark_bar()
        .encode(
            x=alt.X("label:N", sort=alt.EncodingSortField("sequence"), title=None),
            y=alt.Y("quantity:Q", title="Quantity"),
            color=alt.Color(
                "verdict:N",
                scale=alt.Scale(domain=list(SUFFICIENCY_COLORS), range=list(SUFFICIENCY_COLORS.values())),
                title="Stock",
            ),
            tooltip=["key", "part_number", "date", "quantity", "before_stock", "after_stock", "shortfall"],
        )
    )
    balance = (
        alt.Chart(df)
        .mark_line(point=True, color="#1f77b4")
        .encode(x=alt.X("label:N", sort=alt.EncodingSortField("sequence")), y="after_stock:Q")
    )
    st.altair_chart((bars + balance).properties(height=320), use_container_width=True)

    with st.expander("Details"):
        st.dataframe(
            df[["date", "part_number", "kind", "quantity", "before_stock", "after_stock", "sufficient", "shortfall"]],
            hide_index=True,
            use_container_width=True,
        )
