"""frontend/pages/1_Orders.py

EDI orders: import, status editing, export and per-part demand charts."""

from __future__ import annotations

from typing import Any, Dict, List

import altair as alt
import pandas as pd
import requests
import streamlit as st

from utils.api import API_URL, api_get, api_send, error_detail, get_headers, is_admin, require_login

STATUS_COLORS = {"none": "#d62728", "comment": "#ff7f0e", "ok": "#2ca02c"}


def _status_category(status: Any) -> str:
    text = str(status or "").strip()
    if not text:
        return "none"
    return "ok" if text.lower() == "ok" else "comment"


def _orders_frame(orders: List[Dict[str, Any]]) -> pd.DataFrame:
    df = pd.DataFrame(orders)
    if df.empty:
        return df
    df["status_category"] = df["status"].map(_status_category)
    df["delivery"] = pd.to_datetime(df["delivery_date"], format="%Y/%m/%d", errors="coerce")
    return df


st.title("📦 EDI Orders")
require_login()

if is_admin():
    with st.expander("Import WebEDI export", expanded=False):
        upload = st.file_uploader("EDI file (Shift-JIS or UTF-8, tab/comma separated)", type=["csv", "txt", "tsv"])
        if upload is not None and st.button("Import orders"):
            try:
                result = api_send(
                    "POST",
                    "/import-edi",
                    files={"ediFile": (upload.name, upload.getvalue(), upload.type or "text/plain")},
                )
            except requests.RequestException as exc:
                st.error(f"Import failed: {error_detail(exc)}")
            else:
                st.success(result.get("message", "Import completed"))
                st.json(result.get("debug", {}))

try:
    orders = api_get("/edi-data")
except requests.RequestException as exc:
    st.error(f"Failed to load orders: {error_detail(exc)}")
    orders = []

df = _orders_frame(orders)
if df.empty:
    st.info("No orders yet. An admin can import a WebEDI export above.")
    st.stop()

c1, c2, c3 = st.columns(3)
c1.metric("Orders", len(df))
c2.metric("Open", int((df["status_category"] != "ok").sum()))
c3.metric("Open quantity", int(df.loc[df["status_category"] != "ok", "quantity"].sum()))

display_columns = ["id", "order_number", "drawing_number", "product_name", "quantity", "delivery_date", "status"]
if is_admin():
    edited = st.data_editor(
        df[display_columns],
        disabled=[col for col in display_columns if col != "status"],
        hide_index=True,
        use_container_width=True,
        key="orders_editor",
    )
    if st.button("Save status changes"):
        changed = edited[edited["status"].fillna("") != df["status"].fillna("")]
        for _, row in changed.iterrows():
            try:
                api_send("PUT", f"/edi-data/{int(row['id'])}", json={"status": row["status"] or ""})
            except requests.RequestException as exc:
                st.error(f"Order {row['order_number']}: {error_detail(exc)}")
        st.success(f"Saved {len(changed)} status change(s).")
        st.rerun()
else:
    st.dataframe(df[display_columns], hide_index=True, use_container_width=True)

st.write("### Deliveries per part number")
chart = (
    alt.Chart(df.dropna(subset=["delivery"]))
    .mark_bar()
    .encode(
        x=alt.X("delivery:T", title="Delivery date"),
        y=alt.Y("sum(quantity):Q", title="Quantity"),
        color=alt.Color(
            "status_category:N",
            scale=alt.Scale(domain=list(STATUS_COLORS), range=list(STATUS_COLORS.values())),
            title="Status",
        ),
        tooltip=["order_number", "drawing_number", "quantity", "delivery_date", "status"],
    )
    .properties(height=180)
    .facet(row=alt.Row("drawing_number:N", title=None))
)
st.altair_chart(chart, use_container_width=True)

st.write("### Export")
e1, e2 = st.columns(2)
for column, fmt, mime in ((e1, "csv", "text/csv"), (e2, "json", "application/json")):
    try:
        response = requests.get(f"{API_URL}/export/{fmt}", headers=get_headers(), timeout=30)
        response.raise_for_status()
    except requests.RequestException as exc:
        column.error(f"{fmt.upper()} export failed: {error_detail(exc)}")
        continue
    column.download_button(
        f"Download {fmt.upper()}",
        data=response.content,
        file_name=f"EDI_Orders.{fmt}",
        mime=mime,
    )
