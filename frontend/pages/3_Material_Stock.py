"""frontend/pages/3_Material_Stock.py

On-hand material stock per material group."""

from __future__ import annotations

import pandas as pd
import requests
import streamlit as st

from utils.api import api_get, api_send, error_detail, is_admin, require_login

st.title("🏭 Material Stock")
require_login()

try:
    groups = api_get("/material-groups")
    stocks = {stock["group_key"]: stock for stock in api_get("/material-stocks")}
except requests.RequestException as exc:
    st.error(f"Failed to load material stock: {error_detail(exc)}")
    st.stop()

rows = []
for group in groups:
    stock = stocks.get(group["key"], {})
    rows.append(
        {
            "group": group["name"],
            "parts": ", ".join(group["parts"]),
            "quantity": stock.get("quantity", 0),
            "level": stock.get("stock_level", "empty"),
            "last updated": stock.get("last_updated_formatted", "Never"),
        }
    )
st.dataframe(pd.DataFrame(rows), hide_index=True, use_container_width=True)

if is_admin():
    with st.form("stock_form"):
        values = {
            group["key"]: st.number_input(
                group["name"],
                min_value=0,
                step=1,
                value=int(stocks.get(group["key"], {}).get("quantity", 0)),
            )
            for group in groups
        }
        submitted = st.form_submit_button("Save stock")
    if submitted:
        payload = {
            key: {"groupName": next(g["name"] for g in groups if g["key"] == key), "quantity": int(quantity)}
            for key, quantity in values.items()
        }
        try:
            result = api_send("POST", "/material-stocks", json={"stocks": payload})
        except requests.RequestException as exc:
            st.error(f"Save failed: {error_detail(exc)}")
        else:
            st.success(result.get("message", "Saved"))
            st.rerun()

    if st.button("Clear all stock records"):
        try:
            api_send("DELETE", "/material-stocks/clear")
        except requests.RequestException as exc:
            st.error(f"Clear failed: {error_detail(exc)}")
        else:
            st.rerun()
