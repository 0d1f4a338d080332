"""frontend/pages/2_Forecasts.py

Monthly forecast entry and Excel import."""

from __future__ import annotations

from typing import List

import pandas as pd
import requests
import streamlit as st

from utils.api import api_get, api_send, error_detail, is_admin, require_login

MONTH_KEYS: List[str] = [f"{month:02d}/01" for month in range(1, 13)]


st.title("🔮 Forecasts")
st.caption("Forecast buckets are monthly (MM/01) and are projected in the current year.")
require_login()

try:
    groups = api_get("/material-groups")
    forecasts = api_get("/forecasts")
except requests.RequestException as exc:
    st.error(f"Failed to load forecasts: {error_detail(exc)}")
    st.stop()

part_numbers = [part for group in groups for part in group["parts"]]
df = pd.DataFrame(forecasts)

if df.empty:
    grid = pd.DataFrame(0, index=part_numbers, columns=MONTH_KEYS)
else:
    grid = (
        df.pivot_table(index="drawing_number", columns="month_date", values="quantity", aggfunc="sum")
        .reindex(index=part_numbers, columns=MONTH_KEYS)
        .fillna(0)
    )

if not is_admin():
    st.dataframe(grid, use_container_width=True)
    st.stop()

edited = st.data_editor(grid, use_container_width=True, key="forecast_grid")
if st.button("Save forecasts"):
    payload = [
        {"drawing_number": part, "month_date": month, "quantity": int(edited.loc[part, month])}
        for part in edited.index
        for month in edited.columns
        if edited.loc[part, month] != grid.loc[part, month]
    ]
    if not payload:
        st.info("No changes to save.")
    else:
        try:
            result = api_send("POST", "/forecasts/batch", json={"forecasts": payload})
        except requests.RequestException as exc:
            st.error(f"Save failed: {error_detail(exc)}")
        else:
            st.success(result.get("message", "Saved"))
            st.rerun()

with st.expander("Import from Excel", expanded=False):
    upload = st.file_uploader("Forecast workbook", type=["xlsx", "xls"])
    if upload is not None and st.button("Import forecasts"):
        try:
            result = api_send(
                "POST",
                "/import-forecast",
                files={"forecastFile": (upload.name, upload.getvalue(), upload.type or "application/octet-stream")},
            )
        except requests.RequestException as exc:
            st.error(f"Import failed: {error_detail(exc)}")
        else:
            st.success(result.get("message", "Import completed"))
            st.json(result.get("details", {}))

if st.button("Clear all forecasts", type="secondary"):
    try:
        api_send("DELETE", "/forecasts/clear")
    except requests.RequestException as exc:
        st.error(f"Clear failed: {error_detail(exc)}")
    else:
        st.rerun()
