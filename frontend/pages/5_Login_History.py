r"""frontend/pages/5_Login_History.py

Recent sign-in activity (admin only)."""

from __future__ import annotations

import pandas as pd
import requests
import streamlit as st

from utils.api import api_get, error_detail, is_admin, require_login

st.title("🗒️ Login History")
st.caption("The 50 most recent logins, failed attempts and logouts.")
require_login()

if not is_admin():
    st.warning("Only admins can view the login history.")
    st.stop()

with st.spinner("Loading login history…"):
    try:
        payload = api_get("/login-history")
    except requests.RequestException as exc:
        st.error(f"Failed to fetch login history: {error_detail(exc)}")
        payload = {}

events = payload.get("history", [])
if not events:
    st.info("No login events yet.")
else:
    df = pd.DataFrame(events)
    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True).dt.strftime("%Y-%m-%d %H:%M:%S")
    display_columns = ["timestamp", "username", "role", "action", "reason", "ip", "user_agent", "session_id"]
    st.dataframe(df[[col for col in display_columns if col in df.columns]], use_container_width=True)
    st.caption(f"{payload.get('total_entries', len(events))} events retained.")
