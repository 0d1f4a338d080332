r"""frontend/app.py

Streamlit multipage application for the EDI stock projection system.

This file configures global options, handles sign-in and shows the backend
status.  Individual pages live in the ``pages/`` subdirectory; Streamlit will
automatically load them.  To run the app locally use:

```bash
streamlit run app.py
```
"""

import requests
import streamlit as st

from utils.api import API_URL, error_detail, get_headers

st.set_page_config(page_title="EDI Stock Projection", layout="wide")

st.title("EDI Order & Stock Projection")

status = "⚠️ not reachable"

try:
    response = requests.get(f"{API_URL}/health", timeout=5)
except requests.RequestException:
    response = None

if response is not None and response.ok:
    status = "✅ healthy"

st.caption(f"Backend API: {status} · {API_URL}  ·  Set `API_URL` if needed.")

if st.session_state.get("api_token"):
    st.sidebar.success(f"Signed in as {st.session_state.get('username')} ({st.session_state.get('role')})")
    if st.sidebar.button("Sign out"):
        try:
            requests.post(f"{API_URL}/logout", headers=get_headers(), timeout=10)
        except requests.RequestException as exc:
            st.sidebar.warning(f"Logout request failed: {exc}")
        for key in ("api_token", "username", "role"):
            st.session_state.pop(key, None)
        st.rerun()
else:
    with st.sidebar.form("login"):
        username = st.text_input("Username")
        password = st.text_input("Password", type="password", help="User accounts use a 4 digit password.")
        submitted = st.form_submit_button("Sign in")
    if submitted:
        try:
            resp = requests.post(
                f"{API_URL}/login",
                json={"username": username, "password": password},
                timeout=10,
            )
            resp.raise_for_status()
        except requests.RequestException as exc:
            st.sidebar.error(f"Login failed: {error_detail(exc)}")
        else:
            payload = resp.json()
            st.session_state["api_token"] = payload["token"]
            st.session_state["username"] = payload["username"]
            st.session_state["role"] = payload["role"]
            st.rerun()

st.markdown(
    """
    Track EDI purchase orders for the configured part numbers, record monthly
    forecasts and material stock, and see which deliveries the current stock
    can cover.  Part numbers that share a material group draw from one stock
    pool in delivery-date order.  Use the navigation sidebar to open the
    orders, forecasts, material stock and projection pages.  Only admin
    accounts can import data or change statuses.
    """
)
