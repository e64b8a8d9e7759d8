"""Streamlit dashboard for the resource planner."""

from __future__ import annotations

import datetime
import os
from typing import Any, Dict, List, Optional

import pandas as pd
import requests
import streamlit as st

# ==========================================
# Configuration & Constants
# ==========================================
API_BASE_URL = os.getenv("API_BASE_URL", "http://127.0.0.1:8000")
ALLOCATION_CHOICES = [0.25, 0.5, 0.75, 1.0]

st.set_page_config(
    page_title="Resource Planner",
    page_icon="📅",
    layout="wide",
)


# ==========================================
# API Helper Functions
# ==========================================
def _auth_headers() -> Dict[str, str]:
    token = st.session_state.get("access_token")
    return {"Authorization": f"Bearer {token}"} if token else {}


def _error_detail(response: requests.Response) -> str:
    try:
        detail = response.json().get("detail")
    except ValueError:
        return response.text
    if isinstance(detail, dict):
        return str(detail.get("message", detail))
    return str(detail)


def api_get(path: str, params: Optional[Dict[str, Any]] = None) -> Optional[Any]:
    try:
        response = requests.get(
            f"{API_BASE_URL}{path}",
            params={key: value for key, value in (params or {}).items() if value is not None},
            headers=_auth_headers(),
            timeout=10,
        )
        if response.status_code >= 400:
            st.error(f"{path} failed: {_error_detail(response)}")
            return None
        return response.json()
    except requests.exceptions.RequestException as e:
        st.error(f"Backend connection failed: {e}")
        return None


def login(admin_token: str, display_name: str) -> bool:
    try:
        response = requests.post(
            f"{API_BASE_URL}/login",
            json={"admin_token": admin_token, "display_name": display_name or None},
            timeout=5,
        )
    except requests.exceptions.RequestException as e:
        st.error(f"Backend connection failed: {e}")
        return False
    if response.status_code != 200:
        st.error(f"Login failed: {_error_detail(response)}")
        return False
    payload = response.json()
    st.session_state["access_token"] = payload["access_token"]
    st.session_state["display_name"] = payload["display_name"]
    return True


def logout() -> None:
    """Revokes the server-side session before local state is cleared."""
    try:
        response = requests.post(f"{API_BASE_URL}/logout", headers=_auth_headers(), timeout=5)
    except requests.exceptions.RequestException as e:
        st.warning(f"Could not reach backend to sign out: {e}")
        return
    if response.status_code >= 400:
        st.warning(f"Sign out failed: {_error_detail(response)}")


def validate_assignment(candidate: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Calls the read-only overallocation check."""
    try:
        response = requests.post(
            f"{API_BASE_URL}/assignments/validate",
            json=candidate,
            headers=_auth_headers(),
            timeout=10,
        )
        if response.status_code >= 400:
            st.error(f"Validation failed: {_error_detail(response)}")
            return None
        return response.json()
    except requests.exceptions.RequestException as e:
        st.error(f"Backend connection failed: {e}")
        return None


def save_assignment(candidate: Dict[str, Any], allow_overallocation: bool) -> Optional[Dict[str, Any]]:
    try:
        response = requests.post(
            f"{API_BASE_URL}/assignments",
            json={**candidate, "allow_overallocation": allow_overallocation},
            headers=_auth_headers(),
            timeout=10,
        )
        if response.status_code >= 400:
            st.error(f"Save failed: {_error_detail(response)}")
            return None
        return response.json()
    except requests.exceptions.RequestException as e:
        st.error(f"Backend connection failed: {e}")
        return None


# ==========================================
# UI Page Functions
# ==========================================
def render_login_sidebar() -> None:
    if st.session_state.get("access_token"):
        st.sidebar.success(f"Signed in as {st.session_state.get('display_name')}")
        if st.sidebar.button("Sign out"):
            logout()
            st.session_state.pop("access_token", None)
            st.session_state.pop("display_name", None)
            st.rerun()
        return

    with st.sidebar.form("login"):
        admin_token = st.text_input("Admin token", type="password")
        display_name = st.text_input("Display name")
        if st.form_submit_button("Sign in") and admin_token:
            if login(admin_token, display_name):
                st.rerun()


def render_workload_page() -> None:
    st.header("📊 Workload Timeline")
    st.markdown("Daily allocation per active person. Red cells exceed 100%.")

    today = datetime.date.today()
    col1, col2, col3 = st.columns(3)
    with col1:
        start_date = st.date_input("From", today - datetime.timedelta(days=7))
    with col2:
        end_date = st.date_input("To", today + datetime.timedelta(days=30))
    with col3:
        overallocated_only = st.checkbox("Only overallocated people")

    timeline = api_get(
        "/reports/workload",
        {
            "start_date": str(start_date),
            "end_date": str(end_date),
            "overallocated_only": str(overallocated_only).lower(),
        },
    )
    if not timeline:
        return

    people: List[Dict[str, Any]] = timeline.get("people", [])
    if not people:
        st.info("No active people match the current filters.")
        return

    grid = pd.DataFrame(
        {
            entry["name"]: {day["date"]: day["total_allocation"] for day in entry["days"]}
            for entry in people
        }
    ).T
    st.dataframe(
        grid.style.format("{:.0%}").map(
            lambda value: "background-color: #f8d7da" if value > 1.0 else ""
        ),
        use_container_width=True,
    )

    summary = pd.DataFrame(
        [
            {
                "Person": entry["name"],
                "Profile": entry["profile"],
                "Average": f"{entry['average_allocation'] * 100:.0f}%",
                "Peak": f"{entry['peak_allocation'] * 100:.0f}%",
                "Overallocated days": entry["overallocated_days"],
            }
            for entry in people
        ]
    )
    st.write("### Summary")
    st.dataframe(summary, use_container_width=True)


def render_assignment_page() -> None:
    st.header("🗂️ New Assignment")
    st.markdown("Check a candidate assignment for overallocation before saving it.")

    people = api_get("/people", {"status": "Active"}) or []
    projects = api_get("/projects") or []
    if not people or not projects:
        st.info("At least one active person and one project are required.")
        return

    person_names = {person["name"]: person["id"] for person in people}
    project_names = {project["name"]: project["id"] for project in projects}

    col1, col2 = st.columns(2)
    with col1:
        person_name = st.selectbox("Person", list(person_names))
        project_name = st.selectbox("Project", list(project_names))
        allocation = st.selectbox(
            "Allocation",
            ALLOCATION_CHOICES,
            index=1,
            format_func=lambda value: f"{value * 100:.0f}%",
        )
    with col2:
        start_date = st.date_input("Start date", datetime.date.today())
        end_date = st.date_input("End date", datetime.date.today() + datetime.timedelta(days=14))
        is_billable = st.checkbox("Billable", value=True)

    candidate = {
        "person_id": person_names[person_name],
        "project_id": project_names[project_name],
        "start_date": str(start_date),
        "end_date": str(end_date),
        "allocation": allocation,
        "is_billable": is_billable,
    }

    if st.button("Check availability", type="primary"):
        with st.spinner("Checking existing assignments..."):
            st.session_state["last_validation"] = validate_assignment(
                {key: candidate[key] for key in ("person_id", "start_date", "end_date", "allocation")}
            )
            st.session_state["last_candidate"] = candidate

    validation = st.session_state.get("last_validation")
    if not validation or st.session_state.get("last_candidate") != candidate:
        return

    if validation["status"] == "invalid":
        st.error(f"Invalid assignment: {validation.get('reason')}")
        return

    allow_overallocation = False
    if validation["is_overallocated"]:
        warning = validation.get("warning") or {}
        st.warning(warning.get("message", "This assignment overallocates the person."))
        st.dataframe(pd.DataFrame(validation["overallocated_days"]), use_container_width=True)
        allow_overallocation = st.checkbox("Save anyway")
        if not allow_overallocation:
            return
    else:
        st.success("No overallocation detected.")

    if st.button("Save assignment"):
        result = save_assignment(candidate, allow_overallocation)
        if result:
            st.success("Assignment saved.")
            st.session_state.pop("last_validation", None)


def render_occupation_page() -> None:
    st.header("📋 Occupation Report")

    today = datetime.date.today()
    col1, col2 = st.columns(2)
    with col1:
        start_date = st.date_input("Report from", today.replace(day=1))
    with col2:
        end_date = st.date_input("Report to", today + datetime.timedelta(days=30))

    report = api_get(
        "/reports/occupation",
        {"start_date": str(start_date), "end_date": str(end_date)},
    )
    if not report:
        return
    rows = report.get("rows", [])
    if not rows:
        st.info("No assignments overlap this window.")
        return

    frame = pd.DataFrame(rows)
    st.dataframe(
        frame[
            [
                "person_name",
                "project_name",
                "start_date",
                "end_date",
                "allocation",
                "days_in_window",
                "allocated_days",
            ]
        ],
        use_container_width=True,
    )
    by_project = frame.groupby("project_name")["allocated_days"].sum().sort_values(ascending=False)
    st.write("### Allocated days per project")
    st.bar_chart(by_project)

    overallocated = api_get("/reports/overallocated_projects") or []
    if overallocated:
        st.write("### Projects above their FTE budget")
        st.dataframe(pd.DataFrame(overallocated), use_container_width=True)


# ==========================================
# Main App Router
# ==========================================
def main() -> None:
    st.sidebar.title("Resource Planner")
    st.sidebar.markdown("---")
    render_login_sidebar()
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigation",
        ["Workload", "New Assignment", "Occupation"],
    )

    st.sidebar.markdown("---")
    st.sidebar.caption(f"API: {API_BASE_URL}")

    if page == "Workload":
        render_workload_page()
    elif page == "New Assignment":
        render_assignment_page()
    else:
        render_occupation_page()


if __name__ == "__main__":
    main()
