from __future__ import annotations

import json

import pandas as pd
import streamlit as st
import altair as alt
from pydantic import ValidationError

from crm_reports.config import get_settings
from crm_reports.db import get_client, get_db, load_label_tables, load_records
from crm_reports.filters import SavedFilterRegistry, apply_filter_logic, coerce_group, describe_problems
from crm_reports.filters.fields import PROJECT_FILTER_FIELDS
from crm_reports.logging_config import configure_logging
from crm_reports.reports import DATA_SOURCES, ReportCache
from crm_reports.reports.formatting import (
    format_value,
    is_currency_metric,
    points_to_frame,
    suggested_chart_type,
)
from crm_reports.reports.sources import GROUP_LABELS, METRIC_LABELS

# =====================================================
# Page config
# =====================================================
st.set_page_config(page_title="CRM Reports", layout="wide")
st.title("📊 CRM Report Builder")

settings = get_settings()
configure_logging(None, level=settings.log_level)

# =====================================================
# MongoDB connection
# =====================================================
if not settings.mongo_uri:
    st.error(
        "Missing `MONGO_URI` in `.env`. Please create a `.env` file with `MONGO_URI=<your mongodb uri>` (do not put secrets in source control)."
    )
    st.stop()

try:
    client = get_client(settings.mongo_uri)
    # fail fast: ensure the client can reach the server
    client.admin.command("ping")
    db = get_db(client, settings.mongo_db)
except Exception as exc:  # pragma: no cover - runtime failure handling
    st.error(f"Unable to connect to MongoDB: {exc}")
    st.stop()

# =====================================================
# Helpers
# =====================================================
@st.cache_resource
def report_cache() -> ReportCache:
    """One memoized report cache per server process."""
    return ReportCache.from_settings()


@st.cache_data(ttl=60)
def load_collection(name: str) -> list[dict]:
    """Load a CRM collection as plain records (cached for a minute)."""
    return load_records(db[name])


@st.cache_data(ttl=60)
def label_tables() -> dict[str, dict[str, str]]:
    return load_label_tables(db)


def render_chart(df: pd.DataFrame, chart_type: str, metric_label: str, currency: bool):
    """Build an Altair chart for report points.

    Args:
        df: Frame with `name` and `value` columns, already ordered.
        chart_type: One of ``bar``, ``line`` or ``pie``.
        metric_label: Title for the value axis.
        currency: Format values as dollars in axes and tooltips.
    """
    value_format = "$,.0f" if currency else ",.0f"
    order = list(df["name"])
    tooltip = ["name:N", alt.Tooltip("value:Q", title=metric_label, format=value_format)]

    if chart_type == "pie":
        return (
            alt.Chart(df)
            .mark_arc()
            .encode(
                theta=alt.Theta("value:Q"),
                color=alt.Color("name:N", sort=order, title=None),
                tooltip=tooltip,
            )
            .properties(height=360)
        )

    mark = alt.Chart(df).mark_line(point=True) if chart_type == "line" else alt.Chart(df).mark_bar()
    return (
        mark.encode(
            x=alt.X("name:N", sort=order, title=None),
            y=alt.Y("value:Q", title=metric_label, axis=alt.Axis(format=value_format)),
            tooltip=tooltip,
        )
        .properties(height=360)
    )

# =====================================================
# SECTION 1 — REPORT BUILDER
# =====================================================
st.header("📈 Reports")

with st.sidebar:
    st.subheader("Report Builder")
    source_name = st.selectbox(
        "Data Source",
        list(DATA_SOURCES),
        format_func=lambda n: DATA_SOURCES[n].label,
    )
    source = DATA_SOURCES[source_name]

    filters: dict = {"date_range": {}, "equals": {}}
    for f in source.filter_fields:
        if f.type == "date":
            c1, c2 = st.columns(2)
            filters["date_range"]["start"] = c1.date_input("Start", value=None, key=f"{source_name}-start")
            filters["date_range"]["end"] = c2.date_input("End", value=None, key=f"{source_name}-end")
        else:
            options = ["all"] + [o.value for o in f.options]
            filters["equals"][f.field] = st.selectbox(
                f.label,
                options,
                format_func=lambda v, label=f.label: f"All {label}s" if v == "all" else v,
                key=f"{source_name}-{f.field}",
            )

    group_by = st.selectbox(
        "Group By",
        list(source.groupable_fields),
        format_func=lambda g: GROUP_LABELS.get(g, g),
        key=f"{source_name}-group",
    )
    metric = st.selectbox(
        "Metric",
        list(source.metrics),
        format_func=lambda m: METRIC_LABELS.get(m, m),
        key=f"{source_name}-metric",
    )

records = load_collection(source_name)
points = report_cache().get_or_compute(records, filters, group_by, metric, label_tables(), source)
df_points = points_to_frame(points, metric)
metric_label = METRIC_LABELS.get(metric, "Value")

chart_types = ["bar", "line", "pie"]
c1, c2 = st.columns([1, 3])
with c1:
    view = st.radio("View", ["Chart", "Table"], horizontal=True)
    chart_type = st.selectbox(
        "Chart",
        chart_types,
        index=chart_types.index(suggested_chart_type(group_by)),
        format_func=str.title,
    )
with c2:
    if df_points.empty:
        st.info("No data to display for the selected options.")
    elif view == "Chart":
        chart = render_chart(df_points, chart_type, metric_label, is_currency_metric(metric))
        st.altair_chart(chart, width="stretch")
    else:
        st.dataframe(
            df_points[["name", "display"]].rename(columns={"name": "Group", "display": metric_label}),
            width="stretch",
            hide_index=True,
        )

if not df_points.empty:
    total = df_points["value"].sum()
    st.caption(f"{len(df_points)} groups • total {format_value(total, metric)}")

st.divider()

# =====================================================
# SECTION 2 — PROJECT FILTERS
# =====================================================
st.header("🗂️ Projects")

if "saved_filters" not in st.session_state:
    st.session_state["saved_filters"] = SavedFilterRegistry()
registry: SavedFilterRegistry = st.session_state["saved_filters"]

projects = load_collection("projects")
st.caption(
    "Filterable fields: " + ", ".join(f"`{f.field}` ({f.type})" for f in PROJECT_FILTER_FIELDS)
)

saved_choice = st.selectbox(
    "Saved filters",
    [None] + [sf.id for sf in registry],
    format_func=lambda i: "(none)" if i is None else registry.get(i).name,
)
default_text = (
    registry.get(saved_choice).group.model_dump_json(indent=2) if saved_choice else ""
)
filter_text = st.text_area(
    "Filter (JSON)",
    value=default_text,
    height=180,
    placeholder='{"combinator": "AND", "conditions": [{"field": "status", "operator": "equals", "value": "In Progress"}]}',
)

active_filter = None
if filter_text.strip():
    try:
        active_filter = coerce_group(json.loads(filter_text))
    except (json.JSONDecodeError, ValidationError, TypeError) as exc:
        st.error(f"Invalid filter: {exc}")
        active_filter = None
    else:
        for problem in describe_problems(active_filter):
            st.warning(f"Ignored: {problem}")

filtered_projects = apply_filter_logic(projects, active_filter)
if len(filtered_projects) != len(projects):
    st.caption(f"Showing {len(filtered_projects)} of {len(projects)} projects.")

if filtered_projects:
    st.dataframe(pd.DataFrame(filtered_projects), width="stretch", hide_index=True)
else:
    st.info("No projects match the selected filters.")

c1, c2 = st.columns([3, 1])
with c1:
    filter_name = st.text_input("Save filter as")
with c2:
    if st.button("Save", disabled=active_filter is None or not filter_name.strip()):
        saved = registry.save(filter_name, active_filter)
        st.success(f"Saved '{saved.name}'")

# =====================================================
# Footer
# =====================================================
st.caption("CRM • MongoDB • Pandas • Streamlit • Report Builder")
