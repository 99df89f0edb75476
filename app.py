import asyncio
import math
from contextlib import contextmanager
from typing import Optional

import pandas as pd
import streamlit as st

from core.charts import sales_bar_chart
from core.client import HttpSalesStore
from core.config import configure_logging, load_settings
from core.data import DataFrameSalesStore
from core.errors import InvalidFilter, SalesReportError
from core.presentation import TABLE_HEADERS, TABLE_PAGE_SIZE
from core.view_state import FetchStatus, ViewStateController


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;margin-bottom: 8px;}
        .no-data {text-align: center;padding: 20px;color: #666;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(f"<div class='card'><div class='card-title'>{title}</div>", unsafe_allow_html=True)
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def build_store():
    settings = load_settings()
    if settings.use_api:
        return HttpSalesStore(settings.api_base_url, timeout=settings.http_timeout)
    return DataFrameSalesStore.from_path(settings.data_path)


def get_controller() -> ViewStateController:
    if "controller" not in st.session_state:
        st.session_state["controller"] = asyncio.run(ViewStateController.create(build_store()))
    return st.session_state["controller"]


def _iso(value) -> str:
    return value.isoformat() if value else ""


def render_table(rows) -> None:
    table = pd.DataFrame(list(rows), columns=TABLE_HEADERS)
    pages = max(1, math.ceil(len(table) / TABLE_PAGE_SIZE))
    page = 1
    if pages > 1:
        page = int(st.number_input("Page", min_value=1, max_value=pages, value=1, step=1))
    start = (page - 1) * TABLE_PAGE_SIZE
    st.dataframe(
        table.iloc[start : start + TABLE_PAGE_SIZE],
        use_container_width=True,
        hide_index=True,
    )


def render_error(error: Optional[SalesReportError]) -> None:
    if error is not None:
        st.error(str(error))


# ---------- UI setup ----------
configure_logging(load_settings().log_level)
st.set_page_config(page_title="Sales by Product and Customer", layout="wide")
inject_base_styles()
st.title("Sales by Product and Customer")

controller = get_controller()

with st.form("filters"):
    c1, c2 = st.columns(2)
    start_date = c1.date_input("Start Date", value=None)
    end_date = c2.date_input("End Date", value=None)
    c3, c4 = st.columns(2)
    product_filter = c3.text_input("Product", "", placeholder="Optional product filter")
    customer_filter = c4.text_input("Customer", "", placeholder="Optional customer filter")
    submitted = st.form_submit_button("Submit", type="primary")

toggle_label = "Show Table" if controller.state.show_chart else "Show Chart"
if st.button(toggle_label):
    controller.toggle_view()
    st.rerun()

if submitted:
    filters = {
        "startDate": _iso(start_date),
        "endDate": _iso(end_date),
        "product": product_filter,
        "customer": customer_filter,
    }
    with st.spinner("Loading sales data..."):
        try:
            asyncio.run(controller.fetch(filters))
        except InvalidFilter as exc:
            st.warning(str(exc))
        except SalesReportError:
            # rendered below from state.error
            pass

state = controller.state
if state.status == FetchStatus.FAILED:
    render_error(state.error)

if state.has_data:
    with card("Sales by Product / Customer"):
        if state.show_chart:
            st.altair_chart(sales_bar_chart(state.chart), use_container_width=True)
        else:
            render_table(state.rows)
else:
    with card("Sales by Product / Customer"):
        st.markdown("<p class='no-data'>No sales data found for the selected criteria.</p>", unsafe_allow_html=True)
