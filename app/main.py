import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import asyncio
import logging

import streamlit as st
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from budgetdash.config import get_settings
from budgetdash.domain import CATEGORY, EXPENSE, GENERAL, NEAR, OVER, UNDER
from budgetdash.events import NOTIFICATIONS_CHANGED
from budgetdash.logging_config import setup_logging
from budgetdash.state import build_controller
from budgetdash.errors import ValidationError, user_message

logger = logging.getLogger("budgetdash.app")

st.set_page_config(page_title="Budget Dashboard", layout="wide")

settings = get_settings()

# the controller and its event loop live across reruns
if "controller" not in st.session_state:
    setup_logging(settings)
    st.session_state.loop = asyncio.new_event_loop()
    controller = build_controller(settings)

    def log_notifications(event, payload):
        logger.info("Notifications %s, %d unread", payload["reason"], payload["unread"])
        return {"logged": True}

    controller.bus.subscribe(NOTIFICATIONS_CHANGED, log_notifications)
    st.session_state.controller = controller
    st.session_state.loop.run_until_complete(controller.load_period())

ctl = st.session_state.controller
loop = st.session_state.loop


def run(coro):
    return loop.run_until_complete(coro)


def money(amount) -> str:
    return f"€{float(amount):,.2f}"


# every rerun stands in for a focus event and a poll tick
ctl.notifications.purge_expired()
run(ctl.poll_external_changes())
run(ctl.on_focus())

# ---- sidebar: layout, period, filters

st.sidebar.markdown("### 🖥️ Layout")
width = st.sidebar.slider("Viewport width (px)", 320, 2560, value=st.session_state.get("width", 1280), step=10)
st.session_state["width"] = width
ctl.apply_viewport(width)
st.sidebar.caption(f"Device class: **{ctl.carousel.device.name}**, {ctl.carousel.page_size} card(s) per page")

st.sidebar.markdown("### 📅 Period")
p1, p2, p3 = st.sidebar.columns(3)
if p1.button("◀", key="btn_prev_period"):
    run(ctl.navigate_period(-1))
if p2.button("Today", key="btn_current_period"):
    run(ctl.go_to_current_month())
if p3.button("▶", key="btn_next_period"):
    run(ctl.navigate_period(1))
st.sidebar.caption(f"Showing **{ctl.month:02d}/{ctl.year}**")

st.sidebar.markdown("### 🔎 Filters")
kind_choice = st.sidebar.selectbox("Type", ["All", GENERAL, CATEGORY])
status_choice = st.sidebar.selectbox("Status", ["All", UNDER, NEAR, OVER])
category_options = {"All": None, **{c.display_name: c.id for c in ctl.categories}}
category_choice = st.sidebar.selectbox("Category", list(category_options))
min_amount = st.sidebar.number_input("Min planned (€)", min_value=0.0, value=0.0, step=50.0)
max_amount = st.sidebar.number_input("Max planned (€)", min_value=0.0, value=0.0, step=50.0)

ctl.set_filter(
    kind=None if kind_choice == "All" else kind_choice,
    status=None if status_choice == "All" else status_choice,
    category_id=category_options[category_choice],
    min_amount=min_amount or None,
    max_amount=max_amount or None,
)
if st.sidebar.button("Clear filters", key="btn_clear_filters"):
    ctl.clear_filter()

# ---- header and summary

st.title("💰 Budget Dashboard")
if ctl.last_error:
    st.error(ctl.last_error)

summary = ctl.summary
health = ctl.summarizer.display
k1, k2, k3, k4 = st.columns(4)
with k1:
    st.metric("Planned", money(summary.total_planned))
with k2:
    st.metric("Spent", money(summary.total_spent), ctl.summarizer.trend, delta_color="off")
with k3:
    st.metric("Active budgets", summary.active_count)
with k4:
    st.metric("Health", health.text, ctl.summarizer.status, delta_color="off")

# ---- carousel

st.subheader("📂 Budgets")
state = ctl.carousel.state
nav_prev, nav_info, nav_next = st.columns([1, 6, 1])
if nav_prev.button("⬅", key="btn_carousel_prev", disabled=not state.can_prev):
    ctl.prev_page()
if nav_next.button("➡", key="btn_carousel_next", disabled=not state.can_next):
    ctl.next_page()
nav_info.caption(
    f"{ctl.filters.real_count(ctl.display)} budget(s), "
    f"showing {ctl.carousel.state.current_index + 1}-"
    f"{min(ctl.carousel.state.current_index + ctl.carousel.page_size, len(ctl.display))}"
)

cards = ctl.visible_items
for col, budget in zip(st.columns(ctl.carousel.page_size), cards):
    with col:
        if budget.is_placeholder:
            st.info(budget.category_name)
            continue
        st.markdown(f"**{budget.category_name}** · {budget.kind} · {budget.period_label}")
        st.metric(
            "Spent / planned",
            f"{money(budget.spent_amount)} / {money(budget.planned_amount)}",
            f"{money(budget.remaining_amount)} remaining",
            delta_color="normal" if not budget.is_over_budget else "inverse",
        )
        st.progress(min(float(budget.spent_percentage) / 100, 1.0))
        with st.expander("Edit"):
            new_amount = st.text_input("Planned amount", value=str(budget.planned_amount), key=f"amt_{budget.id}")
            e1, e2 = st.columns(2)
            if e1.button("Save", key=f"save_{budget.id}"):
                result = run(ctl.update_budget(budget.id, new_amount))
                if result.is_left():
                    err = result.get_error()
                    st.error(
                        "; ".join(err.field_errors.values()) if isinstance(err, ValidationError)
                        else user_message(err)
                    )
                else:
                    st.rerun()
            if e2.button("Delete", key=f"del_{budget.id}"):
                result = run(ctl.delete_budget(budget.id))
                if result.is_left():
                    st.error(user_message(result.get_error()))
                else:
                    st.rerun()

# ---- create

st.subheader("➕ New Budget")
with st.form("budget_form", clear_on_submit=True):
    c1, c2 = st.columns(2)
    with c1:
        kind = st.selectbox("Type", [GENERAL, CATEGORY])
        planned = st.text_input("Planned amount (€)")
    with c2:
        expense_cats = {c.display_name: c.id for c in ctl.categories if c.direction == EXPENSE}
        category_name = st.selectbox("Category (category budgets only)", ["-", *expense_cats])
        period = st.date_input("Period")
    submitted = st.form_submit_button("Create budget")

    if submitted:
        form = {
            "kind": kind,
            "planned_amount": planned,
            "year": period.year,
            "month": period.month,
            "category_id": expense_cats.get(category_name),
        }
        result = run(ctl.submit_budget(form))
        if result.is_left():
            err = result.get_error()
            if isinstance(err, ValidationError):
                for field, msg in err.field_errors.items():
                    st.error(f"{field}: {msg}")
            else:
                st.error(user_message(err))
        else:
            st.success("Budget created")

# ---- analytics

st.subheader("📊 Analytics")
a1, a2 = st.columns(2)
with a1:
    rows = ctl.efficiency()
    if rows:
        eff_df = pd.DataFrame([
            {"Category": r.name, "Efficiency": float(r.efficiency), "Level": r.level, "Insight": r.insight}
            for r in rows
        ])
        fig_eff = px.bar(eff_df, x="Category", y="Efficiency", color="Level", hover_data=["Insight"])
        fig_eff.add_hline(y=100, line_dash="dash")
        st.plotly_chart(fig_eff, use_container_width=True)
    else:
        st.info("No category budgets for this period")
with a2:
    top = ctl.top_spending()
    if top:
        fig_top = go.Figure(go.Pie(
            labels=[s.name for s in top],
            values=[float(s.spent) for s in top],
            hole=0.4,
        ))
        fig_top.update_layout(title="Top spending")
        st.plotly_chart(fig_top, use_container_width=True)

overview = ctl.overview()
st.caption(f"Health score {float(overview.health_score):.0f}: {overview.health_insight}")

# ---- notifications

st.sidebar.markdown(f"### 🔔 Notifications ({ctl.badge_count})")
if st.sidebar.button("Mark all read", key="btn_mark_all", disabled=ctl.badge_count == 0):
    result = run(ctl.mark_all_notifications_read())
    if result.is_left():
        st.sidebar.error(user_message(result.get_error()))
    st.rerun()
for n in ctl.feed:
    with st.sidebar.container():
        marker = "" if n.is_read else "🔵 "
        st.markdown(f"{marker}**{n.title}**  \n{n.message}")
        st.caption(f"{n.category_name} · {ctl.notifications.age_label(n)}")
        if not n.is_read and st.button("Mark read", key=f"read_{n.id}"):
            run(ctl.mark_notification_read(n.id))
            st.rerun()
