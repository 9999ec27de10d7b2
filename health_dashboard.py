import logging

import streamlit as st

from healthdash import aggregation, charts, health_store
from healthdash.aggregation import HistoryRange, Reducer
from healthdash.config import ConfigError, configure_logging, load_settings
from healthdash.errors import HealthDataError
from healthdash.health_manager import HealthManager

logger = logging.getLogger(__name__)

# --- History View Definitions ---

HISTORY_VIEWS = {
    'Weight': {
        'title': "Weight History",
        'fetch': 'fetch_weight_history',
        'reducer': Reducer.AVERAGE,
        'axis': aggregation.WEIGHT_AXIS,
        'unit': 'lbs',
        'color': 'blue',
        'y_label': "Weight (lbs)",
        'stat_label': "Weight",
    },
    'Calories': {
        'title': "Calories Burned",
        'fetch': 'fetch_total_calories',
        'reducer': Reducer.SUM,
        'axis': aggregation.CALORIE_AXIS,
        'unit': 'kcal',
        'color': 'orange',
        'y_label': "Calories",
        'stat_label': "Calories",
    },
    'Sleep': {
        'title': "Sleep",
        'fetch': 'fetch_sleep_history',
        'reducer': Reducer.SUM,
        'axis': aggregation.SLEEP_AXIS,
        'unit': 'hrs',
        'color': 'indigo',
        'y_label': "Sleep (hrs)",
        'stat_label': "Sleep",
    },
}


@st.cache_data
def load_health_records(source, timezone):
    return health_store.parse_export(source, timezone=timezone)


def render_dashboard(manager, user_name):
    st.subheader(f"Hello, {user_name}")
    rows = [
        ("Weight", manager.latest_weight, 'lbs'),
        ("Sleep", manager.latest_sleep_hours, 'hrs'),
        ("Calories", manager.latest_calories, 'kcal'),
    ]
    for title, value, unit in rows:
        with st.container(border=True):
            st.metric(title, charts.format_metric(value, unit))


def render_history(manager, name, default_range):
    view = HISTORY_VIEWS[name]
    st.subheader(view['title'])

    labels = [r.label for r in HistoryRange]
    selected_label = st.radio(
        "Range", labels, index=labels.index(default_range), horizontal=True, key=f"{name}_range"
    )
    history_range = HistoryRange.from_label(selected_label)
    samples = getattr(manager, view['fetch'])(days=history_range.days)

    series = aggregation.aggregate_for_range(samples, history_range, view['reducer'])
    y_bounds = aggregation.axis_bounds(series, view['axis'])
    show_week_range = history_range is HistoryRange.HALF_YEAR

    selected = None
    if len(series) > 1:
        selected = st.select_slider(
            "Inspect",
            options=list(series['date']),
            value=series['date'].iloc[-1],
            format_func=charts.format_day,
            key=f"{name}_inspect",
        )
    elif len(series) == 1:
        selected = series['date'].iloc[0]

    if selected is not None:
        point = aggregation.nearest_point(series, selected)
        st.caption(charts.point_label(point[0], point[1], view['unit'], show_week_range))

    fig = charts.history_chart(
        series,
        label=view['y_label'],
        color=view['color'],
        y_bounds=y_bounds,
        tick_values=aggregation.x_axis_values(series, history_range),
        unit=view['unit'],
        show_week_range=show_week_range,
        selected=selected,
    )
    st.plotly_chart(fig, width="stretch")

    if series.empty:
        st.info(f"No {name.lower()} data in the last {history_range.days} days.")

    summary = aggregation.summarize(series)
    cols = st.columns(3)
    cols[0].metric(f"Avg {view['stat_label']}", charts.format_value(summary.average, view['unit']))
    cols[1].metric(f"Min {view['stat_label']}", charts.format_value(summary.minimum, view['unit']))
    cols[2].metric(f"Max {view['stat_label']}", charts.format_value(summary.maximum, view['unit']))


# --- Main App UI ---
def main():
    st.set_page_config(layout="wide", page_title="Health Dashboard")

    try:
        settings = load_settings()
    except ConfigError as e:
        st.error(f"Configuration error: {e}")
        return
    configure_logging(settings.log_level)

    st.title("Health Dashboard")

    st.sidebar.header("Instructions")
    st.sidebar.info(
        "1. **Export your data:** In the Apple Health app, tap your profile picture > Export All Health Data.\n"
        "2. **Upload `export.zip`** (or the `export.xml` inside it) below."
    )
    uploaded_file = st.sidebar.file_uploader("Upload your Apple Health export", type=["xml", "zip"])

    source = uploaded_file
    if source is None and settings.export_path is not None:
        source = str(settings.export_path)

    if source is None:
        st.info("Upload your Apple Health export to get started.")
        return

    with st.spinner('Reading your health data... This may take a moment for large exports.'):
        try:
            records = load_health_records(source, settings.timezone)
        except (HealthDataError, OSError) as e:
            logger.exception("Failed to load health export")
            st.error(f"An error occurred while reading the export: {e}")
            return

    manager = HealthManager(health_store.HealthStore(records), anchor=settings.anchor)
    if not manager.authorized:
        st.error("Could not get read access to the health data.")
        return

    tabs = st.tabs(["Dashboard", "Weight", "Calories", "Sleep"])
    with tabs[0]:
        render_dashboard(manager, settings.user_name)
    for tab, name in zip(tabs[1:], ["Weight", "Calories", "Sleep"]):
        with tab:
            render_history(manager, name, settings.default_range)


if __name__ == "__main__":
    main()
