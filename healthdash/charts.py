import pandas as pd
import plotly.graph_objects as go

from .aggregation import week_range

# --- Label Formatting Helpers ---

UNIT_FORMATS = {
    'lbs': lambda v: f"{v:.1f} lbs",
    'kcal': lambda v: f"{int(v)} kcal",
    'hrs': lambda v: f"{v:.1f} hrs",
}
MISSING_VALUE = "—"
RULE_COLOR = 'rgb(153, 153, 153)'


def format_value(value, unit):
    return UNIT_FORMATS[unit](value)


def format_metric(value, unit):
    """Dashboard row text for a latest value, or a dash when there is none."""
    if value is None or pd.isna(value):
        return MISSING_VALUE
    if unit == 'kcal':
        return f"{value:.0f} kcal"
    return format_value(value, unit)


def format_day(when):
    when = pd.Timestamp(when)
    return f"{when:%b} {when.day}"


def point_label(when, value, unit, show_week_range):
    date_text = week_range(when) if show_week_range else format_day(when)
    return f"{date_text} • {format_value(value, unit)}"


# --- Chart ---

def history_chart(series, label, color, y_bounds, tick_values, unit, show_week_range, selected=None):
    """
    Line chart of an aggregated series. `selected` is a date to mark with a
    vertical rule, as picked by the inspection slider.
    """
    hover_text = [point_label(d, v, unit, show_week_range) for d, v in zip(series['date'], series['value'])]

    fig = go.Figure(go.Scatter(
        x=series['date'],
        y=series['value'],
        name=label,
        mode='lines+markers',
        line={'color': color, 'shape': 'spline'},
        marker={'symbol': 'circle', 'size': 7, 'color': color},
        hovertext=hover_text,
        hoverinfo='text',
    ))

    if selected is not None:
        fig.add_vline(x=pd.Timestamp(selected), line_width=1, line_color=RULE_COLOR)

    fig.update_xaxes(
        tickmode='array',
        tickvals=list(tick_values),
        tickformat='%b %-d',
        showgrid=True,
    )
    fig.update_yaxes(range=list(y_bounds), side='left', title_text=label)
    fig.update_layout(height=300, margin=dict(l=20, r=20, t=30, b=20), hovermode='closest', showlegend=False)
    return fig
