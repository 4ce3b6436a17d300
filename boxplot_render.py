"""
Boxplot drawing: a pure builder of drawing commands plus a plotly surface.

build_boxplot_commands() turns summaries + raw observations into a flat list
of primitives in plot coordinates (origin at the top-left of the drawable
area, y growing downward). DrawingSurface.apply() builds a new plotly figure
from those primitives, replacing whatever the surface held before, so drawing
the same commands twice leaves exactly one chart.
"""

import math
import random
from dataclasses import dataclass

import plotly.graph_objects as go

from boxplot_stats import GroupSummary
from chart_config import BOX_FILL, BOX_WIDTH, JITTER_WIDTH, POINT_RADIUS, BoxplotConfig
from feature_extract import TaggedObservation
from scales import BandScale, LinearScale, tick_increment

TICK_SIZE = 6
TICK_PADDING = 3

TITLE = "Boxplot"
X_LABEL = "Top 50 Most Played Tracks by Country"

# text-anchor -> plotly xanchor
X_ANCHORS = {"start": "left", "middle": "center", "end": "right"}


# ---------------------------------------------------------------------------
# Drawing commands
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Line:
    x1: float
    y1: float
    x2: float
    y2: float
    stroke: str = "black"
    role: str = ""


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float
    fill: str = BOX_FILL
    stroke: str = "black"
    role: str = ""


@dataclass(frozen=True)
class Circle:
    cx: float
    cy: float
    r: float = POINT_RADIUS
    fill: str = "white"
    stroke: str = "black"
    role: str = ""


@dataclass(frozen=True)
class Text:
    x: float
    y: float
    text: str
    anchor: str = "middle"
    baseline: str = "middle"
    font_size: float = 10
    rotate: float = 0
    role: str = ""


Command = Line | Rect | Circle | Text


# ---------------------------------------------------------------------------
# Command builders
# ---------------------------------------------------------------------------

def label_commands(config: BoxplotConfig, feature: str) -> list[Command]:
    """Title, x label and rotated y label."""
    return [
        Text(config.width / 2, -config.margin.top / 2, TITLE, font_size=14, role="title"),
        Text(config.width / 2, config.height + 35, X_LABEL, baseline="bottom",
             font_size=11, role="x-label"),
        Text(-config.margin.left + 11, config.height / 2, feature,
             font_size=11, rotate=-90, role="y-label"),
    ]


def format_tick(value: float, step: float) -> str:
    precision = max(0, -math.floor(math.log10(step))) if step > 0 else 0
    text = f"{value:.{precision}f}"
    return text[1:] if text.startswith("-") and float(text) == 0 else text


def axis_commands(x: BandScale, y: LinearScale, height: float) -> list[Command]:
    """Bottom category axis at y=height and left value axis at x=0."""
    commands: list[Command] = []

    x0, x1 = x.range
    commands.append(Line(x0, height, x1, height, role="x-axis domain"))
    for country in x.domain:
        pos = x(country)
        commands.append(Line(pos, height, pos, height + TICK_SIZE, role="x-axis tick"))
        commands.append(Text(pos, height + TICK_SIZE + TICK_PADDING, country,
                             baseline="top", role="x-axis tick-label"))

    y0, y1 = y.range
    commands.append(Line(0, y0, 0, y1, role="y-axis domain"))
    inc = tick_increment(min(y.domain), max(y.domain), 10)
    step = inc if inc > 0 else -1 / inc
    for value in y.ticks():
        pos = y(value)
        commands.append(Line(-TICK_SIZE, pos, 0, pos, role="y-axis tick"))
        commands.append(Text(-(TICK_SIZE + TICK_PADDING), pos, format_tick(value, step),
                             anchor="end", role="y-axis tick-label"))
    return commands


def box_commands(summaries: list[GroupSummary], x: BandScale, y: LinearScale) -> list[Command]:
    """Whisker, box and median line for every group."""
    whiskers: list[Command] = []
    boxes: list[Command] = []
    medians: list[Command] = []
    half = BOX_WIDTH / 2
    for s in summaries:
        cx = x(s.group_key)
        whiskers.append(Line(cx, y(s.lower_whisker), cx, y(s.upper_whisker), role="whisker"))
        boxes.append(Rect(cx - half, y(s.q3), BOX_WIDTH, y(s.q1) - y(s.q3), role="box"))
        medians.append(Line(cx - half, y(s.median), cx + half, y(s.median), role="median"))
    return whiskers + boxes + medians


def point_commands(observations: list[TaggedObservation], x: BandScale, y: LinearScale,
                   rng: random.Random) -> list[Command]:
    """One jittered marker per raw observation."""
    return [
        Circle(x(o.group_key) - JITTER_WIDTH / 2 + rng.random() * JITTER_WIDTH,
               y(o.feature_value), role="point")
        for o in observations
    ]


def build_boxplot_commands(
    summaries: list[GroupSummary],
    observations: list[TaggedObservation],
    x: BandScale,
    y: LinearScale,
    config: BoxplotConfig,
    rng: random.Random | None = None,
) -> list[Command]:
    """Every primitive of one boxplot, in paint order."""
    rng = rng or random.Random()
    return (
        label_commands(config, config.feature)
        + axis_commands(x, y, config.height)
        + box_commands(summaries, x, y)
        + point_commands(observations, x, y, rng)
    )


# ---------------------------------------------------------------------------
# Surface
# ---------------------------------------------------------------------------

def figure_html(fig: go.Figure, div_id: str) -> str:
    """HTML fragment for embedding a figure in a page."""
    return fig.to_html(full_html=False, include_plotlyjs="cdn", div_id=div_id)


class DrawingSurface:
    """
    The one mutable drawing target of a chart.

    apply() always builds a new figure; there is no incremental path, and a
    figure handed out earlier is never modified afterwards.
    """

    def __init__(self, config: BoxplotConfig, chart_id: str = "boxplot"):
        self.chart_id = chart_id
        self.resize(config)
        self.elements: list[Command] = []
        self.figure = self._blank_figure()

    def resize(self, config: BoxplotConfig) -> None:
        self.outer_width = config.outer_width
        self.outer_height = config.outer_height
        self.offset = (config.margin.left, config.margin.top)

    def _blank_figure(self) -> go.Figure:
        """Figure whose data coordinates are the drawable area's pixels."""
        left, top = self.offset
        fig = go.Figure()
        fig.update_layout(
            width=self.outer_width,
            height=self.outer_height,
            margin=dict(t=0, l=0, r=0, b=0),
            plot_bgcolor="white",
            paper_bgcolor="white",
            font=dict(family="sans-serif"),
            showlegend=False,
        )
        # Axes span the whole component, so margins hold labels and ticks
        fig.update_xaxes(range=[-left, self.outer_width - left], visible=False, fixedrange=True)
        fig.update_yaxes(range=[self.outer_height - top, -top], visible=False, fixedrange=True)
        return fig

    def clear(self) -> None:
        self.elements = []
        self.figure = self._blank_figure()

    def apply(self, commands: list[Command]) -> None:
        fig = self._blank_figure()
        points: list[Circle] = []

        for cmd in commands:
            if isinstance(cmd, Line):
                fig.add_shape(type="line", x0=cmd.x1, y0=cmd.y1, x1=cmd.x2, y1=cmd.y2,
                              line=dict(color=cmd.stroke, width=1), layer="below",
                              name=cmd.role)
            elif isinstance(cmd, Rect):
                fig.add_shape(type="rect", x0=cmd.x, y0=cmd.y,
                              x1=cmd.x + cmd.width, y1=cmd.y + cmd.height,
                              line=dict(color=cmd.stroke, width=1), fillcolor=cmd.fill,
                              layer="below", name=cmd.role)
            elif isinstance(cmd, Text):
                fig.add_annotation(x=cmd.x, y=cmd.y, text=cmd.text, showarrow=False,
                                   xanchor=X_ANCHORS[cmd.anchor], yanchor=cmd.baseline,
                                   textangle=cmd.rotate, font=dict(size=cmd.font_size),
                                   name=cmd.role)
            elif isinstance(cmd, Circle):
                points.append(cmd)

        if points:
            fig.add_trace(go.Scatter(
                x=[p.cx for p in points],
                y=[p.cy for p in points],
                mode="markers",
                marker=dict(
                    size=[p.r * 2 for p in points],
                    color=[p.fill for p in points],
                    line=dict(color=[p.stroke for p in points], width=1),
                ),
                hoverinfo="skip",
                name="point",
            ))

        self.elements = list(commands)
        self.figure = fig

    def to_html(self) -> str:
        return figure_html(self.figure, self.chart_id)
