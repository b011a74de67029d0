"""
Scatter renderer.

render_scene() lays out one full scene (grid, axes, title, one circle per
contract, type legend, open-interest size legend) in pixel space. Every call
builds a new scene from scratch; nothing is patched in place.

Coordinates:
  - gridlines, axes, marks: plot-local (origin = top-left of the plot area)
  - title, legends:         surface (origin = top-left of the whole chart)

to_figure() turns a scene into a Plotly figure whose axes ARE the plot-local
pixel space, so positions come through exactly as laid out here.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np
import plotly.graph_objects as go

from models import OptionContract
from scales import CALL_COLOR, PUT_COLOR, ScaleSet, Viewport, build_scales

MARK_OPACITY = 0.7
GRID_OPACITY = 0.3
GRID_DASH = "2px,2px"
SIZE_LEGEND_FILL = "#9CA3AF"
SIZE_LEGEND_FRACTIONS = (0.25, 0.5, 0.75, 1.0)
POINTER_EVENTS = ("pointerenter", "pointerleave")


# ── Scene model ────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class GridLine:
    x0: float
    y0: float
    x1: float
    y1: float


@dataclass(frozen=True)
class Tick:
    position: float
    label: str


@dataclass(frozen=True)
class Axis:
    orientation: str                  # bottom | left
    ticks: Tuple[Tick, ...]
    title: str
    title_position: Tuple[float, float]
    title_rotation: int = 0


@dataclass(frozen=True)
class Mark:
    index: int
    contract: OptionContract
    cx: float
    cy: float
    r: float
    fill: str
    opacity: float = MARK_OPACITY


@dataclass(frozen=True)
class LegendItem:
    x: float
    y: float
    r: float
    fill: str
    label: str
    opacity: float


@dataclass(frozen=True)
class Legend:
    title: Optional[str]
    title_position: Optional[Tuple[float, float]]
    items: Tuple[LegendItem, ...]


def ease_cubic_in_out(t: float) -> float:
    t = min(max(t, 0.0), 1.0) * 2
    if t <= 1:
        return t * t * t / 2
    t -= 2
    return (t * t * t + 2) / 2


@dataclass(frozen=True)
class EntranceAnimation:
    """Marks grow from r=0 to their target radius, each starting index * stagger_ms later."""
    duration_ms: float = 1000.0
    stagger_ms: float = 2.0

    def delay(self, index: int) -> float:
        return index * self.stagger_ms

    def total_ms(self, n_marks: int) -> float:
        return self.duration_ms + self.delay(max(n_marks - 1, 0))

    def progress(self, index: int, t_ms: float) -> float:
        if self.duration_ms <= 0:
            return 1.0 if t_ms >= self.delay(index) else 0.0
        return ease_cubic_in_out((t_ms - self.delay(index)) / self.duration_ms)

    def radius_at(self, mark: Mark, t_ms: float) -> float:
        return mark.r * self.progress(mark.index, t_ms)


PointerHandler = Callable[[Mark, float, float], None]


@dataclass(frozen=True)
class Scene:
    viewport: Viewport
    scales: ScaleSet
    title: str
    title_position: Tuple[float, float]
    gridlines: Tuple[GridLine, ...]
    axes: Tuple[Axis, ...]
    marks: Tuple[Mark, ...]
    type_legend: Legend
    size_legend: Legend
    animation: EntranceAnimation = EntranceAnimation()
    _handlers: Dict[str, List[PointerHandler]] = field(
        default_factory=lambda: defaultdict(list), repr=False, compare=False
    )

    @property
    def origin(self) -> Tuple[float, float]:
        """Surface position of the plot-local (0, 0)."""
        return float(self.viewport.margins.left), float(self.viewport.margins.top)

    def on(self, event: str, handler: PointerHandler) -> None:
        if event not in POINTER_EVENTS:
            raise ValueError(f"unknown pointer event {event!r}")
        self._handlers[event].append(handler)

    def off(self, event: str, handler: PointerHandler) -> None:
        if handler in self._handlers.get(event, []):
            self._handlers[event].remove(handler)

    def dispatch(self, event: str, mark_index: int, x: float, y: float) -> None:
        """Deliver a pointer event for one mark. (x, y) are surface coordinates."""
        if event not in POINTER_EVENTS:
            raise ValueError(f"unknown pointer event {event!r}")
        mark = self.marks[mark_index]
        for handler in list(self._handlers.get(event, [])):
            handler(mark, x, y)


# ── Layout ─────────────────────────────────────────────────────────────────────

def _title_for(contracts: Sequence[OptionContract]) -> str:
    underlying = next((c.underlying_ticker for c in contracts if c.underlying_ticker), "")
    return f"{underlying} Options Chain Visualization".strip()


def render_scene(
    contracts: Sequence[OptionContract],
    viewport: Viewport = Viewport(),
    title: Optional[str] = None,
    animation: EntranceAnimation = EntranceAnimation(),
) -> Scene:
    """Build a fresh scene. contracts must be non-empty (empty data is the host's 'no data' state)."""
    scales = build_scales(contracts, viewport)
    inner_w, inner_h = viewport.inner_width, viewport.inner_height

    x_ticks = scales.x.ticks()
    y_ticks = scales.y.ticks()

    gridlines = tuple(
        [GridLine(scales.x(v), 0.0, scales.x(v), inner_h) for v in x_ticks]
        + [GridLine(0.0, scales.y(d), inner_w, scales.y(d)) for d in y_ticks]
    )

    axes = (
        Axis(
            orientation="bottom",
            ticks=tuple(Tick(scales.x(v), f"{v:.0f}") for v in x_ticks),
            title="Strike Price ($)",
            title_position=(inner_w / 2, inner_h + 50),
        ),
        Axis(
            orientation="left",
            ticks=tuple(Tick(scales.y(d), d.strftime("%b %d, %Y")) for d in y_ticks),
            title="Expiration Date",
            title_position=(-50.0, inner_h / 2),
            title_rotation=-90,
        ),
    )

    marks = tuple(
        Mark(
            index=i,
            contract=c,
            cx=scales.x(c.strike_price),
            cy=scales.y(c.expiration_date),
            r=scales.radius(c.open_interest),
            fill=scales.color(c.contract_type),
        )
        for i, c in enumerate(contracts)
    )

    legend_x = viewport.width - 150
    type_legend = Legend(
        title=None,
        title_position=None,
        items=(
            LegendItem(legend_x, 50, 8, CALL_COLOR, "Calls", MARK_OPACITY),
            LegendItem(legend_x, 75, 8, PUT_COLOR, "Puts", MARK_OPACITY),
        ),
    )

    max_oi = max(c.open_interest for c in contracts)
    size_legend = Legend(
        title="Open Interest",
        title_position=(legend_x, 110),
        items=tuple(
            LegendItem(legend_x, 120 + i * 20 + 10, scales.radius(max_oi * f), SIZE_LEGEND_FILL, f"{max_oi * f:.0f}", 0.6)
            for i, f in enumerate(SIZE_LEGEND_FRACTIONS)
        ),
    )

    return Scene(
        viewport=viewport,
        scales=scales,
        title=title or _title_for(contracts),
        title_position=(viewport.width / 2, 25),
        gridlines=gridlines,
        axes=axes,
        marks=marks,
        type_legend=type_legend,
        size_legend=size_legend,
        animation=animation,
    )


# ── Plotly conversion ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class MarkStyle:
    opacity: float = MARK_OPACITY
    stroke: Optional[str] = None
    stroke_width: float = 0.0


def _legend_trace(scene: Scene, legend: Legend, font_size: int) -> go.Scatter:
    ox, oy = scene.origin
    return go.Scatter(
        x=[it.x - ox for it in legend.items],
        y=[it.y - oy for it in legend.items],
        mode="markers+text",
        marker=dict(
            size=[2 * it.r for it in legend.items],
            color=[it.fill for it in legend.items],
            opacity=legend.items[0].opacity if legend.items else 1.0,
        ),
        text=[f"  {it.label}" for it in legend.items],
        textposition="middle right",
        textfont=dict(size=font_size, color="#374151"),
        hoverinfo="skip",
        showlegend=False,
        cliponaxis=False,
    )


def to_figure(
    scene: Scene,
    styles: Optional[Sequence[MarkStyle]] = None,
    hover_texts: Optional[Sequence[str]] = None,
    frames: int = 24,
) -> go.Figure:
    """
    Plotly figure for a scene. Trace 0 is always the contract marks.

    styles       per-mark emphasis (from the hover controller); resting style when omitted
    hover_texts  per-mark tooltip text shown by the browser on hover
    frames       number of entrance-animation frames (0 disables the Replay button)
    """
    vp = scene.viewport
    marks = scene.marks
    styles = list(styles) if styles is not None else [MarkStyle() for _ in marks]
    ox, oy = scene.origin

    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=[m.cx for m in marks],
        y=[m.cy for m in marks],
        mode="markers",
        marker=dict(
            size=[2 * m.r for m in marks],
            color=[m.fill for m in marks],
            opacity=[s.opacity for s in styles],
            line=dict(
                color=[s.stroke or "rgba(0,0,0,0)" for s in styles],
                width=[s.stroke_width for s in styles],
            ),
        ),
        customdata=[m.index for m in marks],
        hovertext=list(hover_texts) if hover_texts is not None else [m.contract.ticker for m in marks],
        hoverinfo="text",
        showlegend=False,
        name="contracts",
    ))
    fig.add_trace(_legend_trace(scene, scene.type_legend, 14))
    fig.add_trace(_legend_trace(scene, scene.size_legend, 11))

    for g in scene.gridlines:
        fig.add_shape(
            type="line", xref="x", yref="y",
            x0=g.x0, y0=g.y0, x1=g.x1, y1=g.y1,
            line=dict(color="#6B7280", width=1, dash=GRID_DASH),
            opacity=GRID_OPACITY, layer="below",
        )

    if scene.size_legend.title_position:
        tx, ty = scene.size_legend.title_position
        fig.add_annotation(
            x=tx - ox, y=ty - oy, xref="x", yref="y",
            text=f"<b>{scene.size_legend.title}</b>", showarrow=False,
            xanchor="left", font=dict(size=12, color="#374151"),
        )

    x_axis, y_axis = scene.axes
    fig.update_xaxes(
        range=[0, vp.inner_width],
        tickvals=[t.position for t in x_axis.ticks],
        ticktext=[t.label for t in x_axis.ticks],
        title=dict(text=x_axis.title, font=dict(size=14, color="#1F2937")),
        showgrid=False, zeroline=False, fixedrange=True,
        showline=True, linecolor="#374151", ticks="outside",
    )
    fig.update_yaxes(
        # reversed: pixel y grows downward
        range=[vp.inner_height, 0],
        tickvals=[t.position for t in y_axis.ticks],
        ticktext=[t.label for t in y_axis.ticks],
        title=dict(text=y_axis.title, font=dict(size=14, color="#1F2937")),
        showgrid=False, zeroline=False, fixedrange=True,
        showline=True, linecolor="#374151", ticks="outside",
    )
    fig.update_layout(
        title=dict(text=scene.title, x=0.5, xanchor="center", font=dict(size=18, color="#111827")),
        width=vp.width,
        height=vp.height,
        margin=dict(l=vp.margins.left, r=vp.margins.right, t=vp.margins.top, b=vp.margins.bottom, pad=0),
        plot_bgcolor="white",
        paper_bgcolor="white",
        showlegend=False,
        clickmode="event+select",
        hovermode="closest",
    )

    if frames > 0 and marks:
        anim = scene.animation
        times = np.linspace(0.0, anim.total_ms(len(marks)), frames)
        fig.frames = [
            go.Frame(
                name=f"t{k}",
                traces=[0],
                data=[go.Scatter(marker=dict(size=[2 * anim.radius_at(m, t) for m in marks]))],
            )
            for k, t in enumerate(times)
        ]
        step_ms = float(times[1] - times[0]) if len(times) > 1 else anim.duration_ms
        fig.update_layout(updatemenus=[dict(
            type="buttons",
            showactive=False,
            x=1.0, y=-0.12, xanchor="right", yanchor="top",
            buttons=[dict(
                label="Replay",
                method="animate",
                args=[None, {
                    "frame": {"duration": step_ms, "redraw": False},
                    "transition": {"duration": 0},
                    "fromcurrent": False,
                    "mode": "immediate",
                }],
            )],
        )])

    return fig
