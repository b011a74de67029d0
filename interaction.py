"""
Hover tracking for the scatter plot.

HoverController listens to a scene's pointer events and owns the single
HoverState: which contract is under the pointer and where to anchor its
tooltip. At most one mark is emphasized at any time.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from models import OptionContract
from renderer import MARK_OPACITY, Mark, MarkStyle, Scene

logger = logging.getLogger(__name__)

RESTING_STYLE = MarkStyle(opacity=MARK_OPACITY, stroke=None, stroke_width=0.0)
EMPHASIZED_STYLE = MarkStyle(opacity=1.0, stroke="#1F2937", stroke_width=2.0)


@dataclass(frozen=True)
class HoverState:
    screen_x: float       # tooltip anchor, surface coordinates
    screen_y: float
    local_x: float        # pointer relative to the plot origin
    local_y: float
    contract: OptionContract


HoverListener = Callable[[Optional[HoverState]], None]


class HoverController:
    def __init__(self, scene: Scene):
        self.scene = scene
        self.state: Optional[HoverState] = None
        self.emphasized: Optional[int] = None
        self._listeners: List[HoverListener] = []
        scene.on("pointerenter", self._on_enter)
        scene.on("pointerleave", self._on_leave)

    def detach(self) -> None:
        self.scene.off("pointerenter", self._on_enter)
        self.scene.off("pointerleave", self._on_leave)

    def subscribe(self, listener: HoverListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self) -> None:
        for listener in list(self._listeners):
            listener(self.state)

    def _on_enter(self, mark: Mark, x: float, y: float) -> None:
        ox, oy = self.scene.origin
        if self.emphasized is not None and self.emphasized != mark.index:
            logger.debug("Restoring mark %d before emphasizing %d", self.emphasized, mark.index)
        self.emphasized = mark.index
        self.state = HoverState(
            screen_x=x,
            screen_y=y,
            local_x=x - ox,
            local_y=y - oy,
            contract=mark.contract,
        )
        self._publish()

    def _on_leave(self, mark: Mark, x: float, y: float) -> None:
        if self.emphasized != mark.index:
            return
        self.emphasized = None
        self.state = None
        self._publish()

    def style_for(self, index: int) -> MarkStyle:
        return EMPHASIZED_STYLE if index == self.emphasized else RESTING_STYLE

    def styles(self) -> List[MarkStyle]:
        return [self.style_for(m.index) for m in self.scene.marks]


# ── Tooltip ────────────────────────────────────────────────────────────────────

def tooltip_lines(contract: OptionContract) -> List[str]:
    oi = f"{contract.open_interest:,}" if contract.open_interest_reported else "n/a"
    return [
        contract.ticker,
        f"Type: {contract.contract_type.value.capitalize()}",
        f"Strike: ${contract.strike_price:g}",
        f"Expires: {contract.expiration_date.strftime('%m/%d/%Y')}",
        f"Open Interest: {oi}",
    ]


def tooltip_text(contract: OptionContract) -> str:
    """Plotly hover text: bold ticker, detail lines below."""
    head, *rest = tooltip_lines(contract)
    return "<br>".join([f"<b>{head}</b>", *rest])
