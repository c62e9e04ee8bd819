"""Visibility state for the map's overlay layers, keyed by dataset id."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, NamedTuple


class UnknownLayer(KeyError):
    pass


@dataclass
class LayerState:
    layer_id: str
    label: str
    overlay: Any = None
    visible: bool = True

    @property
    def loaded(self) -> bool:
        return self.overlay is not None


class LayerRegistry:
    """Holds ``{overlay, visible}`` per layer.

    Toggle operations return the new visibility instead of mutating
    module-level flags. A layer whose overlay never loaded ignores toggles.
    """

    def __init__(self) -> None:
        self._layers: Dict[str, LayerState] = {}

    def register(
        self,
        layer_id: str,
        label: str | None = None,
        overlay: Any = None,
        *,
        visible: bool = True,
    ) -> LayerState:
        state = LayerState(layer_id, label or layer_id, overlay, visible)
        self._layers[layer_id] = state
        return state

    def get(self, layer_id: str) -> LayerState:
        try:
            return self._layers[layer_id]
        except KeyError:
            raise UnknownLayer(layer_id) from None

    def replace(self, layer_id: str, overlay: Any) -> LayerState:
        """Swap in a reloaded overlay, keeping the current visibility."""
        state = self.get(layer_id)
        state.overlay = overlay
        return state

    def is_visible(self, layer_id: str) -> bool:
        return self.get(layer_id).visible

    def toggle(self, layer_id: str) -> bool:
        state = self.get(layer_id)
        if state.loaded:
            state.visible = not state.visible
        return state.visible

    def show(self, layer_id: str) -> bool:
        state = self.get(layer_id)
        if state.loaded:
            state.visible = True
        return state.visible

    def hide(self, layer_id: str) -> bool:
        state = self.get(layer_id)
        if state.loaded:
            state.visible = False
        return state.visible

    def visible_layers(self) -> List[str]:
        return [s.layer_id for s in self._layers.values() if s.loaded and s.visible]

    def __contains__(self, layer_id: object) -> bool:
        return layer_id in self._layers

    def __iter__(self) -> Iterator[LayerState]:
        return iter(list(self._layers.values()))

    def __len__(self) -> int:
        return len(self._layers)


# ---------------------------------------------------------------------------
# Command dispatch
# ---------------------------------------------------------------------------


class ToggleLayer(NamedTuple):
    layer_id: str


class ToggleResult(NamedTuple):
    layer_id: str
    visible: bool
    button_text: str
    off: bool


def button_text(label: str, visible: bool) -> str:
    return f"{'Hide' if visible else 'Show'} {label}"


def dispatch(registry: LayerRegistry, command: ToggleLayer) -> ToggleResult:
    """Apply ``command`` to ``registry`` and describe the resulting button."""
    if not isinstance(command, ToggleLayer):
        raise TypeError(f"unsupported command: {command!r}")
    visible = registry.toggle(command.layer_id)
    label = registry.get(command.layer_id).label
    return ToggleResult(command.layer_id, visible, button_text(label, visible), not visible)
