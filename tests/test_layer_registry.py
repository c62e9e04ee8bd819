import pytest

from layer_registry import (
    LayerRegistry,
    ToggleLayer,
    ToggleResult,
    UnknownLayer,
    dispatch,
)


def _registry() -> LayerRegistry:
    reg = LayerRegistry()
    reg.register("shapefile", "Shapefile", object())
    reg.register("glwd", "GLWD", object())
    reg.register("swamps", "SWAMPs", None)
    return reg


def test_toggle_returns_new_state():
    reg = _registry()
    assert reg.toggle("glwd") is False
    assert reg.is_visible("glwd") is False
    assert reg.toggle("glwd") is True


def test_toggle_unloaded_layer_is_noop():
    reg = _registry()
    assert reg.toggle("swamps") is True
    assert reg.hide("swamps") is True
    assert "swamps" not in reg.visible_layers()


def test_unknown_layer():
    reg = _registry()
    with pytest.raises(UnknownLayer):
        reg.toggle("corine")
    with pytest.raises(KeyError):
        reg.get("corine")


def test_show_hide_and_visible_layers():
    reg = _registry()
    reg.hide("shapefile")
    assert reg.visible_layers() == ["glwd"]
    reg.show("shapefile")
    assert reg.visible_layers() == ["shapefile", "glwd"]


def test_replace_keeps_visibility():
    reg = _registry()
    reg.hide("glwd")
    new = object()
    state = reg.replace("glwd", new)
    assert state.overlay is new
    assert state.visible is False


def test_registry_container_protocol():
    reg = _registry()
    assert len(reg) == 3
    assert "glwd" in reg
    assert [s.layer_id for s in reg] == ["shapefile", "glwd", "swamps"]


def test_dispatch_toggle_command():
    reg = _registry()
    result = dispatch(reg, ToggleLayer("glwd"))
    assert result == ToggleResult("glwd", False, "Show GLWD", True)
    result = dispatch(reg, ToggleLayer("glwd"))
    assert result == ToggleResult("glwd", True, "Hide GLWD", False)


def test_dispatch_rejects_unknown_command():
    with pytest.raises(TypeError):
        dispatch(_registry(), ("toggle", "glwd"))
