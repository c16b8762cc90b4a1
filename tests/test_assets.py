from pathlib import Path

import pytest
from PIL import Image

from qrstyle.assets import CURSORS, MARKERS, REGISTRIES, SHAPES, AssetRegistry
from qrstyle.errors import AssetError, UnknownSelectorError


@pytest.mark.parametrize("registry, expected", [
    (MARKERS, {"M1", "M2", "M3", "M4"}),
    (CURSORS, {"C1", "C2", "C3", "C4"}),
    (SHAPES, {"S1", "S2", "S3", "S4"}),
])
def test_packaged_keys(registry, expected):
    assert set(registry.get_all_paths()) == expected
    assert len(registry) == len(expected)


@pytest.mark.parametrize("registry", list(REGISTRIES.values()), ids=list(REGISTRIES))
def test_packaged_assets_verify(registry):
    registry.verify()
    for key, path in registry.get_all_paths().items():
        assert path
        assert Path(path).is_file(), key


def test_only_keys_with_family_prefix_are_registered(tmp_path):
    registry = AssetRegistry("cursor", "C", {"C1": tmp_path / "a.png", "X9": tmp_path / "b.png"})
    assert registry.keys() == ["C1"]
    assert "X9" not in registry


def test_path_for_known_key():
    assert MARKERS.path_for("M2").endswith("marker-2.png")


@pytest.mark.parametrize("registry, key", [(MARKERS, "M5"), (CURSORS, "C5"), (SHAPES, "S5"), (MARKERS, "m1"), (SHAPES, "")])
def test_path_for_unknown_key(registry, key):
    with pytest.raises(UnknownSelectorError) as exc_info:
        registry.path_for(key)
    err = exc_info.value
    assert err.key == key
    assert repr(key) in str(err)
    assert err.allowed == tuple(registry.keys())


def test_unknown_selector_lists_allowed_keys():
    with pytest.raises(UnknownSelectorError, match="M1, M2, M3, M4"):
        MARKERS.path_for("M5")


def test_get_all_paths_returns_a_copy():
    paths = SHAPES.get_all_paths()
    paths["S9"] = "/tmp/nowhere.png"
    assert "S9" not in SHAPES


def test_non_string_keys_are_not_members():
    assert 1 not in MARKERS
    assert None not in MARKERS


def _png(path, alpha):
    Image.new("RGBA", (8, 8), (0, 0, 0, alpha)).save(path, "PNG")
    return path


def test_verify_missing_file(tmp_path):
    registry = AssetRegistry("shape", "S", {"S1": tmp_path / "gone.png"})
    with pytest.raises(AssetError, match="S1 missing"):
        registry.verify()


def test_verify_rejects_non_png(tmp_path):
    path = tmp_path / "shape.png"
    Image.new("RGB", (8, 8)).save(path, "JPEG")
    registry = AssetRegistry("shape", "S", {"S1": path})
    with pytest.raises(AssetError, match="must be a PNG"):
        registry.verify()


def test_verify_rejects_unreadable_file(tmp_path):
    path = tmp_path / "shape.png"
    path.write_bytes(b"not an image")
    registry = AssetRegistry("shape", "S", {"S1": path})
    with pytest.raises(AssetError, match="unreadable"):
        registry.verify()


def test_verify_rejects_fully_transparent_png(tmp_path):
    registry = AssetRegistry("shape", "S", {"S1": _png(tmp_path / "s.png", 0)})
    with pytest.raises(AssetError, match="transparent"):
        registry.verify()


def test_verify_emits_audit_event(tmp_path, audit_events):
    AssetRegistry("shape", "S", {"S1": _png(tmp_path / "s.png", 255)}).verify()
    assert ("assets.verified", {"family": "shape", "count": 1}) in audit_events()
