"""Overlay asset registries: marker, cursor and shape selectors -> PNG paths.

Markers replace the outer ring of the three finder patterns, cursors replace
the 3x3 eye in their centre, and shapes replace every dark data module. Assets
are black-on-transparent PNG masks; the renderer tints them with the
foreground color.
"""

from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType

import numpy as np
from PIL import Image, UnidentifiedImageError

from qrstyle.errors import AssetError, UnknownSelectorError
from qrstyle.logging import audit, get_logger

log = get_logger("assets")

ASSET_DIR = Path(__file__).resolve().parent / "assets"


class AssetRegistry:
    """Immutable mapping of selector key -> asset path for one overlay family."""

    def __init__(self, family: str, prefix: str, paths: Mapping[str, str]):
        self.family = family
        self.prefix = prefix
        self._paths = MappingProxyType(
            {key: str(path) for key, path in paths.items() if key.startswith(prefix)}
        )

    def __repr__(self):
        return f"AssetRegistry({self.family!r}, keys={list(self._paths)})"

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key in self._paths

    def __len__(self):
        return len(self._paths)

    def keys(self) -> list[str]:
        return sorted(self._paths)

    def get_all_paths(self) -> dict[str, str]:
        """All declared selectors of this family with their paths."""
        return dict(self._paths)

    def path_for(self, key: object) -> str:
        """Path registered under ``key``.

        Raises:
            UnknownSelectorError: if ``key`` is not a registered selector.
        """
        if key not in self:
            raise UnknownSelectorError(self.family, key, self.keys())
        return self._paths[key]

    def verify(self) -> None:
        """Check every registered file exists and is a PNG with visible alpha.

        Raises:
            AssetError: naming the first bad key and its path.
        """
        for key in self.keys():
            path = Path(self._paths[key])
            if not path.is_file():
                raise AssetError(f"{self.family} asset {key} missing: {path}")
            try:
                with Image.open(path) as img:
                    fmt = img.format
                    alpha = np.array(img.convert("RGBA").getchannel("A"))
            except (OSError, UnidentifiedImageError) as exc:
                raise AssetError(f"{self.family} asset {key} unreadable: {path} ({exc})") from exc
            if fmt != "PNG":
                raise AssetError(f"{self.family} asset {key} must be a PNG, got {fmt}: {path}")
            if not alpha.any():
                raise AssetError(f"{self.family} asset {key} is fully transparent: {path}")
        audit("assets.verified", logger=log, family=self.family, count=len(self))


# ---------------------------------------------------------------------------
# Packaged registries
# ---------------------------------------------------------------------------

MARKERS = AssetRegistry("marker", "M", {
    "M1": ASSET_DIR / "markers" / "marker-1.png",
    "M2": ASSET_DIR / "markers" / "marker-2.png",
    "M3": ASSET_DIR / "markers" / "marker-3.png",
    "M4": ASSET_DIR / "markers" / "marker-4.png",
})

CURSORS = AssetRegistry("cursor", "C", {
    "C1": ASSET_DIR / "cursors" / "cursor-1.png",
    "C2": ASSET_DIR / "cursors" / "cursor-2.png",
    "C3": ASSET_DIR / "cursors" / "cursor-3.png",
    "C4": ASSET_DIR / "cursors" / "cursor-4.png",
})

SHAPES = AssetRegistry("shape", "S", {
    "S1": ASSET_DIR / "shapes" / "shape-1.png",
    "S2": ASSET_DIR / "shapes" / "shape-2.png",
    "S3": ASSET_DIR / "shapes" / "shape-3.png",
    "S4": ASSET_DIR / "shapes" / "shape-4.png",
})

REGISTRIES = {
    "marker": MARKERS,
    "cursor": CURSORS,
    "shape": SHAPES,
}
