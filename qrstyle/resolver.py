"""Style configuration and the options resolver.

``StyleConfig`` accumulates validated settings through fluent setters.
``RenderOptionsResolver.resolve`` merges per-call raw options onto a copy of
such a config and produces the immutable ``ResolvedRenderOptions`` bundle the
renderer consumes.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from qrstyle.assets import REGISTRIES, AssetRegistry
from qrstyle.colors import BLACK, WHITE, ColorValue, is_valid_hex_color, normalize_color
from qrstyle.errors import InvalidValueError
from qrstyle.label import LabelAlignment, LabelConfig, LabelManager
from qrstyle.logging import audit, get_logger, trace
from qrstyle.validation import check, is_int, parse_int

log = get_logger("resolver")

DEFAULT_SIZE = 300
DEFAULT_MARGIN = 10
DEFAULT_FOREGROUND = BLACK
DEFAULT_BACKGROUND = WHITE

OVERLAY_FAMILIES = ("marker", "cursor", "shape")

SIZE_RULES = [
    (is_int, lambda v: InvalidValueError(f"Size must be an integer, got {v!r}")),
    (lambda v: parse_int(v) > 0, lambda v: InvalidValueError(f"Size must be a positive integer, got {v!r}")),
]

MARGIN_RULES = [
    (is_int, lambda v: InvalidValueError(f"Margin must be an integer, got {v!r}")),
    (lambda v: parse_int(v) >= 0, lambda v: InvalidValueError(f"Margin must be a non-negative integer, got {v!r}")),
]


def _color_rules(field: str):
    return [
        (lambda v: isinstance(v, ColorValue) or is_valid_hex_color(v),
         lambda v: InvalidValueError(f"Invalid {field} format {v!r}; expected #RGB, #RRGGBB or #RRGGBBAA")),
    ]


COLOR_RULES = _color_rules("color")
BACKGROUND_RULES = _color_rules("background color")


@dataclass(frozen=True)
class ResolvedRenderOptions:
    """Validated, self-consistent settings for one render call.

    ``margin`` is the quiet zone around the code in pixels; the label's own
    padding lives in ``label.margin``.
    """

    size: int
    margin: int
    foreground: ColorValue
    background: ColorValue
    label: LabelConfig | None = None
    marker_path: str | None = None
    cursor_path: str | None = None
    shape_path: str | None = None

    @property
    def canvas_size(self) -> int:
        """Width of the code plus its quiet zone, label excluded."""
        return self.size + 2 * self.margin

    @property
    def has_overlays(self) -> bool:
        return any((self.marker_path, self.cursor_path, self.shape_path))


class StyleConfig:
    """Mutable accumulator of style settings.

    Setters validate first and return ``self``; a rejected value leaves the
    config untouched.
    """

    def __init__(self, registries: Mapping[str, AssetRegistry] | None = None):
        self.registries = dict(registries or REGISTRIES)
        self._size = DEFAULT_SIZE
        self._margin = DEFAULT_MARGIN
        self._foreground = DEFAULT_FOREGROUND
        self._background = DEFAULT_BACKGROUND
        self._overlays: dict[str, str | None] = {family: None for family in OVERLAY_FAMILIES}
        self.label = LabelManager()

    def __repr__(self):
        overlays = {k: v for k, v in self._overlays.items() if v}
        return (f"StyleConfig(size={self._size}, margin={self._margin}, "
                f"color={self._foreground.to_hex()}, background={self._background.to_hex()}, "
                f"overlays={overlays}, label={self.label.is_set})")

    def copy(self) -> "StyleConfig":
        other = StyleConfig(self.registries)
        other._size = self._size
        other._margin = self._margin
        other._foreground = self._foreground
        other._background = self._background
        other._overlays = dict(self._overlays)
        other.label = self.label.copy()
        return other

    # -- code settings ------------------------------------------------------

    def set_size(self, size: int | str) -> "StyleConfig":
        check(size, SIZE_RULES)
        self._size = parse_int(size)
        return self

    def set_margin(self, margin: int | str) -> "StyleConfig":
        check(margin, MARGIN_RULES)
        self._margin = parse_int(margin)
        return self

    def set_color(self, color: str | ColorValue) -> "StyleConfig":
        check(color, COLOR_RULES)
        self._foreground = normalize_color(color)
        return self

    def set_background_color(self, color: str | ColorValue) -> "StyleConfig":
        check(color, BACKGROUND_RULES)
        self._background = normalize_color(color)
        return self

    # -- overlays -----------------------------------------------------------

    def _set_overlay(self, family: str, key: str | None) -> "StyleConfig":
        if key is not None:
            self.registries[family].path_for(key)
        self._overlays[family] = key
        return self

    def set_marker(self, key: str | None) -> "StyleConfig":
        return self._set_overlay("marker", key)

    def set_cursor(self, key: str | None) -> "StyleConfig":
        return self._set_overlay("cursor", key)

    def set_shape(self, key: str | None) -> "StyleConfig":
        return self._set_overlay("shape", key)

    # -- label --------------------------------------------------------------

    def set_label(self, text: str) -> "StyleConfig":
        self.label.set_text(text)
        return self

    def set_label_size(self, size: int | str) -> "StyleConfig":
        self.label.set_font_size(size)
        return self

    def set_label_align(self, alignment: str | LabelAlignment) -> "StyleConfig":
        self.label.set_alignment(alignment)
        return self

    def set_label_margin(self, margin) -> "StyleConfig":
        self.label.set_margin(margin)
        return self

    def set_label_color(self, color: str | ColorValue) -> "StyleConfig":
        self.label.set_color(color)
        return self

    # -- getters ------------------------------------------------------------

    @property
    def size(self) -> int:
        return self._size

    @property
    def margin(self) -> int:
        return self._margin

    @property
    def foreground(self) -> ColorValue:
        return self._foreground

    @property
    def background(self) -> ColorValue:
        return self._background

    @property
    def marker(self) -> str | None:
        return self._overlays["marker"]

    @property
    def cursor(self) -> str | None:
        return self._overlays["cursor"]

    @property
    def shape(self) -> str | None:
        return self._overlays["shape"]


# ---------------------------------------------------------------------------
# Raw option handling
# ---------------------------------------------------------------------------

# Applied in this order; the first failure wins.
OPTION_SETTERS = {
    "size": StyleConfig.set_size,
    "margin": StyleConfig.set_margin,
    "color": StyleConfig.set_color,
    "background_color": StyleConfig.set_background_color,
    "label": StyleConfig.set_label,
    "label_size": StyleConfig.set_label_size,
    "label_align": StyleConfig.set_label_align,
    "label_margin": StyleConfig.set_label_margin,
    "label_color": StyleConfig.set_label_color,
    "marker": StyleConfig.set_marker,
    "cursor": StyleConfig.set_cursor,
    "shape": StyleConfig.set_shape,
}

OPTION_ALIASES = {
    "foreground": "color",
    "foreground_color": "color",
    "background": "background_color",
    "label_text": "label",
    "label_font_size": "label_size",
    "label_alignment": "label_align",
}


def normalize_option_key(key: str) -> str:
    """``"Background-Color"`` -> ``"background_color"``, aliases folded in."""
    canonical = key.strip().lower().replace("-", "_").replace(" ", "_")
    return OPTION_ALIASES.get(canonical, canonical)


class RenderOptionsResolver:
    """Turns loosely typed option mappings into ResolvedRenderOptions."""

    def __init__(self, registries: Mapping[str, AssetRegistry] | None = None):
        self.registries = dict(registries or REGISTRIES)

    @trace
    def resolve(
        self,
        raw_options: Mapping[str, Any] | None = None,
        base: StyleConfig | None = None,
    ) -> ResolvedRenderOptions:
        """Validate ``raw_options`` over ``base`` and build the render bundle.

        Args:
            raw_options: Option name -> value, e.g. ``{"Marker": "M2", "size": "300"}``.
                Keys are case-insensitive; ``None`` values are skipped and
                unrecognised keys are ignored with a warning.
            base: Configuration to start from. It is copied, never modified.

        Raises:
            InvalidValueError, UnknownSelectorError, MalformedVectorError:
                for the first field that fails, in ``OPTION_SETTERS`` order.
        """
        config = base.copy() if base is not None else StyleConfig(self.registries)
        config.registries = self.registries

        options = {}
        seen = {}
        for key, value in (raw_options or {}).items():
            name = normalize_option_key(str(key))
            if name not in OPTION_SETTERS:
                log.warning("Ignoring unrecognised option %r", key)
                continue
            if name in seen:
                log.warning("Option %r overrides %r (both set %s)", key, seen[name], name)
            seen[name] = key
            if value is None:
                options.pop(name, None)
            else:
                options[name] = value

        for name, setter in OPTION_SETTERS.items():
            if name in options:
                setter(config, options[name])

        paths = {
            family: self.registries[family].path_for(key)
            for family in OVERLAY_FAMILIES
            if (key := getattr(config, family)) is not None
        }
        resolved = ResolvedRenderOptions(
            size=config.size,
            margin=config.margin,
            foreground=config.foreground,
            background=config.background,
            label=config.label.snapshot(),
            marker_path=paths.get("marker"),
            cursor_path=paths.get("cursor"),
            shape_path=paths.get("shape"),
        )
        audit("options.resolved", logger=log,
              size=resolved.size, margin=resolved.margin,
              color=resolved.foreground.to_hex(), background=resolved.background.to_hex(),
              label=resolved.label is not None,
              marker=config.marker, cursor=config.cursor, shape=config.shape)
        return resolved
