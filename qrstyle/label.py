"""Label settings: text, font size, alignment, margin vector and color.

Every setter validates before it touches state, so a rejected value leaves the
previous configuration exactly as it was.
"""

import html
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple

from qrstyle.colors import BLACK, ColorValue, is_valid_hex_color, normalize_color
from qrstyle.errors import InvalidValueError, MalformedVectorError
from qrstyle.logging import audit, get_logger
from qrstyle.validation import check, is_int, parse_int, parse_number

log = get_logger("label")

MAX_LABEL_LENGTH = 200
MARGIN_LIMIT = 250


class LabelAlignment(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class LabelMargin(NamedTuple):
    """Label padding in pixels. Not the quiet-zone margin of the code itself."""

    top: int | float
    right: int | float
    bottom: int | float
    left: int | float


DEFAULT_LABEL_MARGIN = LabelMargin(0, 10, 10, 10)
DEFAULT_FONT_SIZE = 20
DEFAULT_ALIGNMENT = LabelAlignment.CENTER
DEFAULT_LABEL_COLOR = BLACK


@dataclass(frozen=True)
class LabelConfig:
    """Snapshot of a fully configured label, as handed to the renderer."""

    text: str
    font_size: int = DEFAULT_FONT_SIZE
    alignment: LabelAlignment = DEFAULT_ALIGNMENT
    margin: LabelMargin = DEFAULT_LABEL_MARGIN
    color: ColorValue = DEFAULT_LABEL_COLOR

    @property
    def display_text(self) -> str:
        """The text as it should appear on screen (HTML entities decoded)."""
        return html.unescape(self.text)


# ---------------------------------------------------------------------------
# Field rules
# ---------------------------------------------------------------------------

TEXT_RULES = [
    (lambda v: isinstance(v, str), lambda v: InvalidValueError(f"Label text must be a string, got {type(v).__name__}")),
    (lambda v: len(v) > 0, lambda v: InvalidValueError("Label text cannot be empty")),
    (lambda v: len(v) <= MAX_LABEL_LENGTH,
     lambda v: InvalidValueError(f"Label text cannot exceed {MAX_LABEL_LENGTH} characters (got {len(v)})")),
]

FONT_SIZE_RULES = [
    (is_int, lambda v: InvalidValueError(f"Font size must be an integer, got {v!r}")),
    (lambda v: parse_int(v) > 0, lambda v: InvalidValueError(f"Font size must be a positive integer, got {v!r}")),
]

ALIGNMENT_RULES = [
    (lambda v: isinstance(v, str), lambda v: InvalidValueError(f"Label alignment must be a string, got {v!r}")),
    (lambda v: v.lower() in {a.value for a in LabelAlignment},
     lambda v: InvalidValueError(f"Invalid label alignment {v!r}. Allowed values are left, center or right")),
]

LABEL_COLOR_RULES = [
    (lambda v: isinstance(v, ColorValue) or is_valid_hex_color(v),
     lambda v: InvalidValueError(f"Invalid label color format {v!r}")),
]


def parse_label_margin(value: object) -> LabelMargin:
    """Validate a [top, right, bottom, left] vector.

    Accepts any 4-item sequence of numbers or numeric strings, or a
    comma-separated string such as ``"0, 10, 10, 10"``.

    Raises:
        MalformedVectorError: wrong length (``index`` None) or a bad element.
    """
    if isinstance(value, str):
        value = [part.strip() for part in value.split(",")]
    if not isinstance(value, Sequence) or isinstance(value, (bytes, bytearray)) or len(value) != 4:
        raise MalformedVectorError("Margin must contain exactly 4 values [top, right, bottom, left]")

    numbers = []
    for index, item in enumerate(value):
        number = parse_number(item)
        if number is None:
            raise MalformedVectorError(f"Margin value at index {index} must be numeric, got {item!r}", index=index)
        if not -MARGIN_LIMIT <= number <= MARGIN_LIMIT:
            raise MalformedVectorError(
                f"Margin value at index {index} must be between -{MARGIN_LIMIT} and {MARGIN_LIMIT}, got {item!r}",
                index=index,
            )
        numbers.append(number)
    return LabelMargin(*numbers)


class LabelManager:
    """Holds label settings; built up through validating setters."""

    def __init__(self):
        self._text = ""
        self._font_size = DEFAULT_FONT_SIZE
        self._alignment = DEFAULT_ALIGNMENT
        self._margin = DEFAULT_LABEL_MARGIN
        self._color = DEFAULT_LABEL_COLOR

    def __repr__(self):
        return (f"LabelManager(text={self._text!r}, font_size={self._font_size}, "
                f"alignment={self._alignment.value}, margin={tuple(self._margin)}, color={self._color.to_hex()})")

    def copy(self) -> "LabelManager":
        other = LabelManager()
        other.__dict__.update(self.__dict__)
        return other

    # -- setters ------------------------------------------------------------

    def set_text(self, text: str) -> "LabelManager":
        """Store the label text HTML-escaped. Rejects empty or >200 chars."""
        check(text, TEXT_RULES)
        self._text = html.escape(text)
        audit("label.text_set", logger=log, length=len(text))
        return self

    def set_font_size(self, size: int | str) -> "LabelManager":
        check(size, FONT_SIZE_RULES)
        self._font_size = parse_int(size)
        return self

    def set_alignment(self, alignment: str | LabelAlignment) -> "LabelManager":
        if isinstance(alignment, LabelAlignment):
            self._alignment = alignment
            return self
        check(alignment, ALIGNMENT_RULES)
        self._alignment = LabelAlignment(alignment.lower())
        return self

    def set_margin(self, margin: Sequence | str) -> "LabelManager":
        self._margin = parse_label_margin(margin)
        return self

    def set_color(self, color: str | ColorValue) -> "LabelManager":
        check(color, LABEL_COLOR_RULES)
        self._color = normalize_color(color)
        return self

    # -- getters ------------------------------------------------------------

    @property
    def text(self) -> str:
        return self._text

    @property
    def font_size(self) -> int:
        return self._font_size

    @property
    def alignment(self) -> LabelAlignment:
        return self._alignment

    @property
    def margin(self) -> LabelMargin:
        return self._margin

    @property
    def color(self) -> ColorValue:
        return self._color

    @property
    def is_set(self) -> bool:
        return bool(self._text)

    def snapshot(self) -> LabelConfig | None:
        """Frozen copy of the current settings, or None when no text is set."""
        if not self._text:
            return None
        return LabelConfig(
            text=self._text,
            font_size=self._font_size,
            alignment=self._alignment,
            margin=self._margin,
            color=self._color,
        )
