"""Hex color validation and normalization."""

import re
from dataclasses import dataclass

from qrstyle.errors import InvalidValueError

# '#' followed by exactly 3, 6 or 8 hex digits. No named colors, no rgb()/rgba().
HEX_COLOR_RE = re.compile(r"#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})")


@dataclass(frozen=True)
class ColorValue:
    """An RGBA color, 0-255 per channel."""

    red: int
    green: int
    blue: int
    alpha: int = 255

    def __post_init__(self):
        for name in ("red", "green", "blue", "alpha"):
            channel = getattr(self, name)
            if isinstance(channel, bool) or not isinstance(channel, int) or not 0 <= channel <= 255:
                raise InvalidValueError(f"Color channel {name} must be an integer in 0..255, got {channel!r}")

    @property
    def rgb(self) -> tuple[int, int, int]:
        return (self.red, self.green, self.blue)

    @property
    def rgba(self) -> tuple[int, int, int, int]:
        return (self.red, self.green, self.blue, self.alpha)

    @property
    def is_opaque(self) -> bool:
        return self.alpha == 255

    def to_hex(self) -> str:
        """``#RRGGBB`` for opaque colors, ``#RRGGBBAA`` otherwise."""
        text = "#{:02X}{:02X}{:02X}".format(*self.rgb)
        if not self.is_opaque:
            text += f"{self.alpha:02X}"
        return text


BLACK = ColorValue(0, 0, 0)
WHITE = ColorValue(255, 255, 255)


def is_valid_hex_color(value: object) -> bool:
    """True if ``value`` is '#' plus 3, 6 or 8 hex digits."""
    return isinstance(value, str) and HEX_COLOR_RE.fullmatch(value) is not None


def normalize_color(value: object) -> ColorValue:
    """Parse a hex color string into a ColorValue.

    3-digit forms are expanded digit by digit (``#F0A`` -> ``#FF00AA``). The
    8-digit form carries alpha in its last byte; shorter forms are opaque.

    Raises:
        InvalidValueError: if ``value`` is not an accepted hex color.
    """
    if isinstance(value, ColorValue):
        return value
    if not is_valid_hex_color(value):
        raise InvalidValueError(f"Invalid color format {value!r}; expected #RGB, #RRGGBB or #RRGGBBAA")

    digits = value[1:]
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    channels = [int(digits[i:i + 2], 16) for i in range(0, len(digits), 2)]
    return ColorValue(*channels)
