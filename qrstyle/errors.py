"""Errors raised when a style option is rejected.

Everything derives from ``ValueError`` so callers that only care about "bad
argument" can catch that.
"""


class StyleError(ValueError):
    """Base class for rejected style options."""


class InvalidValueError(StyleError):
    """Malformed or out-of-range scalar input."""


class AssetError(InvalidValueError):
    """A packaged overlay asset is missing or unreadable."""


class UnknownSelectorError(StyleError):
    """Overlay selector key not present in its registry."""

    def __init__(self, family: str, key: object, allowed):
        self.family = family
        self.key = key
        self.allowed = tuple(allowed)
        super().__init__(
            f"Unknown {family} selector {key!r}. Allowed values: {', '.join(self.allowed)}"
        )


class MalformedVectorError(StyleError):
    """Margin vector with the wrong length or a bad element.

    ``index`` names the offending element, or is None when the length is wrong.
    """

    def __init__(self, message: str, index: int | None = None):
        self.index = index
        super().__init__(message)
