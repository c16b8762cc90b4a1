"""QRCodeGenerator: fluent façade that renders a payload with the configured style."""

from collections.abc import Mapping
from pathlib import Path
from typing import Any

from qrstyle.colors import ColorValue
from qrstyle.errors import InvalidValueError
from qrstyle.label import LabelAlignment
from qrstyle.logging import audit, get_logger, trace
from qrstyle.renderer import RenderResult, parse_ecc, render
from qrstyle.resolver import RenderOptionsResolver, ResolvedRenderOptions, StyleConfig
from qrstyle.validation import check

log = get_logger("generator")

# Upper bound only (alphanumeric at 40-L); build_matrix rejects what the ECC level cannot hold
MAX_DATA_LENGTH = 4296
DEFAULT_ECC = "M"

DATA_RULES = [
    (lambda v: isinstance(v, str), lambda v: InvalidValueError(f"Data must be a string, got {type(v).__name__}")),
    (lambda v: len(v) > 0, lambda v: InvalidValueError("Data cannot be empty")),
    (lambda v: len(v) <= MAX_DATA_LENGTH,
     lambda v: InvalidValueError(f"Data exceeds maximum length of {MAX_DATA_LENGTH} characters")),
]


class QRCodeGenerator:
    """Collects payload and style, then renders on ``generate``.

    Example:
        >>> gen = QRCodeGenerator().set_data("https://example.com").set_size(300)
        >>> gen.generate("png", {"Marker": "M2"}).mime_type
        'image/png'
    """

    def __init__(self, resolver: RenderOptionsResolver | None = None):
        self.resolver = resolver or RenderOptionsResolver()
        self.style = StyleConfig(self.resolver.registries)
        self._data: str | None = None
        self._ecc = DEFAULT_ECC
        self._result: RenderResult | None = None
        self._options: ResolvedRenderOptions | None = None

    # -- payload ------------------------------------------------------------

    def set_data(self, data: str) -> "QRCodeGenerator":
        check(data, DATA_RULES)
        self._data = data
        return self

    def set_error_correction(self, level: str) -> "QRCodeGenerator":
        self._ecc = parse_ecc(level).name
        return self

    @property
    def data(self) -> str | None:
        return self._data

    @property
    def error_correction(self) -> str:
        return self._ecc

    # -- style (delegated) --------------------------------------------------

    def set_size(self, size: int | str) -> "QRCodeGenerator":
        self.style.set_size(size)
        return self

    def set_margin(self, margin: int | str) -> "QRCodeGenerator":
        self.style.set_margin(margin)
        return self

    def set_color(self, color: str | ColorValue) -> "QRCodeGenerator":
        self.style.set_color(color)
        return self

    def set_background_color(self, color: str | ColorValue) -> "QRCodeGenerator":
        self.style.set_background_color(color)
        return self

    def set_label(self, text: str) -> "QRCodeGenerator":
        self.style.set_label(text)
        return self

    def set_label_size(self, size: int | str) -> "QRCodeGenerator":
        self.style.set_label_size(size)
        return self

    def set_label_align(self, alignment: str | LabelAlignment) -> "QRCodeGenerator":
        self.style.set_label_align(alignment)
        return self

    def set_label_margin(self, margin) -> "QRCodeGenerator":
        self.style.set_label_margin(margin)
        return self

    def set_label_color(self, color: str | ColorValue) -> "QRCodeGenerator":
        self.style.set_label_color(color)
        return self

    # -- output -------------------------------------------------------------

    @trace
    def generate(
        self,
        fmt: str = "png",
        options: Mapping[str, Any] | None = None,
        writer_options: dict | None = None,
    ) -> RenderResult:
        """Resolve per-call ``options`` over the stored style and render.

        ``options`` takes the same keys as ``RenderOptionsResolver.resolve``
        (``Marker``, ``Cursor``, ``Shape``, ``size`` ...). They apply to this
        call only; the stored style is not changed.
        """
        if self._data is None:
            raise InvalidValueError("No data set; call set_data() before generate()")

        resolved = self.resolver.resolve(options, base=self.style)
        result = render(resolved, self._data, fmt=fmt, ecc=self._ecc, writer_options=writer_options)
        self._options = resolved
        self._result = result
        audit("qr.generated", logger=log,
              data=self._data[:80], fmt=result.fmt, image_px=f"{result.width}x{result.height}",
              ecc=self._ecc, bytes=len(result.data))
        return result

    @property
    def result(self) -> RenderResult | None:
        return self._result

    @property
    def resolved_options(self) -> ResolvedRenderOptions | None:
        return self._options

    def save_to(self, path: str | Path) -> Path:
        """Write the last generated image; the format extension is appended."""
        if self._result is None:
            raise InvalidValueError("Nothing to save; call generate() first")
        return self._result.save_to(path)
