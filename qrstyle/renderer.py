"""Renderer: draw a ResolvedRenderOptions bundle with qrcode + Pillow.

Symbol encoding comes from ``qrcode``; this module only paints the module
matrix: background, dark modules (plain or stamped with a shape asset), the
three finder patterns (optionally replaced by marker/cursor assets), the quiet
zone and the label strip under the code.
"""

import base64
import io
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import numpy as np
import qrcode
import qrcode.constants
from qrcode.exceptions import DataOverflowError
from PIL import Image, ImageDraw, ImageFont

from qrstyle.colors import ColorValue
from qrstyle.errors import InvalidValueError
from qrstyle.label import LabelAlignment, LabelConfig
from qrstyle.logging import audit, get_logger, trace
from qrstyle.resolver import ResolvedRenderOptions

log = get_logger("renderer")


class ECCLevel(Enum):
    L = qrcode.constants.ERROR_CORRECT_L  # 7%
    M = qrcode.constants.ERROR_CORRECT_M  # 15%
    Q = qrcode.constants.ERROR_CORRECT_Q  # 25%
    H = qrcode.constants.ERROR_CORRECT_H  # 30%


ECC_NAMES = {"L": ECCLevel.L, "M": ECCLevel.M, "Q": ECCLevel.Q, "H": ECCLevel.H}

# format token -> (Pillow format, mime type, file extension)
FORMATS = {
    "png": ("PNG", "image/png", "png"),
    "jpeg": ("JPEG", "image/jpeg", "jpg"),
    "jpg": ("JPEG", "image/jpeg", "jpg"),
    "webp": ("WEBP", "image/webp", "webp"),
    "gif": ("GIF", "image/gif", "gif"),
    "pdf": ("PDF", "application/pdf", "pdf"),
}

DEFAULT_COMPRESSION_LEVEL = 1
DEFAULT_QUALITY = 90

FINDER_SIZE = 7
EYE_OFFSET = 2
EYE_SIZE = 3
MIN_BOX_SIZE = 10
MIN_CONTRAST = 3.0


@dataclass(frozen=True)
class RenderResult:
    """Encoded image bytes plus what is needed to store or serve them."""

    data: bytes
    fmt: str
    mime_type: str
    extension: str
    width: int
    height: int

    def save_to(self, path: str | Path) -> Path:
        """Write the image, appending the format extension if it is missing."""
        path = Path(path)
        if path.suffix.lower().lstrip(".") not in (self.extension, self.fmt):
            path = path.with_name(f"{path.name}.{self.extension}")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.data)
        audit("qr.saved", logger=log, path=str(path), bytes=len(self.data), fmt=self.fmt)
        return path

    def as_data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{base64.b64encode(self.data).decode('ascii')}"


# ---------------------------------------------------------------------------
# Matrix and contrast helpers
# ---------------------------------------------------------------------------

def parse_ecc(ecc: str) -> ECCLevel:
    """Map 'L'/'M'/'Q'/'H' (any case) to an ECCLevel."""
    level = ECC_NAMES.get(str(ecc).upper())
    if level is None:
        raise InvalidValueError(f"Invalid error correction level {ecc!r}. Allowed values are L, M, Q or H")
    return level


@trace
def build_matrix(data: str, ecc: str = "M") -> list[list[bool]]:
    """Module matrix (True = dark) for ``data``, smallest version that fits."""
    qr = qrcode.QRCode(
        version=None,
        error_correction=parse_ecc(ecc).value,
        box_size=1,
        border=0,
    )
    qr.add_data(data)
    try:
        qr.make(fit=True)
    except (DataOverflowError, ValueError) as exc:
        raise InvalidValueError(
            f"Data of {len(data)} characters does not fit in a QR code at error correction level "
            f"{parse_ecc(ecc).name}"
        ) from exc
    return qr.modules


def _linearize(channel: int) -> float:
    c = channel / 255.0
    return c / 12.92 if c <= 0.03928 else ((c + 0.055) / 1.055) ** 2.4


def _luminance(color: ColorValue) -> float:
    r, g, b = [_linearize(ch) for ch in color.rgb]
    return 0.2126 * r + 0.7152 * g + 0.0722 * b


def contrast_ratio(fg: ColorValue, bg: ColorValue) -> float:
    """WCAG contrast ratio between two colors (1.0 - 21.0)."""
    l1, l2 = sorted((_luminance(fg), _luminance(bg)), reverse=True)
    return (l1 + 0.05) / (l2 + 0.05)


# ---------------------------------------------------------------------------
# Drawing
# ---------------------------------------------------------------------------

def _finder_origins(n: int) -> list[tuple[int, int]]:
    return [(0, 0), (0, n - FINDER_SIZE), (n - FINDER_SIZE, 0)]  # TL, TR, BL


def _in_finder(r: int, c: int, n: int) -> bool:
    return any(
        orig_r <= r < orig_r + FINDER_SIZE and orig_c <= c < orig_c + FINDER_SIZE
        for orig_r, orig_c in _finder_origins(n)
    )


def _asset_mask(path: str, px: int, cache: dict) -> Image.Image:
    """Alpha channel of an asset PNG scaled to ``px`` square (cached per render)."""
    key = (path, px)
    if key not in cache:
        with Image.open(path) as img:
            alpha = img.convert("RGBA").getchannel("A")
        cache[key] = alpha.resize((px, px), Image.LANCZOS)
    return cache[key]


def _draw_finders(mask: Image.Image, n: int, box: int, options: ResolvedRenderOptions, cache: dict):
    """Paint the three finder patterns as ring + eye blocks."""
    draw = ImageDraw.Draw(mask)
    fpx = FINDER_SIZE * box
    for orig_r, orig_c in _finder_origins(n):
        ox, oy = orig_c * box, orig_r * box

        # Outer ring
        draw.rectangle([ox, oy, ox + fpx - 1, oy + fpx - 1], fill=0)
        if options.marker_path:
            ring = _asset_mask(options.marker_path, fpx, cache)
            mask.paste(255, (ox, oy), ring)
        else:
            draw.rectangle([ox, oy, ox + fpx - 1, oy + fpx - 1], fill=255)
            draw.rectangle([ox + box, oy + box, ox + fpx - 1 - box, oy + fpx - 1 - box], fill=0)

        # Centre eye
        ex, ey = ox + EYE_OFFSET * box, oy + EYE_OFFSET * box
        epx = EYE_SIZE * box
        if options.cursor_path:
            eye = _asset_mask(options.cursor_path, epx, cache)
            mask.paste(255, (ex, ey), eye)
        else:
            draw.rectangle([ex, ey, ex + epx - 1, ey + epx - 1], fill=255)


def _module_mask(modules: list[list[bool]], box: int, options: ResolvedRenderOptions, cache: dict) -> Image.Image:
    """Grayscale mask of the code (255 = foreground) at ``box`` px per module."""
    n = len(modules)
    mask = Image.new("L", (n * box, n * box), 0)
    draw = ImageDraw.Draw(mask)
    custom_finders = bool(options.marker_path or options.cursor_path)
    stamp = _asset_mask(options.shape_path, box, cache) if options.shape_path else None

    for r in range(n):
        for c in range(n):
            if not modules[r][c]:
                continue
            if custom_finders and _in_finder(r, c, n):
                continue
            px, py = c * box, r * box
            if stamp is not None:
                mask.paste(255, (px, py), stamp)
            else:
                draw.rectangle([px, py, px + box - 1, py + box - 1], fill=255)

    if custom_finders:
        _draw_finders(mask, n, box, options, cache)
    return mask


def _tint(mask: Image.Image, color: ColorValue) -> Image.Image:
    """RGBA layer of ``color`` whose alpha follows ``mask``."""
    layer = Image.new("RGBA", mask.size, color.rgba)
    alpha = (np.asarray(mask, dtype=np.uint16) * color.alpha // 255).astype(np.uint8)
    layer.putalpha(Image.fromarray(alpha))
    return layer


def _label_font(label: LabelConfig):
    return ImageFont.load_default(size=label.font_size)


def _label_height(label: LabelConfig, font) -> int:
    scratch = ImageDraw.Draw(Image.new("L", (1, 1)))
    left, top, right, bottom = scratch.textbbox((0, 0), label.display_text, font=font)
    return max(0, int(label.margin.top + (bottom - top) + label.margin.bottom))


def _draw_label(canvas: Image.Image, label: LabelConfig, font, y0: int):
    """Draw the label text in the strip starting at ``y0``."""
    draw = ImageDraw.Draw(canvas)
    text = label.display_text
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    text_w = right - left
    width = canvas.width
    m = label.margin

    if label.alignment is LabelAlignment.LEFT:
        x = m.left
    elif label.alignment is LabelAlignment.RIGHT:
        x = width - m.right - text_w
    else:
        x = (width - text_w) / 2 + (m.left - m.right) / 2

    draw.text((int(x - left), int(y0 + m.top - top)), text, font=font, fill=label.color.rgba)


@trace
def render_image(options: ResolvedRenderOptions, data: str, ecc: str = "M") -> Image.Image:
    """Render the styled code to an RGBA image.

    The code occupies ``options.size`` pixels square inside a ``options.margin``
    pixel quiet zone; a label, if present, adds a strip below.
    """
    if contrast_ratio(options.foreground, options.background) < MIN_CONTRAST:
        log.warning(
            "Low contrast between %s and %s; scanners may fail",
            options.foreground.to_hex(), options.background.to_hex(),
        )

    modules = build_matrix(data, ecc)
    n = len(modules)
    box = max(MIN_BOX_SIZE, -(-options.size // n))
    cache: dict = {}

    mask = _module_mask(modules, box, options, cache)
    if mask.width != options.size:
        mask = mask.resize((options.size, options.size), Image.LANCZOS)

    font = _label_font(options.label) if options.label else None
    label_h = _label_height(options.label, font) if options.label else 0

    width = options.canvas_size
    canvas = Image.new("RGBA", (width, width + label_h), options.background.rgba)
    layer = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
    layer.paste(_tint(mask, options.foreground), (options.margin, options.margin))
    canvas.alpha_composite(layer)

    if options.label:
        _draw_label(canvas, options.label, font, width)

    audit("qr.rendered", logger=log,
          modules=f"{n}x{n}", box=box, image_px=f"{canvas.width}x{canvas.height}",
          ecc=parse_ecc(ecc).name, label=options.label is not None)
    return canvas


def _writer_int(writer_options: dict, name: str, default: int, low: int, high: int) -> int:
    value = writer_options.get(name, default)
    if isinstance(value, bool) or not isinstance(value, int) or not low <= value <= high:
        raise InvalidValueError(f"Writer option {name} must be an integer in {low}..{high}, got {value!r}")
    return value


@trace
def render(
    options: ResolvedRenderOptions,
    data: str,
    fmt: str = "png",
    ecc: str = "M",
    writer_options: dict | None = None,
) -> RenderResult:
    """Render and encode in one of ``FORMATS``.

    Writer options: ``compression_level`` (png, 0-9, default 1) and
    ``quality`` (jpeg/webp, 1-100, default 90).
    """
    token = str(fmt).lower()
    if token not in FORMATS:
        raise InvalidValueError(f"Unsupported output format {fmt!r}. Allowed values: {', '.join(FORMATS)}")
    pil_format, mime_type, extension = FORMATS[token]
    writer_options = writer_options or {}

    image = render_image(options, data, ecc)
    save_kwargs = {}
    if pil_format == "PNG":
        save_kwargs["compress_level"] = _writer_int(
            writer_options, "compression_level", DEFAULT_COMPRESSION_LEVEL, 0, 9)
    elif pil_format in ("JPEG", "WEBP"):
        save_kwargs["quality"] = _writer_int(writer_options, "quality", DEFAULT_QUALITY, 1, 100)

    if pil_format in ("JPEG", "PDF", "GIF"):
        flat = Image.new("RGBA", image.size, (255, 255, 255, 255))
        flat.alpha_composite(image)
        image = flat.convert("RGB")

    buf = io.BytesIO()
    image.save(buf, pil_format, **save_kwargs)
    return RenderResult(
        data=buf.getvalue(),
        fmt=token,
        mime_type=mime_type,
        extension=extension,
        width=image.width,
        height=image.height,
    )
