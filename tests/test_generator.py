import io
import logging

import pytest
from PIL import Image

from qrstyle.errors import InvalidValueError, UnknownSelectorError
from qrstyle.generator import QRCodeGenerator


def _image(result):
    return Image.open(io.BytesIO(result.data)).convert("RGBA")


def test_custom_colors(generator, tmp_path):
    generator.set_size(300).set_margin(20).set_color("#FF5733").set_background_color("#FFFFFF")
    result = generator.generate("png")

    assert result.mime_type == "image/png"
    assert (result.width, result.height) == (340, 340)
    assert generator.resolved_options.foreground.to_hex() == "#FF5733"

    path = generator.save_to(tmp_path / "styled")
    assert path == tmp_path / "styled.png"
    assert path.read_bytes().startswith(b"\x89PNG\r\n\x1a\n")


def test_default_styling(generator, tmp_path):
    generator.generate("png")
    path = generator.save_to(tmp_path / "default")
    assert path.exists()
    assert path.stat().st_size > 0
    assert _image(generator.result).size == (320, 320)


def test_custom_size_and_margin(generator):
    result = generator.set_size(500).set_margin(50).generate("png")
    assert (result.width, result.height) == (600, 600)


def test_invalid_color_is_rejected_before_generate(generator):
    with pytest.raises(InvalidValueError):
        generator.set_color("INVALID_COLOR")
    assert generator.style.foreground.to_hex() == "#000000"


def test_invalid_size_is_rejected(generator):
    with pytest.raises(InvalidValueError):
        generator.set_size(-100)


def test_pixels_follow_colors(generator):
    img = _image(generator.set_size(300).set_margin(20).set_color("#FF0000").generate())
    assert img.getpixel((5, 5)) == (255, 255, 255, 255)
    # top-left finder corner module is always dark
    assert img.getpixel((23, 23)) == (255, 0, 0, 255)


def test_translucent_foreground_blends_with_background(generator):
    img = _image(generator.set_margin(20).set_color("#FF000080").generate())
    r, g, b, a = img.getpixel((23, 23))
    assert r == 255
    assert 120 <= g <= 135
    assert a == 255


@pytest.mark.parametrize("marker", ["M1", "M2", "M3", "M4"])
def test_custom_markers(generator, tmp_path, marker):
    generator.generate("png", {"Marker": marker})
    assert generator.save_to(tmp_path / marker).stat().st_size > 0


def test_round_marker_clears_finder_corner(generator):
    plain = _image(generator.set_margin(20).generate())
    rounded = _image(generator.generate("png", {"Marker": "M2"}))
    assert plain.getpixel((21, 21)) == (0, 0, 0, 255)
    assert rounded.getpixel((21, 21)) == (255, 255, 255, 255)


@pytest.mark.parametrize("cursor", ["C1", "C2", "C3", "C4"])
def test_custom_cursors(generator, cursor):
    assert generator.generate("png", {"Cursor": cursor}).data


@pytest.mark.parametrize("shape", ["S1", "S2", "S3", "S4"])
def test_custom_shapes(generator, shape):
    assert generator.generate("png", {"Shape": shape}).data


@pytest.mark.parametrize("options", [
    {"Marker": "M5"},
    {"Cursor": "C5"},
    {"Shape": "S5"},
    {"Shape": "S5", "Cursor": "C5", "Marker": "M5"},
])
def test_invalid_overlays(generator, options):
    with pytest.raises(UnknownSelectorError):
        generator.generate("png", options)
    assert generator.result is None


def test_shape_cursor_and_marker_together(generator, tmp_path):
    generator.generate("png", {"Shape": "S2", "Cursor": "C2", "Marker": "M2"})
    assert generator.save_to(tmp_path / "combo").stat().st_size > 0
    assert generator.resolved_options.has_overlays


def test_per_call_options_do_not_stick(generator):
    generator.generate("png", {"Marker": "M1", "size": 200})
    assert generator.style.marker is None
    assert generator.style.size == 300
    assert generator.generate("png").width == 320


def test_label_adds_a_strip_below_the_code(generator):
    plain = generator.generate("png")
    labelled = generator.set_label("Scan me").set_label_size(24).set_label_color("#0000FF").generate("png")
    assert labelled.width == plain.width
    assert labelled.height > plain.height


@pytest.mark.parametrize("align", ["left", "center", "right"])
def test_label_alignments_render(generator, align):
    result = generator.set_label("Hi").set_label_align(align).set_label_margin([5, 10, 5, 10]).generate()
    assert result.height > result.width


@pytest.mark.parametrize("fmt, signature, extension", [
    ("jpeg", b"\xff\xd8", "jpg"),
    ("jpg", b"\xff\xd8", "jpg"),
    ("webp", b"RIFF", "webp"),
    ("gif", b"GIF8", "gif"),
    ("pdf", b"%PDF", "pdf"),
])
def test_other_formats(generator, tmp_path, fmt, signature, extension):
    result = generator.generate(fmt)
    assert result.data.startswith(signature)
    assert generator.save_to(tmp_path / "out").name == f"out.{extension}"


def test_save_to_keeps_matching_extension(generator, tmp_path):
    generator.generate("png")
    assert generator.save_to(tmp_path / "code.png").name == "code.png"


def test_unknown_format(generator):
    with pytest.raises(InvalidValueError, match="bmp"):
        generator.generate("bmp")


@pytest.mark.parametrize("writer_options", [{"compression_level": 10}, {"compression_level": "9"}])
def test_invalid_compression_level(generator, writer_options):
    with pytest.raises(InvalidValueError):
        generator.generate("png", writer_options=writer_options)


def test_compression_level_changes_output(generator):
    fast = generator.generate("png", writer_options={"compression_level": 0})
    small = generator.generate("png", writer_options={"compression_level": 9})
    assert len(small.data) < len(fast.data)


def test_data_uri(generator):
    assert generator.generate().as_data_uri().startswith("data:image/png;base64,")


def test_generate_requires_data():
    with pytest.raises(InvalidValueError, match="set_data"):
        QRCodeGenerator().generate("png")


def test_save_requires_generate(generator, tmp_path):
    with pytest.raises(InvalidValueError, match="generate"):
        generator.save_to(tmp_path / "nothing")


@pytest.mark.parametrize("data", ["", None, "x" * 4297])
def test_invalid_data(data):
    with pytest.raises(InvalidValueError):
        QRCodeGenerator().set_data(data)


def test_data_beyond_symbol_capacity_is_rejected_on_generate():
    gen = QRCodeGenerator().set_data("x" * 3000)
    with pytest.raises(InvalidValueError, match="3000 characters .* level M") as exc_info:
        gen.generate("png")
    assert exc_info.value.__cause__ is not None
    assert gen.result is None


def test_error_correction(generator):
    assert generator.set_error_correction("h").error_correction == "H"
    low = generator.set_error_correction("L").generate()
    high = generator.set_error_correction("H").generate()
    assert low.width == high.width
    with pytest.raises(InvalidValueError):
        generator.set_error_correction("X")


def test_low_contrast_warns(generator, caplog):
    caplog.set_level(logging.WARNING, logger="qrstyle")
    generator.set_color("#EEEEEE").generate()
    assert "Low contrast" in caplog.text


def test_generate_emits_audit_events(generator, audit_events):
    generator.generate("png", {"Marker": "M1"})
    names = [event for event, _ in audit_events()]
    assert names.index("options.resolved") < names.index("qr.rendered") < names.index("qr.generated")
