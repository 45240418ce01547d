"""Icon and splash rendering: sizes, safe zones, fallbacks, determinism."""
from io import BytesIO

import pytest
from PIL import Image

from assets.colors import is_hex_color, normalize_hex_color, parse_hex_color
from assets.errors import InvalidColorError, SynthesisError
from assets.planner import icon_spec, splash_spec
from assets.synthesizer import decode_logo, render, synthesize_icon, synthesize_splash
from conftest import make_logo

CRIMSON = (220, 20, 60)
WHITE_OPAQUE = (255, 255, 255, 255)


def _open(data: bytes) -> Image.Image:
    img = Image.open(BytesIO(data))
    img.load()
    return img


def _close(actual, expected, tol):
    return all(abs(a - e) <= tol for a, e in zip(actual, expected))


def _single_color(img: Image.Image):
    colors = img.getcolors(maxcolors=1)
    return colors[0][1] if colors else None


# ---- colours ----

@pytest.mark.parametrize(
    "value,expected",
    [
        ("#3b82f6", (59, 130, 246)),
        ("3B82F6", (59, 130, 246)),
        ("#fff", (255, 255, 255)),
        ("  #000000 ", (0, 0, 0)),
    ],
)
def test_parse_hex_color(value, expected):
    assert parse_hex_color(value) == expected


@pytest.mark.parametrize("value", ["", None, "#12345", "blue", "#ggg", "#1234567"])
def test_parse_hex_color_rejects_garbage(value):
    with pytest.raises(InvalidColorError):
        parse_hex_color(value)
    assert not is_hex_color(value)


def test_normalize_hex_color_expands_short_form():
    assert normalize_hex_color("#ABC") == "#aabbcc"


# ---- icons ----

def test_icon_without_logo_is_solid_fill():
    img = _open(synthesize_icon(None, 64, fallback_color="#3b82f6"))
    assert img.format == "PNG"
    assert img.size == (64, 64)
    assert _single_color(img.convert("RGBA")) == (59, 130, 246, 255)


@pytest.mark.parametrize("size", [16, 32, 48, 180, 512])
def test_icon_dimensions(size, logo_png):
    img = _open(synthesize_icon(logo_png, size))
    assert img.format == "PNG"
    assert img.size == (size, size)


def test_icon_rendering_is_deterministic(logo_png):
    assert synthesize_icon(logo_png, 192) == synthesize_icon(logo_png, 192)
    assert synthesize_icon(logo_png, 512, maskable=True) == synthesize_icon(logo_png, 512, maskable=True)
    assert synthesize_splash(logo_png, 750, 1334, "#112233") == synthesize_splash(logo_png, 750, 1334, "#112233")


def test_large_icon_centers_logo_on_white(logo_png):
    img = _open(synthesize_icon(logo_png, 192)).convert("RGBA")
    # logo box is int(192 * 0.8) = 153 at offset 19; the wide logo leaves white above and below
    assert img.getpixel((0, 0)) == WHITE_OPAQUE
    assert img.getpixel((96, 30)) == WHITE_OPAQUE
    assert _single_color(img.crop((0, 0, 192, 19))) == WHITE_OPAQUE
    assert _close(img.getpixel((96, 96)), CRIMSON + (255,), 2)


def test_maskable_icon_keeps_outer_ring_clear(logo_png):
    img = _open(synthesize_icon(logo_png, 512, maskable=True)).convert("RGBA")
    # padding round(512 * 0.1) = 51 on every side
    for box in [(0, 0, 512, 51), (0, 461, 512, 512), (0, 0, 51, 512), (461, 0, 512, 512)]:
        assert _single_color(img.crop(box)) == WHITE_OPAQUE
    # logo box 328px at offset 92; a 2:1 logo spans x 92..420
    assert img.getpixel((91, 256)) == WHITE_OPAQUE
    assert img.getpixel((421, 256)) == WHITE_OPAQUE
    assert _close(img.getpixel((256, 256)), CRIMSON + (255,), 2)


def test_maskable_logo_is_smaller_than_plain_icon_logo():
    square = make_logo(100, 100)
    plain = _open(synthesize_icon(square, 192)).convert("RGBA")
    maskable = _open(synthesize_icon(square, 192, maskable=True)).convert("RGBA")
    # plain: 153px logo from x=19; maskable: int(154 * 0.8) = 123px logo from x=19 + 15
    assert _close(plain.getpixel((25, 96)), CRIMSON + (255,), 2)
    assert maskable.getpixel((25, 96)) == WHITE_OPAQUE


def test_small_icon_keeps_transparent_padding(logo_png):
    img = _open(synthesize_icon(logo_png, 16)).convert("RGBA")
    # 2:1 logo fills the full width: 16x8 centered vertically
    assert img.getpixel((8, 0))[3] == 0
    assert img.getpixel((8, 15))[3] == 0
    assert img.getpixel((8, 8))[3] == 255


def test_corrupt_logo_raises_synthesis_error():
    with pytest.raises(SynthesisError):
        synthesize_icon(b"definitely not an image", 192)
    with pytest.raises(SynthesisError):
        decode_logo(b"")


def test_invalid_fallback_color_raises():
    with pytest.raises(InvalidColorError):
        synthesize_icon(None, 48, fallback_color="not-a-colour")


def test_decode_logo_accepts_jpeg():
    img = decode_logo(make_logo(fmt="JPEG"))
    assert img.mode == "RGBA"
    assert img.size == (200, 100)


# ---- splash ----

def test_splash_without_logo_is_flat_background():
    img = _open(synthesize_splash(None, 640, 1136, "#112233"))
    assert img.format == "JPEG"
    assert img.size == (640, 1136)
    for xy in [(0, 0), (320, 568), (639, 1135)]:
        assert _close(img.getpixel(xy), (17, 34, 51), 3)


def test_splash_centers_logo(logo_png):
    img = _open(synthesize_splash(logo_png, 750, 1334, "#112233"))
    assert img.size == (750, 1334)
    assert _close(img.getpixel((0, 0)), (17, 34, 51), 3)
    assert _close(img.getpixel((749, 1333)), (17, 34, 51), 3)
    assert _close(img.getpixel((375, 667)), CRIMSON, 8)
    # logo box int(750 * 0.4) = 300, so 200px above center is background
    assert _close(img.getpixel((375, 467)), (17, 34, 51), 3)


def test_render_dispatches_on_kind(logo_png):
    icon = _open(render(icon_spec(48), logo_png, "#ffffff"))
    splash = _open(render(splash_spec(1334, 750), logo_png, "#ffffff"))
    assert (icon.format, icon.size) == ("PNG", (48, 48))
    assert (splash.format, splash.size) == ("JPEG", (1334, 750))
