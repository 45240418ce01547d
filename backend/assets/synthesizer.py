"""
Icon and splash-screen rendering with Pillow.

Pure functions: the same (logo bytes, dimensions, colour) always produce the
same encoded bytes, which keeps re-uploads idempotent.
"""
from __future__ import annotations

from io import BytesIO
from typing import Optional

from PIL import Image, ImageFilter, ImageOps, UnidentifiedImageError

from assets.colors import WHITE, parse_hex_color
from assets.errors import SynthesisError
from models_branding import ArtifactKind, ArtifactSpec

SMALL_ICON_MAX = 32
ICON_LOGO_RATIO = 0.8
MASKABLE_PADDING_RATIO = 0.10
SPLASH_LOGO_RATIO = 0.4
JPEG_QUALITY = 90

_RESAMPLE = Image.Resampling.LANCZOS
_TRANSPARENT = (0, 0, 0, 0)


def decode_logo(data: bytes) -> Image.Image:
    """Decode PNG/JPEG/WebP bytes into an RGBA image; SynthesisError when unreadable."""
    if not data:
        raise SynthesisError("Logo is empty")
    try:
        with Image.open(BytesIO(data)) as img:
            img.load()
            img = ImageOps.exif_transpose(img)
            return img.convert("RGBA")
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        raise SynthesisError(f"Logo could not be decoded: {e}") from e


def _contain(logo: Image.Image, box: int) -> Image.Image:
    """Fit logo inside a transparent box x box square, centered, no cropping."""
    fitted = ImageOps.contain(logo, (box, box), method=_RESAMPLE)
    canvas = Image.new("RGBA", (box, box), _TRANSPARENT)
    canvas.alpha_composite(fitted, ((box - fitted.width) // 2, (box - fitted.height) // 2))
    return canvas


def _sharpen(img: Image.Image) -> Image.Image:
    # Alpha is left alone so the sharpening halo does not bleed into transparent padding.
    rgb = img.convert("RGB").filter(ImageFilter.UnsharpMask(radius=0.5, percent=100, threshold=0))
    rgb.putalpha(img.getchannel("A"))
    return rgb


def _encode_png(img: Image.Image) -> bytes:
    buf = BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def _encode_jpeg(img: Image.Image) -> bytes:
    buf = BytesIO()
    img.convert("RGB").save(buf, format="JPEG", quality=JPEG_QUALITY)
    return buf.getvalue()


def solid_icon(size: int, color: str) -> bytes:
    return _encode_png(Image.new("RGBA", (size, size), parse_hex_color(color) + (255,)))


def synthesize_icon(
    logo: Optional[bytes],
    size: int,
    maskable: bool = False,
    fallback_color: str = "#ffffff",
) -> bytes:
    """
    Render a size x size PNG icon.

    Without a logo: flat square of fallback_color.
    Small icons (<= 32px): logo fills the whole square, sharpened, transparent padding.
    Larger icons: logo at 80% centered on opaque white.
    Maskable: 10% margin per side is reserved first, the logo takes 80% of what remains.
    """
    if size <= 0:
        raise SynthesisError(f"Invalid icon size: {size}")
    if logo is None:
        return solid_icon(size, fallback_color)

    source = decode_logo(logo)

    if maskable:
        padding = round(size * MASKABLE_PADDING_RATIO)
        area = size - 2 * padding
        logo_size = int(area * ICON_LOGO_RATIO)
        offset = padding + (area - logo_size) // 2
    elif size <= SMALL_ICON_MAX:
        return _encode_png(_sharpen(_contain(source, size)))
    else:
        logo_size = int(size * ICON_LOGO_RATIO)
        offset = (size - logo_size) // 2

    canvas = Image.new("RGBA", (size, size), WHITE + (255,))
    canvas.alpha_composite(_contain(source, logo_size), (offset, offset))
    return _encode_png(canvas)


def synthesize_splash(
    logo: Optional[bytes],
    width: int,
    height: int,
    background_color: str = "#ffffff",
) -> bytes:
    """Render a width x height JPEG: flat background, logo at 40% of the short side, centered."""
    if width <= 0 or height <= 0:
        raise SynthesisError(f"Invalid splash dimensions: {width}x{height}")
    canvas = Image.new("RGB", (width, height), parse_hex_color(background_color))
    if logo is not None:
        logo_size = int(min(width, height) * SPLASH_LOGO_RATIO)
        mark = _contain(decode_logo(logo), logo_size)
        canvas.paste(mark, ((width - logo_size) // 2, (height - logo_size) // 2), mark)
    return _encode_jpeg(canvas)


def render(spec: ArtifactSpec, logo: Optional[bytes], color: str) -> bytes:
    """Dispatch on artifact kind. color is the icon fallback fill or the splash background."""
    if spec.kind == ArtifactKind.icon:
        return synthesize_icon(logo, spec.width, maskable=spec.maskable, fallback_color=color)
    return synthesize_splash(logo, spec.width, spec.height, background_color=color)
