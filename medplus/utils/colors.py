"""Color conversions for company branding (HEX, RGB, HSL)."""

import math
import re
from dataclasses import dataclass
from typing import NamedTuple

DEFAULT_PRIMARY_COLOR = "#FF8C42"
WHITE = "#ffffff"
BLACK = "#000000"

_HEX_RE = re.compile(r"^#?([a-f\d]{2})([a-f\d]{2})([a-f\d]{2})$", re.IGNORECASE)


class RGB(NamedTuple):
    r: int
    g: int
    b: int


class HSL(NamedTuple):
    h: int
    s: int
    l: int  # noqa: E741


DEFAULT_RGB = RGB(255, 140, 66)
DEFAULT_HSL = HSL(20, 100, 63)


@dataclass(frozen=True)
class ColorValues:
    hex: str
    rgb: RGB
    hsl: HSL
    rgb_string: str
    hsl_string: str


def _round(x: float) -> int:
    """Round half up (``round`` rounds half to even)."""
    return math.floor(x + 0.5)


def hex_to_rgb(hex_color: str) -> RGB | None:
    """Parse ``#RRGGBB`` (leading ``#`` optional). Returns None when unparseable."""
    match = _HEX_RE.match(hex_color or "")
    if not match:
        return None
    return RGB(*(int(part, 16) for part in match.groups()))


def rgb_to_hex(r: int, g: int, b: int) -> str:
    return "#" + "".join(f"{x:02x}" for x in (r, g, b)).upper()


def hex_to_hsl_precise(hex_color: str) -> tuple[float, float, float] | None:
    """Unrounded HSL (degrees, percent, percent); feeds back through hsl_to_hex exactly."""
    rgb = hex_to_rgb(hex_color)
    if rgb is None:
        return None

    r, g, b = (c / 255 for c in rgb)
    mx = max(r, g, b)
    mn = min(r, g, b)
    h = s = 0.0
    l = (mx + mn) / 2  # noqa: E741

    if mx != mn:
        d = mx - mn
        s = d / (2 - mx - mn) if l > 0.5 else d / (mx + mn)
        if mx == r:
            h = ((g - b) / d + (6 if g < b else 0)) / 6
        elif mx == g:
            h = ((b - r) / d + 2) / 6
        else:
            h = ((r - g) / d + 4) / 6

    return h * 360, s * 100, l * 100


def hex_to_hsl(hex_color: str) -> HSL | None:
    """Whole-number HSL as used in CSS variables.

    Rounding S and L to whole percents loses up to 5 units per channel when
    converted back; use ``hex_to_hsl_precise`` for a lossless round trip.
    """
    hsl = hex_to_hsl_precise(hex_color)
    if hsl is None:
        return None
    h, s, l = hsl  # noqa: E741
    return HSL(_round(h) % 360, _round(s), _round(l))


def hsl_to_hex(h: float, s: float, l: float) -> str:  # noqa: E741
    h = h % 360
    s /= 100
    l /= 100  # noqa: E741

    c = (1 - abs(2 * l - 1)) * s
    x = c * (1 - abs((h / 60) % 2 - 1))
    m = l - c / 2

    if h < 60:
        r, g, b = c, x, 0.0
    elif h < 120:
        r, g, b = x, c, 0.0
    elif h < 180:
        r, g, b = 0.0, c, x
    elif h < 240:
        r, g, b = 0.0, x, c
    elif h < 300:
        r, g, b = x, 0.0, c
    else:
        r, g, b = c, 0.0, x

    return rgb_to_hex(_round((r + m) * 255), _round((g + m) * 255), _round((b + m) * 255))


def get_color_values(hex_color: str) -> ColorValues:
    rgb = hex_to_rgb(hex_color) or DEFAULT_RGB
    hsl = hex_to_hsl(hex_color) or DEFAULT_HSL
    return ColorValues(
        hex=hex_color,
        rgb=rgb,
        hsl=hsl,
        rgb_string=f"{rgb.r}, {rgb.g}, {rgb.b}",
        hsl_string=f"{hsl.h} {hsl.s}% {hsl.l}%",
    )


def generate_color_variants(base_hex: str) -> dict:
    """Hover (10% darker) and light (desaturated, 25% lighter) variants of a base color."""
    hsl = hex_to_hsl(base_hex) or DEFAULT_HSL
    rgb = hex_to_rgb(base_hex) or DEFAULT_RGB
    return {
        "primary": base_hex,
        "primary_hover": hsl_to_hex(hsl.h, hsl.s, max(hsl.l - 10, 0)),
        "primary_light": hsl_to_hex(hsl.h, max(hsl.s - 30, 0), min(hsl.l + 25, 100)),
        "primary_foreground": WHITE,
        "rgb_array": list(rgb),
    }


def get_color_as_hsl_var(hex_color: str) -> str:
    """CSS variable value, e.g. ``"20 100% 63%"``."""
    hsl = hex_to_hsl(hex_color) or DEFAULT_HSL
    return f"{hsl.h} {hsl.s}% {hsl.l}%"


def get_color_as_rgb_array(hex_color: str) -> list[int]:
    return list(hex_to_rgb(hex_color) or DEFAULT_RGB)


def lighten_color(hex_color: str, percent: float) -> str:
    hsl = hex_to_hsl(hex_color)
    if hsl is None:
        return hex_color
    return hsl_to_hex(hsl.h, hsl.s, min(hsl.l + percent, 100))


def darken_color(hex_color: str, percent: float) -> str:
    hsl = hex_to_hsl(hex_color)
    if hsl is None:
        return hex_color
    return hsl_to_hex(hsl.h, hsl.s, max(hsl.l - percent, 0))


def get_contrast_color(hex_color: str) -> str:
    """Black text on light backgrounds, white otherwise."""
    rgb = hex_to_rgb(hex_color)
    if rgb is None:
        return WHITE
    luminance = (0.299 * rgb.r + 0.587 * rgb.g + 0.114 * rgb.b) / 255
    return BLACK if luminance > 0.5 else WHITE


def branding_css_variables(primary_color: str | None) -> dict[str, str]:
    """CSS custom properties for a company's primary color (default orange when unset)."""
    color = primary_color or DEFAULT_PRIMARY_COLOR
    return {
        "--primary": get_color_as_hsl_var(color),
        "--primary-hover": get_color_as_hsl_var(darken_color(color, 10)),
        "--primary-light": get_color_as_hsl_var(lighten_color(color, 25)),
        "--primary-foreground": "0 0% 100%",
    }
