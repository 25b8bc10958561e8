"""
palette.py

Color resolution for every color mode of the map and for system-view markers.
"""

import math
from typing import Optional, Tuple

import pygame

COLOR_MODES = ("region", "security", "faction", "alliance")

NEUTRAL = (77, 77, 77)  # hsl(0, 0%, 30%)
BACKGROUND = (0, 0, 0)
EDGE_COLOR = (100, 150, 255, 77)
RING_COLOR = (100, 100, 100, 51)
RING_LABEL_COLOR = (150, 150, 150, 128)
OUTLINE_SOFT = (255, 255, 255, 77)
OUTLINE_MARKER = (255, 255, 255, 128)
HOVER_RING = (255, 200, 100)

STARGATE_COLOR = (0, 255, 255)
STATION_COLOR = (255, 0, 255)

FACTION_NAMES = {
    500001: "Caldari State",
    500002: "Minmatar Republic",
    500003: "Amarr Empire",
    500004: "Gallente Federation",
}

_FACTION_HUES = {
    500001: (210, 100, 50),
    500002: (0, 100, 50),
    500003: (45, 100, 50),
    500004: (120, 60, 45),
}

GOLDEN_ANGLE = 137.508


def hex_to_rgb(hex_str: str) -> Tuple[int, int, int]:
    """Convert '#rrggbb' or 'rrggbb' to an (r, g, b) tuple."""
    if not hex_str:
        return (255, 255, 255)
    s = hex_str.strip()
    if s.startswith("#"):
        s = s[1:]
    if len(s) == 3:
        s = "".join(ch * 2 for ch in s)
    if len(s) != 6:
        return (255, 255, 255)
    try:
        return (int(s[0:2], 16), int(s[2:4], 16), int(s[4:6], 16))
    except ValueError:
        return (255, 255, 255)


def hsl(hue: float, saturation: float, lightness: float) -> Tuple[int, int, int]:
    """CSS-style hsl() (hue in degrees, saturation/lightness in percent) to RGB."""
    color = pygame.Color(0, 0, 0)
    color.hsla = (hue % 360, saturation, lightness, 100)
    return (color.r, color.g, color.b)


def with_alpha(rgb: Tuple[int, ...], opacity: float) -> Tuple[int, int, int, int]:
    return (rgb[0], rgb[1], rgb[2], int(round(255 * max(0.0, min(opacity, 1.0)))))


def hashed_hue_color(key: int) -> Tuple[int, int, int]:
    return hsl((key * GOLDEN_ANGLE) % 360, 70, 60)


# ---------- map modes ----------


def round_security(security: float) -> float:
    """Displayed security: anything in (0, 0.05] rounds up to 0.1."""
    if 0 <= security <= 0.05:
        return math.ceil(security * 10) / 10
    return math.floor(security * 10 + 0.5) / 10


def security_color(security: float) -> Tuple[int, int, int]:
    rounded = round_security(security)
    if rounded >= 0.5:
        intensity = (rounded - 0.5) / 0.5
        return hsl(60 + intensity * 180, 100, 50 - intensity * 20)
    if rounded > 0:
        intensity = (rounded - 0.1) / 0.3
        return hsl(30, 60 + intensity * 40, 30 + intensity * 20)
    return hsl(0, 100, 40)


def region_color(region_id: int) -> Tuple[int, int, int]:
    return hashed_hue_color(region_id)


def faction_color(faction_id: Optional[int]) -> Tuple[int, int, int]:
    if not faction_id:
        return NEUTRAL
    if faction_id in _FACTION_HUES:
        return hsl(*_FACTION_HUES[faction_id])
    return hashed_hue_color(faction_id)


def alliance_color(alliance_id: Optional[int]) -> Tuple[int, int, int]:
    if not alliance_id:
        return NEUTRAL
    return hashed_hue_color(alliance_id)


def faction_name(faction_id: int) -> str:
    return FACTION_NAMES.get(faction_id, f"Faction {faction_id}")


# ---------- system view ----------


def star_color(spectral_class: Optional[str]) -> Tuple[int, int, int]:
    """Saturated star color by spectral class, gold when unknown."""
    colors = {
        "O": "#6B9FFF",
        "B": "#9BBFFF",
        "A": "#FFFFFF",
        "F": "#FFFACD",
        "G": "#FFD700",
        "K": "#FFA500",
        "M": "#FF6347",
    }
    sc = (spectral_class or "").strip().upper()
    return hex_to_rgb(colors.get(sc[:1], "#FFD700"))


def planet_color(temperature: Optional[float]) -> Tuple[int, int, int]:
    if not temperature:
        return hex_to_rgb("#4169E1")
    if temperature < 150:
        return hex_to_rgb("#87CEEB")  # ice
    if temperature < 250:
        return hex_to_rgb("#4169E1")
    if temperature < 350:
        return hex_to_rgb("#32CD32")  # temperate
    if temperature < 450:
        return hex_to_rgb("#FFD700")
    if temperature < 600:
        return hex_to_rgb("#FF8C00")
    return hex_to_rgb("#FF4500")  # lava
