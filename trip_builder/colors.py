from __future__ import annotations

import colorsys

from matplotlib.colors import to_hex


TRIP_PALETTE = [
    "#1f77b4", "#ff7f0e", "#2ca02c", "#d62728", "#9467bd",
    "#8c564b", "#e377c2", "#7f7f7f", "#bcbd22", "#17becf",
    "#393b79", "#637939", "#8c6d31", "#843c39", "#7b4173",
    "#5254a3", "#6b6ecf", "#9c9ede", "#8ca252", "#bd9e39",
]

GOLDEN_ANGLE_DEG = 137.508


def hsl_to_hex(h: float, s: float, l: float) -> str:
    """h in degrees, s and l in percent."""
    r, g, b = colorsys.hls_to_rgb((h % 360.0) / 360.0, l / 100.0, s / 100.0)
    return to_hex((r, g, b))


def palette_color(rank: int) -> str:
    """
    Stable color for a trip's 0-based rank.

    The first ranks use a fixed palette; later ones are spread around the hue
    wheel by the golden angle.
    """
    if 0 <= rank < len(TRIP_PALETTE):
        return TRIP_PALETTE[rank]
    return hsl_to_hex(GOLDEN_ANGLE_DEG * rank, 70.0, 50.0)
