"""Technical indicators (pure math, no I/O)."""

from core.indicators.indicators import (
    CUSTOM_WINDOW,
    HDY_PERIOD,
    HDY_SMOOTHING,
    LONG_WINDOW,
    SHORT_WINDOW,
    enrich_bars,
    format_fixed,
    hdy_oscillator,
    moving_average,
    round_half_up,
)
from core.indicators.signals import (
    Region,
    RegionMode,
    cross_signal,
    crossover_signals,
    liquidity_regions,
)

__all__ = [
    "moving_average",
    "hdy_oscillator",
    "enrich_bars",
    "round_half_up",
    "format_fixed",
    "cross_signal",
    "crossover_signals",
    "liquidity_regions",
    "Region",
    "RegionMode",
    "HDY_PERIOD",
    "HDY_SMOOTHING",
    "SHORT_WINDOW",
    "LONG_WINDOW",
    "CUSTOM_WINDOW",
]
