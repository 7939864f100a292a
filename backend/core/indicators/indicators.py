"""Technical indicators over daily bar sequences.

All functions are pure: output lists are index-aligned with the input bars
and ``None`` marks indices without enough history yet.
"""

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence

import numpy as np

from core.models.bar import EnrichedBar, MarketBar, PriceField
from core.indicators.signals import crossover_signals

# HDY oscillator parameters
HDY_PERIOD = 34
HDY_SMOOTHING = 3
HDY_NEUTRAL = 50.0

# Volume moving averages used by the crossover strategy
SHORT_WINDOW = 10
LONG_WINDOW = 100
CUSTOM_WINDOW = 148


# =============================================================================
# Rounding helpers
# =============================================================================

def round_half_up(value: float, digits: int) -> float:
    """Round to a fixed number of decimals, ties away from zero."""
    if not math.isfinite(value):
        return value
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def format_fixed(value: float, digits: int) -> str:
    """Format with a fixed number of decimals using half-up rounding."""
    if not math.isfinite(value):
        return str(value)
    quantum = Decimal(1).scaleb(-digits)
    return str(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def _numeric_or_zero(value: float | None) -> float:
    """Coerce a missing or non-finite price to 0."""
    if value is None or not math.isfinite(value):
        return 0.0
    return float(value)


# =============================================================================
# Moving average
# =============================================================================

def moving_average(
    window: int,
    bars: Sequence[MarketBar],
    field: PriceField = PriceField.VOLUME,
) -> list[float | None]:
    """
    Calculate a simple moving average of one bar field.

    Args:
        window: Number of trailing bars averaged (>= 1)
        bars: Bar sequence in ascending date order
        field: Field to average

    Returns:
        List of averages rounded to 4 decimals, None for the first window-1 bars
    """
    if window < 1:
        raise ValueError(f"window must be >= 1, got {window}")

    arr = np.array([field.value_of(bar) for bar in bars], dtype=np.float64)
    result: list[float | None] = [None] * min(window - 1, len(arr))

    for i in range(window - 1, len(arr)):
        mean = float(np.sum(arr[i - window + 1 : i + 1]) / window)
        result.append(round_half_up(mean, 4))

    return result


# =============================================================================
# HDY oscillator
# =============================================================================

def hdy_oscillator(bars: Sequence[MarketBar]) -> list[float]:
    """
    Calculate the HDY top/bottom oscillator.

    RSV of the close within the trailing 34-bar high/low range, smoothed
    recursively with ema = (2 * rsv + (M - 1) * ema_prev) / (M + 1), M = 3.
    The first 34 values are the neutral 50.

    Args:
        bars: Bar sequence in ascending date order

    Returns:
        List of values in [0, 100] rounded to 2 decimals
    """
    n = HDY_PERIOD
    m = HDY_SMOOTHING

    highs = np.array([_numeric_or_zero(bar.high) for bar in bars], dtype=np.float64)
    lows = np.array([_numeric_or_zero(bar.low) for bar in bars], dtype=np.float64)

    result = [HDY_NEUTRAL] * min(n, len(bars))
    last_ema = HDY_NEUTRAL

    for i in range(n, len(bars)):
        max_high = float(np.max(highs[i - n + 1 : i + 1]))
        min_low = float(np.min(lows[i - n + 1 : i + 1]))
        close = bars[i].close

        rsv = HDY_NEUTRAL
        if max_high != min_low and math.isfinite(close):
            rsv = (close - min_low) / (max_high - min_low) * 100
            # Closes outside the high/low range would leave [0, 100]
            rsv = min(max(rsv, 0.0), 100.0)

        last_ema = (2 * rsv + (m - 1) * last_ema) / (m + 1)
        result.append(round_half_up(last_ema, 2))

    return result


# =============================================================================
# Bar enrichment
# =============================================================================

def enrich_bars(
    bars: Sequence[MarketBar],
    custom_window: int = CUSTOM_WINDOW,
) -> list[EnrichedBar]:
    """
    Attach volume moving averages, HDY and crossover signals to each bar.

    Args:
        bars: Bar sequence in ascending date order
        custom_window: Window of the user-selectable volume average

    Returns:
        One EnrichedBar per input bar
    """
    ma_short = moving_average(SHORT_WINDOW, bars, PriceField.VOLUME)
    ma_long = moving_average(LONG_WINDOW, bars, PriceField.VOLUME)
    ma_custom = moving_average(custom_window, bars, PriceField.VOLUME)
    hdy = hdy_oscillator(bars)
    signals = crossover_signals(ma_short, ma_long)

    return [
        EnrichedBar(
            **bar.model_dump(),
            ma_short=ma_short[i],
            ma_long=ma_long[i],
            ma_custom=ma_custom[i],
            hdy=hdy[i],
            signal=signals[i],
        )
        for i, bar in enumerate(bars)
    ]
