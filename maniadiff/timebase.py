"""
Timebase Module - Canonical Time Axis Utilities

Rate rescaling and strain-section arithmetic shared by the strain sections,
the density reducer and the exporters.

DESIGN CONSTRAINTS:
- All times are milliseconds
- Deterministic: same inputs -> same outputs
- No external config imports (explicit parameters only)

SHARED TIMEBASE RULES:
- Rate rescaling: t' = t / rate
- First section end: ceil(t0 / section_len) * section_len
- Section start: s[i] = first_end + (i - 1) * section_len
"""

import math

import numpy as np


# =============================================================================
# VERSION
# =============================================================================

# Timebase version - bump when rescaling or section arithmetic changes
TIMEBASE_VERSION: str = "1"


# =============================================================================
# CONSTANTS
# =============================================================================

DEFAULT_SECTION_LENGTH_MS: float = 400.0


# =============================================================================
# RATE RESCALING
# =============================================================================

def validate_rate(rate: float) -> float:
    """
    Check a playback rate.

    Raises:
        ValueError: If rate is not a positive finite number
    """
    if not (rate > 0 and math.isfinite(rate)):
        raise ValueError(f"rate must be a positive finite number, got {rate}")
    return float(rate)


def rescale_time(time_ms: float, rate: float = 1.0) -> float:
    """
    Rescale a single timestamp by a playback rate.

    A rate of 1.5 compresses the chart, so every timestamp is divided by it.

    Parameters:
        time_ms: Timestamp in milliseconds
        rate: Playback rate multiplier (> 0)

    Returns:
        Rescaled timestamp in milliseconds
    """
    return time_ms / validate_rate(rate)


def rescale_times(times_ms: np.ndarray, rate: float = 1.0) -> np.ndarray:
    """
    Rescale an array of timestamps by a playback rate.

    CONTRACT:
    - Input: times_ms (1D array-like of float)
    - Output: (n,) float64 array, times_ms / rate
    - Order is preserved (rate > 0)

    Parameters:
        times_ms: Timestamps in milliseconds
        rate: Playback rate multiplier (> 0)

    Returns:
        Rescaled float64 array
    """
    rate = validate_rate(rate)
    return np.asarray(times_ms, dtype=np.float64) / rate


# =============================================================================
# STRAIN SECTIONS
# =============================================================================

def compute_first_section_end(
    first_start_time: float,
    section_length: float = DEFAULT_SECTION_LENGTH_MS
) -> float:
    """
    Compute the end of the strain section containing the first note.

    Sections are aligned to multiples of section_length, so a first note
    at 950 ms with 400 ms sections closes its section at 1200 ms.

    Parameters:
        first_start_time: Start time of the first note (ms)
        section_length: Section length (ms)

    Returns:
        End time of the first section (ms)
    """
    if section_length <= 0:
        raise ValueError("section_length must be positive")
    return math.ceil(first_start_time / section_length) * section_length


def compute_section_start_times(
    first_section_end: float,
    n_sections: int,
    section_length: float = DEFAULT_SECTION_LENGTH_MS
) -> np.ndarray:
    """
    Compute the start time of every recorded strain section.

    The first section is the one closing at first_section_end; every
    following section starts where the previous one ended.

    Parameters:
        first_section_end: End of the first section (ms)
        n_sections: Number of sections
        section_length: Section length (ms)

    Returns:
        Array of section start times (n_sections,), dtype float64
    """
    if n_sections <= 0:
        return np.array([], dtype=np.float64)

    return first_section_end + (np.arange(n_sections, dtype=np.float64) - 1.0) * section_length

