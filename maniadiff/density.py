"""
Density Module

Notes-per-second rating of a chart: notes are bucketed into one-second
windows and the busiest windows are averaged.

Pure functions, no state; safe to call concurrently on different inputs.
"""

from typing import Optional, Sequence

import numpy as np

from maniadiff import timebase
from maniadiff.kernel_params import DensityParams
from maniadiff.notes import Note


def collect_nps_samples(
    notes: Sequence[Note],
    rate: float = 1.0,
    params: Optional[DensityParams] = None
) -> np.ndarray:
    """
    Count notes per window.

    CONTRACT:
    - Input: notes sorted by start time
    - Start times are divided by rate before windowing
    - A window is anchored at its first note and holds every following
      note less than window_ms after the anchor
    - The first note outside the window closes it and anchors the next one
    - Output: (n_windows,) float64 array of counts, in time order

    Parameters:
        notes: Raw notes
        rate: Playback rate (> 0)
        params: Density parameters (None = defaults)

    Returns:
        Array of per-window note counts

    Raises:
        ValueError: If rate is not positive
    """
    if params is None:
        params = DensityParams()

    times = timebase.rescale_times([note.start_time for note in notes], rate)
    if len(times) == 0:
        return np.array([], dtype=np.float64)

    samples = []
    window_start = times[0]
    count = 0

    for start_time in times:
        if start_time - window_start < params.window_ms:
            count += 1
        else:
            samples.append(count)
            count = 1
            window_start = start_time

    if params.flush_final_window:
        samples.append(count)

    return np.array(samples, dtype=np.float64)


def trimmed_mean(samples: np.ndarray, params: Optional[DensityParams] = None) -> float:
    """
    Mean of the busiest samples.

    Samples are sorted in descending order; when there are more than
    trim_threshold of them only the keep_count highest are averaged.

    Parameters:
        samples: Per-window counts
        params: Density parameters (None = defaults)

    Returns:
        Trimmed mean, or params.empty_value for no samples
    """
    if params is None:
        params = DensityParams()

    if len(samples) == 0:
        return params.empty_value

    ordered = np.sort(np.asarray(samples, dtype=np.float64))[::-1]
    if len(ordered) > params.trim_threshold:
        ordered = ordered[:params.keep_count]

    return float(np.mean(ordered))


def compute_density(
    notes: Sequence[Note],
    rate: float = 1.0,
    params: Optional[DensityParams] = None
) -> float:
    """
    Density rating of a chart at a playback rate.

    Parameters:
        notes: Raw notes sorted by start time
        rate: Playback rate (> 0)
        params: Density parameters (None = defaults)

    Returns:
        Trimmed mean notes per window (0.0 for an empty chart)
    """
    return trimmed_mean(collect_nps_samples(notes, rate, params), params)


def compute_normalized_density(
    notes: Sequence[Note],
    total_columns: int,
    rate: float = 1.0,
    params: Optional[DensityParams] = None
) -> float:
    """
    Density divided by a column-count factor.

    density / ((total_columns + column_offset) * column_base ** total_columns)

    Wider charts naturally carry more notes per second; this brings
    different key counts onto one scale.
    """
    if params is None:
        params = DensityParams()
    if total_columns < 1:
        raise ValueError(f"total_columns must be at least 1, got {total_columns}")

    denominator = (total_columns + params.column_offset) * params.column_base ** total_columns
    return compute_density(notes, rate, params) / denominator
