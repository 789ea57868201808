"""
Strain Kernel Module - Per-Note Strain Evaluator

This module contains the deterministic strain fold for N-key charts.

DESIGN CONSTRAINTS:
- No I/O operations (no file reading/writing)
- No plotting or visualization
- Explicit state management (no hidden globals)
- No config module imports - all parameters come from StrainParams
- Only numpy and scipy dependencies

PROCESSING MODEL:
One StrainEvaluator instance folds one chart at one playback rate. Each
call to evaluate() consumes the next note in start-time order, updates the
per-column state and returns the note's strain contribution:

    contribution = individual_strain + overall_strain - current_strain

where current_strain is the running strain already credited by the strain
section tracker (see sections.py).
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
from scipy.special import expit

from maniadiff.kernel_params import StrainParams
from maniadiff.notes import DifficultyNote, is_chord_continuation


# =============================================================================
# DECAY HELPERS
# =============================================================================

def apply_decay(value: float, delta_time: float, decay_base: float) -> float:
    """
    Exponentially decay a strain value over elapsed time.

    CONTRACT:
    - value * decay_base ** (delta_time / 1000)
    - delta_time == 0 leaves the value unchanged
    - Never increases a non-negative value for delta_time >= 0

    Parameters:
        value: Strain value
        delta_time: Elapsed time in ms
        decay_base: Fraction retained after one second

    Returns:
        Decayed value
    """
    return float(value * np.power(decay_base, delta_time / 1000.0))


def compute_hold_addition(
    closest_end_time: float,
    release_threshold: float = 24.0,
    steepness: float = 0.5
) -> float:
    """
    Bonus for a hold that has to be released apart from other releases.

    Logistic in the gap to the nearest other release:

        1 / (1 + exp(steepness * (release_threshold - closest_end_time)))

    Releases bunched together score near 0, releases far apart near 1,
    and a gap of exactly release_threshold scores 0.5.

    Parameters:
        closest_end_time: Smallest gap in ms between this release and another
        release_threshold: Gap at which the bonus is 0.5
        steepness: Slope of the curve

    Returns:
        Hold addition in (0, 1)
    """
    return float(expit(steepness * (closest_end_time - release_threshold)))


# =============================================================================
# STATE
# =============================================================================

class StrainState:
    """
    Per-column state for one strain evaluator.

    Contract:
    - Every array has one slot per column
    - Only the slot of the column being evaluated is written
    - hit_counts[c] == 0 means column c has not been played yet
    """

    def __init__(self, total_columns: int) -> None:
        self.total_columns = total_columns
        self.reset()

    def reset(self) -> None:
        """Reset state to initial values."""
        n = self.total_columns
        self.start_times = np.zeros(n, dtype=np.float64)
        self.end_times = np.zeros(n, dtype=np.float64)
        self.individual_strains = np.zeros(n, dtype=np.float64)
        self.anchor_counts = np.zeros(n, dtype=np.int64)
        self.trill_counts = np.zeros(n, dtype=np.int64)
        self.deltas = np.zeros(n, dtype=np.float64)
        self.hit_counts = np.zeros(n, dtype=np.int64)


@dataclass(frozen=True)
class StrainComponents:
    """Breakdown of the last evaluate() call."""
    column: int
    hold_factor: float
    hold_addition: float
    is_overlapping: bool
    column_delta: float
    anchor_length: int
    anchor_addition: float
    trill_partner: Optional[int]
    trill_count: int
    trill_addition: float
    hand_nerf_applied: bool
    column_strain_before_nerf: float
    column_strain: float
    individual_strain: float
    overall_strain: float


# =============================================================================
# EVALUATOR
# =============================================================================

class StrainEvaluator:
    """
    Sequential strain fold over one chart.

    Not re-entrant: a single instance must be fed notes from one thread,
    in non-decreasing start-time order. Independent instances share nothing.

    Parameters:
        total_columns: Number of columns in the chart
        great_hit_window: "Great" hit window in ms, used as the anchor
            tolerance unless StrainParams.anchor_tolerance is set
        params: Strain parameters (None = defaults)
    """

    def __init__(
        self,
        total_columns: int,
        great_hit_window: float,
        params: Optional[StrainParams] = None
    ) -> None:
        if total_columns < 1:
            raise ValueError(f"total_columns must be at least 1, got {total_columns}")
        if great_hit_window < 0:
            raise ValueError(f"great_hit_window must be non-negative, got {great_hit_window}")

        self.params = params if params is not None else StrainParams()
        self.total_columns = total_columns
        self.great_hit_window = float(great_hit_window)
        self.hand_split = total_columns // 2

        if self.params.anchor_tolerance is None:
            self.anchor_tolerance = self.great_hit_window
        else:
            self.anchor_tolerance = float(self.params.anchor_tolerance)

        self.state = StrainState(total_columns)

        # Aggregates
        self.individual_strain: float = 0.0
        self.overall_strain: float = self.params.initial_overall_strain
        self.current_strain: float = 0.0

        self.last_components: Optional[StrainComponents] = None
        self._last_start_time: Optional[float] = None

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def evaluate(self, note: DifficultyNote) -> float:
        """
        Fold one note into the state and return its strain contribution.

        CONTRACT:
        - Called once per note, in non-decreasing start-time order
        - Writes only the per-column slots of note.column
        - Fills note.anchor_count, note.trill_count and note.column_delta
        - Deterministic: same note sequence -> same contributions

        Raises:
            ValueError: If the column is out of range or the note is earlier
                than the previous one
        """
        self._check_note(note)

        p = self.params
        s = self.state
        column = note.column
        start_time = note.start_time
        end_time = note.end_time
        hits = int(s.hit_counts[column])

        # Holds ending inside this note, holds outliving it, nearest release
        is_overlapping, hold_factor, closest_end_time = self._scan_holds(column, start_time, end_time)

        hold_addition = 0.0
        if is_overlapping:
            hold_addition = compute_hold_addition(
                closest_end_time, p.release_threshold, p.release_steepness
            )

        # Anchor run in this column
        column_delta = end_time - float(s.end_times[column]) if hits > 0 else 0.0
        if hits >= 2 and abs(float(s.deltas[column]) - column_delta) <= self.anchor_tolerance:
            s.anchor_counts[column] += 1
        else:
            s.anchor_counts[column] = 0
        anchor_length = min(int(s.anchor_counts[column]), p.max_anchor)

        # Individual strain for this column
        elapsed = start_time - float(s.start_times[column]) if hits > 0 else 0.0
        column_strain = apply_decay(float(s.individual_strains[column]), elapsed, p.individual_decay_base)
        column_strain += p.base_individual_strain * hold_factor

        anchor_addition = 0.0
        if anchor_length >= p.min_anchor:
            anchor_addition = p.anchor_bonus * anchor_length
            column_strain += anchor_addition

        # Trill against an adjacent column
        trill_partner = self._find_trill_partner(column, start_time)
        trill_addition = 0.0
        if trill_partner is None:
            s.trill_counts[column] = 0
        else:
            s.trill_counts[column] = min(int(s.trill_counts[column]) + 1, p.max_trill)
            trill_addition = (
                p.trill_bonus * float(s.individual_strains[trill_partner]) * int(s.trill_counts[column])
            )
            column_strain += trill_addition

        # One hand mashing easy anchors
        column_strain_before_nerf = column_strain
        hand_nerf_applied = self._is_hand_mashable(column, start_time)
        if hand_nerf_applied:
            column_strain *= p.hand_nerf_multiplier

        s.individual_strains[column] = column_strain

        # Chords take the hardest column
        if is_chord_continuation(note, p.chord_threshold):
            self.individual_strain = max(self.individual_strain, column_strain)
        else:
            self.individual_strain = column_strain

        self.overall_strain = apply_decay(self.overall_strain, note.delta_time, p.overall_decay_base)
        self.overall_strain += (1.0 + hold_addition) * hold_factor

        # Commit
        s.start_times[column] = start_time
        s.end_times[column] = end_time
        if hits > 0:
            s.deltas[column] = column_delta
        s.hit_counts[column] += 1
        self._last_start_time = start_time

        note.anchor_count = anchor_length
        note.trill_count = int(s.trill_counts[column])
        note.column_delta = column_delta

        self.last_components = StrainComponents(
            column=column,
            hold_factor=hold_factor,
            hold_addition=hold_addition,
            is_overlapping=is_overlapping,
            column_delta=column_delta,
            anchor_length=anchor_length,
            anchor_addition=anchor_addition,
            trill_partner=trill_partner,
            trill_count=int(s.trill_counts[column]),
            trill_addition=trill_addition,
            hand_nerf_applied=hand_nerf_applied,
            column_strain_before_nerf=column_strain_before_nerf,
            column_strain=column_strain,
            individual_strain=self.individual_strain,
            overall_strain=self.overall_strain,
        )

        return self.individual_strain + self.overall_strain - self.current_strain

    def initial_strain(self, offset: float, previous_start_time: float) -> float:
        """
        Strain carried into a new section starting at offset.

        Both aggregates decay from the previous note's start time to the
        section start.

        Parameters:
            offset: Section start time (ms)
            previous_start_time: Start time of the last evaluated note (ms)

        Returns:
            Decayed individual + overall strain
        """
        delta_time = offset - previous_start_time
        return (
            apply_decay(self.individual_strain, delta_time, self.params.individual_decay_base)
            + apply_decay(self.overall_strain, delta_time, self.params.overall_decay_base)
        )

    def hand_bounds(self, column: int) -> Tuple[int, int]:
        """Half-open column range of the hand playing this column."""
        if column < self.hand_split:
            return 0, self.hand_split
        return self.hand_split, self.total_columns

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def _check_note(self, note: DifficultyNote) -> None:
        if not (0 <= note.column < self.total_columns):
            raise ValueError(
                f"note {note.index}: column {note.column} outside [0, {self.total_columns})"
            )
        if self._last_start_time is not None and note.start_time < self._last_start_time:
            raise ValueError(
                f"note {note.index}: start_time {note.start_time} precedes "
                f"previous note at {self._last_start_time}"
            )

    def _scan_holds(self, column: int, start_time: float, end_time: float) -> Tuple[bool, float, float]:
        """
        Compare the note against the last note of every other played column.

        Returns:
            Tuple of (is_overlapping, hold_factor, closest_end_time)
        """
        p = self.params
        s = self.state
        leniency = p.overlap_leniency

        is_overlapping = False
        hold_factor = 1.0
        # Lowest value we can assume with the current information
        closest_end_time = abs(end_time - start_time)

        for other in range(self.total_columns):
            if other == column or s.hit_counts[other] == 0:
                continue

            other_end = float(s.end_times[other])

            # Another release falls inside this note's body
            if other_end - start_time > leniency and end_time - other_end > leniency:
                is_overlapping = True

            # Something is still held after this note ends
            if other_end - end_time > leniency:
                hold_factor = p.held_hold_factor

            closest_end_time = min(closest_end_time, abs(end_time - other_end))

        return is_overlapping, hold_factor, closest_end_time

    def _find_trill_partner(self, column: int, start_time: float) -> Optional[int]:
        """
        Adjacent column this note alternates with, if any.

        A neighbour qualifies when it was hit after this column's previous
        note, less than trill_min_time ago, and its own anchor run is shorter
        than trill_anchor_limit.
        Among qualifying neighbours the most recently hit wins.
        """
        p = self.params
        s = self.state

        if s.hit_counts[column] == 0:
            return None

        partner = None
        partner_start = None

        for adjacent in (column - 1, column + 1):
            if not (0 <= adjacent < self.total_columns) or s.hit_counts[adjacent] == 0:
                continue

            adjacent_start = float(s.start_times[adjacent])
            if adjacent_start <= float(s.start_times[column]):
                continue
            if start_time - adjacent_start >= p.trill_min_time:
                continue
            if s.anchor_counts[adjacent] >= p.trill_anchor_limit:
                continue

            if partner_start is None or adjacent_start > partner_start:
                partner = adjacent
                partner_start = adjacent_start

        return partner

    def _is_hand_mashable(self, column: int, start_time: float) -> bool:
        """
        True when every adjacent column pair in this hand is an easy anchor.

        A pair is easy when both columns are in an anchor run of at least
        min_anchor, or when their last notes are more than idle_threshold
        apart. The current column counts as hit at start_time. A pair with a
        column that has never been played is never easy, so the result only
        depends on time differences. A hand with a single column has no
        pairs and is never nerfed.
        """
        p = self.params
        s = self.state
        lower, upper = self.hand_bounds(column)

        if upper - lower < 2:
            return False

        for left in range(lower, upper - 1):
            right = left + 1

            left_played = left == column or s.hit_counts[left] > 0
            right_played = right == column or s.hit_counts[right] > 0
            if not (left_played and right_played):
                return False

            anchored = (
                s.anchor_counts[left] >= p.min_anchor
                and s.anchor_counts[right] >= p.min_anchor
            )

            left_start = start_time if left == column else float(s.start_times[left])
            right_start = start_time if right == column else float(s.start_times[right])
            idle = abs(left_start - right_start) > p.idle_threshold

            if not (anchored or idle):
                return False

        return True
