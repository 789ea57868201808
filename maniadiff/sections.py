"""
Strain Sections Module

Owns the running strain credited to the chart and splits time into fixed
sections, recording the highest strain seen in each one. The evaluator's
contributions are relative to this running strain, so a burst of hard notes
inside one section is only counted once.

Turning the section peaks into a final rating is left to the caller.
"""

from typing import List, Optional

import numpy as np

from maniadiff import timebase
from maniadiff.kernel import StrainEvaluator, apply_decay
from maniadiff.kernel_params import SectionParams
from maniadiff.notes import DifficultyNote


class StrainSections:
    """
    Section peak tracker wrapped around one StrainEvaluator.

    CONTRACT:
    - process() is called once per note, in start-time order
    - After each call, evaluator.current_strain equals self.current_strain
    - get_peaks() returns one value per section touched so far

    Parameters:
        evaluator: Fresh evaluator for this chart and rate
        params: Section parameters (None = defaults)
    """

    def __init__(self, evaluator: StrainEvaluator, params: Optional[SectionParams] = None) -> None:
        self.evaluator = evaluator
        self.params = params if params is not None else SectionParams()

        self.current_strain: float = 0.0
        self.current_section_peak: float = 0.0
        self.current_section_end: Optional[float] = None
        self.first_section_end: Optional[float] = None

        self._peaks: List[float] = []
        self._previous_start_time: Optional[float] = None

    def process(self, note: DifficultyNote) -> float:
        """
        Advance sections up to the note, evaluate it and update the peak.

        Parameters:
            note: Next difficulty note

        Returns:
            The evaluator's strain contribution for the note
        """
        section_length = self.params.section_length

        if self.current_section_end is None:
            self.current_section_end = timebase.compute_first_section_end(note.start_time, section_length)
            self.first_section_end = self.current_section_end

        while note.start_time > self.current_section_end:
            self._save_current_peak()
            self._start_new_section_from(self.current_section_end)
            self.current_section_end += section_length

        contribution = self.evaluator.evaluate(note)

        delta_time = 0.0 if self._previous_start_time is None else note.start_time - self._previous_start_time
        self.current_strain = apply_decay(self.current_strain, delta_time, self.params.strain_decay_base)
        self.current_strain += contribution * self.params.skill_multiplier
        self.evaluator.current_strain = self.current_strain

        self.current_section_peak = max(self.current_strain, self.current_section_peak)
        self._previous_start_time = note.start_time

        return contribution

    def get_peaks(self) -> np.ndarray:
        """
        Peak strain of every section, including the one still open.

        Returns:
            Array of section peaks, dtype float64 (empty before the first note)
        """
        if self.current_section_end is None:
            return np.array([], dtype=np.float64)
        return np.array(self._peaks + [self.current_section_peak], dtype=np.float64)

    def get_section_start_times(self) -> np.ndarray:
        """Start time of each section returned by get_peaks()."""
        if self.first_section_end is None:
            return np.array([], dtype=np.float64)
        return timebase.compute_section_start_times(
            self.first_section_end, len(self._peaks) + 1, self.params.section_length
        )

    def _save_current_peak(self) -> None:
        self._peaks.append(self.current_section_peak)

    def _start_new_section_from(self, time: float) -> None:
        # The first note always lies inside the first section, so a
        # previous note exists whenever a new section is started.
        self.current_section_peak = self.evaluator.initial_strain(time, self._previous_start_time)
