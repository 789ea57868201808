"""
Strain Sections Tests

Tests for section advancement, peak tracking and the running strain
shared with the evaluator.
"""

import pytest
import numpy as np

from maniadiff.kernel import StrainEvaluator, apply_decay
from maniadiff.kernel_params import SectionParams
from maniadiff.notes import Note, preprocess
from maniadiff.sections import StrainSections


def build(total_columns=4, great_hit_window=40.0, params=None):
    evaluator = StrainEvaluator(total_columns, great_hit_window)
    return evaluator, StrainSections(evaluator, params)


def taps(*pairs):
    return [Note(start_time=t, end_time=t, column=c, index=i) for i, (t, c) in enumerate(pairs)]


class TestRunningStrain:
    """The running strain follows the evaluator's aggregates."""

    def test_running_strain_matches_aggregates(self):
        evaluator, sections = build()
        notes = preprocess(taps(*[(i * 110.0, (i * 3) % 4) for i in range(40)]), 4)

        for note in notes:
            sections.process(note)
            assert sections.current_strain == pytest.approx(
                evaluator.individual_strain + evaluator.overall_strain
            )
            assert evaluator.current_strain == sections.current_strain

    def test_contribution_returned(self):
        _, sections = build()
        notes = preprocess(taps((0.0, 0)), 4)

        assert sections.process(notes[0]) == 4.0

    def test_skill_multiplier(self):
        _, sections = build(params=SectionParams(skill_multiplier=2.0))
        notes = preprocess(taps((0.0, 0)), 4)
        sections.process(notes[0])

        assert sections.current_strain == 8.0


class TestSectionPeaks:
    """Peak recording across section boundaries."""

    def test_empty_before_first_note(self):
        _, sections = build()

        assert len(sections.get_peaks()) == 0
        assert len(sections.get_section_start_times()) == 0

    def test_first_section_aligned(self):
        _, sections = build()
        sections.process(preprocess(taps((950.0, 0)), 4)[0])

        assert sections.first_section_end == 1200.0
        np.testing.assert_array_equal(sections.get_section_start_times(), [800.0])

    def test_sections_seeded_with_decayed_strain(self):
        evaluator, sections = build()
        notes = preprocess(taps((0.0, 0), (1000.0, 0)), 4)

        sections.process(notes[0])
        # Aggregates after the first note: individual 2.0, overall 2.0
        seeded_400 = apply_decay(2.0, 400.0, 0.125) + apply_decay(2.0, 400.0, 0.3)
        seeded_800 = apply_decay(2.0, 800.0, 0.125) + apply_decay(2.0, 800.0, 0.3)

        sections.process(notes[1])
        peaks = sections.get_peaks()

        assert len(peaks) == 4
        assert peaks[0] == pytest.approx(4.0)
        assert peaks[1] == pytest.approx(4.0)
        assert peaks[2] == pytest.approx(seeded_400)
        assert peaks[3] == pytest.approx(max(seeded_800, sections.current_strain))
        np.testing.assert_array_equal(
            sections.get_section_start_times(), [-400.0, 0.0, 400.0, 800.0]
        )

    def test_boundary_note_stays_in_section(self):
        _, sections = build()
        notes = preprocess(taps((100.0, 0), (400.0, 1)), 4)
        for note in notes:
            sections.process(note)

        assert len(sections.get_peaks()) == 1

    def test_peaks_never_below_running_strain(self):
        _, sections = build()
        notes = preprocess(taps(*[(i * 95.0, i % 4) for i in range(100)]), 4)
        for note in notes:
            sections.process(note)
            assert sections.get_peaks()[-1] >= sections.current_strain

    def test_one_peak_per_start_time(self):
        _, sections = build()
        notes = preprocess(taps(*[(i * 333.0, i % 4) for i in range(30)]), 4)
        for note in notes:
            sections.process(note)

        assert len(sections.get_peaks()) == len(sections.get_section_start_times())
