"""
Pipeline Module

Runs one chart at one playback rate through the full kernel: preprocessing,
the strain fold with section tracking, and the density reduction.
"""

from typing import Dict, Optional, Sequence

import numpy as np

from maniadiff.density import collect_nps_samples, trimmed_mean, compute_normalized_density
from maniadiff.kernel import StrainEvaluator
from maniadiff.kernel_params import KernelConfig, DEFAULT_CONFIG
from maniadiff.notes import Note, group_chords, preprocess
from maniadiff.sections import StrainSections


def run_full_analysis(
    notes: Sequence[Note],
    total_columns: int,
    great_hit_window: float,
    clock_rate: float = 1.0,
    cfg: Optional[KernelConfig] = None
) -> Dict:
    """
    Run complete analysis pipeline on a chart.

    A fresh evaluator is built for every call, so calls never share state.

    Parameters:
        notes: Raw notes sorted by start time
        total_columns: Number of columns
        great_hit_window: Great hit window in ms
        clock_rate: Playback rate (> 0)
        cfg: Kernel configuration (None = defaults)

    Returns:
        Dictionary with all analysis results:
        - 'note_times': rate-adjusted start times (n_notes,)
        - 'columns': column of each note (n_notes,)
        - 'contributions': per-note strain contribution (n_notes,)
        - 'strains': running strain after each note (n_notes,)
        - 'anchor_counts', 'trill_counts': per-note pattern counters
        - 'section_peaks', 'section_times': per-section peak strain
        - 'chord_sizes': number of notes in each chord (n_chords,)
        - 'nps_samples', 'density', 'normalized_density'
    """
    if cfg is None:
        cfg = DEFAULT_CONFIG

    difficulty_notes = preprocess(notes, total_columns, clock_rate)

    evaluator = StrainEvaluator(total_columns, great_hit_window, cfg.strain)
    sections = StrainSections(evaluator, cfg.section)

    n_notes = len(difficulty_notes)
    contributions = np.zeros(n_notes, dtype=np.float64)
    strains = np.zeros(n_notes, dtype=np.float64)

    for i, note in enumerate(difficulty_notes):
        contributions[i] = sections.process(note)
        strains[i] = sections.current_strain

    chords = group_chords(difficulty_notes, cfg.strain.chord_threshold)

    nps_samples = collect_nps_samples(notes, clock_rate, cfg.density)

    return {
        'note_times': np.array([n.start_time for n in difficulty_notes], dtype=np.float64),
        'columns': np.array([n.column for n in difficulty_notes], dtype=np.int64),
        'contributions': contributions,
        'strains': strains,
        'anchor_counts': np.array([n.anchor_count for n in difficulty_notes], dtype=np.int64),
        'trill_counts': np.array([n.trill_count for n in difficulty_notes], dtype=np.int64),
        'chord_sizes': np.array([len(chord) for chord in chords], dtype=np.int64),
        'section_peaks': sections.get_peaks(),
        'section_times': sections.get_section_start_times(),
        'nps_samples': nps_samples,
        'density': trimmed_mean(nps_samples, cfg.density),
        'normalized_density': compute_normalized_density(notes, total_columns, clock_rate, cfg.density),
        'total_columns': total_columns,
        'great_hit_window': great_hit_window,
        'clock_rate': clock_rate,
        'n_notes': n_notes,
        'n_chords': len(chords),
    }
