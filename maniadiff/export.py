"""
Export Module

Generate JSON outputs and plots for strain analysis results.
All outputs follow versioned schema for consistency.
"""

import numpy as np
import json
from pathlib import Path
from typing import Dict, List
import matplotlib
matplotlib.use('Agg')  # Non-interactive backend
import matplotlib.pyplot as plt

import config
from maniadiff import timebase


class NumpyEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy types."""
    def default(self, obj):
        if isinstance(obj, np.integer):
            return int(obj)
        elif isinstance(obj, np.floating):
            return float(obj)
        elif isinstance(obj, np.ndarray):
            return obj.tolist()
        elif isinstance(obj, np.bool_):
            return bool(obj)
        return super().default(obj)


def create_strain_json(
    chart_metadata: Dict,
    params: Dict,
    results: Dict
) -> Dict:
    """
    Create complete strain JSON following schema.

    Parameters:
        chart_metadata: Dict with name, total_columns, n_notes, mods
        params: Dict of all parameters used
        results: Dict from pipeline.run_full_analysis

    Returns:
        Complete strain dict ready for JSON serialization
    """
    return {
        'schema_version': config.SCHEMA_VERSION,
        'kernel_version': config.KERNEL_VERSION,
        'timebase_version': timebase.TIMEBASE_VERSION,

        'chart_metadata': chart_metadata,

        'params': params,

        'notes': {
            'times': results['note_times'],
            'columns': results['columns'],
            'contributions': results['contributions'],
            'strains': results['strains'],
            'anchor_counts': results['anchor_counts'],
            'trill_counts': results['trill_counts'],
            'length': int(results['n_notes']),
        },

        'chords': {
            'sizes': results['chord_sizes'],
            'length': int(results['n_chords']),
        },

        'sections': {
            'start_times': results['section_times'],
            'peaks': results['section_peaks'],
            'length': len(results['section_peaks']),
        },

        'density': {
            'nps_samples': results['nps_samples'],
            'value': results['density'],
            'normalized': results['normalized_density'],
        },
    }


def create_summary_json(strain_json: Dict) -> Dict:
    """
    Create summary JSON with key statistics.

    Parameters:
        strain_json: Full strain JSON from create_strain_json

    Returns:
        Summary dict with top-level stats
    """
    peaks = np.asarray(strain_json['sections']['peaks'], dtype=np.float64)
    section_times = np.asarray(strain_json['sections']['start_times'], dtype=np.float64)

    top_peaks = []
    if len(peaks) > 0:
        order = np.argsort(-peaks, kind='stable')[:config.TOP_N_PEAKS]
        for idx in order:
            top_peaks.append({
                'time_ms': float(section_times[idx]),
                'value': float(peaks[idx]),
            })

    return {
        'schema_version': config.SCHEMA_VERSION,
        'name': strain_json['chart_metadata'].get('name'),
        'n_notes': strain_json['notes']['length'],
        'n_chords': strain_json['chords']['length'],
        'n_sections': strain_json['sections']['length'],
        'max_section_peak': float(np.max(peaks)) if len(peaks) > 0 else 0.0,
        'mean_section_peak': float(np.mean(peaks)) if len(peaks) > 0 else 0.0,
        'density': float(strain_json['density']['value']),
        'normalized_density': float(strain_json['density']['normalized']),
        'top_peaks': top_peaks,
    }


def save_json(data: Dict, output_path: Path) -> None:
    """
    Save data as JSON with pretty printing.

    Parameters:
        data: Dictionary to save
        output_path: Path to output file
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w') as f:
        json.dump(data, f, indent=2, cls=NumpyEncoder)


def plot_strain_curve(
    results: Dict,
    output_path: Path,
    title: str = "Strain Analysis"
) -> None:
    """
    Plot running strain per note with section peaks, and per-window density.

    Parameters:
        results: Dict from pipeline.run_full_analysis
        output_path: Path to save plot
        title: Plot title
    """
    fig, axes = plt.subplots(2, 1, figsize=config.PLOT_FIGSIZE)

    # Plot 1: Strain
    ax1 = axes[0]
    note_times_sec = np.asarray(results['note_times']) / 1000.0
    ax1.plot(note_times_sec, results['strains'],
             label='Strain (per note)', alpha=0.4, color='red', linewidth=1)

    section_times_sec = np.asarray(results['section_times']) / 1000.0
    ax1.step(section_times_sec, results['section_peaks'], where='post',
             label='Section peak', color='purple', linewidth=1.5)

    ax1.set_xlabel('Time (seconds)', fontsize=10)
    ax1.set_ylabel('Strain', fontsize=10)
    ax1.set_title(title, fontsize=12, fontweight='bold')
    ax1.legend(loc='upper right', fontsize=8)
    ax1.grid(True, alpha=0.3)

    # Plot 2: Notes per window
    ax2 = axes[1]
    samples = np.asarray(results['nps_samples'])
    ax2.bar(np.arange(len(samples)), samples, color='orange', alpha=0.8, label='Notes per window')
    ax2.axhline(results['density'], color='blue', linestyle='--', linewidth=1,
                label=f"Density ({results['density']:.2f})")

    ax2.set_xlabel('Window', fontsize=10)
    ax2.set_ylabel('Notes', fontsize=10)
    ax2.legend(loc='upper right', fontsize=8)
    ax2.grid(True, alpha=0.3)

    plt.tight_layout()

    # Save plot
    output_path.parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(output_path, dpi=config.PLOT_DPI, bbox_inches='tight')
    plt.close(fig)


def export_all_outputs(
    analysis_results: Dict,
    output_dir: Path,
    chart_name: str,
    generate_plots: bool = True
) -> List[Path]:
    """
    Export all outputs: JSON files and plots.

    Parameters:
        analysis_results: Dict containing all analysis data:
            - 'chart_metadata': name, columns, mods, rate
            - 'params': parameters used
            - 'results': from pipeline.run_full_analysis
        output_dir: Output directory path
        chart_name: Name of chart (for filenames)
        generate_plots: Whether to generate plot files

    Returns:
        List of paths to created files
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    created_files = []

    strain_json = create_strain_json(
        analysis_results['chart_metadata'],
        analysis_results['params'],
        analysis_results['results']
    )

    strain_path = output_dir / f"{chart_name}_strain.json"
    save_json(strain_json, strain_path)
    created_files.append(strain_path)

    summary_json = create_summary_json(strain_json)
    summary_path = output_dir / f"{chart_name}_summary.json"
    save_json(summary_json, summary_path)
    created_files.append(summary_path)

    if generate_plots:
        plots_path = output_dir / f"{chart_name}_strain.png"
        plot_strain_curve(
            analysis_results['results'],
            plots_path,
            title=f"Strain Analysis: {chart_name}"
        )
        created_files.append(plots_path)

    return created_files


def print_analysis_summary(summary_json: Dict, chart_name: str) -> None:
    """
    Print concise analysis summary to console.

    Parameters:
        summary_json: Summary JSON dict
        chart_name: Chart name
    """
    print(f"\n{'='*60}")
    print(f"Analysis Summary: {chart_name}")
    print(f"{'='*60}")
    print(f"Notes: {summary_json['n_notes']}, chords: {summary_json['n_chords']}, "
          f"sections: {summary_json['n_sections']}")
    print(f"Max section peak: {summary_json['max_section_peak']:.3f}")
    print(f"Mean section peak: {summary_json['mean_section_peak']:.3f}")
    print(f"Density: {summary_json['density']:.2f} "
          f"(normalized: {summary_json['normalized_density']:.3f})")

    if summary_json['top_peaks']:
        print(f"\nTop {len(summary_json['top_peaks'])} sections:")
        for i, peak in enumerate(summary_json['top_peaks'], 1):
            print(f"  {i}. Time: {peak['time_ms'] / 1000.0:.2f}s, Strain: {peak['value']:.3f}")

    print(f"{'='*60}\n")
