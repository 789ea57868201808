"""
Golden Reference Generator

Generates deterministic reference outputs from the strain kernel so that
changes to the algorithm or its constants show up as explicit diffs.

Usage:
    # Generate synthetic golden outputs
    python golden_reference.py --output golden_outputs/

    # Generate from chart files
    python golden_reference.py --charts charts/*.json --output golden_outputs/

    # Validate existing golden outputs
    python golden_reference.py --validate --output golden_outputs/

Directory structure:
    golden_outputs/
    ├── kernel_v{KERNEL_VERSION}/
    │   ├── timebase_v{TIMEBASE_VERSION}/
    │   │   ├── synthetic/
    │   │   │   ├── stream/
    │   │   │   │   ├── chart.json
    │   │   │   │   ├── strain.json
    │   │   │   │   └── summary.json
    │   │   │   ├── jacks/
    │   │   │   ├── trill/
    │   │   │   ├── holds/
    │   │   │   └── chordjack/
    │   │   │
    │   │   └── charts/              # from --charts, not committed
    │   │
    │   └── README.md
"""

import argparse
import hashlib
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

import numpy as np

import config
from maniadiff.chart_io import Chart, chart_to_dict, load_chart, save_chart
from maniadiff.export import NumpyEncoder, create_strain_json, create_summary_json
from maniadiff.kernel_params import KernelConfig, DEFAULT_CONFIG
from maniadiff.notes import Note
from maniadiff.pipeline import run_full_analysis
from maniadiff.timebase import TIMEBASE_VERSION


# =============================================================================
# SYNTHETIC CHART GENERATORS
# =============================================================================

def generate_stream(duration_sec: float = 30.0, total_columns: int = 4, interval_ms: float = 80.0) -> Chart:
    """
    Rolling stream: one note at a time, cycling through every column.

    Parameters:
        duration_sec: Chart length in seconds
        total_columns: Number of columns
        interval_ms: Gap between consecutive notes

    Returns:
        Chart
    """
    n_notes = int(duration_sec * 1000.0 / interval_ms)
    notes = [
        Note(start_time=i * interval_ms, end_time=i * interval_ms, column=i % total_columns, index=i)
        for i in range(n_notes)
    ]
    return Chart(name='stream', total_columns=total_columns, notes=notes, overall_difficulty=8.0)


def generate_jacks(duration_sec: float = 30.0, total_columns: int = 4, interval_ms: float = 150.0) -> Chart:
    """
    Single-column anchor with a filler note in the same hand.

    Column 0 is hit every interval_ms; column 1 joins it every fourth hit,
    so both columns of the left hand settle into anchors.
    """
    n_hits = int(duration_sec * 1000.0 / interval_ms)
    notes = []
    for i in range(n_hits):
        t = i * interval_ms
        notes.append(Note(start_time=t, end_time=t, column=0, index=len(notes)))
        if i % 4 == 0:
            notes.append(Note(start_time=t, end_time=t, column=1, index=len(notes)))
    return Chart(name='jacks', total_columns=total_columns, notes=notes, overall_difficulty=8.0)


def generate_trill(duration_sec: float = 30.0, total_columns: int = 4, interval_ms: float = 100.0) -> Chart:
    """Two-column trill on the middle columns."""
    n_notes = int(duration_sec * 1000.0 / interval_ms)
    left = total_columns // 2 - 1
    right = left + 1
    notes = [
        Note(start_time=i * interval_ms, end_time=i * interval_ms,
             column=left if i % 2 == 0 else right, index=i)
        for i in range(n_notes)
    ]
    return Chart(name='trill', total_columns=total_columns, notes=notes, overall_difficulty=8.0)


def generate_holds(duration_sec: float = 30.0, total_columns: int = 4, interval_ms: float = 250.0) -> Chart:
    """
    Staggered holds: each note is held for three intervals, so every new
    note starts while earlier holds are still down and releases fall inside
    later holds.
    """
    n_notes = int(duration_sec * 1000.0 / interval_ms)
    hold_length = 3 * interval_ms - 30.0
    notes = [
        Note(start_time=i * interval_ms, end_time=i * interval_ms + hold_length,
             column=i % total_columns, index=i)
        for i in range(n_notes)
    ]
    return Chart(name='holds', total_columns=total_columns, notes=notes, overall_difficulty=8.0)


def generate_chordjack(duration_sec: float = 30.0, total_columns: int = 7, interval_ms: float = 180.0) -> Chart:
    """
    Chordjack: two-note chords alternating between two shapes, each shape
    spanning both hands.
    """
    n_chords = int(duration_sec * 1000.0 / interval_ms)
    split = total_columns // 2
    shapes = [(0, split), (1, total_columns - 1)]
    notes = []
    for i in range(n_chords):
        t = i * interval_ms
        for column in sorted(shapes[i % 2]):
            notes.append(Note(start_time=t, end_time=t, column=column, index=len(notes)))
    return Chart(name='chordjack', total_columns=total_columns, notes=notes, overall_difficulty=8.0)


SYNTHETIC_GENERATORS: Dict[str, Callable[..., Chart]] = {
    'stream': generate_stream,
    'jacks': generate_jacks,
    'trill': generate_trill,
    'holds': generate_holds,
    'chordjack': generate_chordjack,
}


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def compute_chart_sha256(chart: Chart) -> str:
    """SHA256 of the canonical JSON form of a chart."""
    payload = json.dumps(chart_to_dict(chart), sort_keys=True).encode('utf-8')
    return hashlib.sha256(payload).hexdigest()


def get_versioned_output_path(
    base_dir: str,
    kernel_version: str = None,
    timebase_version: str = None
) -> Path:
    """
    Build versioned output path.

    Parameters:
        base_dir: Base output directory
        kernel_version: Kernel version (default: config.KERNEL_VERSION)
        timebase_version: Timebase version (default: TIMEBASE_VERSION)

    Returns:
        Path like golden_outputs/kernel_v1.0.0/timebase_v1/
    """
    if kernel_version is None:
        kernel_version = config.KERNEL_VERSION
    if timebase_version is None:
        timebase_version = TIMEBASE_VERSION

    return Path(base_dir) / f"kernel_v{kernel_version}" / f"timebase_v{timebase_version}"


def analyze_chart(chart: Chart, cfg: KernelConfig, clock_rate: float = 1.0) -> Dict:
    """Run the kernel on a chart with its own hit window."""
    great_hit_window = chart.get_great_hit_window(clock_rate, config.DEFAULT_OVERALL_DIFFICULTY)
    return run_full_analysis(chart.notes, chart.total_columns, great_hit_window, clock_rate, cfg)


# =============================================================================
# OUTPUT GENERATION
# =============================================================================

def generate_chart_outputs(
    chart: Chart,
    cfg: KernelConfig,
    output_dir: Path,
    source_info: Optional[Dict] = None
) -> List[Path]:
    """
    Generate all outputs for a single chart.

    Parameters:
        chart: Chart to analyze
        cfg: Kernel configuration
        output_dir: Base output directory (e.g., golden_outputs/kernel_v1.0.0/timebase_v1/synthetic/)
        source_info: Optional source metadata

    Returns:
        List of created file paths
    """
    chart_dir = output_dir / chart.name
    chart_dir.mkdir(parents=True, exist_ok=True)

    results = analyze_chart(chart, cfg)

    params = cfg.to_dict()
    params['kernel_version'] = config.KERNEL_VERSION
    params['timebase_version'] = TIMEBASE_VERSION
    if source_info:
        params['source'] = source_info

    chart_metadata = {
        'name': chart.name,
        'total_columns': chart.total_columns,
        'n_notes': len(chart.notes),
        'great_hit_window': results['great_hit_window'],
        'clock_rate': results['clock_rate'],
        'chart_checksum': compute_chart_sha256(chart),
    }

    strain = create_strain_json(chart_metadata, params, results)
    strain['generated_at'] = datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z')

    created_files = [save_chart(chart, chart_dir / 'chart.json')]

    strain_path = chart_dir / 'strain.json'
    with open(strain_path, 'w') as f:
        json.dump(strain, f, indent=2, cls=NumpyEncoder)
    created_files.append(strain_path)

    summary_path = chart_dir / 'summary.json'
    with open(summary_path, 'w') as f:
        json.dump(create_summary_json(strain), f, indent=2, cls=NumpyEncoder)
    created_files.append(summary_path)

    return created_files


# =============================================================================
# GOLDEN REFERENCE GENERATION
# =============================================================================

def generate_synthetic_references(output_dir: str, cfg: KernelConfig = None) -> List[Path]:
    """
    Generate golden references for all synthetic charts.

    Parameters:
        output_dir: Base output directory
        cfg: Kernel configuration

    Returns:
        List of generated file paths
    """
    if cfg is None:
        cfg = DEFAULT_CONFIG

    versioned_path = get_versioned_output_path(output_dir)
    synthetic_path = versioned_path / 'synthetic'
    synthetic_path.mkdir(parents=True, exist_ok=True)

    all_files = []

    for name, generator in SYNTHETIC_GENERATORS.items():
        print(f"Generating reference: {name}...")
        chart = generator()
        source_info = {'type': 'synthetic', 'generator': generator.__name__}
        files = generate_chart_outputs(chart, cfg, synthetic_path, source_info)
        all_files.extend(files)
        print(f"  Created {len(files)} files in {synthetic_path / name}")

    readme_path = versioned_path.parent / 'README.md'
    readme_content = f"""# Golden Reference Outputs

## Kernel Version: {config.KERNEL_VERSION}
## Timebase Version: {TIMEBASE_VERSION}
## Schema Version: {config.SCHEMA_VERSION}

Generated: {datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z')}

## Synthetic Charts

Generated in code by `golden_reference.py` (30 seconds each):

1. **stream**: 4K roll, one note every 80 ms
2. **jacks**: 4K, column 0 every 150 ms, column 1 joining every fourth hit
3. **trill**: 4K, middle-column trill every 100 ms
4. **holds**: 4K, staggered overlapping holds
5. **chordjack**: 7K, alternating two-note chords every 180 ms

## Per-Chart Outputs

- `chart.json`: the analyzed chart, loadable with `load_chart`
- `strain.json`: per-note contributions, running strain, section peaks, density
- `summary.json`: High-level summary statistics

## Validation

Run `python golden_reference.py --validate` to verify:
- chart_checksum matches the regenerated chart
- note and section counts match
- contributions, section peaks and density match re-analysis
"""

    with open(readme_path, 'w') as f:
        f.write(readme_content)
    all_files.append(readme_path)

    return all_files


def generate_chart_references(chart_paths: Sequence[str], output_dir: str, cfg: KernelConfig = None) -> List[Path]:
    """
    Generate golden references from chart files.

    Parameters:
        chart_paths: Paths to chart JSON files
        output_dir: Base output directory
        cfg: Kernel configuration

    Returns:
        List of generated file paths
    """
    if cfg is None:
        cfg = DEFAULT_CONFIG

    charts_path = get_versioned_output_path(output_dir) / 'charts'
    charts_path.mkdir(parents=True, exist_ok=True)

    all_files = []

    for chart_path in chart_paths:
        print(f"Generating reference: {chart_path}...")

        try:
            chart = load_chart(chart_path)
            source_info = {'type': 'chart', 'path': str(chart_path)}
            files = generate_chart_outputs(chart, cfg, charts_path, source_info)
            all_files.extend(files)
            print(f"  Created {len(files)} files in {charts_path / chart.name}")
        except FileNotFoundError as e:
            print(f"  ERROR: Could not load chart {chart_path}: {e}")
        except ValueError as e:
            print(f"  ERROR: Invalid chart {chart_path}: {e}")

    return all_files


def validate_references(output_dir: str, cfg: KernelConfig = None) -> bool:
    """
    Validate all synthetic golden references.

    Validates:
    1. chart_checksum in golden matches the regenerated chart
    2. note and section counts match
    3. Per-note contributions match re-analysis
    4. Section peaks and density match re-analysis

    Parameters:
        output_dir: Base output directory
        cfg: Kernel configuration

    Returns:
        True if all validations pass
    """
    if cfg is None:
        cfg = DEFAULT_CONFIG

    synthetic_path = get_versioned_output_path(output_dir) / 'synthetic'

    if not synthetic_path.exists():
        print(f"No golden outputs found at {synthetic_path}")
        return False

    all_passed = True

    for name, generator in SYNTHETIC_GENERATORS.items():
        strain_path = synthetic_path / name / 'strain.json'

        if not strain_path.exists():
            print(f"SKIP: {name} - strain.json not found")
            continue

        print(f"Validating: {name}...")

        with open(strain_path, 'r') as f:
            ref = json.load(f)

        chart = generator()

        # Check 1: chart checksum
        checksum = compute_chart_sha256(chart)
        if ref['chart_metadata']['chart_checksum'] != checksum:
            print(f"  FAIL: chart_checksum doesn't match regenerated chart")
            all_passed = False
            continue
        print(f"  PASS: chart_checksum matches")

        results = analyze_chart(chart, cfg)

        # Check 2: lengths
        if ref['notes']['length'] != results['n_notes']:
            print(f"  FAIL: note count ({ref['notes']['length']}) != re-analysis ({results['n_notes']})")
            all_passed = False
            continue
        if ref['sections']['length'] != len(results['section_peaks']):
            print(f"  FAIL: section count ({ref['sections']['length']}) != "
                  f"re-analysis ({len(results['section_peaks'])})")
            all_passed = False
            continue
        print(f"  PASS: {results['n_notes']} notes, {len(results['section_peaks'])} sections")

        # Check 3/4: values
        comparisons = [
            ('contributions', ref['notes']['contributions'], results['contributions']),
            ('strains', ref['notes']['strains'], results['strains']),
            ('section_peaks', ref['sections']['peaks'], results['section_peaks']),
            ('density', [ref['density']['value']], [results['density']]),
        ]
        for label, ref_values, new_values in comparisons:
            ref_values = np.asarray(ref_values, dtype=np.float64)
            new_values = np.asarray(new_values, dtype=np.float64)
            if not np.allclose(ref_values, new_values, rtol=1e-9, atol=1e-12):
                max_diff = np.max(np.abs(ref_values - new_values))
                print(f"  FAIL: {label} re-analysis values differ (max diff: {max_diff})")
                all_passed = False
            else:
                print(f"  PASS: {label} re-analysis matches")

    return all_passed


# =============================================================================
# MAIN
# =============================================================================

def main():
    parser = argparse.ArgumentParser(
        description='Generate golden reference outputs for strain kernel validation'
    )
    parser.add_argument(
        '--output', '-o',
        default='golden_outputs',
        help='Base output directory for golden reference files'
    )
    parser.add_argument(
        '--charts', '-c',
        nargs='+',
        help='Chart JSON files to generate references for'
    )
    parser.add_argument(
        '--validate', '-v',
        action='store_true',
        help='Validate existing golden references instead of generating'
    )

    args = parser.parse_args()

    if args.validate:
        print(f"Validating golden references in {args.output}/")
        success = validate_references(args.output)
        return 0 if success else 1

    if args.charts:
        print(f"Generating golden references from {len(args.charts)} chart(s)")
        files = generate_chart_references(args.charts, args.output)
        print(f"\nGenerated {len(files)} files from charts.")
    else:
        print(f"Generating synthetic golden references to {args.output}/")
        files = generate_synthetic_references(args.output)
        print(f"\nGenerated {len(files)} files.")

    return 0


if __name__ == '__main__':
    exit(main())
