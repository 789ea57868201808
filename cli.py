#!/usr/bin/env python3
"""
mania-difficulty - Command Line Interface

Main entry point for running strain analysis on charts.
Uses maniadiff/pipeline.py for all kernel operations (same as golden_reference.py).
"""

import argparse
import sys
from pathlib import Path
from typing import Dict, List, Optional

import config
from maniadiff import chart_io, export
from maniadiff.chart_io import Chart
from maniadiff.kernel_params import DEFAULT_CONFIG
from maniadiff.pipeline import run_full_analysis


def analyze_chart(chart: Chart, params: Dict, verbose: bool = False) -> Dict:
    """
    Run the kernel on a loaded chart and bundle everything export needs.

    Parameters:
        chart: Loaded chart
        params: Parameters dict (from config or overrides)
        verbose: Print verbose progress messages

    Returns:
        Dict with 'chart_metadata', 'params' and 'results'
    """
    cfg = DEFAULT_CONFIG

    clock_rate = params['rate'] or chart_io.rate_from_mods(params['mods'])

    if params['overall_difficulty'] is not None:
        great_hit_window = chart_io.great_hit_window_from_od(params['overall_difficulty'], clock_rate)
    else:
        great_hit_window = chart.get_great_hit_window(clock_rate, config.DEFAULT_OVERALL_DIFFICULTY)

    if verbose:
        print(f"   {chart.total_columns}K, {len(chart.notes)} notes, "
              f"rate {clock_rate:.2f}x, great window {great_hit_window:.1f} ms")

    results = run_full_analysis(chart.notes, chart.total_columns, great_hit_window, clock_rate, cfg)

    run_params = cfg.to_dict()
    run_params['kernel_version'] = config.KERNEL_VERSION
    run_params['mods'] = list(params['mods'])

    chart_metadata = {
        'name': chart.name,
        'total_columns': chart.total_columns,
        'n_notes': len(chart.notes),
        'duration_ms': chart.duration_ms,
        'great_hit_window': great_hit_window,
        'clock_rate': clock_rate,
    }

    return {
        'chart_metadata': chart_metadata,
        'params': run_params,
        'results': results,
    }


def process_single_chart(
    file_path: Path,
    output_dir: Path,
    params: Dict,
    verbose: bool = False
) -> bool:
    """
    Process a single chart through the full pipeline.

    Parameters:
        file_path: Path to chart file
        output_dir: Output directory for results
        params: Parameters dict (from config or overrides)
        verbose: Print verbose progress messages

    Returns:
        True if successful, False otherwise
    """
    chart_name = file_path.stem

    try:
        if verbose:
            print(f"\nProcessing: {file_path.name}")
            print("-" * 60)
            print("1. Loading chart...")

        chart = chart_io.load_chart(str(file_path))

        if verbose:
            print("2. Computing strain and density...")

        analysis = analyze_chart(chart, params, verbose)

        if verbose:
            print("3. Exporting results...")

        created_files = export.export_all_outputs(
            analysis,
            output_dir,
            chart_name,
            generate_plots=params['generate_plots']
        )

        if verbose:
            print(f"   Created {len(created_files)} output files")

        summary = export.create_summary_json(
            export.create_strain_json(analysis['chart_metadata'], analysis['params'], analysis['results'])
        )
        export.print_analysis_summary(summary, chart_name)

        return True

    except Exception as e:
        print(f"ERROR processing {file_path.name}: {e}", file=sys.stderr)
        if verbose:
            import traceback
            traceback.print_exc()
        return False


def process_directory(
    input_dir: Path,
    output_dir: Path,
    params: Dict,
    verbose: bool = False
) -> Dict[str, int]:
    """
    Process all charts in a directory.

    Parameters:
        input_dir: Directory containing chart files
        output_dir: Output directory for results
        params: Parameters dict
        verbose: Print verbose messages

    Returns:
        Dict with 'success' and 'failed' counts
    """
    chart_files: List[Path] = []
    for ext in config.CHART_EXTENSIONS:
        chart_files.extend(input_dir.glob(f'*{ext}'))

    if not chart_files:
        print(f"No chart files found in {input_dir}")
        return {'success': 0, 'failed': 0}

    print(f"Found {len(chart_files)} chart files")

    success_count = 0
    failed_count = 0

    for chart_file in sorted(chart_files):
        chart_output_dir = output_dir / chart_file.stem

        if process_single_chart(chart_file, chart_output_dir, params, verbose):
            success_count += 1
        else:
            failed_count += 1

    print(f"\nProcessing complete: {success_count} successful, {failed_count} failed")

    return {'success': success_count, 'failed': failed_count}


def run_demo_mode(output_dir: Path, params: Dict, verbose: bool = False) -> bool:
    """
    Run demo mode using synthetic charts.

    Parameters:
        output_dir: Output directory for demo results
        params: Parameters dict
        verbose: Print verbose messages

    Returns:
        True if successful
    """
    print("Running demo mode with synthetic charts...")

    from golden_reference import SYNTHETIC_GENERATORS

    charts = [generator() for generator in SYNTHETIC_GENERATORS.values()]
    print(f"Generated {len(charts)} synthetic charts")

    for chart in charts:
        print(f"\nProcessing: {chart.name} ({chart.total_columns}K, {len(chart.notes)} notes)")
        print("-" * 60)

        try:
            analysis = analyze_chart(chart, params, verbose)

            chart_output_dir = output_dir / chart.name
            created_files = export.export_all_outputs(
                analysis,
                chart_output_dir,
                chart.name,
                generate_plots=params['generate_plots']
            )
            print(f"Created {len(created_files)} output files in {chart_output_dir}")

            summary = export.create_summary_json(
                export.create_strain_json(analysis['chart_metadata'], analysis['params'], analysis['results'])
            )
            export.print_analysis_summary(summary, chart.name)

        except Exception as e:
            print(f"ERROR: {e}", file=sys.stderr)
            if verbose:
                import traceback
                traceback.print_exc()
            return False

    print(f"\nDemo complete! Results saved to {output_dir}")
    return True


def build_params(args: argparse.Namespace) -> Dict:
    """Collect CLI overrides into a parameters dict."""
    mods = chart_io.parse_mods(args.mods)

    return {
        'mods': mods,
        'rate': args.rate,
        'overall_difficulty': args.od,
        'generate_plots': not args.no_plots,
    }


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description='mania-difficulty - Per-note strain and density analysis',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Analyze single chart
  %(prog)s chart.json --output results/

  # Analyze directory at double time
  %(prog)s charts/ --output results/ --mods DT

  # Run demo mode
  %(prog)s --demo --output demo_results/

  # Verbose output
  %(prog)s chart.json --output results/ --verbose
        """
    )

    parser.add_argument(
        'input',
        nargs='?',
        type=str,
        help='Input chart file or directory (not needed for --demo)'
    )

    parser.add_argument(
        '--output', '-o',
        type=str,
        required=True,
        help='Output directory for results'
    )

    parser.add_argument(
        '--demo',
        action='store_true',
        help='Run demo mode with synthetic charts (no input file needed)'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Print verbose progress messages'
    )

    parser.add_argument(
        '--no-plots',
        action='store_true',
        help='Skip plot generation'
    )

    # Parameter overrides
    parser.add_argument(
        '--mods',
        type=str,
        default='',
        help='Mod acronyms, concatenated or comma separated (e.g. DTHR, HT,DT); only rate mods affect the result'
    )

    parser.add_argument(
        '--rate',
        type=float,
        help='Explicit playback rate (overrides --mods)'
    )

    parser.add_argument(
        '--od',
        type=float,
        help=f'Overall difficulty override (default: chart value or {config.DEFAULT_OVERALL_DIFFICULTY})'
    )

    args = parser.parse_args(argv)

    # Validate arguments
    if not args.demo and not args.input:
        parser.error("Either provide an input file/directory or use --demo")
    if args.rate is not None and args.rate <= 0:
        parser.error("--rate must be positive")

    try:
        params = build_params(args)
    except ValueError as e:
        parser.error(str(e))
    output_dir = Path(args.output)

    # Run appropriate mode
    if args.demo:
        success = run_demo_mode(output_dir, params, args.verbose)
        sys.exit(0 if success else 1)

    else:
        input_path = Path(args.input)

        if not input_path.exists():
            print(f"ERROR: Input path does not exist: {input_path}", file=sys.stderr)
            sys.exit(1)

        if input_path.is_file():
            success = process_single_chart(input_path, output_dir, params, args.verbose)
            sys.exit(0 if success else 1)

        elif input_path.is_dir():
            results = process_directory(input_path, output_dir, params, args.verbose)
            sys.exit(0 if results['failed'] == 0 else 1)

        else:
            print(f"ERROR: Invalid input path: {input_path}", file=sys.stderr)
            sys.exit(1)


if __name__ == '__main__':
    main()
