"""
Synthetic Chart Test Suite

End-to-end tests on generated charts with known structure.
No external chart files required.
"""

import json

import pytest
import numpy as np

import cli
import golden_reference
from golden_reference import (
    SYNTHETIC_GENERATORS, generate_stream, generate_jacks, generate_trill, generate_holds,
    generate_chordjack,
)
from maniadiff import chart_io, export
from maniadiff.density import compute_density
from maniadiff.kernel_params import KernelConfig, StrainParams, DEFAULT_CONFIG
from maniadiff.notes import Note
from maniadiff.pipeline import run_full_analysis


def analyze(chart, clock_rate=1.0, cfg=None):
    window = chart.get_great_hit_window(clock_rate)
    return run_full_analysis(chart.notes, chart.total_columns, window, clock_rate, cfg)


# =============================================================================
# PIPELINE TESTS
# =============================================================================

class TestPipeline:
    """Shape and consistency of run_full_analysis output."""

    @pytest.mark.parametrize("name", list(SYNTHETIC_GENERATORS))
    def test_output_shapes(self, name):
        chart = SYNTHETIC_GENERATORS[name](duration_sec=10.0)
        results = analyze(chart)

        n = len(chart.notes)
        assert results['n_notes'] == n
        for key in ('note_times', 'columns', 'contributions', 'strains',
                    'anchor_counts', 'trill_counts'):
            assert len(results[key]) == n, key
        assert len(results['section_peaks']) == len(results['section_times'])
        assert np.all(np.isfinite(results['strains']))
        assert np.all(results['section_peaks'] > 0)

    def test_determinism(self):
        chart = generate_stream(duration_sec=10.0)

        first = analyze(chart)
        second = analyze(chart)

        np.testing.assert_array_equal(first['contributions'], second['contributions'])
        np.testing.assert_array_equal(first['section_peaks'], second['section_peaks'])
        assert first['density'] == second['density']

    def test_density_matches_reducer(self):
        chart = generate_stream(duration_sec=10.0)
        results = analyze(chart, clock_rate=1.5)

        assert results['density'] == pytest.approx(compute_density(chart.notes, 1.5))

    def test_strain_is_running_sum(self):
        results = analyze(generate_holds(duration_sec=10.0))

        np.testing.assert_allclose(np.cumsum(results['contributions']), results['strains'])

    def test_chord_grouping(self):
        chordjack = analyze(generate_chordjack(duration_sec=10.0))
        stream = analyze(generate_stream(duration_sec=10.0))

        assert chordjack['n_chords'] == 55
        assert np.all(chordjack['chord_sizes'] == 2)
        assert stream['n_chords'] == stream['n_notes']
        assert np.sum(chordjack['chord_sizes']) == chordjack['n_notes']

    def test_time_shift_invariance(self):
        """A chart starting later scores the same note by note."""
        chart = generate_jacks(duration_sec=5.0)
        shifted = [Note(n.start_time + 3000.0, n.end_time + 3000.0, n.column, n.index)
                   for n in chart.notes]

        base = run_full_analysis(chart.notes, 4, 40.0)
        moved = run_full_analysis(shifted, 4, 40.0)

        np.testing.assert_allclose(moved['contributions'], base['contributions'], rtol=1e-12)
        assert moved['density'] == base['density']

    def test_empty_chart(self):
        results = run_full_analysis([], 4, 40.0)

        assert results['n_notes'] == 0
        assert results['n_chords'] == 0
        assert len(results['section_peaks']) == 0
        assert results['density'] == 0.0


# =============================================================================
# PATTERN TESTS
# =============================================================================

class TestPatterns:
    """Known patterns move the strain the expected way."""

    def test_faster_rate_is_harder(self):
        chart = generate_stream(duration_sec=10.0)

        nomod = analyze(chart, clock_rate=1.0)
        dt = analyze(chart, clock_rate=1.5)

        assert np.max(dt['section_peaks']) > np.max(nomod['section_peaks'])
        assert dt['density'] > nomod['density']

    def test_trill_counts_saturate(self):
        results = analyze(generate_trill(duration_sec=5.0))

        assert np.max(results['trill_counts']) == DEFAULT_CONFIG.strain.max_trill

    def test_jacks_build_anchors(self):
        chart = generate_jacks(duration_sec=5.0)
        results = analyze(chart)

        jack_anchors = results['anchor_counts'][results['columns'] == 0]
        assert np.max(jack_anchors) == DEFAULT_CONFIG.strain.max_anchor

    def test_hand_nerf_lowers_jacks(self):
        chart = generate_jacks(duration_sec=10.0)
        no_nerf = KernelConfig(strain=StrainParams(hand_nerf_multiplier=1.0))

        nerfed = analyze(chart)
        unnerfed = analyze(chart, cfg=no_nerf)

        assert np.mean(nerfed['section_peaks']) < np.mean(unnerfed['section_peaks'])


# =============================================================================
# EXPORT TESTS
# =============================================================================

class TestExport:
    """JSON and plot outputs."""

    def test_export_all_outputs(self, tmp_path):
        chart = generate_trill(duration_sec=5.0)
        analysis = cli.analyze_chart(chart, {'mods': [], 'rate': None, 'overall_difficulty': None})

        files = export.export_all_outputs(analysis, tmp_path, 'trill', generate_plots=True)

        names = sorted(f.name for f in files)
        assert names == ['trill_strain.json', 'trill_strain.png', 'trill_summary.json']
        assert all(f.exists() for f in files)

    def test_strain_json_schema(self, tmp_path):
        chart = generate_stream(duration_sec=5.0)
        analysis = cli.analyze_chart(chart, {'mods': ['DT'], 'rate': None, 'overall_difficulty': None})
        export.export_all_outputs(analysis, tmp_path, 'stream', generate_plots=False)

        with open(tmp_path / 'stream_strain.json') as f:
            data = json.load(f)

        assert data['chart_metadata']['clock_rate'] == 1.5
        assert data['notes']['length'] == len(chart.notes)
        assert data['chords']['length'] == len(chart.notes)
        assert len(data['sections']['peaks']) == data['sections']['length']
        assert 'strain_individual_decay_base' in data['params']

    def test_summary_top_peaks(self):
        chart = generate_stream(duration_sec=10.0)
        analysis = cli.analyze_chart(chart, {'mods': [], 'rate': None, 'overall_difficulty': None})
        summary = export.create_summary_json(export.create_strain_json(
            analysis['chart_metadata'], analysis['params'], analysis['results']
        ))

        values = [peak['value'] for peak in summary['top_peaks']]
        assert len(values) == 5
        assert values == sorted(values, reverse=True)
        assert values[0] == summary['max_section_peak']


# =============================================================================
# GOLDEN REFERENCE TESTS
# =============================================================================

class TestGoldenReferences:
    """Generate then validate versioned references."""

    def test_generate_and_validate(self, tmp_path):
        files = golden_reference.generate_synthetic_references(str(tmp_path))

        assert any(f.name == 'README.md' for f in files)
        assert golden_reference.validate_references(str(tmp_path))

    def test_chart_snapshot_reloads(self, tmp_path):
        golden_reference.generate_synthetic_references(str(tmp_path))
        chart_path = (golden_reference.get_versioned_output_path(str(tmp_path))
                      / 'synthetic' / 'holds' / 'chart.json')

        reloaded = chart_io.load_chart(str(chart_path))

        assert reloaded.notes == generate_holds().notes
        assert (golden_reference.compute_chart_sha256(reloaded)
                == golden_reference.compute_chart_sha256(generate_holds()))

    def test_tampered_reference_fails(self, tmp_path):
        golden_reference.generate_synthetic_references(str(tmp_path))
        strain_path = (golden_reference.get_versioned_output_path(str(tmp_path))
                       / 'synthetic' / 'stream' / 'strain.json')

        with open(strain_path) as f:
            data = json.load(f)
        data['notes']['contributions'][10] += 1.0
        with open(strain_path, 'w') as f:
            json.dump(data, f)

        assert not golden_reference.validate_references(str(tmp_path))

    def test_missing_references(self, tmp_path):
        assert not golden_reference.validate_references(str(tmp_path))


# =============================================================================
# CLI TESTS
# =============================================================================

class TestCli:
    """Command line entry point."""

    def test_single_chart(self, tmp_path):
        chart_path = chart_io.save_chart(generate_stream(duration_sec=5.0), tmp_path / 'stream.json')
        out = tmp_path / 'out'

        with pytest.raises(SystemExit) as exc:
            cli.main([str(chart_path), '--output', str(out), '--no-plots', '--mods', 'DTHR'])

        assert exc.value.code == 0
        with open(out / 'stream_strain.json') as f:
            assert json.load(f)['chart_metadata']['clock_rate'] == 1.5

    def test_comma_separated_mods(self, tmp_path):
        chart_path = chart_io.save_chart(generate_stream(duration_sec=3.0), tmp_path / 'stream.json')
        out = tmp_path / 'out'

        with pytest.raises(SystemExit) as exc:
            cli.main([str(chart_path), '--output', str(out), '--no-plots', '--mods', 'HT,DT'])

        assert exc.value.code == 0
        with open(out / 'stream_strain.json') as f:
            assert json.load(f)['chart_metadata']['clock_rate'] == pytest.approx(1.125)

    def test_malformed_mods_rejected(self, tmp_path):
        chart_path = chart_io.save_chart(generate_stream(duration_sec=3.0), tmp_path / 'stream.json')

        with pytest.raises(SystemExit) as exc:
            cli.main([str(chart_path), '--output', str(tmp_path / 'out'), '--mods', 'DTX'])

        assert exc.value.code == 2

    def test_directory(self, tmp_path):
        charts = tmp_path / 'charts'
        chart_io.save_chart(generate_stream(duration_sec=3.0), charts / 'a.json')
        chart_io.save_chart(generate_trill(duration_sec=3.0), charts / 'b.json')

        with pytest.raises(SystemExit) as exc:
            cli.main([str(charts), '--output', str(tmp_path / 'out'), '--no-plots'])

        assert exc.value.code == 0
        assert (tmp_path / 'out' / 'a' / 'a_summary.json').exists()
        assert (tmp_path / 'out' / 'b' / 'b_summary.json').exists()

    def test_invalid_chart_fails(self, tmp_path):
        bad = tmp_path / 'bad.json'
        bad.write_text(json.dumps({'total_columns': 4, 'notes': [{'time': 0, 'column': 8}]}))

        with pytest.raises(SystemExit) as exc:
            cli.main([str(bad), '--output', str(tmp_path / 'out'), '--no-plots'])

        assert exc.value.code == 1

    def test_missing_input(self, tmp_path):
        with pytest.raises(SystemExit) as exc:
            cli.main([str(tmp_path / 'missing.json'), '--output', str(tmp_path)])

        assert exc.value.code == 1

    def test_demo(self, tmp_path):
        with pytest.raises(SystemExit) as exc:
            cli.main(['--demo', '--output', str(tmp_path), '--no-plots'])

        assert exc.value.code == 0
        for name in SYNTHETIC_GENERATORS:
            assert (tmp_path / name / f'{name}_strain.json').exists()
