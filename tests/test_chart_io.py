"""
Chart I/O Tests

Tests for chart parsing, validation, hit windows and mod rates.
"""

import json

import pytest

from maniadiff import chart_io
from maniadiff.chart_io import Chart
from maniadiff.notes import Note


def chart_dict(notes, **extra):
    data = {'name': 'test', 'total_columns': 4, 'notes': notes}
    data.update(extra)
    return data


class TestHitWindow:
    """Tests for great hit window derivation."""

    @pytest.mark.parametrize("od, expected", [
        (0.0, 64.0),
        (8.0, 40.0),
        (10.0, 34.0),
    ])
    def test_from_od(self, od, expected):
        assert chart_io.great_hit_window_from_od(od) == pytest.approx(expected)

    def test_rate_shrinks_window(self):
        assert chart_io.great_hit_window_from_od(8.0, 1.5) == pytest.approx(40.0 / 1.5)

    @pytest.mark.parametrize("od", [-0.5, 10.5])
    def test_od_out_of_range(self, od):
        with pytest.raises(ValueError):
            chart_io.great_hit_window_from_od(od)

    def test_explicit_window_wins(self):
        chart = Chart(name='x', total_columns=4, overall_difficulty=2.0, great_hit_window=30.0)

        assert chart.get_great_hit_window() == 30.0
        assert chart.get_great_hit_window(clock_rate=1.5) == pytest.approx(20.0)

    def test_default_od(self):
        chart = Chart(name='x', total_columns=4)
        assert chart.get_great_hit_window(default_od=8.0) == pytest.approx(40.0)


class TestModRates:
    """Tests for rate_from_mods."""

    def test_no_mods(self):
        assert chart_io.rate_from_mods([]) == 1.0

    def test_double_time(self):
        assert chart_io.rate_from_mods(['DT']) == 1.5

    def test_case_insensitive(self):
        assert chart_io.rate_from_mods(['nc']) == 1.5

    def test_non_rate_mods_ignored(self):
        assert chart_io.rate_from_mods(['HT', 'HR']) == 0.75

    def test_custom_table(self):
        assert chart_io.rate_from_mods(['XX'], {'XX': 1.2}) == 1.2


class TestParseMods:
    """Tests for parse_mods."""

    @pytest.mark.parametrize("text,expected", [
        ('', []),
        ('DTHR', ['DT', 'HR']),
        ('HT,DT', ['HT', 'DT']),
        ('hd + dt', ['HD', 'DT']),
        (' NC HD ', ['NC', 'HD']),
    ])
    def test_accepted_forms(self, text, expected):
        assert chart_io.parse_mods(text) == expected

    def test_separated_list_rate(self):
        assert chart_io.rate_from_mods(chart_io.parse_mods('HT,DT')) == pytest.approx(1.125)

    @pytest.mark.parametrize("text", ['DTX', 'D1', 'HT,D'])
    def test_rejects_malformed(self, text):
        with pytest.raises(ValueError, match="invalid mod string"):
            chart_io.parse_mods(text)


class TestChartParsing:
    """Tests for chart_from_dict and the JSON round trip."""

    def test_taps_and_holds(self):
        chart = chart_io.chart_from_dict(chart_dict([
            {'time': 0, 'column': 0},
            {'time': 100, 'end_time': 400, 'column': 2},
        ], overall_difficulty=7.5))

        assert chart.total_columns == 4
        assert chart.overall_difficulty == 7.5
        assert not chart.notes[0].is_hold
        assert chart.notes[1].is_hold
        assert chart.notes[1].end_time == 400.0
        assert chart.duration_ms == 400.0

    def test_unsorted_notes_warn_and_sort(self):
        with pytest.warns(UserWarning, match="not sorted"):
            chart = chart_io.chart_from_dict(chart_dict([
                {'time': 200, 'column': 0},
                {'time': 100, 'column': 1},
                {'time': 100, 'column': 2},
            ]))

        assert [n.start_time for n in chart.notes] == [100.0, 100.0, 200.0]
        # Stable: ties keep input order
        assert [n.column for n in chart.notes] == [1, 2, 0]
        assert [n.index for n in chart.notes] == [0, 1, 2]

    def test_missing_total_columns(self):
        with pytest.raises(ValueError, match="total_columns"):
            chart_io.chart_from_dict({'notes': []})

    def test_missing_note_fields(self):
        with pytest.raises(ValueError):
            chart_io.chart_from_dict(chart_dict([{'time': 0}]))

    def test_invalid_column(self):
        with pytest.raises(ValueError):
            chart_io.chart_from_dict(chart_dict([{'time': 0, 'column': 9}]))

    def test_empty_chart(self):
        chart = chart_io.chart_from_dict(chart_dict([]))

        assert chart.notes == []
        assert chart.duration_ms == 0.0

    def test_save_and_load(self, tmp_path):
        chart = Chart(
            name='roundtrip',
            total_columns=7,
            notes=[Note(0.0, 0.0, 0, 0), Note(50.0, 300.0, 6, 1)],
            great_hit_window=35.0,
        )
        path = chart_io.save_chart(chart, tmp_path / 'charts' / 'roundtrip.json')
        loaded = chart_io.load_chart(str(path))

        assert loaded.total_columns == 7
        assert loaded.great_hit_window == 35.0
        assert loaded.overall_difficulty is None
        assert loaded.notes == chart.notes

    def test_name_from_file(self, tmp_path):
        path = tmp_path / 'my_chart.json'
        with open(path, 'w') as f:
            json.dump({'total_columns': 4, 'notes': [{'time': 0, 'column': 1}]}, f)

        assert chart_io.load_chart(str(path)).name == 'my_chart'

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            chart_io.load_chart(str(tmp_path / 'nope.json'))
