"""
Chart I/O Module

Loads note charts from JSON, validates them and derives the playback
settings (rate, great hit window) the kernel consumes.

Chart format:
    {
        "name": "example",
        "total_columns": 4,
        "overall_difficulty": 8.0,        # or "great_hit_window": 40.0
        "notes": [
            {"time": 1000, "column": 0},
            {"time": 1250, "end_time": 1750, "column": 2}
        ]
    }
"""

import json
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from maniadiff import timebase
from maniadiff.notes import Note, validate_notes


# Great window (ms) = GREAT_WINDOW_BASE - GREAT_WINDOW_PER_OD * OD
GREAT_WINDOW_BASE: float = 64.0
GREAT_WINDOW_PER_OD: float = 3.0

DEFAULT_MOD_RATES: Dict[str, float] = {
    'DT': 1.5,
    'NC': 1.5,
    'HT': 0.75,
    'DC': 0.75,
}


@dataclass
class Chart:
    """A loaded chart, notes sorted by start time."""
    name: str
    total_columns: int
    notes: List[Note] = field(default_factory=list)
    overall_difficulty: Optional[float] = None
    great_hit_window: Optional[float] = None

    def get_great_hit_window(self, clock_rate: float = 1.0, default_od: float = 8.0) -> float:
        """Great hit window at a rate, from the explicit value or the OD."""
        if self.great_hit_window is not None:
            return self.great_hit_window / timebase.validate_rate(clock_rate)
        od = self.overall_difficulty if self.overall_difficulty is not None else default_od
        return great_hit_window_from_od(od, clock_rate)

    @property
    def duration_ms(self) -> float:
        if not self.notes:
            return 0.0
        return max(note.end_time for note in self.notes) - self.notes[0].start_time


def great_hit_window_from_od(overall_difficulty: float, clock_rate: float = 1.0) -> float:
    """
    Great hit window for an overall difficulty value.

    Parameters:
        overall_difficulty: OD in [0, 10]
        clock_rate: Playback rate (> 0); faster playback shrinks the window

    Returns:
        Window half-width in ms

    Raises:
        ValueError: If OD is outside [0, 10]
    """
    if not (0.0 <= overall_difficulty <= 10.0):
        raise ValueError(f"overall_difficulty must be in [0, 10], got {overall_difficulty}")
    window = GREAT_WINDOW_BASE - GREAT_WINDOW_PER_OD * overall_difficulty
    return window / timebase.validate_rate(clock_rate)


def rate_from_mods(mods: Iterable[str], mod_rates: Optional[Dict[str, float]] = None) -> float:
    """
    Playback rate implied by a set of mod acronyms.

    Rates of all recognised mods are multiplied; unknown mods leave the
    rate unchanged.

    Parameters:
        mods: Mod acronyms, case-insensitive (e.g. ['DT', 'HR'])
        mod_rates: Acronym -> rate table (None = DEFAULT_MOD_RATES)

    Returns:
        Playback rate
    """
    if mod_rates is None:
        mod_rates = DEFAULT_MOD_RATES

    rate = 1.0
    for mod in mods:
        rate *= mod_rates.get(mod.upper(), 1.0)
    return rate


def parse_mods(text: str) -> List[str]:
    """
    Split a mod string into upper-case acronyms.

    Accepts concatenated acronyms ('DTHR') and lists separated by commas,
    '+' or whitespace ('HT,DT', 'HD + DT').

    Raises:
        ValueError: If a token is not made of two-letter acronyms
    """
    mods = []
    for token in re.split(r'[\s,+]+', text.strip()):
        if not token:
            continue
        if len(token) % 2 != 0 or not token.isalpha():
            raise ValueError(f"invalid mod string {token!r}: expected two-letter acronyms")
        mods.extend(token[i:i + 2].upper() for i in range(0, len(token), 2))
    return mods


def parse_note(entry: Dict, index: int) -> Note:
    """
    Build a Note from one JSON entry.

    Raises:
        ValueError: If 'time' or 'column' is missing
    """
    if 'time' not in entry or 'column' not in entry:
        raise ValueError(f"note {index}: 'time' and 'column' are required")

    start_time = float(entry['time'])
    end_time = float(entry.get('end_time', start_time))
    return Note(start_time=start_time, end_time=end_time, column=int(entry['column']), index=index)


def chart_from_dict(data: Dict, name: str = 'chart') -> Chart:
    """
    Build and validate a Chart from parsed JSON.

    Notes are stably sorted by start time; a warning is issued when the
    input was out of order. Note indices are reassigned after sorting.

    Raises:
        ValueError: If required fields are missing or notes are invalid
    """
    if 'total_columns' not in data:
        raise ValueError("chart is missing 'total_columns'")

    total_columns = int(data['total_columns'])
    raw_notes = [parse_note(entry, i) for i, entry in enumerate(data.get('notes', []))]

    sorted_notes = sorted(raw_notes, key=lambda note: note.start_time)
    if sorted_notes != raw_notes:
        warnings.warn(f"Chart '{data.get('name', name)}': notes were not sorted by time, reordering")

    notes = [
        Note(start_time=note.start_time, end_time=note.end_time, column=note.column, index=i)
        for i, note in enumerate(sorted_notes)
    ]
    validate_notes(notes, total_columns)

    overall_difficulty = data.get('overall_difficulty')
    great_hit_window = data.get('great_hit_window')

    return Chart(
        name=data.get('name', name),
        total_columns=total_columns,
        notes=notes,
        overall_difficulty=float(overall_difficulty) if overall_difficulty is not None else None,
        great_hit_window=float(great_hit_window) if great_hit_window is not None else None,
    )


def chart_to_dict(chart: Chart) -> Dict:
    """Serialize a Chart back to the JSON chart format."""
    data = {
        'name': chart.name,
        'total_columns': chart.total_columns,
        'notes': [],
    }
    if chart.overall_difficulty is not None:
        data['overall_difficulty'] = chart.overall_difficulty
    if chart.great_hit_window is not None:
        data['great_hit_window'] = chart.great_hit_window

    for note in chart.notes:
        entry = {'time': note.start_time, 'column': note.column}
        if note.is_hold:
            entry['end_time'] = note.end_time
        data['notes'].append(entry)

    return data


def load_chart(file_path: str) -> Chart:
    """
    Load a chart JSON file.

    Parameters:
        file_path: Path to chart file

    Returns:
        Validated Chart

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If the chart is invalid
    """
    path = Path(file_path)
    with open(path, 'r') as f:
        data = json.load(f)
    return chart_from_dict(data, name=path.stem)


def save_chart(chart: Chart, file_path: str) -> Path:
    """Write a chart to JSON and return the path."""
    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(chart_to_dict(chart), f, indent=2)
    return path
