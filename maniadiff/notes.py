"""
Notes Module

Raw chart notes and their enriched "difficulty note" view.

The preprocessor walks the time-sorted note list once, rescales it by the
playback rate and attaches the relational metadata the strain evaluator
needs (gap to the previous note overall). Chord grouping is exposed as its
own step so it can be tested in isolation.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from maniadiff import timebase


DEFAULT_CHORD_THRESHOLD_MS: float = 1.0


@dataclass(frozen=True)
class Note:
    """
    A single chart note as supplied by the caller.

    Attributes:
        start_time: Hit time in ms
        end_time: Release time in ms (equal to start_time for taps)
        column: Column index in [0, total_columns)
        index: Position in the time-sorted sequence
    """
    start_time: float
    end_time: float
    column: int
    index: int = 0

    @property
    def is_hold(self) -> bool:
        return self.end_time > self.start_time

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time


@dataclass
class DifficultyNote:
    """
    Rate-adjusted note with relational metadata.

    The scratch fields (anchor_count, trill_count, column_delta) are filled
    in by the strain evaluator when it processes the note, so that a full
    pass can be inspected or persisted afterwards.
    """
    note: Note
    index: int
    start_time: float
    end_time: float
    delta_time: float
    previous_start_time: Optional[float] = None
    anchor_count: int = 0
    trill_count: int = 0
    column_delta: float = 0.0

    @property
    def column(self) -> int:
        return self.note.column

    @property
    def has_previous(self) -> bool:
        return self.previous_start_time is not None


def validate_notes(notes: Sequence[Note], total_columns: int) -> None:
    """
    Check the caller's contract on a raw note sequence.

    CONTRACT:
    - total_columns >= 1
    - every column in [0, total_columns)
    - end_time >= start_time
    - start times are non-decreasing

    Raises:
        ValueError: On the first violation found
    """
    if total_columns < 1:
        raise ValueError(f"total_columns must be at least 1, got {total_columns}")

    previous_start = None
    for i, note in enumerate(notes):
        if not (0 <= note.column < total_columns):
            raise ValueError(
                f"note {i}: column {note.column} outside [0, {total_columns})"
            )
        if note.end_time < note.start_time:
            raise ValueError(
                f"note {i}: end_time {note.end_time} before start_time {note.start_time}"
            )
        if previous_start is not None and note.start_time < previous_start:
            raise ValueError(
                f"note {i}: start_time {note.start_time} precedes previous note "
                f"at {previous_start}; notes must be sorted by start time"
            )
        previous_start = note.start_time


def preprocess(
    notes: Sequence[Note],
    total_columns: int,
    clock_rate: float = 1.0
) -> List[DifficultyNote]:
    """
    Build the enriched note sequence consumed by the strain evaluator.

    CONTRACT:
    - Input: notes sorted by start time (ties in input order)
    - Output: one DifficultyNote per input note, same order
    - Times are divided by clock_rate
    - delta_time of the first note is 0.0 and it has no previous note
    - Deterministic: same input -> same output

    Parameters:
        notes: Raw notes
        total_columns: Number of columns in the chart
        clock_rate: Playback rate multiplier (> 0)

    Returns:
        List of DifficultyNote

    Raises:
        ValueError: If the note contract or the rate is violated
    """
    timebase.validate_rate(clock_rate)
    validate_notes(notes, total_columns)

    difficulty_notes = []
    previous_start = None

    for i, note in enumerate(notes):
        start_time = timebase.rescale_time(note.start_time, clock_rate)
        end_time = timebase.rescale_time(note.end_time, clock_rate)
        delta_time = 0.0 if previous_start is None else start_time - previous_start

        difficulty_notes.append(DifficultyNote(
            note=note,
            index=i,
            start_time=start_time,
            end_time=end_time,
            delta_time=delta_time,
            previous_start_time=previous_start,
        ))
        previous_start = start_time

    return difficulty_notes


# =============================================================================
# CHORDS
# =============================================================================

def is_chord_continuation(
    note: DifficultyNote,
    threshold: float = DEFAULT_CHORD_THRESHOLD_MS
) -> bool:
    """True when the note is struck together with the note before it."""
    return note.has_previous and note.delta_time <= threshold


def group_chords(
    notes: Sequence[DifficultyNote],
    threshold: float = DEFAULT_CHORD_THRESHOLD_MS
) -> List[List[DifficultyNote]]:
    """
    Partition a difficulty note sequence into chords.

    A chord is a maximal run of notes where each note continues the
    previous one (delta_time <= threshold). Single notes form one-note
    chords.

    Parameters:
        notes: Difficulty notes in time order
        threshold: Max delta time in ms joining two notes

    Returns:
        List of chords, each a list of notes in input order
    """
    chords: List[List[DifficultyNote]] = []

    for note in notes:
        if chords and is_chord_continuation(note, threshold):
            chords[-1].append(note)
        else:
            chords.append([note])

    return chords
