"""Mapping between playback time and bars.

The simple form assumes one tempo and one bar length:
    current bar = floor(t / ((60 / tempo) * beats_per_bar))
bar_start_times() handles sections and bars with their own time
signatures by accumulating every bar's duration.
"""

import math

import numpy as np

from ..errors import ValidationError
from ..state import Section
from .beats import effective_signature

SECTION_NAMES = ['Intro', 'Verse 1', 'Chorus', 'Verse 2', 'Chorus',
                 'Bridge', 'Chorus', 'Outro']
LINES_PER_SECTION = 4


def bar_duration(tempo, beats) -> float:
    """Seconds per bar."""
    if tempo <= 0:
        raise ValidationError(f'Tempo must be positive, got {tempo}')
    return (60.0 / tempo) * beats


def current_bar_index(current_time: float, tempo, beats) -> int:
    return int(math.floor(current_time / bar_duration(tempo, beats)))


def total_bars_for(duration: float, tempo, beats) -> int:
    """Bars needed to cover `duration` seconds."""
    if duration <= 0:
        return 0
    return int(math.ceil(duration / bar_duration(tempo, beats)))


def bar_beats(doc) -> np.ndarray:
    """Beats of every bar in document order."""
    return np.array([effective_signature(b, s).numerator
                     for s in doc.sections for b in s.bars], dtype=float)


def bar_start_times(doc) -> np.ndarray:
    """Start time in seconds of every bar, in document order."""
    durations = bar_beats(doc) * (60.0 / doc.tempo)
    if durations.size == 0:
        return durations
    return np.concatenate(([0.0], np.cumsum(durations)[:-1]))


def locate_bar(doc, current_time: float):
    """(section index, bar index) playing at `current_time`, or None past the end."""
    if current_time < 0:
        return None
    beats = bar_beats(doc)
    if beats.size == 0:
        return None
    ends = np.cumsum(beats * (60.0 / doc.tempo))
    flat = int(np.searchsorted(ends, current_time, side='right'))
    if flat >= beats.size:
        return None
    for si, section in enumerate(doc.sections):
        if flat < len(section.bars):
            return si, flat
        flat -= len(section.bars)
    return None


def auto_generate_sections(doc, duration: float, bars_per_line: int = 4):
    """Empty sections covering `duration` seconds at the song's tempo.

    Each section holds bars_per_line * 4 bars and every bar is stamped with
    its start time. Returns new Sections; doc.sections is not modified.
    """
    if duration <= 0:
        raise ValidationError('No duration: load a video first to calculate bars')
    sig = doc.time_signature
    per_bar = bar_duration(doc.tempo, sig.numerator)
    total = total_bars_for(duration, doc.tempo, sig.numerator)
    per_section = bars_per_line * LINES_PER_SECTION
    starts = np.arange(total) * per_bar

    sections = []
    for i, first in enumerate(range(0, total, per_section)):
        name = SECTION_NAMES[i] if i < len(SECTION_NAMES) else f'Section {i + 1}'
        bars = [doc.new_bar(sig, timestamp=float(starts[n]))
                for n in range(first, min(first + per_section, total))]
        sections.append(Section(id=doc.new_id(), name=name, time_signature=sig,
                                bars=bars, bar_count=len(bars), position=i))
    return sections
