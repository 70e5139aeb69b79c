"""Time-signature beat accounting.

A bar in N/D holds N beats. A note's weight is its quarter-note length
scaled by D/4, so an eighth note counts as one beat in 6/8.
"""

from ..state import NoteDuration, TimeSignature, Section, Bar


def beats_per_bar(sig) -> int:
    return TimeSignature.parse(sig).numerator


def note_beats(duration, sig) -> float:
    sig = TimeSignature.parse(sig)
    return NoteDuration.parse(duration).base_beats * (sig.denominator / 4)


def effective_signature(bar: Bar, section: Section) -> TimeSignature:
    """Bar override if set, else the section's signature."""
    return bar.time_signature or section.time_signature


def used_beats(bar: Bar, sig) -> float:
    return sum(note_beats(n.duration, sig) * n.count for n in bar.note_types)


def can_add(bar: Bar, duration, sig) -> bool:
    return used_beats(bar, sig) + note_beats(duration, sig) <= beats_per_bar(sig)


def available_durations(bar: Bar, sig) -> list:
    """Durations that still fit in the bar."""
    return [d for d in NoteDuration if can_add(bar, d, sig)]


def note_symbol(note_types) -> str:
    """Combined display symbol for a tally, e.g. "QN×2 EN"."""
    parts = []
    for n in note_types:
        code = n.duration.note_code
        parts.append(f'{code}×{n.count}' if n.count > 1 else code)
    return ' '.join(parts)


def parse_time_signature(value) -> TimeSignature:
    """Parse "N/D" text (a TimeSignature passes through)."""
    return TimeSignature.parse(value)
