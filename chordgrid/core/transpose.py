"""Chord transposition.

A chord token is split into a root (letter plus optional # or b) and a
suffix that is kept verbatim. Flat roots are first spelled as sharps via
ENHARMONIC, then shifted as pitch classes, so results are always spelled
with sharps: "Db" up one semitone is "D", and "Db" up twelve is "C#".
"""

import copy
import re

from ..errors import ValidationError

# Every spelling accepted as a key, starting at C.
KEYS = ['C', 'C#', 'Db', 'D', 'D#', 'Eb', 'E', 'F', 'F#', 'Gb',
        'G', 'G#', 'Ab', 'A', 'A#', 'Bb', 'B']

ENHARMONIC = {
    'Db': 'C#',
    'Eb': 'D#',
    'Gb': 'F#',
    'Ab': 'G#',
    'Bb': 'A#',
}

# Pitch classes, in the order they appear in KEYS
SHARP_SCALE = [k for k in KEYS if k not in ENHARMONIC]

# Notation tokens that look like they might hold a chord but never move
SPECIAL_CASES = frozenset({'N.C.', 'NC', '%', '%%', 'r1', 'r2', '||:', ':||',
                           '/', '.', '-', '—'})

ROOT_RE = re.compile(r'^([A-G][#b]?)')
TOKEN_RE = re.compile(r'\S+')


def pitch_class(note: str) -> int:
    """Index 0-11 of a root spelling, or -1."""
    name = ENHARMONIC.get(note, note)
    return SHARP_SCALE.index(name) if name in SHARP_SCALE else -1


def split_chord(token: str):
    """Return (root, suffix), or None when there is no recognisable root."""
    m = ROOT_RE.match(token)
    if not m:
        return None
    return m.group(1), token[m.end():]


def transpose_chord(token: str, semitones: int) -> str:
    if not token or not token.strip() or token in SPECIAL_CASES:
        return token
    parts = split_chord(token)
    if parts is None:
        return token
    root, suffix = parts
    pc = pitch_class(root)
    if pc < 0:
        return token
    return SHARP_SCALE[(pc + semitones) % 12] + suffix


def transpose_text(text: str, semitones: int) -> str:
    """Transpose every whitespace-separated token of a chord cell."""
    if not text:
        return text
    return TOKEN_RE.sub(lambda m: transpose_chord(m.group(0), semitones), text)


def semitone_interval(from_key: str, to_key: str) -> int:
    """Upward distance 0-11 between two keys (minor suffixes ignored)."""
    a = split_chord(from_key or '')
    b = split_chord(to_key or '')
    if a is None or b is None:
        raise ValidationError(f'Cannot compare keys {from_key!r} and {to_key!r}')
    start, end = pitch_class(a[0]), pitch_class(b[0])
    if start < 0 or end < 0:
        raise ValidationError(f'Unsupported key spelling: {from_key!r} -> {to_key!r}')
    return (end - start) % 12


def transpose_sections(sections, semitones: int) -> list:
    """Transposed deep copies of `sections`; the inputs are not touched."""
    result = copy.deepcopy(sections)
    for section in result:
        for bar in section.bars:
            bar.chord = transpose_text(bar.chord, semitones)
            bar.chord_after = transpose_text(bar.chord_after, semitones)
            bar.chord_end = transpose_text(bar.chord_end, semitones)
    return result


def transpose_document(doc, semitones: int):
    """Shift every chord slot and the song key by `semitones`.

    All new values are computed before any is assigned, so a failure
    leaves the document exactly as it was.
    """
    semitones = int(semitones)
    sections = transpose_sections(doc.sections, semitones)
    key = transpose_chord(doc.key, semitones)
    doc.sections = sections
    doc.key = key
