"""Central document model for the chord grid.

A SongDocument is an ordered list of Sections, each an ordered list of
Bars. Annotations that the web version stored as loose strings ("WR.",
ending type "1") are enums and small frozen dataclasses here. Every type
round-trips through to_dict()/from_dict() using the camelCase keys of the
saved project format.
"""

from __future__ import annotations
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .errors import ValidationError


# Music constants
TIME_SIGNATURES = ['2/4', '3/4', '4/4', '5/4', '6/8', '7/8', '9/8', '12/8', '2/2']
VALID_DENOMINATORS = (1, 2, 4, 8, 16)

DEFAULT_TEMPO = 120
DEFAULT_BARS = 4


class NoteDuration(Enum):
    WHOLE = 'whole'
    HALF = 'half'
    QUARTER = 'quarter'
    EIGHTH = 'eighth'
    SIXTEENTH = 'sixteenth'

    @property
    def base_beats(self) -> float:
        """Length in quarter-note beats."""
        return _BASE_BEATS[self]

    @property
    def letter(self) -> str:
        return _LETTERS[self]

    @property
    def note_code(self) -> str:
        return self.letter + 'N'

    @property
    def rest_code(self) -> str:
        return self.letter + 'R'

    @staticmethod
    def parse(value) -> 'NoteDuration':
        """Accept an enum, 'quarter', 'quarter_note' or 'quarter_rest'."""
        if isinstance(value, NoteDuration):
            return value
        name = str(value).strip().lower()
        for suffix in ('_note', '_rest'):
            if name.endswith(suffix):
                name = name[:-len(suffix)]
        try:
            return NoteDuration(name)
        except ValueError:
            raise ValidationError(f'Unknown note duration: {value!r}') from None


_BASE_BEATS = {
    NoteDuration.WHOLE: 4.0,
    NoteDuration.HALF: 2.0,
    NoteDuration.QUARTER: 1.0,
    NoteDuration.EIGHTH: 0.5,
    NoteDuration.SIXTEENTH: 0.25,
}

_LETTERS = {
    NoteDuration.WHOLE: 'W',
    NoteDuration.HALF: 'H',
    NoteDuration.QUARTER: 'Q',
    NoteDuration.EIGHTH: 'E',
    NoteDuration.SIXTEENTH: 'S',
}


class EndingGroup(Enum):
    FIRST = '1'
    SECOND = '2'

    @staticmethod
    def parse(value) -> 'EndingGroup':
        if isinstance(value, EndingGroup):
            return value
        try:
            return EndingGroup(str(value))
        except ValueError:
            raise ValidationError(f'Unknown ending: {value!r}') from None


@dataclass(frozen=True)
class TimeSignature:
    numerator: int
    denominator: int

    def __str__(self):
        return f'{self.numerator}/{self.denominator}'

    @staticmethod
    def parse(value) -> 'TimeSignature':
        """Parse "N/D". Numerator must be positive, denominator a power of two."""
        if isinstance(value, TimeSignature):
            return value
        parts = str(value).strip().split('/')
        if len(parts) != 2:
            raise ValidationError(f'Invalid time signature: {value!r}')
        try:
            num, den = int(parts[0]), int(parts[1])
        except ValueError:
            raise ValidationError(f'Invalid time signature: {value!r}') from None
        if num < 1 or den not in VALID_DENOMINATORS:
            raise ValidationError(f'Invalid time signature: {value!r}')
        return TimeSignature(num, den)


COMMON_TIME = TimeSignature(4, 4)


@dataclass(frozen=True)
class RestMark:
    duration: NoteDuration
    dotted: bool = False

    @property
    def code(self) -> str:
        return self.duration.rest_code + ('.' if self.dotted else '')

    @staticmethod
    def from_code(code) -> 'RestMark':
        """Parse the saved form, e.g. "QR" or "HR."."""
        text = str(code).strip()
        dotted = text.endswith('.')
        if dotted:
            text = text[:-1]
        for d in NoteDuration:
            if d.rest_code == text:
                return RestMark(d, dotted)
        raise ValidationError(f'Unknown rest code: {code!r}')


@dataclass(frozen=True)
class Ending:
    group: EndingGroup
    is_range_start: bool = False
    is_range_end: bool = False

    def to_dict(self):
        return {'type': self.group.value, 'isStart': self.is_range_start,
                'isEnd': self.is_range_end}

    @staticmethod
    def from_dict(d):
        return Ending(group=EndingGroup.parse(d['type']),
                      is_range_start=bool(d.get('isStart', False)),
                      is_range_end=bool(d.get('isEnd', False)))


# (attribute, saved key)
SIGN_FIELDS = [
    ('segno', 'segno'),
    ('coda', 'coda'),
    ('ds', 'ds'),
    ('dc', 'dc'),
    ('ds_al_coda', 'dsAlCoda'),
    ('dc_al_coda', 'dcAlCoda'),
    ('fine', 'fine'),
]
SIGN_NAMES = [name for name, _ in SIGN_FIELDS]


@dataclass
class BarSigns:
    segno: bool = False
    coda: bool = False
    ds: bool = False
    dc: bool = False
    ds_al_coda: bool = False
    dc_al_coda: bool = False
    fine: bool = False

    def any(self) -> bool:
        return any(getattr(self, name) for name in SIGN_NAMES)

    def to_dict(self):
        return {key: getattr(self, name) for name, key in SIGN_FIELDS}

    @staticmethod
    def from_dict(d):
        d = d or {}
        return BarSigns(**{name: bool(d.get(key, False)) for name, key in SIGN_FIELDS})


@dataclass
class NoteCount:
    duration: NoteDuration
    count: int = 1

    def to_dict(self):
        return {'type': f'{self.duration.value}_note', 'count': self.count}

    @staticmethod
    def from_dict(d):
        return NoteCount(duration=NoteDuration.parse(d['type']),
                         count=int(d.get('count', 1)))


@dataclass
class Bar:
    id: int
    chord: str = ''
    chord_after: str = ''
    chord_end: str = ''
    beats: int = 4
    rest: Optional[RestMark] = None
    trailing_rest: Optional[RestMark] = None
    time_signature: Optional[TimeSignature] = None
    ending: Optional[Ending] = None
    signs: BarSigns = field(default_factory=BarSigns)
    fermata: bool = False
    melody: str = ''
    note_types: list = field(default_factory=list)   # [NoteCount]
    note_symbol: str = ''
    comment: str = ''
    timestamp: Optional[float] = None

    def is_empty(self) -> bool:
        return not self.chord.strip()

    def slots(self) -> list:
        """Chord text of the three sequential slots."""
        return [self.chord, self.chord_after, self.chord_end]

    def to_dict(self):
        return {
            'id': self.id, 'chord': self.chord,
            'chordAfter': self.chord_after, 'chordEnd': self.chord_end,
            'beats': self.beats,
            'restType': self.rest.code if self.rest else None,
            'trailingRestType': self.trailing_rest.code if self.trailing_rest else None,
            'timeSignatureOverride': str(self.time_signature) if self.time_signature else None,
            'ending': self.ending.to_dict() if self.ending else None,
            'musicalSigns': self.signs.to_dict(),
            'fermata': self.fermata,
            'melody': {'notAngka': self.melody},
            'noteTypes': [n.to_dict() for n in self.note_types],
            'noteSymbol': self.note_symbol,
            'comment': self.comment,
            'timestamp': self.timestamp,
        }

    @staticmethod
    def from_dict(d):
        rest = d.get('restType')
        trailing = d.get('trailingRestType')
        override = d.get('timeSignatureOverride')
        ending = d.get('ending')
        return Bar(
            id=int(d['id']), chord=d.get('chord') or '',
            chord_after=d.get('chordAfter') or '',
            chord_end=d.get('chordEnd') or '',
            beats=d.get('beats', 4),
            rest=RestMark.from_code(rest) if rest else None,
            trailing_rest=RestMark.from_code(trailing) if trailing else None,
            time_signature=TimeSignature.parse(override) if override else None,
            ending=Ending.from_dict(ending) if ending else None,
            signs=BarSigns.from_dict(d.get('musicalSigns')),
            fermata=bool(d.get('fermata', False)),
            melody=(d.get('melody') or {}).get('notAngka') or '',
            note_types=[NoteCount.from_dict(n) for n in d.get('noteTypes') or []],
            note_symbol=d.get('noteSymbol') or '',
            comment=d.get('comment') or '',
            timestamp=d.get('timestamp'),
        )


@dataclass
class Section:
    id: int
    name: str
    time_signature: TimeSignature = COMMON_TIME
    bars: list = field(default_factory=list)    # [Bar]
    bar_count: int = 0
    show_melody: bool = False
    show_note_types: bool = False
    is_expanded: bool = True
    position: int = 0

    def find_bar(self, bar_id) -> Optional[Bar]:
        return next((b for b in self.bars if b.id == bar_id), None)

    def bar_index(self, bar_id) -> int:
        """Index of a bar, or -1."""
        return next((i for i, b in enumerate(self.bars) if b.id == bar_id), -1)

    def to_dict(self):
        return {
            'id': self.id, 'name': self.name,
            'timeSignature': str(self.time_signature),
            'bars': [b.to_dict() for b in self.bars],
            'barCount': self.bar_count,
            'showMelody': self.show_melody,
            'showNoteTypes': self.show_note_types,
            'isExpanded': self.is_expanded,
            'position': self.position,
        }

    @staticmethod
    def from_dict(d):
        bars = [Bar.from_dict(b) for b in d.get('bars', [])]
        return Section(
            id=int(d['id']), name=d.get('name', ''),
            time_signature=TimeSignature.parse(d.get('timeSignature', '4/4')),
            bars=bars, bar_count=d.get('barCount', len(bars)),
            show_melody=bool(d.get('showMelody', False)),
            show_note_types=bool(d.get('showNoteTypes', False)),
            is_expanded=bool(d.get('isExpanded', True)),
            position=d.get('position', 0),
        )


class SongDocument:
    """The whole chord sheet: sections plus song-level fields."""

    def __init__(self):
        self.sections: list[Section] = []
        self.tempo: int = DEFAULT_TEMPO
        self.time_signature: TimeSignature = COMMON_TIME
        self.capo: int = 0
        self.key: str = 'C'
        self.title: str = ''
        self.artist: str = ''
        self._next_id: int = 1

    def new_id(self) -> int:
        nid = self._next_id
        self._next_id += 1
        return nid

    def new_bar(self, sig: TimeSignature, **fields) -> Bar:
        return Bar(id=self.new_id(), beats=sig.numerator, **fields)

    def new_section(self, name: str, sig: TimeSignature,
                    bar_count: int = DEFAULT_BARS, position: int = 0) -> Section:
        bars = [self.new_bar(sig) for _ in range(bar_count)]
        return Section(id=self.new_id(), name=name, time_signature=sig,
                       bars=bars, bar_count=bar_count, position=position)

    # Lookup helpers
    def find_section(self, sid) -> Optional[Section]:
        return next((s for s in self.sections if s.id == sid), None)

    def section_index(self, sid) -> int:
        return next((i for i, s in enumerate(self.sections) if s.id == sid), -1)

    def find_bar(self, bar_id):
        """Return (section, bar) or (None, None)."""
        for s in self.sections:
            bar = s.find_bar(bar_id)
            if bar:
                return s, bar
        return None, None

    def all_bar_ids(self) -> set:
        return {b.id for s in self.sections for b in s.bars}

    def renumber_positions(self):
        for i, s in enumerate(self.sections):
            s.position = i

    # Serialization
    def to_dict(self) -> dict:
        return {
            'v': 1,
            'tempo': self.tempo,
            'timeSignature': str(self.time_signature),
            'capo': self.capo, 'key': self.key,
            'title': self.title, 'artist': self.artist,
            'sections': [s.to_dict() for s in self.sections],
            'nextId': self._next_id,
        }

    @staticmethod
    def from_dict(d) -> 'SongDocument':
        doc = SongDocument()
        doc.tempo = d.get('tempo', DEFAULT_TEMPO)
        doc.time_signature = TimeSignature.parse(d.get('timeSignature', '4/4'))
        doc.capo = d.get('capo', 0)
        doc.key = d.get('key', 'C')
        doc.title = d.get('title', '')
        doc.artist = d.get('artist', '')
        doc.sections = [Section.from_dict(s) for s in d.get('sections', [])]
        used = doc.all_bar_ids() | {s.id for s in doc.sections}
        doc._next_id = max(d.get('nextId', 1), max(used, default=0) + 1)
        return doc

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @staticmethod
    def from_json(text: str) -> 'SongDocument':
        return SongDocument.from_dict(json.loads(text))


def new_document(tempo: int = DEFAULT_TEMPO, sig=COMMON_TIME) -> SongDocument:
    """A fresh chord sheet: one 4-bar "Intro" section."""
    doc = SongDocument()
    doc.tempo = tempo
    doc.time_signature = TimeSignature.parse(sig)
    doc.sections = [doc.new_section('Intro', doc.time_signature, DEFAULT_BARS, 0)]
    return doc
