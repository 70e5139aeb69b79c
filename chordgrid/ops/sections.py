"""Section create/duplicate/delete/move/update operations."""

import copy

from ..core.beats import used_beats
from ..errors import ValidationError, NotFoundError
from ..state import Section, TimeSignature, DEFAULT_BARS


def require_section(doc, sid) -> Section:
    section = doc.find_section(sid)
    if section is None:
        raise NotFoundError(f'Section {sid} not found')
    return section


def add_section(doc):
    """Append a 4-bar section in the song's time signature. Returns it."""
    max_pos = max((s.position for s in doc.sections), default=-1)
    section = doc.new_section(f'Section {len(doc.sections) + 1}',
                              doc.time_signature, DEFAULT_BARS, max_pos + 1)
    doc.sections.append(section)
    return section


def duplicate_section(doc, sid):
    """Insert a copy right after the source section.

    Bars keep their chord text and annotations but get new ids.
    """
    src = require_section(doc, sid)
    bars = []
    for bar in src.bars:
        new_bar = copy.deepcopy(bar)
        new_bar.id = doc.new_id()
        bars.append(new_bar)
    new_section = Section(
        id=doc.new_id(),
        name=f'{src.name} Copy',
        time_signature=src.time_signature,
        bars=bars,
        bar_count=len(bars),
        show_melody=src.show_melody,
        show_note_types=src.show_note_types,
    )
    doc.sections.insert(doc.section_index(sid) + 1, new_section)
    doc.renumber_positions()
    return new_section


def delete_section(doc, sid):
    """Delete a section. The last remaining section cannot be deleted."""
    require_section(doc, sid)
    if len(doc.sections) <= 1:
        raise ValidationError('Cannot delete: must have at least one section')
    doc.sections = [s for s in doc.sections if s.id != sid]
    doc.renumber_positions()


def move_target(doc, index: int, direction: str) -> int:
    """Index the section would move to, or -1 at the edge of the list."""
    if direction not in ('up', 'down'):
        raise ValidationError(f'Invalid direction: {direction!r}')
    if not 0 <= index < len(doc.sections):
        raise NotFoundError(f'No section at index {index}')
    target = index - 1 if direction == 'up' else index + 1
    return target if 0 <= target < len(doc.sections) else -1


def move_section(doc, index: int, direction: str) -> bool:
    """Swap the section at `index` with its neighbour.

    Returns False (and changes nothing) when the move would leave the list.
    """
    target = move_target(doc, index, direction)
    if target < 0:
        return False
    s = doc.sections
    s[index], s[target] = s[target], s[index]
    doc.renumber_positions()
    return True


def update_section_name(doc, sid, name: str):
    require_section(doc, sid).name = name


def update_section_time_signature(doc, sid, sig):
    """Change a section's signature and recompute every bar's beats.

    Bars with their own override keep it. Rejected if any bar's note
    tally would no longer fit.
    """
    section = require_section(doc, sid)
    sig = TimeSignature.parse(sig)
    for bar in section.bars:
        if bar.time_signature is None and used_beats(bar, sig) > sig.numerator:
            raise ValidationError(
                f'Notes in bar {section.bar_index(bar.id) + 1} exceed {sig} '
                f'({sig.numerator} beats)')
    section.time_signature = sig
    for bar in section.bars:
        if bar.time_signature is None:
            bar.beats = sig.numerator


def update_song_info(doc, tempo=None, time_signature=None, capo=None,
                     key=None, title=None, artist=None):
    """Update song-level fields. Only the given ones change."""
    if tempo is not None:
        tempo = int(tempo)
        if tempo <= 0:
            raise ValidationError(f'Tempo must be positive, got {tempo}')
    sig = TimeSignature.parse(time_signature) if time_signature is not None else None
    if capo is not None:
        capo = int(capo)
        if capo < 0:
            raise ValidationError(f'Capo must not be negative, got {capo}')
    if tempo is not None:
        doc.tempo = tempo
    if sig is not None:
        doc.time_signature = sig
    if capo is not None:
        doc.capo = capo
    if key is not None:
        doc.key = key
    if title is not None:
        doc.title = title
    if artist is not None:
        doc.artist = artist


# ---- Display toggles (not recorded in history) ----

def toggle_section_melody(doc, sid) -> bool:
    section = require_section(doc, sid)
    section.show_melody = not section.show_melody
    return section.show_melody


def toggle_section_note_types(doc, sid) -> bool:
    section = require_section(doc, sid)
    section.show_note_types = not section.show_note_types
    return section.show_note_types


def toggle_section_expansion(doc, sid) -> bool:
    section = require_section(doc, sid)
    section.is_expanded = not section.is_expanded
    return section.is_expanded


# ---- Splitting a flat bar list into sections ----

def auto_detect_sections(doc, bars, sig=None) -> list:
    """Group a flat list of bars into Intro/Verse/Chorus sections by length.

    Bars are reused as-is (their ids must already come from `doc`).
    Returns new Section objects; doc.sections is not modified.
    """
    sig = TimeSignature.parse(sig) if sig else doc.time_signature
    total = len(bars)
    if total >= 32:
        layout = [('Intro', 4), ('Verse', 16), ('Chorus', total - 20)]
    elif total >= 20:
        layout = [('Intro', 4), ('Verse', 12), ('Chorus', total - 16)]
    elif total >= 12:
        half = total // 2
        layout = [('Verse', half), ('Chorus', total - half)]
    else:
        layout = [('Intro' if total <= 4 else 'Main', total)]

    sections = []
    start = 0
    for i, (name, length) in enumerate(layout):
        chunk = list(bars[start:start + length])
        start += length
        sections.append(Section(id=doc.new_id(), name=name, time_signature=sig,
                                bars=chunk, bar_count=len(chunk), position=i))
    return sections
