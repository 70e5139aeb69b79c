"""Bar add/insert/remove/resize operations and per-bar field edits.

section.bar_count is kept equal to len(section.bars) by every function
here, inside the same call that changes the bar list.
"""

import copy

from ..errors import ValidationError, NotFoundError
from .sections import require_section

SLOTS = ('primary', 'after', 'end')
BAR_FIELDS = ('chord', 'melody', 'comment', 'fermata', 'timestamp')


def require_bar(section, bar_id):
    bar = section.find_bar(bar_id)
    if bar is None:
        raise NotFoundError(f'Bar {bar_id} not found in section {section.id}')
    return bar


def _empty_bars(doc, section, n):
    return [doc.new_bar(section.time_signature) for _ in range(n)]


def _sync_count(section):
    section.bar_count = len(section.bars)


def add_bar(doc, sid, count: int = 1):
    """Append `count` empty bars. Returns the new bars."""
    if count < 1:
        raise ValidationError(f'Bar count must be at least 1, got {count}')
    section = require_section(doc, sid)
    new_bars = _empty_bars(doc, section, count)
    section.bars.extend(new_bars)
    _sync_count(section)
    return new_bars


def insert_bar_at(doc, sid, index: int):
    """Insert one empty bar before `index` (clamped to the list)."""
    section = require_section(doc, sid)
    index = max(0, min(index, len(section.bars)))
    bar = doc.new_bar(section.time_signature)
    section.bars.insert(index, bar)
    _sync_count(section)
    return bar


def remove_bar(doc, sid, bar_id):
    section = require_section(doc, sid)
    require_bar(section, bar_id)
    section.bars = [b for b in section.bars if b.id != bar_id]
    _sync_count(section)


def resize_bar_count(doc, sid, n: int):
    """Pad with empty bars or truncate so the section has exactly `n`."""
    if n < 0:
        raise ValidationError(f'Bar count must not be negative, got {n}')
    section = require_section(doc, sid)
    current = len(section.bars)
    if n > current:
        section.bars.extend(_empty_bars(doc, section, n - current))
    elif n < current:
        section.bars = section.bars[:n]
    _sync_count(section)


def add_single_bar(doc, sid):
    """Return the first empty bar, appending one only if none is empty."""
    section = require_section(doc, sid)
    empty = next((b for b in section.bars if b.is_empty()), None)
    if empty:
        return empty
    return add_bar(doc, sid)[0]


def repeat_last_bar(doc, sid):
    """Copy the last filled bar into the first empty one, or append a copy.

    The filled bar keeps the empty bar's id. Returns the written bar, or
    None if the section has no filled bar.
    """
    section = require_section(doc, sid)
    last = next((b for b in reversed(section.bars) if not b.is_empty()), None)
    if last is None:
        return None
    copied = copy.deepcopy(last)
    idx = next((i for i, b in enumerate(section.bars) if b.is_empty()), -1)
    if idx >= 0:
        copied.id = section.bars[idx].id
        section.bars[idx] = copied
    else:
        copied.id = doc.new_id()
        section.bars.append(copied)
        _sync_count(section)
    return copied


def enter_bar(doc, sid, selection, bars_per_line: int):
    """Insert empty bars so the content after the anchor starts a new line.

    The anchor is the last selected bar of this section, else the final
    bar. With p = (anchor position, 1-based) % bars_per_line, a full line
    of bars_per_line bars is inserted when p == 0, otherwise
    bars_per_line - p. Returns the inserted bars.
    """
    if bars_per_line < 1:
        raise ValidationError(f'Bars per line must be at least 1, got {bars_per_line}')
    section = require_section(doc, sid)
    selected = [bid for bid in selection if section.find_bar(bid)]
    if selected:
        anchor = section.bar_index(selected[-1])
    else:
        anchor = len(section.bars) - 1

    pos = (anchor + 1) % bars_per_line
    count = bars_per_line if pos == 0 else bars_per_line - pos
    new_bars = _empty_bars(doc, section, count)
    section.bars[anchor + 1:anchor + 1] = new_bars
    _sync_count(section)
    return new_bars


# ---- Per-bar edits ----

def update_chord(doc, sid, bar_id, chord: str, slot: str = 'primary'):
    if slot not in SLOTS:
        raise ValidationError(f'Unknown chord slot: {slot!r}')
    bar = require_bar(require_section(doc, sid), bar_id)
    if slot == 'primary':
        bar.chord = chord
    elif slot == 'after':
        bar.chord_after = chord
    else:
        bar.chord_end = chord


def update_melody(doc, sid, bar_id, melody: str):
    require_bar(require_section(doc, sid), bar_id).melody = melody


def update_comment(doc, sid, bar_id, comment: str):
    require_bar(require_section(doc, sid), bar_id).comment = comment


def record_timestamp(doc, sid, bar_id, seconds: float):
    """Stamp the playback time at which a bar starts."""
    if seconds < 0:
        raise ValidationError(f'Timestamp must not be negative, got {seconds}')
    require_bar(require_section(doc, sid), bar_id).timestamp = float(seconds)


def set_fermata(doc, sid, bar_id, fermata: bool = True):
    require_bar(require_section(doc, sid), bar_id).fermata = bool(fermata)


def update_bar(doc, sid, bar_id, fields: dict, slot: str = 'primary'):
    """Set several fields of one bar together.

    Every value is checked before any is written, so a bad field leaves
    the bar untouched.
    """
    unknown = [k for k in fields if k not in BAR_FIELDS]
    if unknown:
        raise ValidationError(f'Unknown bar field(s): {unknown}')
    if slot not in SLOTS:
        raise ValidationError(f'Unknown chord slot: {slot!r}')
    bar = require_bar(require_section(doc, sid), bar_id)
    if 'timestamp' in fields:
        try:
            seconds = float(fields['timestamp'])
        except (TypeError, ValueError) as e:
            raise ValidationError(f'Bad timestamp: {fields["timestamp"]!r}') from e
        if seconds < 0:
            raise ValidationError(f'Timestamp must not be negative, got {seconds}')

    if 'chord' in fields:
        update_chord(doc, sid, bar_id, str(fields['chord']), slot)
    if 'melody' in fields:
        bar.melody = str(fields['melody'])
    if 'comment' in fields:
        bar.comment = str(fields['comment'])
    if 'fermata' in fields:
        bar.fermata = bool(fields['fermata'])
    if 'timestamp' in fields:
        bar.timestamp = seconds
    return bar
