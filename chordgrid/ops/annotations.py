"""Selection-scoped bulk annotations.

Every function takes the document, a section id and the current
selection (an ordered list of bar ids) and applies to the selected bars
of that section. An empty selection is rejected with a ValidationError
before anything is touched, as is any batch where one bar would break
its beat capacity.

OPERATIONS maps the names used by the store and the HTTP API to these
functions, together with whether the selection is cleared afterwards.
"""

from ..core.beats import can_add, effective_signature, note_symbol, used_beats
from ..errors import ValidationError
from ..state import (NoteDuration, NoteCount, RestMark, Ending, EndingGroup,
                     TimeSignature, SIGN_NAMES)
from .sections import require_section


def _append(text: str, extra: str) -> str:
    return f'{(text or "").strip()} {extra}'.strip()


def selected_bars(doc, sid, selection, message='Select a bar first'):
    """Selected bars of the section in bar order. Raises if there are none."""
    section = require_section(doc, sid)
    chosen = set(selection)
    bars = [b for b in section.bars if b.id in chosen]
    if not bars:
        raise ValidationError(message)
    return section, bars


def selected_indices(section, bars):
    return sorted(section.bar_index(b.id) for b in bars)


def add_repeat_sign(doc, sid, selection):
    """Fill each selected bar with the repeat-previous-bar sign."""
    _, bars = selected_bars(doc, sid, selection,
                            'Select a bar to insert the % sign')
    for bar in bars:
        bar.chord = '%'
        bar.comment = 'Repeat previous bar'
    return bars


def add_rest(doc, sid, selection, duration, dotted: bool = False):
    """Set the leading rest, or the trailing rest if a leading one exists."""
    mark = RestMark(NoteDuration.parse(duration), bool(dotted))
    _, bars = selected_bars(doc, sid, selection, 'Select a bar to add a rest')
    for bar in bars:
        if bar.rest:
            bar.trailing_rest = mark
        else:
            bar.rest = mark
    return bars


def add_note_symbol(doc, sid, selection, duration):
    """Count one more note of `duration` in every selected bar.

    All selected bars are checked first; if any would exceed its beat
    capacity the whole batch is rejected.
    """
    duration = NoteDuration.parse(duration)
    section, bars = selected_bars(doc, sid, selection,
                                  'Please select a bar to add a note')
    overflow = [b for b in bars
                if not can_add(b, duration, effective_signature(b, section))]
    if overflow:
        sig = effective_signature(overflow[0], section)
        raise ValidationError(
            f'Adding a {duration.value} note would exceed the {sig} time '
            f'signature limit ({sig.numerator} beats). '
            f'{len(overflow)} bar(s) affected.')

    for bar in bars:
        entry = next((n for n in bar.note_types if n.duration is duration), None)
        if entry:
            entry.count += 1
        else:
            bar.note_types.append(NoteCount(duration, 1))
        bar.note_symbol = note_symbol(bar.note_types)
    return bars


def clear_note_types(doc, sid, selection):
    _, bars = selected_bars(doc, sid, selection,
                            'Please select bars to clear note types')
    for bar in bars:
        bar.note_types = []
        bar.note_symbol = ''
    return bars


def add_slash_notation(doc, sid, selection):
    _, bars = selected_bars(doc, sid, selection,
                            'Please select a bar to add slash notation')
    for bar in bars:
        bar.chord = _append(bar.chord, '/ /')
        bar.comment = _append(bar.comment, 'slash')
    return bars


def contiguous_runs(indices):
    """Split sorted indices into maximal runs of consecutive values."""
    runs = []
    for idx in indices:
        if runs and idx == runs[-1][-1] + 1:
            runs[-1].append(idx)
        else:
            runs.append([idx])
    return runs


def add_ending(doc, sid, selection, group):
    """Mark the selection as a 1st or 2nd ending.

    Existing endings on the selected bars are dropped, then each maximal
    contiguous run gets its first bar flagged as range start and its last
    as range end.
    """
    group = EndingGroup.parse(group)
    label = 'first' if group is EndingGroup.FIRST else 'second'
    section, bars = selected_bars(doc, sid, selection,
                                  f'Please select bars to mark as {label} ending')
    for bar in bars:
        bar.ending = None
    for run in contiguous_runs(selected_indices(section, bars)):
        for i, idx in enumerate(run):
            section.bars[idx].ending = Ending(group, is_range_start=i == 0,
                                              is_range_end=i == len(run) - 1)
    return bars


def add_first_ending(doc, sid, selection):
    return add_ending(doc, sid, selection, EndingGroup.FIRST)


def add_second_ending(doc, sid, selection):
    return add_ending(doc, sid, selection, EndingGroup.SECOND)


def remove_ending(doc, sid, group):
    """Drop every ending of `group` in the section. Needs no selection."""
    group = EndingGroup.parse(group)
    section = require_section(doc, sid)
    removed = 0
    for bar in section.bars:
        if bar.ending and bar.ending.group is group:
            bar.ending = None
            removed += 1
    return removed


def add_sign(doc, sid, selection, sign: str):
    """Set one musical sign flag. Flags accumulate; none excludes another."""
    if sign not in SIGN_NAMES:
        raise ValidationError(f'Unknown sign: {sign!r}')
    _, bars = selected_bars(doc, sid, selection,
                            'Please select a bar to mark with a sign')
    for bar in bars:
        setattr(bar.signs, sign, True)
    return bars


def add_segno(doc, sid, selection):
    return add_sign(doc, sid, selection, 'segno')


def add_coda(doc, sid, selection):
    return add_sign(doc, sid, selection, 'coda')


def add_ds(doc, sid, selection):
    return add_sign(doc, sid, selection, 'ds')


def add_dc(doc, sid, selection):
    return add_sign(doc, sid, selection, 'dc')


def add_ds_al_coda(doc, sid, selection):
    return add_sign(doc, sid, selection, 'ds_al_coda')


def add_dc_al_coda(doc, sid, selection):
    return add_sign(doc, sid, selection, 'dc_al_coda')


def add_fine(doc, sid, selection):
    return add_sign(doc, sid, selection, 'fine')


def add_fermata(doc, sid, selection):
    _, bars = selected_bars(doc, sid, selection,
                            'Please select a bar to add a fermata')
    for bar in bars:
        bar.fermata = True
    return bars


def add_time_signature_override(doc, sid, selection, time_signature):
    """Give the selected bars their own signature and beat count."""
    sig = TimeSignature.parse(time_signature)
    section, bars = selected_bars(doc, sid, selection,
                                  'Please select bars to change time signature')
    for bar in bars:
        if used_beats(bar, sig) > sig.numerator:
            raise ValidationError(
                f'Notes in bar {section.bar_index(bar.id) + 1} exceed {sig} '
                f'({sig.numerator} beats)')
    for bar in bars:
        bar.time_signature = sig
        bar.beats = sig.numerator
    return bars


def add_repeat_start_marker(doc, sid, selection):
    """Prefix the first selected bar's chord with ||:."""
    _, bars = selected_bars(doc, sid, selection,
                            'Please select a bar to add a repeat start marker')
    first = bars[0]
    first.chord = f'||: {first.chord or ""}'.strip()
    return [first]


def add_repeat_end_marker(doc, sid, selection):
    """Suffix the last selected bar's chord with :||."""
    _, bars = selected_bars(doc, sid, selection,
                            'Please select a bar to add a repeat end marker')
    last = bars[-1]
    last.chord = f'{last.chord or ""} :||'.strip()
    last.comment = _append(last.comment, '(1x)')
    return [last]


# name -> (function, clears selection)
OPERATIONS = {
    'repeat_sign': (add_repeat_sign, False),
    'rest': (add_rest, False),
    'note': (add_note_symbol, True),
    'clear_notes': (clear_note_types, True),
    'slash': (add_slash_notation, True),
    'first_ending': (add_first_ending, True),
    'second_ending': (add_second_ending, True),
    'sign': (add_sign, True),
    'segno': (add_segno, True),
    'coda': (add_coda, True),
    'ds': (add_ds, True),
    'dc': (add_dc, True),
    'ds_al_coda': (add_ds_al_coda, True),
    'dc_al_coda': (add_dc_al_coda, True),
    'fine': (add_fine, True),
    'fermata': (add_fermata, True),
    'time_signature': (add_time_signature_override, True),
    'repeat_start': (add_repeat_start_marker, True),
    'repeat_end': (add_repeat_end_marker, True),
}
