"""DocumentStore: the one place a SongDocument is changed.

Every edit runs through mutate(), which applies an ops function, records
history, bumps the edit generation, prunes or clears the selection and
notifies listeners. View toggles skip history and the generation.

Work that talks to the outside (recognition, metadata lookup) runs on a
daemon thread via dispatch(). The result is queued and only applied when
the owner calls drain(); a result whose generation no longer matches the
document is dropped, so a slow lookup can never overwrite newer edits.
"""

from __future__ import annotations

import inspect
import queue
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .core import playback
from .core.metadata import split_title_artist
from .core.settings import Settings
from .core.textgrid import (text_to_sections, sections_to_text, melody_to_text,
                            apply_melody_text)
from .core.transpose import transpose_document, semitone_interval
from .errors import ChordGridError, CollaboratorError, ParseError, ValidationError
from .ops import bars as bar_ops
from .ops import sections as section_ops
from .ops.annotations import OPERATIONS, remove_ending
from .ops.project_io import split_document, join_document
from .state import SongDocument, new_document
from .undo import History, keep_display_state


@dataclass
class Completion:
    """Outcome of one dispatched job, as reported by drain()."""
    label: str
    status: str                 # 'applied' | 'stale' | 'failed'
    result: Any = None
    error: Optional[Exception] = None


@dataclass
class _Pending:
    label: str
    generation: int
    apply: Optional[Callable]
    result: Any = None
    error: Optional[Exception] = None


class DocumentStore:
    def __init__(self, doc: Optional[SongDocument] = None, settings: Optional[Settings] = None):
        self.settings = settings or Settings()
        self.history = History(self.settings.history_depth)
        self.selection: list = []
        self.generation = 0
        self._listeners: list[Callable] = []
        self._completions: queue.Queue = queue.Queue()
        self._lock = threading.RLock()
        self.doc = None
        self.load(doc or self._fresh_document())

    def _fresh_document(self, tempo=None, sig=None) -> SongDocument:
        return new_document(tempo or self.settings.default_tempo,
                            sig or self.settings.default_time_signature)

    # ---- Observers ----

    def on_change(self, callback: Callable):
        self._listeners.append(callback)

    def notify(self, source=None):
        for cb in self._listeners:
            cb(source)

    # ---- Core mutation path ----

    def mutate(self, fn, *args, record: bool = True, clear_selection: bool = False,
               source=None, **kwargs):
        """Apply `fn(doc, *args, **kwargs)` and return its result.

        ops functions raise before touching the document, so an exception
        here leaves document, history and generation unchanged.
        """
        with self._lock:
            result = fn(self.doc, *args, **kwargs)
            # View-only changes leave history and outstanding results alone
            if record:
                self.generation += 1
                self.history.record(self.doc)
            if clear_selection:
                self.selection = []
            else:
                self._prune_selection()
        self.notify(source)
        return result

    def _prune_selection(self):
        ids = self.doc.all_bar_ids()
        self.selection = [bid for bid in self.selection if bid in ids]

    def load(self, doc: SongDocument):
        """Replace the document and start a fresh history from it."""
        with self._lock:
            self.doc = doc
            self.selection = []
            self.generation += 1
            self.history.seed(doc)
        self.notify('load')

    def new_document(self, tempo=None, time_signature=None) -> SongDocument:
        self.load(self._fresh_document(tempo, time_signature))
        return self.doc

    # ---- Undo / redo ----

    def _step(self, doc, source) -> bool:
        if doc is None:
            return False
        with self._lock:
            self.doc = keep_display_state(doc, self.doc)
            self.generation += 1
            self._prune_selection()
        self.notify(source)
        return True

    def undo(self) -> bool:
        with self._lock:
            doc = self.history.undo()
        return self._step(doc, 'undo')

    def redo(self) -> bool:
        with self._lock:
            doc = self.history.redo()
        return self._step(doc, 'redo')

    # ---- Selection ----

    def _require_bar_ids(self, bar_ids):
        known = self.doc.all_bar_ids()
        missing = [bid for bid in bar_ids if bid not in known]
        if missing:
            raise ValidationError(f'Unknown bar id(s): {missing}')

    def select(self, bar_id, additive: bool = False):
        with self._lock:
            self._require_bar_ids([bar_id])
            if not additive:
                self.selection = [bar_id]
            elif bar_id not in self.selection:
                self.selection.append(bar_id)
        self.notify('selection')

    def toggle(self, bar_id):
        with self._lock:
            self._require_bar_ids([bar_id])
            if bar_id in self.selection:
                self.selection.remove(bar_id)
            else:
                self.selection.append(bar_id)
        self.notify('selection')

    def select_many(self, bar_ids):
        with self._lock:
            self._require_bar_ids(bar_ids)
            self.selection = list(dict.fromkeys(bar_ids))
        self.notify('selection')

    def clear_selection(self):
        with self._lock:
            self.selection = []
        self.notify('selection')

    # ---- Song and sections ----

    def update_song_info(self, **fields):
        return self.mutate(section_ops.update_song_info, source='song', **fields)

    def add_section(self):
        return self.mutate(section_ops.add_section, source='sections')

    def duplicate_section(self, sid):
        return self.mutate(section_ops.duplicate_section, sid, source='sections')

    def delete_section(self, sid):
        return self.mutate(section_ops.delete_section, sid, source='sections')

    def move_section(self, index: int, direction: str) -> bool:
        # An edge move is a no-op and leaves history alone
        if section_ops.move_target(self.doc, index, direction) < 0:
            return False
        return self.mutate(section_ops.move_section, index, direction, source='sections')

    def rename_section(self, sid, name: str):
        return self.mutate(section_ops.update_section_name, sid, name, source='sections')

    def set_section_time_signature(self, sid, sig):
        return self.mutate(section_ops.update_section_time_signature, sid, sig,
                           source='sections')

    def toggle_section_melody(self, sid) -> bool:
        return self.mutate(section_ops.toggle_section_melody, sid, record=False,
                           source='display')

    def toggle_section_note_types(self, sid) -> bool:
        return self.mutate(section_ops.toggle_section_note_types, sid, record=False,
                           source='display')

    def toggle_section_expansion(self, sid) -> bool:
        return self.mutate(section_ops.toggle_section_expansion, sid, record=False,
                           source='display')

    def auto_detect_sections(self):
        """Regroup every bar of the document into Intro/Verse/Chorus."""
        def regroup(doc):
            bars = [b for s in doc.sections for b in s.bars]
            doc.sections = section_ops.auto_detect_sections(doc, bars)
            return doc.sections
        return self.mutate(regroup, source='sections')

    def auto_generate(self, duration: float):
        """Replace the grid with empty, time-stamped sections for `duration` seconds."""
        def generate(doc):
            doc.sections = playback.auto_generate_sections(
                doc, duration, self.settings.bars_per_line)
            return doc.sections
        return self.mutate(generate, clear_selection=True, source='sections')

    # ---- Bars ----

    def add_bar(self, sid, count: int = 1):
        return self.mutate(bar_ops.add_bar, sid, count, source='bars')

    def insert_bar_at(self, sid, index: int):
        return self.mutate(bar_ops.insert_bar_at, sid, index, source='bars')

    def remove_bar(self, sid, bar_id):
        return self.mutate(bar_ops.remove_bar, sid, bar_id, source='bars')

    def resize_bar_count(self, sid, n: int):
        return self.mutate(bar_ops.resize_bar_count, sid, n, source='bars')

    def add_single_bar(self, sid):
        return self.mutate(bar_ops.add_single_bar, sid, source='bars')

    def repeat_last_bar(self, sid):
        return self.mutate(bar_ops.repeat_last_bar, sid, source='bars')

    def enter_bar(self, sid, bars_per_line: Optional[int] = None):
        n = bars_per_line or self.settings.bars_per_line
        return self.mutate(bar_ops.enter_bar, sid, list(self.selection), n, source='bars')

    def update_chord(self, sid, bar_id, chord: str, slot: str = 'primary'):
        return self.mutate(bar_ops.update_chord, sid, bar_id, chord, slot, source='bar')

    def update_melody(self, sid, bar_id, melody: str):
        return self.mutate(bar_ops.update_melody, sid, bar_id, melody, source='bar')

    def update_comment(self, sid, bar_id, comment: str):
        return self.mutate(bar_ops.update_comment, sid, bar_id, comment, source='bar')

    def set_fermata(self, sid, bar_id, fermata: bool = True):
        return self.mutate(bar_ops.set_fermata, sid, bar_id, fermata, source='bar')

    def record_timestamp(self, sid, bar_id, seconds: float):
        return self.mutate(bar_ops.record_timestamp, sid, bar_id, seconds, source='bar')

    def update_bar(self, sid, bar_id, fields: dict, slot: str = 'primary'):
        """Several bar fields in one edit and one history entry."""
        return self.mutate(bar_ops.update_bar, sid, bar_id, dict(fields), slot, source='bar')

    # ---- Selection-scoped annotations ----

    def annotate(self, name: str, sid, **params):
        """Run the named annotation over the current selection."""
        if name not in OPERATIONS:
            raise ValidationError(f'Unknown annotation: {name!r}')
        fn, clears = OPERATIONS[name]
        selection = list(self.selection)
        try:
            inspect.signature(fn).bind(self.doc, sid, selection, **params)
        except TypeError as e:
            raise ValidationError(f'Bad parameters for {name}: {e}') from e
        return self.mutate(fn, sid, selection, clear_selection=clears,
                           source='annotate', **params)

    def remove_ending(self, sid, group) -> int:
        return self.mutate(remove_ending, sid, group, source='annotate')

    # ---- Text block ----

    def export_text(self, bars_per_line: Optional[int] = None) -> str:
        return sections_to_text(self.doc.sections,
                                bars_per_line or self.settings.text_bars_per_line)

    def apply_text(self, text: str, time_signature=None):
        """Replace the grid with the sections parsed from `text`.

        Raises ParseError and leaves the grid as it was when nothing in the
        text parses.
        """
        def replace(doc):
            sections = text_to_sections(text, doc, time_signature)
            if not sections:
                raise ParseError('No sections or chords found in the text')
            doc.sections = sections
            return sections
        return self.mutate(replace, clear_selection=True, source='text')

    def melody_text(self, bars_per_line: Optional[int] = None) -> str:
        return melody_to_text(self.doc.sections,
                              bars_per_line or self.settings.text_bars_per_line)

    def apply_melody_text(self, text: str) -> int:
        return self.mutate(lambda doc: apply_melody_text(doc.sections, text),
                           source='melody')

    # ---- Transposition ----

    def transpose(self, semitones: int):
        return self.mutate(transpose_document, int(semitones), source='transpose')

    def transpose_to_key(self, key: str):
        """Transpose every chord so the song moves from its key to `key`."""
        n = semitone_interval(self.doc.key, key)

        def to_key(doc):
            transpose_document(doc, n)
            doc.key = key
        self.mutate(to_key, source='transpose')
        return n

    # ---- Playback ----

    def current_bar(self, seconds: float):
        """(section index, bar index) playing at `seconds`, or None."""
        return playback.locate_bar(self.doc, seconds)

    # ---- Background collaborators ----

    def dispatch(self, work: Callable, apply: Optional[Callable] = None,
                 label: str = 'job') -> threading.Thread:
        """Run `work()` on a daemon thread; queue `apply(doc, result)` for drain()."""
        generation = self.generation

        def run():
            try:
                pending = _Pending(label, generation, apply, result=work())
            except Exception as e:
                pending = _Pending(label, generation, apply, error=e)
            self._completions.put(pending)

        thread = threading.Thread(target=run, daemon=True)
        thread.start()
        return thread

    def drain(self) -> list:
        """Apply queued completions on the calling thread. Returns Completions."""
        done = []
        while True:
            try:
                pending = self._completions.get_nowait()
            except queue.Empty:
                break
            done.append(self._complete(pending))
        return done

    def _complete(self, pending: _Pending) -> Completion:
        if pending.generation != self.generation:
            print(f"[Store] Discarding stale {pending.label} result "
                  f"(generation {pending.generation}, now {self.generation})")
            return Completion(pending.label, 'stale', pending.result)
        if pending.error is not None:
            print(f"[Store] {pending.label} failed: {pending.error}")
            error = pending.error
            if not isinstance(error, ChordGridError):
                error = CollaboratorError(f'{pending.label} failed: {error}')
                error.__cause__ = pending.error
            return Completion(pending.label, 'failed', error=error)
        if pending.apply is None:
            return Completion(pending.label, 'applied', pending.result)
        try:
            self.mutate(pending.apply, pending.result,
                        source=pending.label)
        except ChordGridError as e:
            print(f"[Store] {pending.label} result rejected: {e}")
            return Completion(pending.label, 'failed', pending.result, e)
        return Completion(pending.label, 'applied', pending.result)

    def import_recognized(self, recognizer, source) -> threading.Thread:
        """Recognise chords in `source` in the background.

        `recognizer` is a callable (or has a recognize() method) returning
        raw chord text. On drain() the text replaces the grid.
        """
        recognize = getattr(recognizer, 'recognize', recognizer)

        def apply(doc, text):
            sections = text_to_sections(text, doc)
            if not sections:
                raise ParseError('No chords recognised')
            doc.sections = sections

        return self.dispatch(lambda: recognize(source), apply, label='recognition')

    def lookup_metadata(self, provider, url: str) -> threading.Thread:
        """Fetch a video title in the background and fill in title/artist.

        `provider` is a callable (or has a lookup() method) returning the raw
        title. Empty guesses leave the current fields alone.
        """
        lookup = getattr(provider, 'lookup', provider)

        def work():
            return split_title_artist(lookup(url) or '')

        def apply(doc, guess):
            song, artist = guess
            section_ops.update_song_info(doc, title=song or None, artist=artist or None)

        return self.dispatch(work, apply, label='metadata')

    # ---- Persistence ----

    def save_to(self, repository, project_id: Optional[str] = None) -> str:
        sections, metadata = split_document(self.doc)
        try:
            return repository.save(sections, metadata, project_id)
        except ChordGridError:
            raise
        except Exception as e:
            print(f"[Store] Save failed: {e}")
            raise CollaboratorError(f'Save failed: {e}') from e

    def load_from(self, repository, project_id: str) -> SongDocument:
        try:
            sections, metadata = repository.load(project_id)
        except ChordGridError:
            raise
        except Exception as e:
            print(f"[Store] Load of {project_id} failed: {e}")
            raise CollaboratorError(f'Load failed: {e}') from e
        try:
            doc = SongDocument.from_dict(join_document(sections, metadata))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            print(f"[Store] Project {project_id} is malformed: {e!r}")
            raise CollaboratorError(f'Project {project_id} is malformed: {e!r}') from e
        self.load(doc)
        return self.doc
