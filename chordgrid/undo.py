"""Undo/redo history for the chord grid.

Each entry is a plain-dict snapshot of the whole SongDocument. Snapshots
are never handed out directly; undo()/redo() build fresh documents from
them, so a recorded entry cannot be changed afterwards.
"""

import copy
from typing import Optional

from .state import SongDocument

MAX_HISTORY = 50


class History:
    """Linear snapshot history with a cursor."""

    def __init__(self, max_size: int = MAX_HISTORY):
        self.max_size = max_size
        self.stack = []  # List of document snapshots
        self.pointer = -1  # Current position in stack (-1 = empty)

    def can_undo(self) -> bool:
        return self.pointer > 0

    def can_redo(self) -> bool:
        return self.pointer < len(self.stack) - 1

    def seed(self, doc: SongDocument):
        """Start a fresh history whose only entry is `doc`."""
        self.clear()
        self.record(doc)

    def record(self, doc: SongDocument):
        """Push a snapshot of `doc`, dropping any redo branch."""
        self.stack = self.stack[:self.pointer + 1]
        self.stack.append(capture(doc))

        # Over the cap the oldest entry goes and the pointer stays put,
        # which leaves it on the entry just appended.
        if len(self.stack) > self.max_size:
            self.stack.pop(0)
        else:
            self.pointer += 1

    def undo(self) -> Optional[SongDocument]:
        """Move back one step and return that document."""
        if not self.can_undo():
            return None
        self.pointer -= 1
        return restore(self.stack[self.pointer])

    def redo(self) -> Optional[SongDocument]:
        """Move forward one step and return that document."""
        if not self.can_redo():
            return None
        self.pointer += 1
        return restore(self.stack[self.pointer])

    def clear(self):
        self.stack = []
        self.pointer = -1

    def __len__(self):
        return len(self.stack)


def capture(doc: SongDocument) -> dict:
    return copy.deepcopy(doc.to_dict())


def restore(snapshot: dict) -> SongDocument:
    return SongDocument.from_dict(copy.deepcopy(snapshot))


# Per-section view flags. They are not history, so a restore keeps the
# values currently on screen.
DISPLAY_FIELDS = ('show_melody', 'show_note_types', 'is_expanded')


def keep_display_state(restored: SongDocument, current: SongDocument):
    """Copy view flags from `current` onto sections of `restored` with the same id."""
    by_id = {s.id: s for s in current.sections}
    for section in restored.sections:
        live = by_id.get(section.id)
        if live is None:
            continue
        for name in DISPLAY_FIELDS:
            setattr(section, name, getattr(live, name))
    return restored
