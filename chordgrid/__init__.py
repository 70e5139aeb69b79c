"""Chord Grid: sectioned chord sheets with annotations, undo, transposition
and a plain-text form."""
