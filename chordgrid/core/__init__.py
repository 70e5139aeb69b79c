"""Pure engines: beat accounting, text conversion, transposition,
playback timing, metadata heuristics and settings.

Nothing here mutates a document in place except where a function says so.
"""
