"""Exception types raised by the chord grid engine.

ValidationError  – a precondition failed (empty selection, beat overflow,
                   last section, bad time signature). Nothing
                   was mutated.
NotFoundError    – a section or bar id is not in the document.
ParseError       – Text→Grid found nothing it could turn into sections.
                   The grid was left untouched.
CollaboratorError – recognition, metadata lookup or persistence failed.
                   The document is in its pre-call state.
"""


class ChordGridError(Exception):
    pass


class ValidationError(ChordGridError, ValueError):
    pass


class ParseError(ChordGridError, ValueError):
    pass


class CollaboratorError(ChordGridError, RuntimeError):
    pass


class NotFoundError(ValidationError):
    pass
