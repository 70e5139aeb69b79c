"""Operations modules - edits applied to a SongDocument.

Each module contains plain functions that take the document (and, for
annotations, the current selection) and raise ValidationError before
changing anything when an edit is not allowed. DocumentStore wires these
into its single mutation path and handles history and selection.
"""
