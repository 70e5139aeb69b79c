"""Unit tests for chord transposition."""

from __future__ import annotations

import unittest

from chordgrid.core import transpose as tr
from chordgrid.errors import ValidationError
from chordgrid.state import new_document


class ChordTests(unittest.TestCase):
    def test_flat_root_goes_through_sharp_spelling(self) -> None:
        self.assertEqual(tr.transpose_chord('Db', 1), 'D')
        self.assertEqual(tr.transpose_chord('Db', 12), 'C#')
        self.assertEqual(tr.transpose_chord('Bbm7', 2), 'Cm7')

    def test_suffix_kept_verbatim(self) -> None:
        self.assertEqual(tr.transpose_chord('Cmaj7/G', 2), 'Dmaj7/G')
        self.assertEqual(tr.transpose_chord('F#sus4', -1), 'Fsus4')
        self.assertEqual(tr.transpose_chord('Am', -3), 'F#m')

    def test_wraps_both_ways(self) -> None:
        self.assertEqual(tr.transpose_chord('B', 1), 'C')
        self.assertEqual(tr.transpose_chord('C', -1), 'B')
        self.assertEqual(tr.transpose_chord('G', 25), 'G#')

    def test_special_and_unknown_tokens_unchanged(self) -> None:
        for token in ('N.C.', '%', '%%', 'r1', 'r2', '||:', ':||', '/', '.', '', 'xyz', 'H7'):
            self.assertEqual(tr.transpose_chord(token, 3), token, msg=token)

    def test_text_keeps_layout(self) -> None:
        self.assertEqual(tr.transpose_text('||: C  Am / / :||', 2), '||: D  Bm / / :||')
        self.assertEqual(tr.transpose_text('', 5), '')

    def test_round_trip(self) -> None:
        for chord in ('C', 'C#m', 'D7', 'F#', 'G#dim', 'A#maj7', 'B/F#'):
            for n in range(-12, 13):
                self.assertEqual(tr.transpose_chord(tr.transpose_chord(chord, n), -n), chord)

    def test_semitone_interval(self) -> None:
        self.assertEqual(tr.semitone_interval('C', 'D'), 2)
        self.assertEqual(tr.semitone_interval('A', 'C'), 3)
        self.assertEqual(tr.semitone_interval('Am', 'Em'), 7)
        self.assertEqual(tr.semitone_interval('Eb', 'D#'), 0)
        with self.assertRaises(ValidationError):
            tr.semitone_interval('C', 'Q')

    def test_keys_outside_the_table_rejected(self) -> None:
        for key in ('E#', 'B#', 'Cb', 'Fb'):
            with self.assertRaises(ValidationError, msg=key):
                tr.semitone_interval('C', key)
            with self.assertRaises(ValidationError, msg=key):
                tr.semitone_interval(key, 'C')


class DocumentTests(unittest.TestCase):
    def test_every_slot_and_key(self) -> None:
        doc = new_document()
        bar = doc.sections[0].bars[0]
        bar.chord, bar.chord_after, bar.chord_end = 'C', 'G/B', 'Am'
        doc.key = 'C'
        tr.transpose_document(doc, 2)
        self.assertEqual(bar.slots(), ['D', 'A/B', 'Bm'])
        self.assertEqual(doc.key, 'D')

    def test_sections_copy_leaves_input(self) -> None:
        doc = new_document()
        doc.sections[0].bars[0].chord = 'E'
        moved = tr.transpose_sections(doc.sections, 1)
        self.assertEqual(moved[0].bars[0].chord, 'F')
        self.assertEqual(doc.sections[0].bars[0].chord, 'E')


if __name__ == '__main__':
    unittest.main()
