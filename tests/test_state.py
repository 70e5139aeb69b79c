"""Unit tests for the document model and its saved form."""

from __future__ import annotations

import unittest

from chordgrid.errors import ValidationError
from chordgrid.state import (Bar, Ending, EndingGroup, NoteCount, NoteDuration,
                             RestMark, SongDocument, TimeSignature, new_document)


class NewDocumentTests(unittest.TestCase):
    def test_single_intro_with_four_bars(self) -> None:
        doc = new_document()
        self.assertEqual(len(doc.sections), 1)
        intro = doc.sections[0]
        self.assertEqual(intro.name, 'Intro')
        self.assertEqual(intro.time_signature, TimeSignature(4, 4))
        self.assertEqual(len(intro.bars), 4)
        self.assertEqual(intro.bar_count, 4)
        self.assertTrue(all(b.is_empty() for b in intro.bars))

    def test_ids_are_unique(self) -> None:
        doc = new_document()
        ids = [b.id for b in doc.sections[0].bars] + [doc.sections[0].id]
        self.assertEqual(len(ids), len(set(ids)))

    def test_bars_take_numerator_as_beats(self) -> None:
        doc = new_document(sig='6/8')
        self.assertTrue(all(b.beats == 6 for b in doc.sections[0].bars))


class SerializationTests(unittest.TestCase):
    def _annotated(self) -> SongDocument:
        doc = new_document()
        doc.title, doc.artist, doc.key, doc.capo = 'Song', 'Band', 'G', 2
        bar = doc.sections[0].bars[0]
        bar.chord, bar.chord_after = 'G', 'D/F#'
        bar.rest = RestMark(NoteDuration.QUARTER, dotted=True)
        bar.trailing_rest = RestMark(NoteDuration.EIGHTH)
        bar.time_signature = TimeSignature(3, 4)
        bar.ending = Ending(EndingGroup.FIRST, True, False)
        bar.signs.segno = True
        bar.signs.dc_al_coda = True
        bar.fermata = True
        bar.melody = '1 2 3'
        bar.note_types = [NoteCount(NoteDuration.QUARTER, 2)]
        bar.note_symbol = 'QN×2'
        bar.timestamp = 12.5
        return doc

    def test_round_trip(self) -> None:
        doc = self._annotated()
        again = SongDocument.from_json(doc.to_json())
        self.assertEqual(again.to_dict(), doc.to_dict())
        self.assertEqual(again.sections[0].bars[0], doc.sections[0].bars[0])

    def test_saved_keys_are_camel_case(self) -> None:
        d = self._annotated().to_dict()['sections'][0]['bars'][0]
        self.assertEqual(d['chordAfter'], 'D/F#')
        self.assertEqual(d['restType'], 'QR.')
        self.assertEqual(d['trailingRestType'], 'ER')
        self.assertEqual(d['timeSignatureOverride'], '3/4')
        self.assertEqual(d['ending'], {'type': '1', 'isStart': True, 'isEnd': False})
        self.assertTrue(d['musicalSigns']['dcAlCoda'])
        self.assertEqual(d['melody'], {'notAngka': '1 2 3'})
        self.assertEqual(d['noteTypes'], [{'type': 'quarter_note', 'count': 2}])

    def test_unknown_annotation_strings_rejected(self) -> None:
        d = new_document().to_dict()
        d['sections'][0]['bars'][0]['restType'] = 'XR'
        with self.assertRaises(ValidationError):
            SongDocument.from_dict(d)

        d = new_document().to_dict()
        d['sections'][0]['bars'][0]['ending'] = {'type': '3'}
        with self.assertRaises(ValidationError):
            SongDocument.from_dict(d)

    def test_next_id_stays_above_loaded_ids(self) -> None:
        d = new_document().to_dict()
        d['nextId'] = 1
        doc = SongDocument.from_dict(d)
        used = doc.all_bar_ids() | {s.id for s in doc.sections}
        self.assertGreater(doc.new_id(), max(used))


class AnnotationTypeTests(unittest.TestCase):
    def test_duration_parse_forms(self) -> None:
        for text in ('quarter', 'quarter_note', 'quarter_rest', 'QUARTER'):
            self.assertIs(NoteDuration.parse(text), NoteDuration.QUARTER)
        with self.assertRaises(ValidationError):
            NoteDuration.parse('crotchet')

    def test_rest_codes(self) -> None:
        self.assertEqual(RestMark(NoteDuration.WHOLE).code, 'WR')
        self.assertEqual(RestMark.from_code('HR.'), RestMark(NoteDuration.HALF, True))
        with self.assertRaises(ValidationError):
            RestMark.from_code('QN')

    def test_empty_bar(self) -> None:
        self.assertTrue(Bar(id=1, chord='  ').is_empty())
        self.assertFalse(Bar(id=1, chord='C').is_empty())


if __name__ == '__main__':
    unittest.main()
