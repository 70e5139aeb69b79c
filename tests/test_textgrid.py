"""Unit tests for the Text⇄Grid converter."""

from __future__ import annotations

import unittest

from chordgrid.core import textgrid
from chordgrid.state import NoteDuration, RestMark, TimeSignature, new_document

SHEET = """= Verse
| C | Am | . | G |
| F | G | C | . |

= Chorus
| ||: F | G :|| |"""


class GridToTextTests(unittest.TestCase):
    def test_format(self) -> None:
        doc = new_document()
        for bar, chord in zip(doc.sections[0].bars, ['C', 'Am', '', 'G']):
            bar.chord = chord
        self.assertEqual(textgrid.sections_to_text(doc.sections), '= Intro\n| C | Am | . | G |')

    def test_bars_per_line(self) -> None:
        doc = new_document()
        text = textgrid.sections_to_text(doc.sections, bars_per_line=3)
        self.assertEqual(text.splitlines(), ['= Intro', '| . | . | . |', '| . |'])

    def test_round_trip(self) -> None:
        doc = new_document()
        sections = textgrid.text_to_sections(SHEET, doc)
        self.assertEqual(textgrid.sections_to_text(sections), SHEET)

    def test_empty_section_name_keeps_its_section(self) -> None:
        doc = new_document()
        doc.sections.append(doc.new_section('', doc.time_signature, 2, 1))
        text = textgrid.sections_to_text(doc.sections)
        self.assertIn('\n=\n', text)
        sections = textgrid.text_to_sections(text, doc)
        self.assertEqual([(s.name, len(s.bars)) for s in sections], [('Intro', 4), ('', 2)])

    def test_literal_cells_are_escaped(self) -> None:
        doc = new_document()
        for bar, chord in zip(doc.sections[0].bars, ['(C G)x2', '.', '\\x', 'D']):
            bar.chord = chord
        text = textgrid.sections_to_text(doc.sections)
        self.assertEqual(text, '= Intro\n| \\(C G)x2 | \\. | \\\\x | D |')
        (section,) = textgrid.text_to_sections(text, doc)
        self.assertEqual([b.chord for b in section.bars], ['(C G)x2', '.', '\\x', 'D'])


class TextToGridTests(unittest.TestCase):
    def setUp(self) -> None:
        self.doc = new_document()

    def parse(self, text):
        return textgrid.text_to_sections(text, self.doc)

    def chords(self, section):
        return [b.chord for b in section.bars]

    def test_sections_and_cells(self) -> None:
        verse, chorus = self.parse(SHEET)
        self.assertEqual(verse.name, 'Verse')
        self.assertEqual(self.chords(verse), ['C', 'Am', '', 'G', 'F', 'G', 'C', ''])
        self.assertEqual(verse.bar_count, 8)
        self.assertEqual(self.chords(chorus), ['||: F', 'G :||'])
        self.assertEqual([verse.position, chorus.position], [0, 1])

    def test_header_forms(self) -> None:
        names = [s.name for s in self.parse('- Intro\n| C |\n(3) = Bridge\n| D |')]
        self.assertEqual(names, ['Intro', 'Bridge'])

    def test_fresh_ids(self) -> None:
        existing = self.doc.all_bar_ids()
        sections = self.parse(SHEET)
        new_ids = [b.id for s in sections for b in s.bars]
        self.assertEqual(len(new_ids), len(set(new_ids)))
        self.assertFalse(existing & set(new_ids))

    def test_grouped_cell_expands(self) -> None:
        (section,) = self.parse('= A\n| (C G)x2 | D |')
        self.assertEqual(self.chords(section), ['C', 'G', 'C', 'G', 'D'])

    def test_comment_line_makes_comment_bar(self) -> None:
        (section,) = self.parse('= A\n# quiet intro\n| C |')
        self.assertEqual(section.bars[0].chord, '')
        self.assertEqual(section.bars[0].comment, 'quiet intro')
        self.assertEqual(section.bars[1].chord, 'C')

    def test_chords_before_header_open_default_section(self) -> None:
        first, second = self.parse('| C | G |\n= Verse\n| D |')
        self.assertEqual(first.name, 'Section 1')
        self.assertEqual(second.name, 'Verse')

    def test_legacy_tokens(self) -> None:
        (section,) = self.parse('= A\n(C Am F G)x3\nC . G .\n%\nr2')
        chords = self.chords(section)
        self.assertEqual(chords[:4], ['C', 'Am', 'F', 'G'])
        self.assertEqual(len(chords), 15)
        self.assertEqual(chords[12], 'C . G .')
        self.assertEqual(chords[13:], ['%', 'r2'])
        self.assertEqual(section.bars[13].comment, 'Repeat previous bar')

    def test_parenthesised_suffix_is_not_a_group(self) -> None:
        (section,) = self.parse('= A\nC(add9) G')
        self.assertEqual(self.chords(section), ['C(add9)', 'G'])

    def test_free_text_lines_skipped(self) -> None:
        (section,) = self.parse('= A\nhello there friend\n| C |')
        self.assertEqual(self.chords(section), ['C'])

    def test_nothing_recognised(self) -> None:
        self.assertEqual(self.parse(''), [])
        self.assertEqual(self.parse('just some lyrics here'), [])

    def test_time_signature_argument(self) -> None:
        (section,) = textgrid.text_to_sections('= A\n| C |', self.doc, '3/4')
        self.assertEqual(section.time_signature, TimeSignature(3, 4))
        self.assertEqual(section.bars[0].beats, 3)


class LossyFieldTests(unittest.TestCase):
    def test_annotations_do_not_survive_text(self) -> None:
        doc = new_document()
        bar = doc.sections[0].bars[0]
        bar.chord = 'C'
        bar.chord_after = 'G'
        bar.rest = RestMark(NoteDuration.QUARTER)
        bar.fermata = True
        bar.melody = '1 2'
        bar.signs.coda = True
        bar.timestamp = 3.0

        text = textgrid.sections_to_text(doc.sections)
        (section,) = textgrid.text_to_sections(text, doc)
        again = section.bars[0]
        self.assertEqual(again.chord, 'C')
        for name in textgrid.LOSSY_FIELDS:
            self.assertEqual(getattr(again, name), getattr(type(again)(id=0), name), msg=name)


class MelodyBlockTests(unittest.TestCase):
    def test_apply_by_position(self) -> None:
        doc = new_document()
        doc.sections[0].bars[0].chord = 'C'
        updated = textgrid.apply_melody_text(doc.sections, '= Intro\n| 1 2 | 3 | . | 5 |')
        self.assertEqual(updated, 4)
        self.assertEqual([b.melody for b in doc.sections[0].bars], ['1 2', '3', '', '5'])
        self.assertEqual(doc.sections[0].bars[0].chord, 'C')

    def test_melody_to_text(self) -> None:
        doc = new_document()
        doc.sections[0].bars[1].melody = '5 6'
        self.assertEqual(textgrid.melody_to_text(doc.sections),
                         '= Intro\n| . | 5 6 | . | . |')


class RecognitionCleanupTests(unittest.TestCase):
    def test_detect_chords(self) -> None:
        self.assertEqual(textgrid.detect_chords('Intro: FMA7 | Dm 7 | Am / f#'),
                         ['Fmaj7', 'Dm7', 'Am/F#'])

    def test_validate_text(self) -> None:
        ok, errors = textgrid.validate_text('= A\n| (C G |')
        self.assertFalse(ok)
        self.assertEqual(errors, ['Line 2: Unmatched parentheses'])
        ok, errors = textgrid.validate_text('| C |')
        self.assertFalse(ok)
        self.assertTrue(textgrid.validate_text('= A\n| C |')[0])


if __name__ == '__main__':
    unittest.main()
