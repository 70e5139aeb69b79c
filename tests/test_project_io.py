"""Unit tests for the JSON project repository."""

from __future__ import annotations

import json
import pathlib
import tempfile
import unittest

from chordgrid.core.settings import Settings
from chordgrid.errors import CollaboratorError, NotFoundError, ValidationError
from chordgrid.ops.project_io import JsonFileRepository, join_document, split_document
from chordgrid.state import SongDocument, new_document
from chordgrid.store import DocumentStore


class BrokenRepository:
    def save(self, sections, metadata, project_id=None):
        raise OSError('disk full')

    def load(self, project_id):
        raise OSError('disk gone')


class RepositoryTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = pathlib.Path(self._tmp.name)
        self.repo = JsonFileRepository(self.dir / 'projects')

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_save_load_round_trip(self) -> None:
        doc = new_document()
        doc.title = 'Yellow'
        doc.sections[0].bars[0].chord = 'B'
        sections, metadata = split_document(doc)

        pid = self.repo.save(sections, metadata)
        loaded_sections, loaded_meta = self.repo.load(pid)
        self.assertEqual(loaded_sections, sections)
        self.assertEqual(loaded_meta, metadata)

        again = SongDocument.from_dict(join_document(loaded_sections, loaded_meta))
        self.assertEqual(again.to_dict(), doc.to_dict())

    def test_save_with_id_overwrites(self) -> None:
        sections, metadata = split_document(new_document())
        self.assertEqual(self.repo.save(sections, metadata, 'mine'), 'mine')
        metadata['title'] = 'Second'
        self.repo.save(sections, metadata, 'mine')
        self.assertEqual(self.repo.load('mine')[1]['title'], 'Second')

    def test_list_and_delete(self) -> None:
        self.assertEqual(self.repo.list(), [])
        sections, metadata = split_document(new_document())
        metadata['title'] = 'Song'
        pid = self.repo.save(sections, metadata)
        self.assertEqual(self.repo.list(), [{'id': pid, 'title': 'Song', 'artist': ''}])
        self.repo.delete(pid)
        self.assertEqual(self.repo.list(), [])
        with self.assertRaises(NotFoundError):
            self.repo.load(pid)
        with self.assertRaises(NotFoundError):
            self.repo.delete(pid)

    def test_rejects_path_like_ids(self) -> None:
        with self.assertRaises(ValidationError):
            self.repo.load('../etc/passwd')

    def test_rejects_foreign_files(self) -> None:
        path = self.dir / 'projects'
        path.mkdir(parents=True)
        (path / 'other.json').write_text(json.dumps({'type': 'pattern'}))
        with self.assertRaises(ValueError):
            self.repo.load('other')
        self.assertEqual(self.repo.list(), [])


class StorePersistenceTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.repo = JsonFileRepository(self._tmp.name)
        self.store = DocumentStore(settings=Settings(pathlib.Path(self._tmp.name) / 's.json'))

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_save_then_load_into_fresh_store(self) -> None:
        section = self.store.doc.sections[0]
        self.store.update_chord(section.id, section.bars[0].id, 'Em')
        self.store.update_song_info(title='Song', tempo=96)
        pid = self.store.save_to(self.repo)

        other = DocumentStore(settings=self.store.settings)
        other.load_from(self.repo, pid)
        self.assertEqual(other.doc.to_dict(), self.store.doc.to_dict())
        self.assertFalse(other.history.can_undo())

    def test_collaborator_failures_are_wrapped(self) -> None:
        before = self.store.doc.to_dict()
        with self.assertRaises(CollaboratorError):
            self.store.save_to(BrokenRepository())
        with self.assertRaises(CollaboratorError):
            self.store.load_from(BrokenRepository(), 'x')
        self.assertEqual(self.store.doc.to_dict(), before)

    def test_missing_project_is_not_found(self) -> None:
        with self.assertRaises(NotFoundError):
            self.store.load_from(self.repo, 'nothing')


if __name__ == '__main__':
    unittest.main()
