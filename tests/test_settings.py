"""Unit tests for user settings."""

from __future__ import annotations

import json
import pathlib
import tempfile
import unittest

from chordgrid.core.settings import DEFAULTS, Settings


class SettingsTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.path = pathlib.Path(self._tmp.name) / 'conf' / 'settings.json'

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_defaults_without_file(self) -> None:
        s = Settings(self.path)
        self.assertEqual(s.to_dict(), DEFAULTS)

    def test_file_overrides_defaults(self) -> None:
        self.path.parent.mkdir(parents=True)
        self.path.write_text(json.dumps({'bars_per_line': 8, 'default_tempo': 90}))
        s = Settings(self.path)
        self.assertEqual(s.bars_per_line, 8)
        self.assertEqual(s.default_tempo, 90)
        self.assertEqual(s.history_depth, DEFAULTS['history_depth'])

    def test_bad_file_keeps_defaults(self) -> None:
        self.path.parent.mkdir(parents=True)
        self.path.write_text('{not json')
        s = Settings(self.path)
        self.assertEqual(s.to_dict(), DEFAULTS)

    def test_save_and_reload(self) -> None:
        s = Settings(self.path)
        s.text_bars_per_line = 6
        s.default_time_signature = '3/4'
        s.save()
        again = Settings(self.path)
        self.assertEqual(again.text_bars_per_line, 6)
        self.assertEqual(again.default_time_signature, '3/4')


if __name__ == '__main__':
    unittest.main()
