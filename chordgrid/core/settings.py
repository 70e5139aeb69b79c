"""User-facing settings - persisted to ~/.config/chordgrid/settings.json.

Covers grid layout (bars per line in the grid and in the text block),
history depth, defaults for new documents and where saved projects live.
"""

import json
from pathlib import Path

CONFIG_PATH = Path.home() / '.config' / 'chordgrid' / 'settings.json'

DEFAULTS = {
    'bars_per_line': 4,            # grid layout; also drives enter-bar
    'history_depth': 50,
    'default_tempo': 120,
    'default_time_signature': '4/4',
    'text_bars_per_line': 4,       # bars per row in the text block
    'data_dir': str(Path.home() / '.local' / 'share' / 'chordgrid'),
}


class Settings:
    def __init__(self, path=None):
        self.path = Path(path) if path else CONFIG_PATH
        self.bars_per_line: int = DEFAULTS['bars_per_line']
        self.history_depth: int = DEFAULTS['history_depth']
        self.default_tempo: int = DEFAULTS['default_tempo']
        self.default_time_signature: str = DEFAULTS['default_time_signature']
        self.text_bars_per_line: int = DEFAULTS['text_bars_per_line']
        self.data_dir: str = DEFAULTS['data_dir']
        self._load()

    def _load(self):
        if not self.path.exists():
            return
        try:
            with open(self.path) as f:
                d = json.load(f)
            self.bars_per_line = int(d.get('bars_per_line', self.bars_per_line))
            self.history_depth = int(d.get('history_depth', self.history_depth))
            self.default_tempo = int(d.get('default_tempo', self.default_tempo))
            self.default_time_signature = str(
                d.get('default_time_signature', self.default_time_signature))
            self.text_bars_per_line = int(d.get('text_bars_per_line', self.text_bars_per_line))
            self.data_dir = str(d.get('data_dir', self.data_dir))
        except (OSError, ValueError, TypeError, AttributeError) as e:
            print(f"[Settings] Could not read {self.path}, keeping defaults: {e}")

    def to_dict(self) -> dict:
        return {
            'bars_per_line': self.bars_per_line,
            'history_depth': self.history_depth,
            'default_tempo': self.default_tempo,
            'default_time_signature': self.default_time_signature,
            'text_bars_per_line': self.text_bars_per_line,
            'data_dir': self.data_dir,
        }

    def save(self):
        """Persist current settings to the user config file."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w') as f:
                json.dump(self.to_dict(), f, indent=2)
        except OSError as e:
            print(f"[Settings] Could not write {self.path}: {e}")
