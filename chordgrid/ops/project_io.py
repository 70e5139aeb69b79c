"""Project save/load.

A saved chord sheet is a JSON file holding its sections plus a metadata
block (tempo, time signature, capo, key, title, artist). Anything that
implements the Repository protocol can stand in for the file store.
"""

from __future__ import annotations

import json
import re
import uuid
from pathlib import Path
from typing import Protocol, Optional

from ..errors import NotFoundError, ValidationError

PROJECT_TYPE = 'chord_grid'
METADATA_KEYS = ('tempo', 'timeSignature', 'capo', 'key', 'title', 'artist')
ID_RE = re.compile(r'^[A-Za-z0-9_-]+$')


# ---------------------------------------------------------------------------
# Repository protocol
# ---------------------------------------------------------------------------

class Repository(Protocol):
    """Somewhere chord sheets can be saved and loaded by id."""

    def load(self, project_id: str) -> tuple: ...  # (sections, metadata)
    def save(self, sections: list, metadata: dict, project_id: Optional[str] = None) -> str: ...


def split_document(doc) -> tuple:
    """(sections, metadata) dicts for a SongDocument."""
    d = doc.to_dict()
    metadata = {k: d[k] for k in METADATA_KEYS}
    metadata['nextId'] = d['nextId']
    return d['sections'], metadata


def join_document(sections, metadata) -> dict:
    """Inverse of split_document: a dict SongDocument.from_dict accepts."""
    return {**metadata, 'sections': sections}


# ---------------------------------------------------------------------------
# JSON file repository
# ---------------------------------------------------------------------------

class JsonFileRepository:
    """One `{id}.json` file per project inside `directory`."""

    def __init__(self, directory):
        self.directory = Path(directory).expanduser()

    def _path(self, project_id: str) -> Path:
        if not project_id or not ID_RE.match(project_id):
            raise ValidationError(f'Invalid project id: {project_id!r}')
        return self.directory / f'{project_id}.json'

    def save(self, sections, metadata, project_id=None) -> str:
        """Write a project and return its id (a new one if none is given)."""
        project_id = project_id or uuid.uuid4().hex[:12]
        path = self._path(project_id)
        self.directory.mkdir(parents=True, exist_ok=True)
        data = {'type': PROJECT_TYPE, 'metadata': metadata, 'sections': sections}
        with open(path, 'w') as f:
            json.dump(data, f, indent=2)
        print(f"[ProjectIO] Saved {project_id} -> {path}")
        return project_id

    def load(self, project_id):
        """Return (sections, metadata).

        Raises NotFoundError for an unknown id and ValueError if the file is
        not a chord grid project.
        """
        path = self._path(project_id)
        if not path.exists():
            raise NotFoundError(f'Project {project_id} not found')
        with open(path) as f:
            data = json.load(f)
        if data.get('type') != PROJECT_TYPE:
            raise ValueError(
                f"Expected a chord grid file (type={PROJECT_TYPE!r}), "
                f"got type={data.get('type')!r}")
        return data.get('sections', []), data.get('metadata', {})

    def list(self) -> list:
        """Ids and titles of every saved project, sorted by id."""
        if not self.directory.exists():
            return []
        projects = []
        for path in sorted(self.directory.glob('*.json')):
            try:
                with open(path) as f:
                    data = json.load(f)
            except (OSError, ValueError) as e:
                print(f"[ProjectIO] Skipping unreadable {path.name}: {e}")
                continue
            if data.get('type') != PROJECT_TYPE:
                continue
            meta = data.get('metadata', {})
            projects.append({'id': path.stem, 'title': meta.get('title', ''),
                             'artist': meta.get('artist', '')})
        return projects

    def delete(self, project_id):
        path = self._path(project_id)
        if not path.exists():
            raise NotFoundError(f'Project {project_id} not found')
        path.unlink()
        print(f"[ProjectIO] Deleted {project_id}")
