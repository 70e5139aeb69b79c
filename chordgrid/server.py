"""Flask JSON API over a DocumentStore.

Every mutating route answers with the full document state (see
_state()), so a client never has to merge partial updates. Errors come
back as {'error': message}: 400 for rejected edits and unparseable text,
404 for unknown sections, bars or projects, 502 when a collaborator such
as the project store fails.
"""

from pathlib import Path

from flask import Flask, request, jsonify

from .core.metadata import split_title_artist, extract_video_id, thumbnail_url
from .core.playback import bar_start_times
from .core.settings import Settings
from .core.textgrid import detect_chords, validate_text
from .errors import CollaboratorError, NotFoundError, ParseError, ValidationError
from .ops.project_io import JsonFileRepository
from .store import DocumentStore

TOGGLES = ('melody', 'note_types', 'expansion')


def _body() -> dict:
    return request.get_json(silent=True) or {}


def _song_fields(data: dict) -> dict:
    """camelCase song fields from a request body to update_song_info kwargs."""
    names = {'tempo': 'tempo', 'timeSignature': 'time_signature', 'capo': 'capo',
             'key': 'key', 'title': 'title', 'artist': 'artist'}
    return {names[k]: v for k, v in data.items() if k in names}


def create_app(store=None, repository=None, settings=None) -> Flask:
    settings = settings or Settings()
    store = store or DocumentStore(settings=settings)
    repository = repository or JsonFileRepository(Path(settings.data_dir).expanduser())

    app = Flask(__name__)
    app.config['STORE'] = store
    app.config['REPOSITORY'] = repository

    def _state(**extra):
        doc = store.doc
        data = {
            'document': doc.to_dict(),
            'selection': list(store.selection),
            'generation': store.generation,
            'canUndo': store.history.can_undo(),
            'canRedo': store.history.can_redo(),
        }
        data.update(extra)
        return jsonify(data)

    # ---- Error mapping ----

    @app.errorhandler(NotFoundError)
    def _not_found(e):
        return jsonify({'error': str(e)}), 404

    @app.errorhandler(ValidationError)
    def _invalid(e):
        return jsonify({'error': str(e)}), 400

    @app.errorhandler(ParseError)
    def _unparseable(e):
        return jsonify({'error': str(e)}), 400

    @app.errorhandler(CollaboratorError)
    def _collaborator(e):
        print(f"[Server] {e}")
        return jsonify({'error': str(e)}), 502

    @app.errorhandler(ValueError)
    def _bad_value(e):
        return jsonify({'error': str(e)}), 400

    # ---- Document ----

    @app.route('/api/document', methods=['GET'])
    def get_document():
        return _state()

    @app.route('/api/document/new', methods=['POST'])
    def new_document():
        data = _body()
        store.new_document(data.get('tempo'), data.get('timeSignature'))
        return _state()

    @app.route('/api/song', methods=['PATCH'])
    def update_song():
        store.update_song_info(**_song_fields(_body()))
        return _state()

    # ---- Sections ----

    @app.route('/api/sections', methods=['POST'])
    def add_section():
        section = store.add_section()
        return _state(sectionId=section.id), 201

    @app.route('/api/sections/auto_detect', methods=['POST'])
    def auto_detect():
        store.auto_detect_sections()
        return _state()

    @app.route('/api/sections/move', methods=['POST'])
    def move_section():
        data = _body()
        moved = store.move_section(int(data.get('index', -1)), data.get('direction', ''))
        return _state(moved=moved)

    @app.route('/api/sections/<int:sid>', methods=['PATCH'])
    def update_section(sid):
        data = _body()
        if 'name' in data:
            store.rename_section(sid, str(data['name']))
        if 'timeSignature' in data:
            store.set_section_time_signature(sid, data['timeSignature'])
        return _state()

    @app.route('/api/sections/<int:sid>', methods=['DELETE'])
    def delete_section(sid):
        store.delete_section(sid)
        return _state()

    @app.route('/api/sections/<int:sid>/duplicate', methods=['POST'])
    def duplicate_section(sid):
        section = store.duplicate_section(sid)
        return _state(sectionId=section.id), 201

    @app.route('/api/sections/<int:sid>/toggle/<what>', methods=['POST'])
    def toggle_section(sid, what):
        if what not in TOGGLES:
            raise NotFoundError(f'Unknown toggle: {what}')
        value = getattr(store, f'toggle_section_{what}')(sid)
        return _state(value=value)

    # ---- Bars ----

    @app.route('/api/sections/<int:sid>/bars', methods=['POST'])
    def add_bars(sid):
        data = _body()
        if 'index' in data:
            bars = [store.insert_bar_at(sid, int(data['index']))]
        else:
            bars = store.add_bar(sid, int(data.get('count', 1)))
        return _state(barIds=[b.id for b in bars]), 201

    @app.route('/api/sections/<int:sid>/bar_count', methods=['PUT'])
    def resize_bars(sid):
        store.resize_bar_count(sid, int(_body().get('count', 0)))
        return _state()

    @app.route('/api/sections/<int:sid>/enter', methods=['POST'])
    def enter_bar(sid):
        per_line = _body().get('barsPerLine')
        bars = store.enter_bar(sid, int(per_line) if per_line is not None else None)
        return _state(barIds=[b.id for b in bars])

    @app.route('/api/sections/<int:sid>/single_bar', methods=['POST'])
    def single_bar(sid):
        bar = store.add_single_bar(sid)
        return _state(barId=bar.id)

    @app.route('/api/sections/<int:sid>/repeat_last', methods=['POST'])
    def repeat_last(sid):
        bar = store.repeat_last_bar(sid)
        return _state(barId=bar.id if bar else None)

    @app.route('/api/sections/<int:sid>/bars/<int:bid>', methods=['DELETE'])
    def remove_bar(sid, bid):
        store.remove_bar(sid, bid)
        return _state()

    @app.route('/api/sections/<int:sid>/bars/<int:bid>', methods=['PATCH'])
    def update_bar(sid, bid):
        data = _body()
        if not isinstance(data, dict):
            raise ValidationError('Expected a JSON object')
        fields = {k: v for k, v in data.items() if k != 'slot'}
        store.update_bar(sid, bid, fields, data.get('slot', 'primary'))
        return _state()

    # ---- Selection and annotations ----

    @app.route('/api/selection', methods=['PUT'])
    def set_selection():
        data = _body()
        ids = data.get('ids', [])
        if data.get('additive') and len(ids) == 1:
            store.select(ids[0], additive=True)
        else:
            store.select_many(ids)
        return _state()

    @app.route('/api/selection/toggle', methods=['POST'])
    def toggle_selection():
        store.toggle(_body().get('id'))
        return _state()

    @app.route('/api/selection', methods=['DELETE'])
    def clear_selection():
        store.clear_selection()
        return _state()

    @app.route('/api/sections/<int:sid>/annotate/<name>', methods=['POST'])
    def annotate(sid, name):
        store.annotate(name, sid, **_body())
        return _state()

    @app.route('/api/sections/<int:sid>/endings/<group>', methods=['DELETE'])
    def remove_ending(sid, group):
        removed = store.remove_ending(sid, group)
        return _state(removed=removed)

    # ---- History ----

    @app.route('/api/undo', methods=['POST'])
    def undo():
        return _state(changed=store.undo())

    @app.route('/api/redo', methods=['POST'])
    def redo():
        return _state(changed=store.redo())

    # ---- Transposition ----

    @app.route('/api/transpose', methods=['POST'])
    def transpose():
        data = _body()
        if 'key' in data:
            semitones = store.transpose_to_key(str(data['key']))
        else:
            semitones = int(data.get('semitones', 0))
            store.transpose(semitones)
        return _state(semitones=semitones)

    # ---- Text block ----

    @app.route('/api/text', methods=['GET'])
    def get_text():
        per_line = request.args.get('barsPerLine', type=int)
        return jsonify({'text': store.export_text(per_line)})

    @app.route('/api/text', methods=['PUT'])
    def put_text():
        data = _body()
        store.apply_text(data.get('text', ''), data.get('timeSignature'))
        return _state()

    @app.route('/api/text/validate', methods=['POST'])
    def check_text():
        ok, errors = validate_text(_body().get('text', ''))
        return jsonify({'ok': ok, 'errors': errors})

    @app.route('/api/text/detect', methods=['POST'])
    def detect():
        return jsonify({'chords': detect_chords(_body().get('text', ''))})

    @app.route('/api/melody_text', methods=['GET'])
    def get_melody_text():
        return jsonify({'text': store.melody_text()})

    @app.route('/api/melody_text', methods=['PUT'])
    def put_melody_text():
        updated = store.apply_melody_text(_body().get('text', ''))
        return _state(updated=updated)

    # ---- Playback ----

    @app.route('/api/playback', methods=['GET'])
    def playback_position():
        t = request.args.get('t', default=0.0, type=float)
        found = store.current_bar(t)
        if found is None:
            return jsonify({'sectionIndex': None, 'barIndex': None})
        si, bi = found
        return jsonify({'sectionIndex': si, 'barIndex': bi,
                        'barId': store.doc.sections[si].bars[bi].id})

    @app.route('/api/playback/timeline', methods=['GET'])
    def playback_timeline():
        return jsonify({'starts': bar_start_times(store.doc).tolist()})

    @app.route('/api/playback/generate', methods=['POST'])
    def generate_bars():
        store.auto_generate(float(_body().get('duration', 0)))
        return _state()

    # ---- Metadata ----

    @app.route('/api/metadata/split', methods=['POST'])
    def split_metadata():
        data = _body()
        song, artist = split_title_artist(data.get('title', ''))
        video_id = extract_video_id(data.get('url', ''))
        return jsonify({'song': song, 'artist': artist, 'videoId': video_id,
                        'thumbnail': thumbnail_url(video_id) if video_id else None})

    # ---- Projects ----

    @app.route('/api/projects', methods=['GET'])
    def list_projects():
        try:
            projects = repository.list()
        except OSError as e:
            raise CollaboratorError(f'Could not list projects: {e}') from e
        return jsonify({'projects': projects})

    @app.route('/api/projects', methods=['POST'])
    def save_project():
        project_id = store.save_to(repository, _body().get('id'))
        return jsonify({'id': project_id}), 201

    @app.route('/api/projects/<pid>', methods=['GET'])
    def load_project(pid):
        store.load_from(repository, pid)
        return _state(id=pid)

    @app.route('/api/projects/<pid>', methods=['DELETE'])
    def delete_project(pid):
        try:
            repository.delete(pid)
        except OSError as e:
            raise CollaboratorError(f'Could not delete {pid}: {e}') from e
        return jsonify({'deleted': pid})

    return app
