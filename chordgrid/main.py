"""Chord Grid - JSON API server.

Usage:
    python main.py [--port 5000] [--host 127.0.0.1] [--debug]
    python -m chordgrid.main [--settings FILE] [--data-dir DIR]
"""
import argparse

from .core.settings import Settings
from .ops.project_io import JsonFileRepository
from .server import create_app
from .store import DocumentStore


def main(argv=None):
    parser = argparse.ArgumentParser(description='Chord Grid - chord sheet editor API')
    parser.add_argument('--port', type=int, default=5000)
    parser.add_argument('--host', type=str, default='127.0.0.1',
                        help='Interface to bind (use 0.0.0.0 for all)')
    parser.add_argument('--debug', action='store_true')
    parser.add_argument('--settings', type=str, default=None,
                        help='Path to settings.json (default ~/.config/chordgrid/settings.json)')
    parser.add_argument('--data-dir', type=str, default=None,
                        help='Directory for saved projects (overrides settings)')
    args = parser.parse_args(argv)

    settings = Settings(args.settings)
    if args.data_dir:
        settings.data_dir = args.data_dir

    store = DocumentStore(settings=settings)
    app = create_app(store, JsonFileRepository(settings.data_dir), settings)
    print(f"[Server] Chord Grid → http://{args.host}:{args.port}  (projects in {settings.data_dir})")
    app.run(host=args.host, port=args.port, debug=args.debug)


if __name__ == '__main__':
    main()
