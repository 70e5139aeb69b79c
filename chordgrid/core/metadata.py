"""Title/artist heuristics for advisory video metadata.

Nothing here is trusted: every function returns empty strings rather than
failing, and the document works with both fields empty.
"""

import re

VIDEO_ID_RE = re.compile(
    r'(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/)([^&\n?#]+)')

NOISE_PATTERNS = [
    re.compile(r'\s*\(.*?video.*?\)', re.I),
    re.compile(r'\s*\[.*?video.*?\]', re.I),
    re.compile(r'\s*-?\s*official\s*(music\s*)?video', re.I),
    re.compile(r'\s*-?\s*lyric\s*video', re.I),
    re.compile(r'\s*-?\s*audio', re.I),
    re.compile(r'\s*\(HD\)', re.I),
    re.compile(r'\s*\[HD\]', re.I),
    re.compile(r'\s*\(Live\)', re.I),
    re.compile(r'\s*\[Live\]', re.I),
]

# Tried in order; the first match wins
TITLE_PATTERNS = [
    re.compile(r'^(?P<artist>[^-]+?)\s*-\s*(?P<song>.+)$'),
    re.compile(r'^(?P<song>.+?)\s+by\s+(?P<artist>.+)$', re.I),
    re.compile(r'^(?P<artist>[^|]+?)\s*\|\s*(?P<song>.+)$'),
    re.compile(r'^(?P<song>.+?)\s*\|\s*(?P<artist>[^|]+)$'),
]

EDGE_RE = re.compile(r'^\W+|\W+$')


def extract_video_id(url: str):
    m = VIDEO_ID_RE.search(url or '')
    return m.group(1) if m else None


def thumbnail_url(video_id: str) -> str:
    return f'https://img.youtube.com/vi/{video_id}/maxresdefault.jpg'


def clean_title(title: str) -> str:
    """Strip "(Official Video)", "[HD]" and similar noise."""
    for pattern in NOISE_PATTERNS:
        title = pattern.sub('', title)
    return title.strip()


def split_title_artist(raw_title: str):
    """Return (song, artist) guessed from a video title."""
    title = clean_title(raw_title or '')
    song, artist = title, ''
    for pattern in TITLE_PATTERNS:
        m = pattern.match(title)
        if m:
            song, artist = m.group('song'), m.group('artist')
            break
    return EDGE_RE.sub('', song.strip()).strip(), EDGE_RE.sub('', artist.strip()).strip()
