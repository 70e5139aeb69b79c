"""Conversion between the chord grid and its plain-text form.

Text format
-----------
    = Verse
    | C | Am | . | G |
    | F | G :|| |

    = Chorus
    | ||: F | G |

* `= Name`, `- Name` and `(3) = Name` lines start a section.
* A row holds bar cells separated by single pipes. The repeat glyphs
  `||:` and `:||` are part of a cell, not separators.
* `.` is an empty bar. `(C G)x2` in a cell expands to four bars. A cell
  starting with a backslash is taken literally, so `\\.` is a bar whose
  chord is `.` and `\\(C G)x2` stays one bar.
* A bare `=` line starts a section with an empty name.
* `# text` adds a comment-only bar to the current section.
* Rows without pipes use the older token grammar: `C . G .` (a chord
  followed by beat dots stays in one bar), `(C Am F G)x3`, `%`, `r1`.
  Tokens that do not look like chords are ignored there, so free text
  from recognition does not turn into bars.

Both directions go through the same intermediate form, a list of
TextSection(name, cells). Only chord text (primary slot), bar count and
section grouping survive Text→Grid. LOSSY_FIELDS lists what is dropped.

Melody is kept in a separate text block of the same shape; see
melody_to_text() and apply_melody_text().
"""

from __future__ import annotations
import re
from dataclasses import dataclass, field

from ..state import Section, TimeSignature

BARS_PER_LINE = 4
EMPTY_CELL = '.'
ESCAPE = '\\'

# Bar fields that the text grammar does not carry
LOSSY_FIELDS = (
    'chord_after', 'chord_end', 'rest', 'trailing_rest', 'time_signature',
    'ending', 'signs', 'fermata', 'melody', 'note_types', 'note_symbol',
    'timestamp',
)

HEADER_RE = re.compile(r'^(\(\d+\)\s*)?(?:=\s*(.*)|-\s*(.+))$')
CELL_SPLIT_RE = re.compile(r'(?<![|:])\|(?![|:])')
CELL_GROUP_RE = re.compile(r'^\((.+)\)x(\d+)$')
LINE_GROUP_RE = re.compile(r'(?:^|(?<=\s))\(([^)]+)\)x?(\d*)')
CHORD_RE = re.compile(
    r'^[A-G][#b]?(?:maj|min|dim|aug|sus|add|alt|no|m|M|[0-9#b+°ø()^-])*'
    r'(?:/[A-G][#b]?)?$')
SINGLE_BAR_TOKENS = ('%', '%%', 'r1', 'r2')


@dataclass
class TextCell:
    chord: str = ''
    comment: str = ''


@dataclass
class TextSection:
    name: str
    cells: list = field(default_factory=list)   # [TextCell]


# ---------------------------------------------------------------------------
# Grid -> text
# ---------------------------------------------------------------------------

def sections_to_rows(sections, attr='chord') -> list:
    return [TextSection(s.name, [TextCell(getattr(b, attr) or '') for b in s.bars])
            for s in sections]


def format_cell(text: str) -> str:
    """Cell text for output; text the parser would reinterpret gets a `\\` prefix."""
    text = text.strip()
    if not text:
        return EMPTY_CELL
    if text == EMPTY_CELL or text.startswith(ESCAPE) or CELL_GROUP_RE.match(text):
        return ESCAPE + text
    return text


def format_rows(rows, bars_per_line: int = BARS_PER_LINE) -> str:
    lines = []
    for row in rows:
        lines.append(f'= {row.name}'.rstrip())
        cells = [format_cell(c.chord) for c in row.cells]
        for i in range(0, len(cells), bars_per_line):
            lines.append('| ' + ' | '.join(cells[i:i + bars_per_line]) + ' |')
        lines.append('')
    return '\n'.join(lines).strip()


def sections_to_text(sections, bars_per_line: int = BARS_PER_LINE) -> str:
    return format_rows(sections_to_rows(sections), bars_per_line)


# ---------------------------------------------------------------------------
# Text -> grid
# ---------------------------------------------------------------------------

def is_chord(token: str) -> bool:
    return bool(CHORD_RE.match(token))


def header_name(match) -> str:
    # a bare `=` is a section with an empty name
    name = match.group(2) if match.group(2) is not None else match.group(3)
    return name.strip()


def split_cells(line: str) -> list:
    """Bar cells of a piped row, `.` mapped to an empty chord."""
    cells = []
    for seg in CELL_SPLIT_RE.split(line):
        seg = seg.strip()
        if not seg:
            continue
        if seg.startswith(ESCAPE) and len(seg) > 1:
            cells.append(TextCell(seg[1:]))
            continue
        group = CELL_GROUP_RE.match(seg)
        if group:
            inner = group.group(1).split()
            for _ in range(int(group.group(2))):
                cells.extend(TextCell(c) for c in inner)
            continue
        cells.append(TextCell('' if seg == EMPTY_CELL else seg))
    return cells


def split_tokens(line: str) -> list:
    """Bar cells of a row without pipes."""
    stripped = line.strip()
    if stripped in SINGLE_BAR_TOKENS:
        comment = ('Repeat previous bar' if stripped.startswith('%')
                   else f'Repeat previous {stripped[1]} bar(s)')
        return [TextCell(stripped, comment)]

    cells = []
    remaining = line
    for m in LINE_GROUP_RE.finditer(line):
        chords = [c for c in m.group(1).split() if is_chord(c)]
        repeat = int(m.group(2)) if m.group(2) else 1
        for _ in range(repeat):
            cells.extend(TextCell(c) for c in chords)
        remaining = remaining.replace(m.group(0), ' ', 1)

    tokens = [t for t in remaining.split()
              if t == '.' or is_chord(t) or t in SINGLE_BAR_TOKENS]
    i = 0
    while i < len(tokens):
        token = tokens[i]
        if token == '.':
            i += 1
            continue
        parts = [token]
        j = i + 1
        while j < len(tokens) and tokens[j] == '.':
            parts.append(tokens[j])
            j += 1
            # a chord after beat dots shares the bar
            if j < len(tokens) and tokens[j] != '.':
                parts.append(tokens[j])
                j += 1
                while j < len(tokens) and tokens[j] == '.':
                    parts.append(tokens[j])
                    j += 1
        cells.append(TextCell(' '.join(parts)))
        i = j
    return cells


def parse_rows(text: str) -> list:
    """Parse text into TextSections. Returns [] when nothing is recognised."""
    rows = []
    current = None
    for raw in (text or '').splitlines():
        line = raw.strip()
        if not line:
            continue

        header = HEADER_RE.match(line)
        if header:
            current = TextSection(header_name(header))
            rows.append(current)
            continue

        if line.startswith('#'):
            if current is not None:
                current.cells.append(TextCell('', line.lstrip('#').strip()))
            continue

        cells = split_cells(line) if '|' in line else split_tokens(line)
        if not cells:
            continue
        if current is None:
            current = TextSection('Section 1')
            rows.append(current)
        current.cells.extend(cells)
    return rows


def rows_to_sections(rows, doc, sig=None) -> list:
    """Build Sections with fresh ids from `doc`'s id counter."""
    sig = TimeSignature.parse(sig) if sig else doc.time_signature
    sections = []
    for i, row in enumerate(rows):
        bars = [doc.new_bar(sig, chord=c.chord, comment=c.comment) for c in row.cells]
        sections.append(Section(id=doc.new_id(), name=row.name, time_signature=sig,
                                bars=bars, bar_count=len(bars), position=i))
    return sections


def text_to_sections(text: str, doc, sig=None) -> list:
    """Parse text into new Sections. Returns [] on unrecognisable input."""
    return rows_to_sections(parse_rows(text), doc, sig)


# ---------------------------------------------------------------------------
# Melody block
# ---------------------------------------------------------------------------

def melody_to_text(sections, bars_per_line: int = BARS_PER_LINE) -> str:
    return format_rows(sections_to_rows(sections, 'melody'), bars_per_line)


def apply_melody_text(sections, text: str) -> int:
    """Set bar melodies from a melody block, matched by position.

    The n-th header feeds the n-th section and the n-th cell the n-th bar.
    Chords are untouched. Returns the number of bars updated.
    """
    rows = []
    current = None
    for raw in (text or '').splitlines():
        line = raw.strip()
        if not line:
            continue
        header = HEADER_RE.match(line)
        if header:
            current = TextSection(header_name(header))
            rows.append(current)
        elif current is not None and '|' in line:
            current.cells.extend(split_cells(line))

    updated = 0
    for section, row in zip(sections, rows):
        for bar, cell in zip(section.bars, row.cells):
            bar.melody = cell.chord
            updated += 1
    return updated


# ---------------------------------------------------------------------------
# Recognition helpers
# ---------------------------------------------------------------------------

OCR_FIXES = [
    (re.compile(r'FMA7|FMAJ7', re.I), 'Fmaj7'),
    (re.compile(r'Dm\s*7', re.I), 'Dm7'),
]
# Spaced slash chords and a lower-case bass note, e.g. "Am / f#"
SLASH_RE = re.compile(r'\b([A-G][#b]?m?)\s*/\s*([a-gA-G][#b]?)')
NON_CHORD_RE = re.compile(r'\b(?:Intro|Verse|Chorus|Bridge|Outro|lyrics|by)\b|D\.C\.|[|\[\]]',
                          re.I)
CHORD_SCAN_RE = re.compile(
    r'[A-G][#b]?(?:maj[79]?|min|m[79]?|dim|aug|sus[24]?|add\d*|[2-79])?(?:/[A-G][#b]?)?')


def detect_chords(text: str) -> list:
    """Pull chord names out of raw recognised text."""
    line = text or ''
    for pattern, repl in OCR_FIXES:
        line = pattern.sub(repl, line)
    line = SLASH_RE.sub(lambda m: f'{m.group(1)}/{m.group(2).capitalize()}', line)
    line = NON_CHORD_RE.sub(' ', line)
    found = []
    for chord in CHORD_SCAN_RE.findall(line):
        chord = chord.strip()
        if not 0 < len(chord) < 8:
            continue
        found.append(chord[0].upper() + chord[1:])
    return found


def validate_text(text: str):
    """Return (ok, errors) for common mistakes in chord text."""
    errors = []
    has_header = False
    for n, raw in enumerate((text or '').splitlines(), 1):
        line = raw.strip()
        if not line:
            continue
        if HEADER_RE.match(line):
            has_header = True
            continue
        if line.startswith('#'):
            continue
        if line.count('(') != line.count(')'):
            errors.append(f'Line {n}: Unmatched parentheses')
    if not has_header and (text or '').strip():
        errors.append('No section headers found. Use "= Section Name" to create sections.')
    return not errors, errors
