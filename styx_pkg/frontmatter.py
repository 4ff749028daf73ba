"""
Front matter parsing for markdown documents.

A document may start with a metadata block in one of two styles:

    +++                          ---
    title = "Hello, world"       title: Hello, world
    time = "2020-01-02"          time: 2020-01-02
    draft = true                 draft: true
    +++                          ---

Only ``title``, ``draft`` and ``time`` are recognized; other keys are ignored.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional, Tuple

from .errors import InvalidFrontMatterError, MalformedFrontMatterError


@dataclass(frozen=True)
class FrontMatterStyle:
    name: str
    delimiter: str
    separator: str

    def line(self, key: str, value: str) -> str:
        return f'{key}{self.separator}{value}'


TOML_STYLE = FrontMatterStyle('toml', '+++', ' = ')
YAML_STYLE = FrontMatterStyle('yaml', '---', ': ')

STYLES = {
    'auto': (TOML_STYLE, YAML_STYLE),
    'toml': (TOML_STYLE,),
    'yaml': (YAML_STYLE,),
}

# Accepted formats for the time key, tried in order.
KNOWN_TIME_FORMATS = [
    '%Y-%m-%d %H:%M:%S %z',
    '%Y-%m-%d %H:%M:%S',
    '%Y-%m-%d',
    '%Y-%m-%dT%H:%M:%S',
]
DEFAULT_TIME_FORMAT = KNOWN_TIME_FORMATS[0]

DRAFT_VALUES = ['true', 'false']

LEADING_BLANK_LINES_RE = re.compile(r'\A(?:[ \t]*\r?\n)+')


@dataclass
class FrontMatter:
    title: str = ''
    draft: bool = False
    time: Optional[datetime] = None
    style: FrontMatterStyle = field(default=TOML_STYLE, compare=False)

    def dumps(self) -> str:
        """Serialize back to a metadata block in this front matter's style."""
        lines = [self.style.delimiter]
        if self.title:
            lines.append(self.style.line('title', _quote(self.title)))
        if self.draft:
            lines.append(self.style.line('draft', 'true'))
        if self.time is not None:
            lines.append(self.style.line('time', _quote(format_time(self.time))))
        lines.append(self.style.delimiter)
        return '\n'.join(lines) + '\n'

    __str__ = dumps


def _quote(value: str) -> str:
    return '"' + value.replace('"', '\\"') + '"'


def _clean(s: str) -> str:
    s = s.strip()
    if len(s) >= 2 and s[0] == s[-1] and s[0] in ('"', "'"):
        s = s[1:-1].replace('\\' + s[0], s[0])
    return s


def _trim_blank_lines(s: str) -> str:
    return LEADING_BLANK_LINES_RE.sub('', s)


def format_time(t: datetime) -> str:
    if t.tzinfo is None:
        t = t.replace(tzinfo=timezone.utc)
    s = t.strftime(DEFAULT_TIME_FORMAT)
    # strftime renders %z as -0700, the accepted input form is -07:00
    return s[:-2] + ':' + s[-2:]


def parse_time(value: str) -> datetime:
    """Parse ``value`` against KNOWN_TIME_FORMATS, first match wins."""
    for fmt in KNOWN_TIME_FORMATS:
        try:
            t = datetime.strptime(value, fmt)
        except ValueError:
            continue
        if t.tzinfo is None:
            t = t.replace(tzinfo=timezone.utc)
        return t
    raise InvalidFrontMatterError('time', value, KNOWN_TIME_FORMATS)


def _detect_style(first_line: str, styles: Iterable[FrontMatterStyle]) -> Optional[FrontMatterStyle]:
    for style in styles:
        if first_line.rstrip('\r') == style.delimiter:
            return style
    return None


def _split_block(text: str, styles) -> Optional[Tuple[FrontMatterStyle, list, str]]:
    """Return (style, block lines, rest) or None when there is no closed block."""
    text = text.lstrip('\ufeff')
    lines = text.split('\n')
    style = _detect_style(lines[0], styles)
    if style is None:
        return None
    for i in range(1, len(lines)):
        if lines[i].rstrip('\r') == style.delimiter:
            return style, lines[1:i], '\n'.join(lines[i + 1:])
    return None


def _from_map(m: Dict[str, str], style: FrontMatterStyle, build_time: datetime) -> FrontMatter:
    fm = FrontMatter(style=style)

    v = m.get('draft', '')
    if v == 'true':
        fm.draft = True
    elif v not in ('', 'false'):
        raise InvalidFrontMatterError('draft', v, DRAFT_VALUES)

    fm.title = m.get('title', '')

    v = m.get('time', '')
    fm.time = parse_time(v) if v else build_time
    return fm


def parse_front_matter(text: str, build_time: datetime, style: str = 'auto') -> Tuple[Optional[FrontMatter], str]:
    """
    Parse the metadata block at the top of ``text``.

    Args:
        text: Raw document text.
        build_time: Timestamp given to documents whose block has no time.
        style: 'auto', 'toml' or 'yaml'.

    Returns:
        (front matter or None when the document has no block, body). The body
        has the block removed and leading blank lines trimmed.

    Raises:
        MalformedFrontMatterError: a line is not ``key<sep>value``.
        InvalidFrontMatterError: bad ``draft`` or ``time`` value.
    """
    split = _split_block(text, STYLES[style])
    if split is None:
        return None, text
    block_style, block, rest = split

    m = {}
    sep = block_style.separator.strip()
    for line in block:
        line = line.rstrip('\r')
        if not line.strip():
            continue
        parts = line.split(sep, 1)
        if len(parts) != 2:
            raise MalformedFrontMatterError(line, block_style.separator)
        m[_clean(parts[0])] = _clean(parts[1])

    return _from_map(m, block_style, build_time), _trim_blank_lines(rest)


def strip_front_matter(text: str, style: str = 'auto') -> str:
    """Remove a closed metadata block, if any, and trim leading whitespace after it."""
    split = _split_block(text, STYLES[style])
    if split is None:
        return text
    return _trim_blank_lines(split[2])
