"""
Macro expansion for document bodies.

Documents are run through a jinja2 environment before markdown rendering. The
environment only sees the macro table it is given, never site data.
"""

from urllib.parse import urlencode

from jinja2 import Environment, StrictUndefined

from .errors import MacroError

GIST_USAGE = '''invalid arguments
valid examples:
{{ gist("user/28949e1d5ee2273f9fd3") }}
{{ gist("user/28949e1d5ee2273f9fd3", "foo.rb") }}
{{ gist("28949e1d5ee2273f9fd3") }}
{{ gist("28949e1d5ee2273f9fd3", "foo.rb") }}'''


def gist(*args):
    """Embed a GitHub gist, optionally a single file of it."""
    if len(args) == 1:
        return f'<script src="https://gist.github.com/{args[0]}.js"></script>'
    if len(args) == 2:
        query = urlencode({'file': args[1]})
        return f'<script src="https://gist.github.com/{args[0]}.js?{query}"></script>'
    raise MacroError('gist', GIST_USAGE)


DEFAULT_MACROS = {
    'gist': gist,
}


class MacroExpander:
    """Expands macro calls in document text using a fixed function table."""

    def __init__(self, macros=None):
        self.macros = dict(DEFAULT_MACROS if macros is None else macros)
        self.env = Environment(
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
        )
        self.env.globals.clear()
        self.env.globals.update(self.macros)

    def expand(self, text):
        """
        Return ``text`` with every macro call expanded.

        MacroError raised by a macro propagates unchanged; template syntax and
        undefined-name errors propagate as jinja2 TemplateError.
        """
        return self.env.from_string(text).render()
