"""
Styx - a small static site builder.

Styx renders a tree of markdown documents through directory-scoped Jinja2
layouts, minifies the result and mirrors everything else into the output
tree.
"""

__version__ = "0.1.0"

from .core import Styx, BuildResult, BuildState
from .errors import StyxError, BuildError

__all__ = ['Styx', 'BuildResult', 'BuildState', 'StyxError', 'BuildError']
