"""
Error types raised while building a Styx site.

Every error renders with the ``styx: error:`` prefix so the command line can
print it as-is.
"""

from typing import List, Optional, Sequence


class StyxError(Exception):
    """Base class for all Styx errors."""

    prefix = 'styx: error: '

    def __str__(self):
        return self.prefix + self.message()

    def message(self) -> str:
        return super().__str__()


class MalformedFrontMatterError(StyxError):
    """A metadata line that does not split into a key and a value."""

    def __init__(self, line: str, separator: str):
        super().__init__(line, separator)
        self.line = line
        self.separator = separator

    def message(self) -> str:
        return f'front matter {self.line!r} should be in format "key{self.separator}val"'


class InvalidFrontMatterError(StyxError):
    """A recognized metadata key with a value it cannot take."""

    def __init__(self, key: str, value: str, expected: Optional[Sequence[str]] = None):
        super().__init__(key, value)
        self.key = key
        self.value = value
        self.expected: List[str] = list(expected or [])

    def message(self) -> str:
        s = f'key {self.key!r} has invalid value {self.value!r}'
        if self.expected:
            s += '\nexpected values/formats: {%s}' % ', '.join(self.expected)
        return s


class MacroError(StyxError):
    """A macro was called with invalid arguments."""

    def __init__(self, name: str, detail: str):
        super().__init__(name, detail)
        self.name = name
        self.detail = detail

    def message(self) -> str:
        return f'{self.name}: {self.detail}'


class SettingsError(StyxError):
    """The configuration file could not be read or is invalid."""


class BuildError(StyxError):
    """
    Build-scoped wrapper identifying the path and operation that failed.

    The original exception is kept as ``cause`` and chained as ``__cause__``.
    """

    def __init__(self, path: Optional[str], op: str, cause: Optional[BaseException] = None):
        super().__init__(path, op, cause)
        self.path = path
        self.op = op
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def message(self) -> str:
        s = f'build: {self.op}'
        if self.path:
            s += f' {self.path}'
        if self.cause is not None:
            detail = self.cause.message() if isinstance(self.cause, StyxError) else str(self.cause)
            s += f': {detail}'
        return s
