"""
Ordered directory walk.

Entries come out depth-first with siblings in lexical order, the directory
itself before its children. Errors are reported as entries rather than
raised, so the caller decides whether to stop.
"""

import os
import posixpath
import stat
from dataclasses import dataclass
from typing import Iterator, Optional


@dataclass(frozen=True)
class WalkEntry:
    path: str
    rel: str
    is_dir: bool
    mtime: float
    error: Optional[OSError] = None

    @property
    def name(self) -> str:
        return posixpath.basename(self.rel)


def walk(root: str) -> Iterator[WalkEntry]:
    """Yield a WalkEntry for ``root`` and everything below it."""
    try:
        st = os.stat(root)
    except OSError as e:
        yield WalkEntry(root, '', False, 0.0, e)
        return
    if not stat.S_ISDIR(st.st_mode):
        yield WalkEntry(root, '', False, st.st_mtime, NotADirectoryError(f'not a directory: {root}'))
        return
    yield from _walk_dir(root, '', st)


def _walk_dir(path: str, rel: str, st: os.stat_result) -> Iterator[WalkEntry]:
    yield WalkEntry(path, rel, True, st.st_mtime)
    try:
        with os.scandir(path) as it:
            children = sorted(it, key=lambda e: e.name)
    except OSError as e:
        yield WalkEntry(path, rel, True, st.st_mtime, e)
        return

    for child in children:
        child_rel = posixpath.join(rel, child.name) if rel else child.name
        try:
            child_st = child.stat()
        except OSError as e:
            yield WalkEntry(child.path, child_rel, False, 0.0, e)
            continue
        if stat.S_ISDIR(child_st.st_mode):
            yield from _walk_dir(child.path, child_rel, child_st)
        else:
            yield WalkEntry(child.path, child_rel, False, child_st.st_mtime)
