"""Test configuration and fixtures for Styx tests."""

import pytest
import tempfile
import shutil
import logging
import os
from pathlib import Path
from datetime import datetime, timezone

import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from styx_pkg.renderer import Document

BUILD_TIME = datetime(2021, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture(autouse=True)
def reset_styx_logger():
    """Drop handlers bound to streams captured by a previous test."""
    yield
    logger = logging.getLogger('Styx')
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


@pytest.fixture
def fixed_clock():
    """Clock that always returns the same build time."""
    return lambda: BUILD_TIME


@pytest.fixture
def make_site(temp_dir):
    """Return a function writing {relative path: content} under <site>/src."""
    def _make_site(files, name='site'):
        work_dir = Path(temp_dir) / name
        src = work_dir / 'src'
        src.mkdir(parents=True, exist_ok=True)
        for rel, content in files.items():
            path = src / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_text(content, encoding='utf-8')
        return str(work_dir)
    return _make_site


@pytest.fixture
def section_site(make_site):
    """Two dated posts in one section plus a title-listing layout."""
    return make_site({
        'section/layout.tmpl': '{% for page in dir %}{{ page.title }}{% endfor %}',
        'section/a.md': '+++\ntitle=A\ntime=2020-01-02\n+++\n\nPost A\n',
        'section/b.md': '+++\ntitle=B\ntime=2020-01-03\n+++\n\nPost B\n',
    })


def make_doc(rel, time, draft=False, title=None, style_path=None):
    """Build a Document directly, bypassing the renderer."""
    stem = os.path.splitext(rel)[0]
    return Document(
        source_path='/src/' + rel,
        rel_path=rel,
        output_path=style_path or '/' + stem + '/',
        title=title if title is not None else os.path.basename(stem),
        time=time,
        draft=draft,
        body='<p>' + rel + '</p>',
    )
