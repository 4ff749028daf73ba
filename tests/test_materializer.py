"""Tests for TreeMaterializer."""

import pytest
import os
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path

import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from styx_pkg.collection import build_collections
from styx_pkg.errors import BuildError
from styx_pkg.layout import LayoutCompositor, create_environment
from styx_pkg.materializer import FileRole, TreeMaterializer
from styx_pkg.minifier import Minifier
from styx_pkg.walker import WalkEntry

from conftest import make_doc

T0 = datetime(2020, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def dirs(temp_dir):
    src = os.path.join(temp_dir, 'src')
    build = os.path.join(temp_dir, 'build')
    os.makedirs(src)
    return src, build


def make_materializer(src, build, minify=True):
    minifier = Minifier(enabled=minify)
    compositor = LayoutCompositor(create_environment(src), build, minifier)
    return TreeMaterializer(build, compositor, minifier, 'layout.tmpl')


def source_entry(src, rel, content=None):
    path = os.path.join(src, *rel.split('/'))
    if content is not None:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        mode = 'wb' if isinstance(content, bytes) else 'w'
        with open(path, mode) as f:
            f.write(content)
    return WalkEntry(path, rel, False, 0.0)


class TestClassify:
    """Test cases for role classification."""

    @pytest.mark.parametrize('rel, role', [
        ('blog/layout.tmpl', FileRole.LAYOUT),
        ('layout.tmpl', FileRole.LAYOUT),
        ('blog/post.md', FileRole.MARKDOWN),
        ('blog/post.markdown', FileRole.MARKDOWN),
        ('index.html', FileRole.MARKUP),
        ('page.htm', FileRole.MARKUP),
        ('css/style.css', FileRole.ASSET),
        ('js/app.js', FileRole.ASSET),
        ('img/logo.svg', FileRole.OPAQUE),
        ('robots.txt', FileRole.OPAQUE),
        ('other.tmpl', FileRole.OPAQUE),
    ])
    def test_file_roles(self, dirs, rel, role):
        src, build = dirs
        assert make_materializer(src, build).classify(WalkEntry('/x/' + rel, rel, False, 0.0)) is role

    def test_directory(self, dirs):
        src, build = dirs
        entry = WalkEntry(src + '/blog', 'blog', True, 0.0)
        assert make_materializer(src, build).classify(entry) is FileRole.DIRECTORY

    def test_asset_without_minifier_is_opaque(self, dirs):
        """Test that an asset type with no registered transform is copied as-is."""
        src, build = dirs
        minifier = Minifier(minifiers={'text/html': str})
        materializer = TreeMaterializer(build, None, minifier, 'layout.tmpl')
        assert materializer.classify(WalkEntry('/x/a.css', 'a.css', False, 0.0)) is FileRole.OPAQUE


class TestMaterialize:
    """Test cases for writing entries into the output tree."""

    def test_opaque_copied_byte_identical(self, dirs):
        src, build = dirs
        data = b'\x89PNG\r\n\x1a\n\x00\xffbinary'
        entry = source_entry(src, 'img/logo.png', data)

        output = make_materializer(src, build).materialize(entry, FileRole.OPAQUE, {}, {})

        assert output == os.path.join(build, 'img', 'logo.png')
        assert Path(output).read_bytes() == data

    def test_asset_minified(self, dirs):
        src, build = dirs
        entry = source_entry(src, 'css/style.css', 'body {\n    color: red;\n}\n')

        output = make_materializer(src, build).materialize(entry, FileRole.ASSET, {}, {})
        assert Path(output).read_text() == 'body{color:red}'

    def test_asset_copied_when_minify_disabled(self, dirs):
        src, build = dirs
        text = 'function f() {\n    return 1;\n}\n'
        entry = source_entry(src, 'js/app.js', text)

        output = make_materializer(src, build, minify=False).materialize(entry, FileRole.ASSET, {}, {})
        assert Path(output).read_text() == text

    def test_skipped_roles_write_nothing(self, dirs):
        src, build = dirs
        materializer = make_materializer(src, build)
        layout = source_entry(src, 'blog/layout.tmpl', 'x')

        assert materializer.materialize(layout, FileRole.LAYOUT, {}, {}) is None
        assert not os.path.exists(build)

    def test_markdown_composed(self, dirs):
        src, build = dirs
        source_entry(src, 'blog/layout.tmpl', '<main>{{ current.content }}</main>')
        entry = source_entry(src, 'blog/a.md', 'ignored')
        doc = make_doc('blog/a.md', T0)
        doc = replace(doc, source_path=entry.path)

        output = make_materializer(src, build, minify=False).materialize(
            entry, FileRole.MARKDOWN, {entry.path: doc}, build_collections([doc]))

        assert output == os.path.join(build, 'blog', 'a', 'index.html')
        assert '<p>blog/a.md</p>' in Path(output).read_text()

    def test_draft_not_written(self, dirs):
        src, build = dirs
        entry = source_entry(src, 'blog/d.md', 'ignored')
        doc = make_doc('blog/d.md', T0, draft=True)
        doc = replace(doc, source_path=entry.path)

        result = make_materializer(src, build).materialize(
            entry, FileRole.MARKDOWN, {entry.path: doc}, build_collections([doc]))

        assert result is None
        assert not os.path.exists(os.path.join(build, 'blog', 'd'))

    def test_unrendered_markdown(self, dirs):
        src, build = dirs
        entry = source_entry(src, 'blog/a.md', 'x')
        with pytest.raises(BuildError) as excinfo:
            make_materializer(src, build).materialize(entry, FileRole.MARKDOWN, {}, {})
        assert excinfo.value.path == entry.path

    def test_copy_missing_source(self, dirs):
        src, build = dirs
        entry = source_entry(src, 'gone.bin')
        with pytest.raises(BuildError) as excinfo:
            make_materializer(src, build).materialize(entry, FileRole.OPAQUE, {}, {})
        assert excinfo.value.op == 'copy'
        assert isinstance(excinfo.value.cause, OSError)


class TestOutputRel:
    """Test cases for the output path an entry claims."""

    def test_paths_by_role(self, dirs):
        src, build = dirs
        materializer = make_materializer(src, build)

        assert materializer.output_rel(WalkEntry('/s/b/a.md', 'b/a.md', False, 0.0), FileRole.MARKDOWN, {}) == 'b/a/index.html'
        assert materializer.output_rel(WalkEntry('/s/a.css', 'a.css', False, 0.0), FileRole.ASSET, {}) == 'a.css'
        assert materializer.output_rel(WalkEntry('/s/layout.tmpl', 'layout.tmpl', False, 0.0), FileRole.LAYOUT, {}) is None

    def test_flat_style(self, dirs):
        src, build = dirs
        minifier = Minifier(enabled=False)
        compositor = LayoutCompositor(create_environment(src), build, minifier, path_style='flat')
        materializer = TreeMaterializer(build, compositor, minifier, 'layout.tmpl')

        entry = WalkEntry('/s/b/a.md', 'b/a.md', False, 0.0)
        assert materializer.output_rel(entry, FileRole.MARKDOWN, {}) == 'b/a.html'

    def test_draft_claims_nothing(self, dirs):
        src, build = dirs
        entry = WalkEntry('/s/d.md', 'd.md', False, 0.0)
        doc = replace(make_doc('d.md', T0, draft=True), source_path=entry.path)

        assert make_materializer(src, build).output_rel(entry, FileRole.MARKDOWN, {entry.path: doc}) is None
