"""Path conventions and file writing shared by the build phases."""

import os
import posixpath
import shutil

MARKDOWN_EXTS = ('.md', '.markdown')
MARKUP_EXTS = ('.html', '.htm')

# directory: section/a.md -> section/a/index.html, served at /section/a/
# flat:      section/a.md -> section/a.html,       served at /section/a.html
PATH_STYLES = ('directory', 'flat')


def ext_of(rel):
    return posixpath.splitext(rel)[1].lower()


def is_markdown(rel):
    return ext_of(rel) in MARKDOWN_EXTS


def strip_ext(rel):
    return posixpath.splitext(rel)[0]


def rel_dir(rel):
    """Directory of a source-relative path, '' for the source root."""
    return posixpath.dirname(rel)


def output_rel(rel, path_style):
    """Source-relative path of the file a markdown document is written to."""
    if path_style == 'flat':
        return strip_ext(rel) + '.html'
    return posixpath.join(strip_ext(rel), 'index.html')


def url_path(rel, path_style):
    """HTTP path at which a markdown document is served."""
    if path_style == 'flat':
        return '/' + output_rel(rel, path_style)
    return '/' + strip_ext(rel) + '/'


def to_fs(root, rel):
    return os.path.join(root, *rel.split('/')) if rel else root


def create_file(path, data):
    """Write ``data`` (str or bytes) to ``path``, creating parent directories."""
    os.makedirs(os.path.dirname(path) or '.', exist_ok=True)
    if isinstance(data, str):
        with open(path, 'w', encoding='utf-8', newline='') as f:
            f.write(data)
    else:
        with open(path, 'wb') as f:
            f.write(data)


def copy_file(dst, src):
    os.makedirs(os.path.dirname(dst) or '.', exist_ok=True)
    shutil.copyfile(src, dst)
