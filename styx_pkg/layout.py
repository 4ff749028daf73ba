import logging
import posixpath
import threading

from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape

from .errors import BuildError
from .files import create_file, output_rel, to_fs

DEFAULT_LAYOUT = 'layout.tmpl'


def create_environment(src_dir):
    """Jinja2 environment for layouts and markup pages, rooted at the source tree."""
    return Environment(
        loader=FileSystemLoader(src_dir),
        autoescape=select_autoescape(enabled_extensions=('html', 'htm', 'tmpl'), default_for_string=True),
        keep_trailing_newline=True,
    )


class LayoutCache:
    """
    Compiled layout per directory.

    The first document of a directory compiles the layout; later documents,
    on any thread, reuse it. The lock covers both the lookup and the insert so
    a layout is compiled at most once.
    """

    def __init__(self, env, layout_name=DEFAULT_LAYOUT):
        self.env = env
        self.layout_name = layout_name
        self._layouts = {}
        self._lock = threading.Lock()

    def get(self, directory):
        with self._lock:
            template = self._layouts.get(directory)
            if template is None:
                template = self.env.get_template(posixpath.join(directory, self.layout_name))
                self._layouts[directory] = template
            return template

    def __len__(self):
        with self._lock:
            return len(self._layouts)


class LayoutCompositor:
    """Renders documents and markup pages through templates into the output tree."""

    def __init__(self, env, build_dir, minifier, layout_name=DEFAULT_LAYOUT, path_style='directory'):
        self.env = env
        self.build_dir = build_dir
        self.minifier = minifier
        self.path_style = path_style
        self.layouts = LayoutCache(env, layout_name)
        self.logger = logging.getLogger('Styx.Layout')

    def _context(self, current, directory, collections):
        return {
            'current': current,
            'dir': collections.get(directory, ()),
            'all': collections,
        }

    def compose(self, document, collections):
        """Render ``document`` with its directory's layout and write it. Returns the output file."""
        try:
            layout = self.layouts.get(document.directory)
            html = layout.render(**self._context(document, document.directory, collections))
        except TemplateError as e:
            self.logger.error(f"Template error for {document.rel_path}: {e}")
            raise BuildError(document.source_path, 'render layout', e) from e

        output_file = to_fs(self.build_dir, output_rel(document.rel_path, self.path_style))
        self._write(output_file, html)
        return output_file

    def render_markup(self, source_path, rel, collections):
        """Execute a stand-alone markup page as a template and write it at the mirrored path."""
        try:
            template = self.env.get_template(rel)
            html = template.render(**self._context(None, posixpath.dirname(rel), collections))
        except TemplateError as e:
            self.logger.error(f"Template error for {rel}: {e}")
            raise BuildError(source_path, 'render template', e) from e

        output_file = to_fs(self.build_dir, rel)
        self._write(output_file, html)
        return output_file

    def _write(self, output_file, html):
        try:
            create_file(output_file, self.minifier.minify('text/html', html))
        except (IOError, OSError, PermissionError) as e:
            self.logger.error(f"Failed to write HTML file {output_file}: {e}")
            raise BuildError(output_file, 'write', e) from e
        self.logger.debug(f"Generated HTML: {output_file}")
