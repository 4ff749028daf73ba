import logging
from enum import Enum

from .errors import BuildError
from .files import MARKDOWN_EXTS, MARKUP_EXTS, copy_file, create_file, ext_of, output_rel, to_fs


class FileRole(Enum):
    """What the materializer does with a source tree entry."""
    DIRECTORY = 'directory'
    LAYOUT = 'layout'
    MARKDOWN = 'markdown'
    MARKUP = 'markup'
    ASSET = 'asset'
    OPAQUE = 'opaque'


SKIPPED_ROLES = (FileRole.DIRECTORY, FileRole.LAYOUT)


class TreeMaterializer:
    """Writes one source tree entry into the mirrored output tree."""

    def __init__(self, build_dir, compositor, minifier, layout_name):
        self.build_dir = build_dir
        self.compositor = compositor
        self.minifier = minifier
        self.layout_name = layout_name
        self.logger = logging.getLogger('Styx.Materializer')

    def classify(self, entry):
        """Resolve the role of a walk entry."""
        if entry.is_dir:
            return FileRole.DIRECTORY
        if entry.name == self.layout_name:
            return FileRole.LAYOUT
        ext = ext_of(entry.rel)
        if ext in MARKDOWN_EXTS:
            return FileRole.MARKDOWN
        if ext in MARKUP_EXTS:
            return FileRole.MARKUP
        if self.minifier.asset_type(ext) is not None:
            return FileRole.ASSET
        return FileRole.OPAQUE

    def output_rel(self, entry, role, documents):
        """Output path, relative to the build directory, that ``entry`` would be written to.

        None when nothing is written (skipped roles and drafts).
        """
        if role in SKIPPED_ROLES:
            return None
        if role is FileRole.MARKDOWN:
            document = documents.get(entry.path)
            if document is not None and document.draft:
                return None
            return output_rel(entry.rel, self.compositor.path_style)
        return entry.rel

    def materialize(self, entry, role, documents, collections):
        """
        Produce the output for ``entry``.

        Returns the written file path, or None when nothing is written
        (skipped roles and drafts).
        """
        if role in SKIPPED_ROLES:
            return None
        if role is FileRole.MARKDOWN:
            return self._markdown(entry, documents, collections)
        if role is FileRole.MARKUP:
            return self.compositor.render_markup(entry.path, entry.rel, collections)
        if role is FileRole.ASSET:
            return self._asset(entry)
        return self._copy(entry)

    def _markdown(self, entry, documents, collections):
        document = documents.get(entry.path)
        if document is None:
            raise BuildError(entry.path, 'materialize', KeyError('document was not rendered'))
        if document.draft:
            self.logger.debug(f"Skipping draft: {entry.rel}")
            return None
        return self.compositor.compose(document, collections)

    def _asset(self, entry):
        output_file = to_fs(self.build_dir, entry.rel)
        if not self.minifier.enabled:
            return self._copy(entry)
        content_type = self.minifier.asset_type(ext_of(entry.rel))
        try:
            with open(entry.path, 'r', encoding='utf-8') as f:
                source = f.read()
            minified = self.minifier.minify(content_type, source)
            create_file(output_file, minified)
        except (IOError, OSError, PermissionError, UnicodeDecodeError) as e:
            self.logger.error(f"Failed to minify {entry.rel}: {e}")
            raise BuildError(entry.path, 'minify', e) from e
        self.logger.debug(f"Minified {content_type}: {entry.rel}")
        return output_file

    def _copy(self, entry):
        output_file = to_fs(self.build_dir, entry.rel)
        try:
            copy_file(output_file, entry.path)
        except (IOError, OSError, PermissionError) as e:
            self.logger.error(f"Failed to copy {entry.rel}: {e}")
            raise BuildError(entry.path, 'copy', e) from e
        self.logger.debug(f"Copied: {entry.rel}")
        return output_file
