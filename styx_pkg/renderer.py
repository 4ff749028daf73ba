import os
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone

import mistune
from jinja2 import TemplateError
from markupsafe import Markup

from .errors import BuildError, MacroError, StyxError
from .files import rel_dir, url_path
from .frontmatter import parse_front_matter, strip_front_matter
from .macros import MacroExpander

# Thread-local storage for markdown parsers, one per worker thread
thread_local = threading.local()


def create_markdown_parser():
    """Create a Mistune markdown parser with a custom renderer."""
    class CustomRenderer(mistune.HTMLRenderer):
        def __init__(self):
            super().__init__(escape=False)
        def block_code(self, code, info=None):
            escaped_code = mistune.escape(code)
            return '<pre style="white-space: pre-wrap;"><code>{}</code></pre>\n'.format(escaped_code)
    return mistune.create_markdown(
        renderer=CustomRenderer(),
        plugins=['table', 'task_lists', 'strikethrough']
    )


def markdown_filter(text):
    """Convert markdown text to HTML using this thread's parser."""
    parser = getattr(thread_local, 'markdown_parser', None)
    if parser is None:
        parser = thread_local.markdown_parser = create_markdown_parser()
    return parser(text)


@dataclass(frozen=True)
class Document:
    """A rendered markdown file. Built once, read-only afterwards."""
    source_path: str
    rel_path: str
    output_path: str
    title: str
    time: datetime
    draft: bool
    body: str

    @property
    def content(self):
        return Markup(self.body)

    @property
    def path(self):
        return self.output_path

    @property
    def directory(self):
        return rel_dir(self.rel_path)


class DocumentRenderer:
    """Turns one markdown source file into a Document."""

    def __init__(self, build_time, macros=None, path_style='directory', front_matter='auto', body_executor=None):
        self.build_time = build_time
        self.path_style = path_style
        self.front_matter = front_matter
        self.body_executor = body_executor
        self.expander = MacroExpander(macros)
        self.logger = logging.getLogger('Styx.Renderer')

    def render_body(self, text):
        """Expand macros, drop the metadata block and render markdown."""
        expanded = self.expander.expand(text)
        return markdown_filter(strip_front_matter(expanded, self.front_matter))

    def render(self, entry):
        """
        Render the markdown file described by a walk entry.

        The body is rendered on the body executor while the metadata is
        parsed here; the Document is only built once both are done.
        """
        try:
            with open(entry.path, 'r', encoding='utf-8') as f:
                text = f.read()
        except (IOError, OSError, UnicodeDecodeError) as e:
            self.logger.error(f"Failed to read markdown file {entry.path}: {e}")
            raise BuildError(entry.path, 'read', e) from e

        if self.body_executor is not None:
            body_future = self.body_executor.submit(self.render_body, text)
        else:
            body_future = None

        try:
            fm, _ = parse_front_matter(text, self.build_time, self.front_matter)
        except StyxError as e:
            if body_future is not None:
                # Join before reporting so no sub-task outlives its document.
                body_future.exception()
            self.logger.error(f"Invalid front matter in {entry.path}: {e}")
            raise BuildError(entry.path, 'parse front matter', e) from e

        try:
            body = body_future.result() if body_future is not None else self.render_body(text)
        except (MacroError, TemplateError) as e:
            self.logger.error(f"Macro expansion failed for {entry.path}: {e}")
            raise BuildError(entry.path, 'expand macros', e) from e

        stem = os.path.splitext(entry.name)[0]
        if fm is None:
            title = stem
            timestamp = datetime.fromtimestamp(entry.mtime, timezone.utc)
            draft = False
        else:
            title = fm.title or stem
            timestamp = fm.time
            draft = fm.draft

        document = Document(
            source_path=entry.path,
            rel_path=entry.rel,
            output_path=url_path(entry.rel, self.path_style),
            title=title,
            time=timestamp,
            draft=draft,
            body=body,
        )
        self.logger.debug(f"Rendered {entry.rel} -> {document.output_path}{' (draft)' if draft else ''}")
        return document
