import os
import shutil
import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from .collection import build_collections
from .errors import BuildError, StyxError
from .files import PATH_STYLES, is_markdown
from .frontmatter import STYLES
from .layout import DEFAULT_LAYOUT, LayoutCompositor, create_environment
from .materializer import SKIPPED_ROLES, TreeMaterializer
from .minifier import Minifier
from .renderer import DocumentRenderer
from .walker import walk

FAILURE_POLICIES = ('keep', 'clean')


class BuildState(Enum):
    IDLE = 'idle'
    RENDERING_DOCUMENTS = 'rendering documents'
    AGGREGATING = 'aggregating'
    MATERIALIZING_TREE = 'materializing tree'
    DONE = 'done'
    FAILED = 'failed'


@dataclass
class BuildResult:
    """Outcome of one build: success, or the first error encountered."""
    state: BuildState
    error: Optional[StyxError] = None
    documents: int = 0
    drafts: int = 0
    files_written: int = 0
    elapsed: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None

    def __bool__(self):
        return self.ok


def utc_now():
    return datetime.now(timezone.utc)


class InfoFilter(logging.Filter):
    """Filter to allow only selected INFO messages to be shown in the console."""
    def filter(self, record):
        if record.levelno >= logging.WARNING:
            return True
        allowed_messages = [
            "Build completed in",
            "Build failed",
            "Documents rendered:",
            "Files written:",
            "Serving HTTP on",
            "Change detected, rebuilding",
        ]
        return any(msg in record.getMessage() for msg in allowed_messages)


class Styx:
    """
    Builds the site under ``work_dir``: renders every markdown document in
    ``src``, then mirrors the source tree into ``build``.
    """

    def __init__(self, work_dir='.', src='src', build='build', layout=DEFAULT_LAYOUT, path_style='directory',
                 front_matter='auto', minify=True, clean=True, on_failure='keep', workers=None,
                 macros=None, clock=None, log_dir=None):
        if path_style not in PATH_STYLES:
            raise ValueError(f"path_style must be one of {PATH_STYLES}, got {path_style!r}")
        if front_matter not in STYLES:
            raise ValueError(f"front_matter must be one of {tuple(STYLES)}, got {front_matter!r}")
        if on_failure not in FAILURE_POLICIES:
            raise ValueError(f"on_failure must be one of {FAILURE_POLICIES}, got {on_failure!r}")
        if workers is not None and workers < 1:
            raise ValueError("workers must be at least 1")

        self.work_dir = os.path.abspath(work_dir)
        self.src_dir = os.path.normpath(os.path.join(self.work_dir, src))
        self.build_dir = os.path.normpath(os.path.join(self.work_dir, build))
        common = os.path.commonpath([self.src_dir, self.build_dir])
        if common == self.build_dir:
            raise ValueError(f"Build directory {self.build_dir} must not contain the source directory")
        if common == self.src_dir:
            raise ValueError(f"Build directory {self.build_dir} must not be inside the source directory")

        self.layout = layout
        self.path_style = path_style
        self.front_matter = front_matter
        self.minify = minify
        self.clean = clean
        self.on_failure = on_failure
        self.workers = workers
        self.macros = macros
        self.clock = clock or utc_now
        self.log_dir = log_dir

        self.state = BuildState.IDLE
        self.build_time = None
        self._error = None

        self.setup_logging()

    def setup_logging(self):
        """Set up logging configuration."""
        self.logger = logging.getLogger('Styx')
        self.logger.setLevel(logging.DEBUG)

        if not self.logger.handlers:
            # Console handler with filter
            console_handler = logging.StreamHandler()
            console_handler.setLevel(logging.INFO)
            console_handler.addFilter(InfoFilter())
            console_formatter = logging.Formatter('%(message)s')
            console_handler.setFormatter(console_formatter)
            self.logger.addHandler(console_handler)

            # File handler for all logs
            if self.log_dir:
                logs_dir = os.path.join(self.work_dir, self.log_dir)
                os.makedirs(logs_dir, exist_ok=True)
                log_filename = datetime.now().strftime('styx_%Y-%m-%d_%H-%M-%S.log')
                log_filepath = os.path.join(logs_dir, log_filename)

                file_handler = logging.FileHandler(log_filepath)
                file_handler.setLevel(logging.DEBUG)
                file_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(threadName)s - %(message)s')
                file_handler.setFormatter(file_formatter)
                self.logger.addHandler(file_handler)

    def _set_state(self, state):
        self.logger.debug(f"Build state: {self.state.value} -> {state.value}")
        self.state = state

    def _record(self, err):
        """Record ``err``; only the first recorded error becomes the build outcome."""
        if err is self._error:
            return
        self.logger.error(str(err))
        if self._error is None:
            self._error = err
            self._set_state(BuildState.FAILED)

    def _begin(self):
        self._error = None
        self.state = BuildState.IDLE
        build_time = self.clock()
        if build_time.tzinfo is None:
            build_time = build_time.replace(tzinfo=timezone.utc)
        self.build_time = build_time

    def prepare_output_dir(self):
        """Remove the previous output so every build is a full re-render."""
        if self.clean and os.path.exists(self.build_dir):
            try:
                shutil.rmtree(self.build_dir)
            except (IOError, OSError, PermissionError) as e:
                raise BuildError(self.build_dir, 'clean output', e) from e
            self.logger.debug(f"Removed previous output: {self.build_dir}")

    def _render_documents(self, executor, body_executor):
        """Phase 1: render every markdown document. Returns documents keyed by source path."""
        self._set_state(BuildState.RENDERING_DOCUMENTS)
        renderer = DocumentRenderer(
            self.build_time, macros=self.macros, path_style=self.path_style,
            front_matter=self.front_matter, body_executor=body_executor,
        )

        futures = {}
        for entry in walk(self.src_dir):
            if entry.error is not None:
                self._record(BuildError(entry.path, 'walk', entry.error))
                break
            if entry.is_dir or not is_markdown(entry.rel):
                continue
            futures[executor.submit(renderer.render, entry)] = entry

        # Barrier: every submitted render has finished once this loop ends.
        documents = {}
        for future in as_completed(futures):
            entry = futures[future]
            try:
                document = future.result()
            except StyxError as e:
                self._record(e if isinstance(e, BuildError) else BuildError(entry.path, 'render', e))
                continue
            except Exception as e:
                self._record(BuildError(entry.path, 'render', e))
                continue
            documents[document.source_path] = document

        return dict(sorted(documents.items()))

    def _aggregate(self, documents):
        self._set_state(BuildState.AGGREGATING)
        return build_collections(documents.values())

    def _collect(self, executor):
        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix='styx-body') as body_executor:
            documents = self._render_documents(executor, body_executor)
        if self._error is not None:
            raise self._error
        return documents, self._aggregate(documents)

    def _materialize_tree(self, executor, documents, collections):
        """Phase 2: mirror the source tree into the output tree. Returns the number of files written."""
        self._set_state(BuildState.MATERIALIZING_TREE)
        minifier = Minifier(enabled=self.minify)
        compositor = LayoutCompositor(
            create_environment(self.src_dir), self.build_dir, minifier,
            layout_name=self.layout, path_style=self.path_style,
        )
        materializer = TreeMaterializer(self.build_dir, compositor, minifier, self.layout)

        futures = {}
        claimed = {}
        for entry in walk(self.src_dir):
            if entry.error is not None:
                self._record(BuildError(entry.path, 'walk', entry.error))
                break
            role = materializer.classify(entry)
            if role in SKIPPED_ROLES:
                continue
            target = materializer.output_rel(entry, role, documents)
            if target is not None:
                if target in claimed:
                    self._record(BuildError(entry.path, 'materialize', FileExistsError(
                        f"output {target} is also produced by {claimed[target]}")))
                    continue
                claimed[target] = entry.path
            futures[executor.submit(materializer.materialize, entry, role, documents, collections)] = entry

        written = 0
        for future in as_completed(futures):
            entry = futures[future]
            try:
                if future.result() is not None:
                    written += 1
            except BuildError as e:
                self._record(e)
            except Exception as e:
                self._record(BuildError(entry.path, 'materialize', e))
        self.logger.debug(f"Layouts compiled: {len(compositor.layouts)}")
        return written

    def collect(self):
        """
        Render every document and aggregate collections without writing output.

        Returns (documents, collections). Raises the first error encountered.
        """
        self._begin()
        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix='styx') as executor:
            documents, collections = self._collect(executor)
        self._set_state(BuildState.DONE)
        return documents, collections

    def run(self):
        """Run a full build. Returns a BuildResult; never raises for build failures."""
        start_time = time.time()
        self._begin()
        self.logger.debug(f"Building {self.src_dir} -> {self.build_dir} at {self.build_time.isoformat()}")

        documents = {}
        written = 0
        try:
            self.prepare_output_dir()
            with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix='styx') as executor:
                documents, collections = self._collect(executor)
                written = self._materialize_tree(executor, documents, collections)
        except StyxError as e:
            self._record(e)

        elapsed = time.time() - start_time
        drafts = sum(1 for d in documents.values() if d.draft)
        if self._error is None:
            self._set_state(BuildState.DONE)
            self.logger.info(f"Build completed in {elapsed:.6f} seconds.")
            self.logger.info(f"Documents rendered: {len(documents)} ({drafts} drafts)")
            self.logger.info(f"Files written: {written}")
        else:
            self.logger.info(f"Build failed after {elapsed:.6f} seconds.")
            if self.on_failure == 'clean':
                self._remove_partial_output()

        return BuildResult(
            state=self.state,
            error=self._error,
            documents=len(documents),
            drafts=drafts,
            files_written=written,
            elapsed=elapsed,
        )

    def _remove_partial_output(self):
        try:
            shutil.rmtree(self.build_dir)
            self.logger.debug(f"Removed partial output: {self.build_dir}")
        except FileNotFoundError:
            pass
        except (IOError, OSError, PermissionError) as e:
            self.logger.warning(f"Failed to remove partial output {self.build_dir}: {e}")
