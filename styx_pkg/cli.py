#!/usr/bin/env python3
"""
Command-line interface for Styx - static site builder.
"""

import os
import sys
import shutil
import argparse
from typing import Dict, List, Optional

from . import __version__
from .core import Styx, utc_now
from .errors import StyxError
from .files import create_file
from .frontmatter import FrontMatter, TOML_STYLE, YAML_STYLE
from .serve import serve
from .settings import StyxSettings

COMMANDS = ['init', 'new', 'build', 'serve', 'summary', 'help', 'version']

STARTER_FILES: Dict[str, str] = {
    'src/index.html': """<!doctype html>
<title>Hello</title>
<link rel="stylesheet" href="/css/style.css"/>
<p>Hello, world. I am the index page.</p>
<ul>
{% for page in all['blog'] %}
  <li><a href="{{ page.path }}">{{ page.title }}</a></li>
{% endfor %}
</ul>
""",
    'src/css/style.css': """body {
    font-family: sans-serif;
    max-width: 40em;
    margin: 2em auto;
}
""",
    'src/blog/layout.tmpl': """<!doctype html>
<title>{{ current.title }}</title>
<link rel="stylesheet" href="/css/style.css"/>
<article>
  <h1>{{ current.title }}</h1>
  <time>{{ current.time.strftime('%Y-%m-%d') }}</time>
  {{ current.content }}
</article>
<nav>
  <ul>
  {% for page in dir %}
    <li><a href="{{ page.path }}">{{ page.title }}</a></li>
  {% endfor %}
  </ul>
</nav>
""",
    'src/blog/hello-world.md': """+++
title = "Hello, world"
time = "2016-01-02 15:04:05"
+++

This is the first post. Edit or delete it, then run `styx build`.
""",
    'src/robots.txt': """User-agent: *
Disallow:
""",
}


def create_starter_structure(root: str) -> None:
    """Create a new site at ``root``. The path must not exist yet."""
    if os.path.exists(root):
        raise StyxError(f"path {root!r} already exists")

    success = False
    try:
        os.makedirs(root)
        for rel, content in STARTER_FILES.items():
            create_file(os.path.join(root, *rel.split('/')), content)
            print(f"Created: {rel}")
        config_path = StyxSettings(root).create_sample_config('yml')
        print(f"Created sample configuration file: {os.path.basename(config_path)}")
        success = True
    except (IOError, OSError) as e:
        raise StyxError(f"failed to initialize {root}: {e}") from e
    finally:
        if not success:
            shutil.rmtree(root, ignore_errors=True)


def new_document(title: str = '', draft: bool = False, style: str = 'toml') -> str:
    """Contents of a new markdown file with a metadata block."""
    fm = FrontMatter(
        title=title,
        draft=draft,
        time=utc_now().replace(microsecond=0),
        style=YAML_STYLE if style == 'yaml' else TOML_STYLE,
    )
    return fm.dumps() + '\n'


def print_summary(collections) -> None:
    """Print each directory's collection, most recent first."""
    for directory, documents in collections.items():
        print(f"{directory or '.'}/ ({len(documents)})")
        for doc in documents:
            print(f"  {doc.time:%Y-%m-%d %H:%M}  {doc.title}  {doc.output_path}")


def make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='styx', description='Styx - Static Site Builder')
    parser.add_argument('command', choices=COMMANDS, help='Command to run')
    parser.add_argument('path', nargs='?', help='Path of the new site (init only)')
    parser.add_argument('--workdir', type=str, default='.',
                        help="Path to the site's root directory")
    parser.add_argument('--http', type=str,
                        help='HTTP address to serve the site on (default: localhost:8080)')
    parser.add_argument('--watch', action='store_true', default=None,
                        help='Rebuild on source changes while serving')
    parser.add_argument('--title', type=str, default='',
                        help='Title of the new markdown file')
    parser.add_argument('--draft', action='store_true',
                        help='Mark the new markdown file as a draft')
    parser.add_argument('--path-style', dest='path_style', type=str, choices=['directory', 'flat'],
                        help='Output layout for markdown pages')
    parser.add_argument('--no-minify', dest='minify', action='store_false', default=None,
                        help='Write output without minification')
    parser.add_argument('--workers', type=int,
                        help='Number of worker threads')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point."""
    parser = make_parser()
    args = parser.parse_args(argv)

    if args.command == 'help':
        parser.print_help()
        return
    if args.command == 'version':
        print(f"v{__version__}")
        return

    workdir = os.path.abspath(os.path.expanduser(args.workdir))
    if not os.path.isdir(workdir):
        print(f"styx: error: workdir {workdir!r} should be a directory", file=sys.stderr)
        sys.exit(1)

    try:
        if args.command == 'init':
            if not args.path:
                raise StyxError("init requires path argument\nexample: styx init /path/to/new/site")
            create_starter_structure(os.path.join(workdir, args.path))
            print("\nYour new Styx site is ready! Run 'styx build' inside it.")
            return

        # Load settings from configuration file
        settings_loader = StyxSettings(workdir)
        settings_loader.load_settings()

        # Command line arguments take precedence
        args_dict = {k: v for k, v in vars(args).items() if v is not None}
        final_settings = settings_loader.merge_with_args(args_dict)

        if args.command == 'new':
            sys.stdout.write(new_document(args.title, args.draft,
                                          'yaml' if final_settings['front_matter'] == 'yaml' else 'toml'))
            return

        generator = Styx(work_dir=workdir, **StyxSettings.build_options(final_settings))

        if args.command == 'summary':
            _, collections = generator.collect()
            print_summary(collections)
            return

        result = generator.run()
        if not result:
            raise result.error

        if args.command == 'serve':
            def rebuild():
                return Styx(work_dir=workdir, **StyxSettings.build_options(final_settings)).run()

            serve(
                generator.build_dir,
                final_settings['http'],
                src_dir=generator.src_dir,
                rebuild=rebuild,
                watch=final_settings['watch'],
                interval=final_settings['watch_interval'],
            )
    except (StyxError, ValueError) as e:
        print(e if isinstance(e, StyxError) else f"styx: error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
