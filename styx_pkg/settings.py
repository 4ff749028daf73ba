#!/usr/bin/env python3
"""
Settings loader for the Styx site builder.
Reads styx.yml, styx.yaml or styx.json from the site's work directory.
"""

import os
import json
import yaml
from typing import Dict, Any, Optional

from .errors import SettingsError


class StyxSettings:
    """Load, validate and merge Styx configuration settings."""

    DEFAULT_SETTINGS = {
        'src': 'src',
        'build': 'build',
        'layout': 'layout.tmpl',
        'path_style': 'directory',
        'front_matter': 'auto',
        'minify': True,
        'clean': True,
        'on_failure': 'keep',
        'workers': None,
        'http': 'localhost:8080',
        'watch': False,
        'watch_interval': 1.0,
        'log_dir': 'logs',
    }

    # Looked up in this order; the first one found wins
    CONFIG_FILES = ['styx.yml', 'styx.yaml', 'styx.json']

    # Settings passed straight through to Styx()
    BUILD_KEYS = ('src', 'build', 'layout', 'path_style', 'front_matter', 'minify',
                  'clean', 'on_failure', 'workers', 'log_dir')

    # Sample file layout: (section heading, [(key, comment)])
    SAMPLE_SECTIONS = [
        ('Directories, relative to this file', [
            ('src', None),
            ('build', None),
        ]),
        ('Rendering', [
            ('layout', 'per-directory layout template'),
            ('path_style', 'directory or flat'),
            ('front_matter', 'auto, toml (+++) or yaml (---)'),
            ('minify', None),
        ]),
        ('Build behaviour', [
            ('clean', 'empty the build directory first'),
            ('on_failure', 'keep or clean'),
            ('workers', 'null picks a default from the CPU count'),
        ]),
        ('Preview server', [
            ('http', None),
            ('watch', None),
            ('watch_interval', 'seconds'),
        ]),
        ('Logging', [
            ('log_dir', 'null disables the log file'),
        ]),
    ]

    def __init__(self, config_dir: str = None):
        self.config_dir = config_dir or os.getcwd()
        self.settings = self.DEFAULT_SETTINGS.copy()
        self.config_file_path = None

    def load_settings(self) -> Dict[str, Any]:
        """
        Load settings from the first configuration file found, if any.

        Returns:
            Defaults updated with the file's values

        Raises:
            SettingsError: the file cannot be read or parsed, or holds unknown
                keys or values of the wrong type
        """
        config_file = self._find_config_file()
        if config_file is None:
            return self.settings.copy()

        self.config_file_path = config_file
        loaded = self._load_config_file(config_file)
        if not isinstance(loaded, dict):
            raise SettingsError(f"Configuration file {config_file} must contain a mapping")
        self.validate(loaded, source=config_file)
        self.settings.update(loaded)
        return self.settings.copy()

    def _find_config_file(self) -> Optional[str]:
        for filename in self.CONFIG_FILES:
            config_path = os.path.join(self.config_dir, filename)
            if os.path.exists(config_path):
                return config_path
        return None

    def _load_config_file(self, config_path: str) -> Any:
        file_ext = os.path.splitext(config_path)[1].lower()
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                if file_ext == '.json':
                    return json.load(f) or {}
                return yaml.safe_load(f) or {}
        except PermissionError:
            raise SettingsError(f"Permission denied reading configuration file: {config_path}")
        except yaml.YAMLError as e:
            raise SettingsError(f"Invalid YAML in configuration file {config_path}: {e}")
        except json.JSONDecodeError as e:
            raise SettingsError(f"Invalid JSON in configuration file {config_path}: {e}")
        except (IOError, OSError) as e:
            raise SettingsError(f"Error reading configuration file {config_path}: {e}")

    @classmethod
    def validate(cls, values: Dict[str, Any], source: str = 'settings') -> None:
        """Reject unknown keys and values whose type does not match the default's."""
        unknown = sorted(set(values) - set(cls.DEFAULT_SETTINGS))
        if unknown:
            raise SettingsError(f"Unknown settings in {source}: {', '.join(unknown)}")

        for key, value in values.items():
            if value is None and key in ('workers', 'log_dir'):
                continue
            if key == 'workers':
                ok = isinstance(value, int) and not isinstance(value, bool)
            elif key == 'watch_interval':
                ok = isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0
            else:
                ok = isinstance(value, type(cls.DEFAULT_SETTINGS[key]))
            if not ok:
                raise SettingsError(f"Invalid value for {key!r} in {source}: {value!r}")

    def create_sample_config(self, file_format: str = 'yml') -> str:
        """
        Write a sample configuration file holding the defaults.

        Args:
            file_format: 'yml', 'yaml' or 'json'

        Returns:
            Path of the written file
        """
        if file_format not in ('yml', 'yaml', 'json'):
            raise SettingsError(f"Unsupported config file format: {file_format}")

        config_path = os.path.join(self.config_dir, f'styx.{file_format}')
        if file_format == 'json':
            content = json.dumps(self.DEFAULT_SETTINGS, indent=2) + '\n'
        else:
            content = self._sample_yaml()

        try:
            with open(config_path, 'w', encoding='utf-8') as f:
                f.write(content)
        except PermissionError:
            raise SettingsError(f"Permission denied creating configuration file: {config_path}")
        except (IOError, OSError) as e:
            raise SettingsError(f"Error writing configuration file {config_path}: {e}")

        return config_path

    def _sample_yaml(self) -> str:
        lines = ["# Styx Configuration File", ""]
        for heading, keys in self.SAMPLE_SECTIONS:
            lines.append(f"# {heading}")
            for key, comment in keys:
                value = yaml.safe_dump({key: self.DEFAULT_SETTINGS[key]}, default_flow_style=False).strip()
                lines.append(f"{value}  # {comment}" if comment else value)
            lines.append("")
        return "\n".join(lines)

    def merge_with_args(self, args_dict: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge loaded settings with command-line arguments.

        Arguments that are None or not settings (the command name, say) are
        ignored; everything else overrides the file.
        """
        merged = self.settings.copy()
        for key, value in args_dict.items():
            if value is not None and key in self.DEFAULT_SETTINGS:
                merged[key] = value
        return merged

    @classmethod
    def build_options(cls, settings: Dict[str, Any]) -> Dict[str, Any]:
        """Keyword arguments for Styx() taken from merged settings."""
        return {key: settings[key] for key in cls.BUILD_KEYS if key in settings}
