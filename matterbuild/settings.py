#!/usr/bin/env python3
"""
Settings loader for matterbuild.
Supports configuration from matterbuild.yml, matterbuild.yaml, matterbuild.json
or matterbuild.toml files.
"""

import copy
import os
import json
import yaml
import tomli
import tomli_w
from typing import Dict, Any, List, Optional


class MatterbuildSettings:
    """Load and manage matterbuild configuration settings."""

    # Default configuration
    DEFAULT_SETTINGS = {
        'input': 'input',
        'output': 'output',
        'data': 'data',
        'includes': 'includes',
        'layouts': 'layouts',
        'template_formats': ['njk', 'scss'],
        'permalink_prefix': None,
        'passthrough_copy': [],
        'front_matter': None,
        'template_defaults': None,
        'default_data': {},
        'access_global_data': True,
        'markdown_template_engine': 'njk',
        'html_template_engine': 'njk',
        'minify': False,
        'steps': [],
        'common_options': {},
        'images': [],
        'clean_paths': ['logs', 'build', 'dist'],
        'commit_message': None,
    }

    # Keys a build step may override
    STEP_KEYS = (
        'input', 'output', 'data', 'includes', 'layouts', 'template_formats', 'permalink_prefix',
        'passthrough_copy', 'front_matter', 'template_defaults', 'default_data', 'access_global_data',
        'markdown_template_engine', 'html_template_engine', 'minify',
    )

    # Config file names to look for (in order of preference)
    CONFIG_FILES = ['matterbuild.yml', 'matterbuild.yaml', 'matterbuild.json', 'matterbuild.toml']

    def __init__(self, config_dir: str = None):
        """
        Initialize settings loader.

        Args:
            config_dir: Directory to look for config files. Defaults to current directory.
        """
        self.config_dir = config_dir or os.getcwd()
        self.settings = copy.deepcopy(self.DEFAULT_SETTINGS)
        self.config_file_path = None
        self.overrides = {}

    def load_settings(self) -> Dict[str, Any]:
        """
        Load settings from configuration file if it exists.

        Returns:
            Dictionary of configuration settings
        """
        config_file = self._find_config_file()

        if config_file:
            self.config_file_path = config_file
            loaded_settings = self._load_config_file(config_file)
            if loaded_settings:
                if not isinstance(loaded_settings, dict):
                    raise ValueError(f"Configuration file {config_file} must contain a mapping")
                # Merge with defaults, giving preference to loaded settings
                self.settings.update(loaded_settings)

        return self.settings.copy()

    def _find_config_file(self) -> Optional[str]:
        """
        Find the first available configuration file.

        Returns:
            Path to config file or None if not found
        """
        for filename in self.CONFIG_FILES:
            config_path = os.path.join(self.config_dir, filename)
            if os.path.exists(config_path):
                return config_path
        return None

    def _load_config_file(self, config_path: str) -> Dict[str, Any]:
        """
        Load configuration from a file.

        Args:
            config_path: Path to the configuration file

        Returns:
            Dictionary of configuration settings
        """
        file_ext = os.path.splitext(config_path)[1].lower()
        try:
            if file_ext == '.toml':
                with open(config_path, 'rb') as f:
                    return tomli.load(f)
            with open(config_path, 'r', encoding='utf-8') as f:
                if file_ext in ['.yml', '.yaml']:
                    return yaml.safe_load(f) or {}
                elif file_ext == '.json':
                    return json.load(f) or {}
                else:
                    raise ValueError(f"Unsupported config file format: {file_ext}")
        except FileNotFoundError:
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        except PermissionError:
            raise PermissionError(f"Permission denied reading configuration file: {config_path}")
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file {config_path}: {e}")
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file {config_path}: {e}")
        except tomli.TOMLDecodeError as e:
            raise ValueError(f"Invalid TOML in configuration file {config_path}: {e}")

    def create_sample_config(self, file_format: str = 'yml') -> str:
        """
        Create a sample configuration file.

        Args:
            file_format: Format for config file ('yml', 'yaml', 'json' or 'toml')

        Returns:
            Path to created sample config file
        """
        sample_config = {
            'input': 'site',
            'output': '_www',
            'data': 'data',
            'includes': 'includes',
            'layouts': 'layouts',
            'template_formats': ['njk', 'scss'],
            'permalink_prefix': 'site',
            'passthrough_copy': ['site/css', 'site/img'],
            'front_matter': {'language': 'yaml', 'delimiters': '---'},
            'minify': False,
            'images': [
                {'src': 'img/logo.png', 'formats': ['png', 'webp', 'ico'], 'widths': [16, 32, 64]},
            ],
        }

        if file_format not in ('yml', 'yaml', 'json', 'toml'):
            raise ValueError(f"Unsupported config file format: {file_format}")

        filename = f'matterbuild.{file_format}'
        config_path = os.path.join(self.config_dir, filename)

        try:
            with open(config_path, 'w', encoding='utf-8') as f:
                if file_format in ['yml', 'yaml']:
                    f.write("# matterbuild configuration file\n")
                    f.write("# Configure your static site build here\n\n")
                    yaml.safe_dump(sample_config, f, default_flow_style=False, sort_keys=False)
                elif file_format == 'toml':
                    f.write(tomli_w.dumps(sample_config))
                else:
                    json.dump(sample_config, f, indent=2)
        except PermissionError:
            raise PermissionError(f"Permission denied creating configuration file: {config_path}")
        except (IOError, OSError) as e:
            raise IOError(f"Error writing configuration file {config_path}: {e}")

        return config_path

    def merge_with_args(self, args_dict: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge configuration settings with command-line arguments.
        Command-line arguments take precedence over config file settings.

        Args:
            args_dict: Dictionary of command-line arguments

        Returns:
            Merged configuration dictionary
        """
        merged = self.settings.copy()

        # Override with non-None command line arguments
        for key, value in args_dict.items():
            if value is not None:
                # Handle special cases
                if key == 'template_formats' and isinstance(value, str):
                    # Convert comma-separated string to list
                    merged[key] = [fmt.strip() for fmt in value.split(',') if fmt.strip()]
                else:
                    merged[key] = value
                self.overrides[key] = merged[key]

        self.settings = merged
        return merged.copy()

    def step_count(self) -> int:
        """Number of build steps; a config without steps is a single step."""
        return max(1, len(self.settings.get('steps') or []))

    def step_settings(self, index: int) -> Dict[str, Any]:
        """
        Settings for one build step.

        Step options override common options, which override the top-level
        settings.
        """
        steps: List[Dict[str, Any]] = self.settings.get('steps') or []
        if steps and not 0 <= index < len(steps):
            raise IndexError(f"Build step {index + 1} is not configured ({len(steps)} steps)")
        if not steps and index != 0:
            raise IndexError(f"Build step {index + 1} is not configured (1 step)")
        result = {key: self.settings.get(key) for key in self.STEP_KEYS}
        result.update(self.settings.get('common_options') or {})
        if steps:
            step = steps[index]
            result.update(step.get('options', step) if isinstance(step, dict) else {})
        # Command-line arguments win over every step
        result.update({k: v for k, v in self.overrides.items() if k in self.STEP_KEYS})
        return result
