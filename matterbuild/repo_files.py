"""
Copy files out of checked-out repositories, or remove the copies.

A config file (JSON, comments allowed) names a repository directory under the
base directory and the files to take from it::

    {
        // files from repo/shared-config
        "repository": "shared-config",
        "files": [".editorconfig", {"src": "lint/flake8.cfg", "dest": ".flake8"}]
    }
"""

import logging
import os
import shutil
from typing import Iterable, List, Tuple

import json5

from .files import ensure_directory, read_file_bom

logger = logging.getLogger('Matterbuild.RepoFiles')

DEFAULT_CONFIG = 'copy.repo.config.json'
MODES = ('copy', 'clean')


def load_config(config_path):
    full_path = os.path.abspath(config_path)
    if not os.path.isfile(full_path):
        raise FileNotFoundError(f"cannot read: {full_path}")
    try:
        config = json5.loads(read_file_bom(full_path))
    except (IOError, OSError, ValueError) as e:
        raise FileNotFoundError(f"cannot read: {full_path}: {e}") from e
    if not isinstance(config, dict) or 'repository' not in config or not isinstance(config.get('files'), list):
        raise ValueError(f"invalid repository files config: {full_path}")
    return config


def file_pairs(config, base_dir) -> List[Tuple[str, str]]:
    """Resolve (source, destination) pairs of one config."""
    pairs = []
    for entry in config['files']:
        if isinstance(entry, dict):
            src = os.path.join(base_dir, config['repository'], entry['src'])
            dest = os.path.abspath(entry.get('dest', entry['src']))
        else:
            src = os.path.join(base_dir, config['repository'], entry)
            dest = os.path.abspath(entry)
        pairs.append((src, dest))
    return pairs


def process(configs: Iterable[str] = (DEFAULT_CONFIG,), mode='copy', base_dir='repo', dry_run=False):
    """Copy or clean the files of every config. Returns the processed pairs."""
    if mode not in MODES:
        raise ValueError(f"invalid mode: {mode}")
    configs = list(configs)
    base_dir = os.path.abspath(base_dir)
    logger.info(f"Files to process: {', '.join(configs)}")
    if dry_run:
        logger.info("Dry-run mode (no file will be modified).")
    processed = []
    for config_path in configs:
        for src, dest in file_pairs(load_config(config_path), base_dir):
            if not dry_run:
                if mode == 'copy':
                    ensure_directory(os.path.dirname(dest))
                    shutil.copyfile(src, dest)
                    logger.info(f"Copying {src} -> {dest}")
                elif os.path.exists(dest):
                    os.remove(dest)
                    logger.info(f"File removed: {dest}")
            processed.append((src, dest))
    suffix = ' dry-run' if dry_run else ''
    logger.info(f"Copy repository files {mode}{suffix} completed successfully.")
    return processed
