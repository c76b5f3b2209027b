"""
Git commit helper.

Asks for a commit message, falling back to a generated default after a short
timeout, and runs ``git commit`` with it.
"""

import json
import logging
import os
import queue
import subprocess
import sys
import threading
from email.utils import formatdate

import tomli

from . import __version__
from .errors import CommitError

logger = logging.getLogger('Matterbuild.Commit')

DEFAULT_PREFIX = 'chore(build):'
CONFIG_FILE = 'git-commit.config.json'
TIMEOUT = 5.0


def project_version(root='.'):
    """Version of the project at ``root`` from pyproject.toml or package.json."""
    pyproject = os.path.join(root, 'pyproject.toml')
    if os.path.isfile(pyproject):
        with open(pyproject, 'rb') as f:
            version = tomli.load(f).get('project', {}).get('version')
        if version:
            return version
    package_json = os.path.join(root, 'package.json')
    if os.path.isfile(package_json):
        with open(package_json, 'r', encoding='utf-8') as f:
            version = json.load(f).get('version')
        if version:
            return version
    return __version__


def update_message(version, timestamp=None):
    return f"Update in version {version} on {formatdate(timestamp, usegmt=True)}"


def default_message(root='.', prefix=None, timestamp=None):
    """Build the default commit message.

    The prefix comes from ``prefix``, else from the ``message`` key of
    git-commit.config.json, else ``chore(build):``.
    """
    if not prefix:
        config_path = os.path.join(root, CONFIG_FILE)
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                prefix = str(json.load(f).get('message', '')).strip()
        except (IOError, OSError, ValueError, AttributeError):
            prefix = ''
    return f"{prefix or DEFAULT_PREFIX} {update_message(project_version(root), timestamp)}"


def prompt_message(default, timeout=TIMEOUT, stdin=None, stdout=None):
    """Read one line from stdin, or return ``default`` after ``timeout`` seconds."""
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    stdout.write(f"Enter the commit message. [{default}]:\n")
    stdout.flush()
    lines = queue.Queue()

    def reader():
        lines.put(stdin.readline())

    threading.Thread(target=reader, daemon=True).start()
    try:
        line = lines.get(timeout=timeout)
    except queue.Empty:
        stdout.write(f'No input provided. Using default message: "{default}"\n')
        return default
    return line.strip() or default


def commit(message, cwd=None):
    """Run ``git commit -m message`` and return its output."""
    try:
        result = subprocess.run(
            ['git', 'commit', '-m', message],
            cwd=cwd,
            capture_output=True,
            text=True,
        )
    except OSError as e:
        raise CommitError(f"cannot run git: {e}") from e
    if result.returncode != 0:
        raise CommitError((result.stderr or result.stdout or f"git exited with {result.returncode}").strip())
    if result.stderr:
        logger.warning(f"Git Output: {result.stderr.strip()}")
    return result.stdout
