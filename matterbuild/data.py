"""
Global data loading.

Structured data files (JSON, YAML, TOML, CSON) in the data directory become
template data keyed by file name, and arbitrary directories can be exposed as
raw file contents.
"""

import logging
import os
from typing import Any, Callable, Dict, Optional, Union

from .files import read_file_bom
from .formats import FormatRegistry

logger = logging.getLogger('Matterbuild.Data')

DATA_FILE_LANGUAGES = {
    '.json': 'json',
    '.json5': 'json',
    '.yml': 'yaml',
    '.yaml': 'yaml',
    '.toml': 'toml',
    '.cson': 'cson',
}


def default_slugify(name):
    """Make a file name usable as a template variable name."""
    return name.replace('-', '_').replace(' ', '_')


def load_data_directory(data_dir, registry: Optional[FormatRegistry] = None) -> Dict[str, Any]:
    """Parse every data file under ``data_dir`` into a nested dict.

    ``data/site.json`` becomes ``{'site': {...}}``; subdirectories become
    nested dicts. Files with unknown extensions are ignored.
    """
    registry = registry or FormatRegistry.default()
    result = {}
    if not data_dir or not os.path.isdir(data_dir):
        return result
    for entry in sorted(os.listdir(data_dir)):
        entry_path = os.path.join(data_dir, entry)
        if os.path.isdir(entry_path):
            nested = load_data_directory(entry_path, registry)
            if nested:
                result.setdefault(entry, {}).update(nested)
            continue
        stem, ext = os.path.splitext(entry)
        language = DATA_FILE_LANGUAGES.get(ext.lower())
        if language is None:
            continue
        try:
            result[stem] = registry.parse(read_file_bom(entry_path), language)
        except Exception as e:
            raise ValueError(f"Invalid data file {entry_path}: {e}") from e
        logger.debug(f"Loaded data file: {entry_path}")
    return result


def load_file_contents(data_path, slugify: Union[bool, None, Callable[[str], str]] = True,
                       ext_first_key: Union[bool, str] = True) -> Dict[str, Any]:
    """Load the raw contents of every file under ``data_path``.

    With ``ext_first_key=True`` the result is keyed ``[ext][basename]``, with
    ``False`` it is ``[basename][ext]`` and with a string ``sep`` it is a flat
    ``basename + sep + ext`` key.
    """
    if slugify is True:
        slugify = default_slugify
    elif slugify is None or slugify is False:
        slugify = lambda name: name
    elif not callable(slugify):
        raise TypeError(f"invalid slugify argument: {slugify!r}")
    if not isinstance(ext_first_key, (bool, str)):
        raise TypeError(f"invalid ext_first_key argument: {ext_first_key!r}")

    def load_content(obj, path):
        for entry in sorted(os.listdir(path)):
            entry_path = os.path.join(path, entry)
            if os.path.isdir(entry_path):
                obj[entry] = {}
                load_content(obj[entry], entry_path)
            elif os.path.isfile(entry_path):
                stem, ext = os.path.splitext(entry)
                basename = slugify(stem)
                extname = slugify(ext[1:]) if ext else '.'
                content = read_file_bom(entry_path)
                if ext_first_key is True:
                    obj.setdefault(extname, {})[basename] = content
                elif ext_first_key is False:
                    obj.setdefault(basename, {})[extname] = content
                else:
                    obj[basename + ext_first_key + extname] = content

    result = {}
    load_content(result, data_path)
    return result
