"""File system helpers shared by the build, image and script modules."""

import codecs
import logging
import os

logger = logging.getLogger('Matterbuild.Files')

_BOMS = (
    (codecs.BOM_UTF8, 'utf-8-sig'),
    (codecs.BOM_UTF16_LE, 'utf-16'),
    (codecs.BOM_UTF16_BE, 'utf-16'),
)


def detect_encoding(file_path, default='utf-8'):
    """Return the encoding announced by a byte order mark, or ``default``."""
    with open(file_path, 'rb') as f:
        head = f.read(3)
    for bom, encoding in _BOMS:
        if head.startswith(bom):
            return encoding
    return default


def read_file_bom(file_path, encoding=None):
    """Read a text file, honouring a UTF-8 or UTF-16 byte order mark.

    The BOM itself is not part of the returned text.
    """
    encoding = detect_encoding(file_path, encoding or 'utf-8')
    with open(file_path, 'r', encoding=encoding) as f:
        return f.read()


def ensure_directory(*dir_path):
    """Recursively create a directory. Existing directories are left alone."""
    directory = os.path.abspath(os.path.join(*dir_path))
    if os.path.isdir(directory):
        logger.debug(f"Directory {directory} already exists.")
        return directory
    logger.debug(f"Creating directory {directory} ...")
    os.makedirs(directory, exist_ok=True)
    logger.debug(f"Creating directory {directory} done.")
    return directory
