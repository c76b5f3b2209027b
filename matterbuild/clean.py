"""Remove build artifacts. Failures are reported and skipped."""

import logging
import os
import shutil

logger = logging.getLogger('Matterbuild.Clean')

DEFAULT_CLEAN_PATHS = ('logs', 'build', 'dist')


def clean(root=None, paths=DEFAULT_CLEAN_PATHS):
    """Remove ``paths`` relative to ``root``. Returns the paths removed."""
    root = os.path.abspath(root or os.getcwd())
    logger.info(f"Removing {', '.join(paths)} from project root: {root}")
    removed = []
    for name in paths:
        path = os.path.join(root, name)
        try:
            if os.path.isdir(path) and not os.path.islink(path):
                shutil.rmtree(path)
            else:
                os.remove(path)
        except OSError as e:
            logger.warning(f"Error removing {path}: {e}, ignoring...")
            continue
        removed.append(path)
        logger.info(f"{path} removed.")
    return removed
