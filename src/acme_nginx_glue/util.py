"""Utilities for acme-nginx-glue."""
import logging
import os
import tempfile

logger = logging.getLogger(__name__)

# ANSI SGR escape codes
# Colors text red
ANSI_SGR_RED = "\033[31m"
# Resets output format
ANSI_SGR_RESET = "\033[0m"


def file_exists(path: str) -> bool:
    """Existence probe used to decide whether certificate files are in place.

    Errors while probing count as absence, since a missing certificate is
    an expected outcome rather than a fault.

    :param str path: path to check

    :returns: True if ``path`` exists
    :rtype: bool

    """
    try:
        return os.path.exists(path)
    except (OSError, ValueError) as error:
        logger.debug("Could not probe %s: %s", path, error)
        return False


def atomic_write(path: str, content: str, encoding: str = "utf-8") -> None:
    """Replace the contents of ``path`` in one step.

    The content is written to a temporary file in the destination
    directory which is then moved over ``path`` with `os.replace`, so
    readers see either the old file or the complete new one.

    :param str path: destination file
    :param str content: text to write
    :param str encoding: text encoding

    :raises OSError: if the file could not be written

    """
    directory = os.path.dirname(os.path.abspath(path))
    fd, tmp_path = tempfile.mkstemp(prefix=".", suffix=".tmp", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding=encoding) as handle:
            handle.write(content)
        if os.path.exists(path):
            os.chmod(tmp_path, os.stat(path).st_mode & 0o777)
        else:
            os.chmod(tmp_path, 0o644)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise
