"""Output validation and file cleanup helpers."""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def validate_output(output_path: Path) -> tuple[bool, str | None]:
    """Validate an ffmpeg output file.

    Checks that the output file exists and is non-empty.

    Args:
        output_path: Path to output file.

    Returns:
        Tuple of (is_valid, error_message).
        error_message is None if valid.
    """
    if not output_path.exists():
        return False, f"Output file does not exist: {output_path}"

    try:
        output_size = output_path.stat().st_size
    except OSError as e:
        return False, f"Could not stat output file: {e}"

    if output_size == 0:
        return False, f"Output file is empty: {output_path}"

    return True, None


def remove_file(path: Path) -> bool:
    """Remove a file if present, logging any errors.

    Args:
        path: File to remove.

    Returns:
        False if the file existed and could not be removed.
    """
    if not path.exists():
        return True
    try:
        path.unlink()
        logger.debug("Removed file: %s", path)
        return True
    except OSError as e:
        logger.warning("Could not remove %s: %s", path, e)
        return False
