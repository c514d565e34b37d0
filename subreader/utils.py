"""Utility functions for SubReader."""

import os
import logging
from .exceptions import FileSystemError

logger = logging.getLogger(__name__)

def ensure_dir_exists(dir_path: str) -> None:
    """
    Ensures that a directory exists. Creates it if it doesn't.

    Args:
        dir_path: The path to the directory.

    Raises:
        FileSystemError: If the directory cannot be created due to permissions
                         or if the path exists but is not a directory.
    """
    if not dir_path:
        raise ValueError("Directory path cannot be empty.")
    try:
        if not os.path.exists(dir_path):
            os.makedirs(dir_path)
            logger.info(f"Created directory: {dir_path}")
        elif not os.path.isdir(dir_path):
            raise FileSystemError(f"Path exists but is not a directory: {dir_path}")
    except OSError as e:
        logger.error(f"Error creating or accessing directory {dir_path}: {e}", exc_info=True)
        raise FileSystemError(f"Could not create or access directory {dir_path}: {e}") from e

def format_clock(seconds: float) -> str:
    """
    Formats seconds as a HH:MM:SS playback position. Fractions are truncated.

    Args:
        seconds: Time in seconds.

    Returns:
        Formatted time string.
    """
    total = int(max(seconds, 0.0))
    hrs, rem = divmod(total, 3600)
    mins, secs = divmod(rem, 60)
    return f"{hrs:02d}:{mins:02d}:{secs:02d}"

def file_extension(filename: str) -> str:
    """Returns the lower-cased extension of ``filename`` including the dot, or ''."""
    return os.path.splitext(filename)[1].lower()
