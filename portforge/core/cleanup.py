"""Removal of per-run filesystem artifacts."""
import shutil
import time
from pathlib import Path
from typing import Callable, Optional

from portforge.core.logger import get_logger
from portforge.core.retry import RetryPolicy

logger = get_logger(__name__)

# Spawned tools (npm, vite, git) can hold handles on the output directory
# for a moment after they exit.
DEFAULT_CLEANUP_POLICY = RetryPolicy(
    max_attempts=3,
    delay_before_first=2.0,
    delay_between=1.0,
    exceptions=(OSError,),
)


def _rmtree(path: Path) -> None:
    if not path.exists():
        return
    logger.info(f"Attempting to delete folder: {path}")
    shutil.rmtree(path)


def remove_directory(
    path: Path,
    policy: RetryPolicy = DEFAULT_CLEANUP_POLICY,
    sleep: Optional[Callable[[float], None]] = None,
) -> bool:
    """Delete a directory tree, retrying while it is still in use.

    Args:
        path: Directory to delete
        policy: Retry policy (attempt count and delays)
        sleep: Sleep function, injectable for tests

    Returns:
        True if something was deleted, False if the directory did not exist

    Raises:
        OSError: The last deletion error once all attempts are used up
    """
    path = Path(path)
    if not path.exists():
        logger.debug(f"Nothing to delete at {path}")
        return False

    logger.info(f"Waiting for processes to release folder: {path}")
    policy.call(_rmtree, path, sleep=sleep or time.sleep)
    logger.info(f"Deleted generated folder: {path}")
    return True


def remove_file(path: Path) -> bool:
    """Delete a single file if present.

    Returns:
        True if the file was deleted, False if it did not exist
    """
    path = Path(path)
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    logger.info(f"Deleted {path}")
    return True
