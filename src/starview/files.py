"""
Atomic file writes shared by the cache and the manifest export.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, IO, Union

from starview.log_utils import logger


def atomic_write(
    file_path: Union[str, Path], writer_func: Callable[[IO[str]], None], suffix: str = ".tmp"
) -> None:
    """
    Write a file by filling a temporary file beside it and replacing the target.

    The parent directory is created when missing. On failure the temporary file
    is removed and any previous file at `file_path` is left intact.

    Parameters:
        file_path (Union[str, Path]): Destination file path.
        writer_func (Callable[[IO[str]], None]): Receives the open text file and writes the content.
        suffix (str): Suffix of the temporary file name.

    Raises:
        OSError: If the directory, temporary file or replacement cannot be created.
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    temp_fd, temp_path = tempfile.mkstemp(
        dir=str(file_path.parent), prefix="tmp-", suffix=suffix
    )
    try:
        with os.fdopen(temp_fd, "w", encoding="utf-8") as temp_f:
            writer_func(temp_f)
        os.replace(temp_path, file_path)
    except (OSError, UnicodeEncodeError, TypeError, ValueError) as e:
        logger.error(f"Could not write to {file_path}: {e}")
        raise
    finally:
        if os.path.exists(temp_path):
            try:
                os.remove(temp_path)
            except OSError:
                pass


def atomic_write_json(file_path: Union[str, Path], data: Any) -> None:
    """Atomically write `data` to `file_path` as pretty-printed JSON."""
    atomic_write(file_path, lambda f: json.dump(data, f, indent=2), suffix=".json")
