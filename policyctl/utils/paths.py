"""
File path helpers for the command-line tool.
"""

import shutil
import sys
from pathlib import Path


def get_app_directory() -> Path:
    """
    Get the directory of the running executable.

    Returns:
        The absolute directory holding the program named by sys.argv[0].
    """
    program = sys.argv[0] if sys.argv and sys.argv[0] else "."
    located = shutil.which(program) or program
    return Path(located).resolve().parent


def get_file_path(filename: str | Path) -> Path:
    """
    Resolve a file name against the executable's directory.

    Absolute paths are returned unchanged.
    """
    path = Path(filename)
    if path.is_absolute():
        return path
    return get_app_directory() / path


def rewrite_file(path: str | Path, text: str) -> None:
    """
    Replace the contents of a file, creating it if needed.

    Args:
        path: The file to write.
        text: The new contents.
    """
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)
