# policyctl Utils
from policyctl.utils.paths import (
    get_app_directory,
    get_file_path,
    rewrite_file,
)

__all__ = [
    "get_app_directory",
    "get_file_path",
    "rewrite_file",
]
