"""
Filesystem helpers shared by the config overlay and the CLI
"""

import os


def expand_tilde_path(path: str) -> str:
    """
    Convert a shell-style ~ path to an absolute path

    Args:
        path: Filesystem path, e.g. "~/data/GeoLite2-Country.mmdb"

    Returns:
        The expanded path, or the input unchanged when it does not start
        with ~ or names a user the platform does not know
    """
    if not path or path[0] != "~":
        return path
    return os.path.expanduser(path)


def assert_path(path: str, mode: int = os.F_OK) -> None:
    """
    Assert path exists (and satisfies the access mode)

    Raises:
        ValueError: if the path is blank
        FileNotFoundError: if the access check fails
    """
    if not path or not path.strip():
        raise ValueError("Path not defined")
    if not os.access(path, mode):
        raise FileNotFoundError(path)
