"""Built-in file() function for including text files."""

from pathlib import Path

from . import Functions


@Functions.register("file")
def file_function(path: str) -> str:
    """Read a text file and return its contents.

    Usage:
        {{file("notes/context.md")}}

    Relative paths are resolved against the current working directory.
    """
    return Path(path).expanduser().read_text(encoding="utf-8")
