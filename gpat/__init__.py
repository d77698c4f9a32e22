"""gpat — keep a linear git history and a directory of timestamped patches in sync."""

__version__ = "0.1.0"
