"""GuardIT - backup job status monitor."""

__version__ = "0.1.0"
