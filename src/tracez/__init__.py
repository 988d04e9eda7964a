"""tracez — prepares active-span registry snapshots for the debug UI."""

__version__ = "0.1.0"
