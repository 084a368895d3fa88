"""Toolboxer package.

A small developer toolkit: ``portown`` maps open TCP/UDP sockets to the
process that owns them, and ``tree`` prints a directory tree.

Both commands take a single snapshot and print a human-readable report.
"""

__all__ = [
    "__version__",
    "models",
]

__version__ = "0.1.0"
