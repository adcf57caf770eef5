"""Lightweight database client core: local workspaces, saved connections and MySQL access."""

__version__ = "0.1.0"