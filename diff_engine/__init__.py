"""Version diff engine: structural and textual comparison of schema versions."""

__version__ = "0.1.0"
