"""Command-line interface for the version diff engine."""
