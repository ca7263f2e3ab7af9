"""Command-line interface for readaloud."""
