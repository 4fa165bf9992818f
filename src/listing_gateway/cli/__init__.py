"""Command-line interface for the listing gateway."""
