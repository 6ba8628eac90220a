"""Command-line interface for the Diamond Monitor."""
