"""Command-line interface for proxmon."""
