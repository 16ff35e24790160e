"""Command-line interface for seridl."""
