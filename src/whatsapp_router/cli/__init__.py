"""Administration CLI."""
