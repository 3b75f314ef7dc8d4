"""Command-line interface for taskloom."""
