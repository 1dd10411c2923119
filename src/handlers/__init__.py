"""Lambda entry points and their shared dependencies."""
