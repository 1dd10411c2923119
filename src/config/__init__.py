"""Runtime configuration for the Lambda handlers."""
