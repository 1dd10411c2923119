"""Business logic services used by handlers.

Services are imported lazily by handlers so that cold starts for routes that
never touch Bedrock or the database stay cheap.
"""

# Do NOT import services here - use lazy loading in handlers instead
