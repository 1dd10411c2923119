"""Database access: schema, engine and query helpers."""
