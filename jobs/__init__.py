"""Background tasks (dramatiq)."""
