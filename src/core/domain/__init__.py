"""Domain models and entities.

Why:
- Pure, strict data structures (Pydantic v2) for every directory payload.
- The domain knows nothing about HTTP, the CLI or the filesystem.
"""
