"""User store API: transactional SQLite user CRUD behind a FastAPI server."""

__version__ = "1.0.0"
