"""SQLAlchemy (SQLite by default) implementations."""
