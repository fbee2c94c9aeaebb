"""Adapters – concrete infrastructure backends (SQLAlchemy, Redis)."""
