"""Database module."""

from db.cosmos_session import close_cosmos, get_container, get_database

__all__ = ["get_container", "get_database", "close_cosmos"]
