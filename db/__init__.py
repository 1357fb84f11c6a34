"""Database package for the lead engine."""
from db.connection import dispose_engine, get_db, get_engine

__all__ = ["get_engine", "get_db", "dispose_engine"]
