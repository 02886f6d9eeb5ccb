"""
Database package for the Kata typing trainer.
This package contains all statistics-store functionality.
"""
from .database_manager import ConnectionType, DatabaseManager

__all__ = ["ConnectionType", "DatabaseManager"]
