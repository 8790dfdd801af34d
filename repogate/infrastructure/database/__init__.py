"""Database infrastructure module."""
from .connection import DatabaseConnection
from .unit_of_work import UnitOfWork
from .store import SqlAlchemyAuthorizationStore

__all__ = [
    'DatabaseConnection',
    'UnitOfWork',
    'SqlAlchemyAuthorizationStore'
]
