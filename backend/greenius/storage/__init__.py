"""Storage module - provides interface and implementations for data persistence."""

from .interface import StorageInterface
from .local_storage import LocalStorage
from .state import StatePersistence, STATE_VERSION, migrate

__all__ = ['StorageInterface', 'LocalStorage', 'StatePersistence', 'STATE_VERSION', 'migrate']
