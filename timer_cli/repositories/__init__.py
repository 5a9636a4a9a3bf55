"""SQLite repositories"""
from .base import BaseRepository
from .timers import TimerRepository, next_free_id
from .history import HistoryRepository

__all__ = [
    'BaseRepository',
    'TimerRepository',
    'next_free_id',
    'HistoryRepository',
]
