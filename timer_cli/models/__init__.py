"""Domain models for the application"""
from .timer import TimerState, AlertAction, TimerRecord, TimerRecordCreate, TimerRecordUpdate
from .history import TimerOutcome, HistoryEntry, HistoryEntryCreate

__all__ = [
    'TimerState', 'AlertAction',
    'TimerRecord', 'TimerRecordCreate', 'TimerRecordUpdate',
    'TimerOutcome', 'HistoryEntry', 'HistoryEntryCreate',
]
