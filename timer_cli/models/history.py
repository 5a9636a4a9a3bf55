"""History entry domain model"""
from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel


class TimerOutcome(str, Enum):
    """How a timer reached its terminal state"""
    COMPLETED = "completed"  # Expired, then dismissed (or killed while alerting)
    STOPPED_EARLY = "stopped_early"  # Killed before expiry


class HistoryEntryBase(BaseModel):
    """Base history fields"""
    timestamp: datetime
    duration_seconds: float
    duration_text: str
    message: Optional[str] = None
    foreground: bool = False
    outcome: TimerOutcome


class HistoryEntryCreate(HistoryEntryBase):
    """History entry creation model"""
    pass


class HistoryEntry(HistoryEntryBase):
    """Complete history entry from database"""
    id: int

    class Config:
        from_attributes = True
