"""Timer record domain model"""
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, model_validator


class TimerState(str, Enum):
    """Timer lifecycle state"""
    RUNNING = "running"
    ALERTING = "alerting"
    TERMINATED = "terminated"


class AlertAction(str, Enum):
    """User response to an expiry alert"""
    STOP = "stop"
    SNOOZE = "snooze"
    RESTART = "restart"


class TimerRecordBase(BaseModel):
    """Base timer fields"""
    duration_seconds: float = Field(gt=0)  # Original span, reused on restart
    duration_text: str  # As typed by the user
    message: Optional[str] = None
    foreground: bool = False

    @property
    def duration(self) -> timedelta:
        return timedelta(seconds=self.duration_seconds)


class TimerRecordCreate(TimerRecordBase):
    """Timer creation model (id is allocated by the store)"""
    owner_pid: int
    owner_token: str
    created_at: datetime
    expires_at: datetime
    state: TimerState = TimerState.RUNNING

    @model_validator(mode="after")
    def check_expiry(self) -> "TimerRecordCreate":
        if self.expires_at < self.created_at:
            raise ValueError("expires_at must not be before created_at")
        return self


class TimerRecordUpdate(BaseModel):
    """Owner-side timer update - all fields optional"""
    expires_at: Optional[datetime] = None
    state: Optional[TimerState] = None
    owner_pid: Optional[int] = None


class TimerRecord(TimerRecordBase):
    """Complete timer record from database"""
    id: int
    owner_pid: int
    owner_token: str
    state: TimerState
    created_at: datetime
    expires_at: datetime
    updated_at: datetime
    cancel_requested_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    def remaining(self, now: datetime) -> timedelta:
        """Time left until expiry, never negative"""
        return max(self.expires_at - now, timedelta(0))

    def is_cancel_requested(self) -> bool:
        return self.cancel_requested_at is not None
