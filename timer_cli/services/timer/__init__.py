"""Timer lifecycle and cross-process coordination"""
from .control import ControlChannel
from .timer_process import TimerProcess, WaitResult
from .timer_manager import TimerManager, KillResult, KillStatus, ActiveListing
from .monitor import ActiveViewMonitor

__all__ = [
    'ControlChannel',
    'TimerProcess', 'WaitResult',
    'TimerManager', 'KillResult', 'KillStatus', 'ActiveListing',
    'ActiveViewMonitor',
]
