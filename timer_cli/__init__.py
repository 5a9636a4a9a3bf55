"""Command-line countdown timers with background processes, alerts and history"""

__version__ = "1.0.0"
