import os
from dotenv import load_dotenv

load_dotenv(dotenv_path=".env")

# Storage
DB_PATH = os.getenv("TIMER_CLI_DB_PATH", "/tmp/timer_cli.db")

# Logging (detached timers have no terminal, so everything goes to a file)
LOG_PATH = os.getenv("TIMER_CLI_LOG_PATH", "/tmp/timer_cli.log")
LOG_LEVEL = os.getenv("TIMER_CLI_LOG_LEVEL", "INFO")

# Timer behaviour
SNOOZE_SECONDS = int(os.getenv("TIMER_CLI_SNOOZE_SECONDS", "300"))  # Default 5 minutes
POLL_INTERVAL = float(os.getenv("TIMER_CLI_POLL_INTERVAL", "0.25"))  # Cancellation check, seconds
REFRESH_INTERVAL = float(os.getenv("TIMER_CLI_REFRESH_INTERVAL", "0.5"))  # Active view poll, seconds
KILL_GRACE_SECONDS = float(os.getenv("TIMER_CLI_KILL_GRACE_SECONDS", "3"))
HISTORY_COUNT = int(os.getenv("TIMER_CLI_HISTORY_COUNT", "20"))

# Alert
SOUND_PATH = os.getenv("TIMER_CLI_SOUND_PATH")  # None -> platform alarm sound
DEFAULT_MESSAGE = os.getenv("TIMER_CLI_DEFAULT_MESSAGE", "Time's up!")
