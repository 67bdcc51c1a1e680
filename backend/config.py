import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./medreminder.db")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() in ("1", "true", "yes")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Foreground alarms: short interval, wider lookback to catch missed ticks.
ALARM_SWEEP_INTERVAL_SECONDS = float(os.getenv("ALARM_SWEEP_INTERVAL_SECONDS", "15"))
ALARM_LOOKBACK_MINUTES = float(os.getenv("ALARM_LOOKBACK_MINUTES", "5"))

# Background notifications
NOTIFICATION_SWEEP_INTERVAL_SECONDS = float(os.getenv("NOTIFICATION_SWEEP_INTERVAL_SECONDS", "60"))
NOTIFICATION_LOOKBACK_SECONDS = float(os.getenv("NOTIFICATION_LOOKBACK_SECONDS", "60"))
