from datetime import datetime, timezone
from pathlib import Path

from config import settings


# Appends a timestamped one-line entry to the audit log file.
def write_event(event: str, details: dict):
    """
    Append a one-line audit entry.
    Example line:
    2025-10-22T12:34:56.789123 | ANALYSIS_CREATED | id=5f0c... ; type=action_fixes ; chars=1834
    """
    ts = datetime.now(timezone.utc).replace(tzinfo=None).isoformat()
    parts = [f"{k}={str(v)[:200]}" for k, v in (details or {}).items()]
    line = f"{ts} | {event} | " + " ; ".join(parts)
    with Path(settings.AUDIT_LOG_PATH).open("a", encoding="utf-8") as f:
        f.write(line + "\n")
