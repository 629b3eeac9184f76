# --- cakeshop/utils/api.py ---
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column is stored in."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _envelope(status, message, data):
    if data is not None and not isinstance(data, dict):
        data = {"items": data}
    return {
        "status": status,
        "message": message,
        "data": {
            **(data or {}),
            "api_time": utcnow().strftime("%Y-%m-%d %H:%M:%S"),
        },
    }


def api_ok(message, data=None):
    return _envelope(True, message, data)


def api_error(message, data=None):
    return _envelope(False, message, data)


def parse_iso8601(s):
    """Parse an ISO-8601 string into naive UTC; None for blank or invalid input."""
    if not s:
        return None
    s = str(s).strip()
    # support trailing 'Z' (UTC)
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        return None
    if dt.tzinfo:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt
