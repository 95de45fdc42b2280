from datetime import datetime, timezone


def now_ts() -> int:
    return int(datetime.now(tz=timezone.utc).timestamp())


def now_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat(timespec="seconds")
