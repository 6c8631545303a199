from __future__ import annotations

from datetime import datetime, timedelta, timezone

MAX_UPLOAD_BYTES = 10 * 1024 * 1024


def make_pdf(body: bytes = b"hello") -> bytes:
    return b"%PDF-1.7\n" + body + b"\n%%EOF"


class StepClock:
    """Returns strictly increasing UTC timestamps, one second apart."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        value = self.current
        self.current = value + timedelta(seconds=1)
        return value
