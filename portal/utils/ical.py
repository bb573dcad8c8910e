from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from portal.utils.dates import utcnow

PRODID = "-//Academy Portal//Calendar//EN"
LINE_LIMIT = 75


def escape_text(value: Optional[str]) -> str:
    """Escape a TEXT property value for iCalendar."""
    if not value:
        return ""
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def fold_line(line: str, limit: int = LINE_LIMIT) -> str:
    """
    Fold a content line so no physical line exceeds `limit` octets.

    Continuation lines start with a single space, which counts towards the
    limit. Multi-byte UTF-8 characters are never split.
    """
    if len(line.encode("utf-8")) <= limit:
        return line
    chunks: List[str] = []
    current, size = "", 0
    for char in line:
        width = len(char.encode("utf-8"))
        budget = limit - 1 if chunks else limit
        if size + width > budget:
            chunks.append(current)
            current, size = "", 0
        current += char
        size += width
    chunks.append(current)
    return "\r\n ".join(chunks)


def format_utc(value: datetime) -> str:
    return value.strftime("%Y%m%dT%H%M%SZ")


def all_day_end(start: datetime, end: Optional[datetime]) -> datetime:
    """DTEND for a date-valued event is exclusive: at least the day after the start."""
    if end is None or end.date() <= start.date():
        return start + timedelta(days=1)
    return end


def build_calendar(events: Iterable, domain: str = "academy-portal") -> str:
    """Serialize events to an iCalendar document with CRLF line endings."""
    lines: List[str] = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODID}",
        "CALSCALE:GREGORIAN",
    ]
    stamp = format_utc(utcnow())
    for event in events:
        lines.append("BEGIN:VEVENT")
        lines.append(f"UID:event-{event.id}@{domain}")
        lines.append(f"DTSTAMP:{stamp}")
        if event.all_day:
            lines.append(f"DTSTART;VALUE=DATE:{event.start_time:%Y%m%d}")
            lines.append(f"DTEND;VALUE=DATE:{all_day_end(event.start_time, event.end_time):%Y%m%d}")
        else:
            lines.append(f"DTSTART:{format_utc(event.start_time)}")
            lines.append(f"DTEND:{format_utc(event.end_time or event.start_time)}")
        lines.append(f"SUMMARY:{escape_text(event.title)}")
        if event.description:
            lines.append(f"DESCRIPTION:{escape_text(event.description)}")
        if event.location:
            lines.append(f"LOCATION:{escape_text(event.location)}")
        lines.append(f"CATEGORIES:{escape_text(event.event_type)}")
        lines.append("END:VEVENT")
    lines.append("END:VCALENDAR")
    return "\r\n".join(fold_line(line) for line in lines) + "\r\n"
