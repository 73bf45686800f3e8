from __future__ import annotations

from datetime import time


def format_duration(seconds: int) -> str:
    if seconds <= 0:
        return "now"
    hours, remainder = divmod(seconds, 3600)
    minutes = remainder // 60
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def format_time(value: time) -> str:
    return value.strftime("%H:%M")


def progress_bar(filled: int, total: int, width: int) -> str:
    if total == 0:
        return "░" * width
    ratio = min(filled / total, 1.0)
    filled_count = round(ratio * width)
    return "█" * filled_count + "░" * (width - filled_count)


def format_pages(pages: float) -> str:
    if pages == int(pages):
        return str(int(pages))
    return f"{pages:.1f}"
