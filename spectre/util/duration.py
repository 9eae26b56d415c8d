"""Duration parsing and formatting helpers for CLI arguments and labels."""

from __future__ import annotations

import argparse
from typing import Any, Optional


def parse_duration_to_seconds(raw: Optional[Any]) -> Optional[float]:
    """Parse strings like '30', '500ms', '10m', '2h', returning seconds as float."""

    if raw is None:
        return None
    if isinstance(raw, (int, float)):
        return float(raw)
    text = str(raw).strip().lower()
    if not text:
        return None
    if text.endswith("ms"):
        unit = "ms"
        value_part = text[:-2]
    elif text[-1].isalpha():
        unit = text[-1]
        value_part = text[:-1]
    else:
        unit = "s"
        value_part = text
    try:
        value = float(value_part)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid duration '{raw}'") from exc
    multipliers = {
        "ms": 0.001,
        "s": 1.0,
        "m": 60.0,
        "h": 3600.0,
        "d": 86400.0,
    }
    if unit not in multipliers:
        raise argparse.ArgumentTypeError(f"Unsupported duration suffix '{unit}'")
    return value * multipliers[unit]


def format_duration(seconds: float) -> str:
    """Render an elapsed time compactly, e.g. 0s, 45s, 2m5s, 1h0m30s."""

    total_ms = int(round(max(seconds, 0.0) * 1000))
    hours, rem = divmod(total_ms, 3_600_000)
    minutes, rem = divmod(rem, 60_000)
    secs, millis = divmod(rem, 1000)
    sec_text = f"{secs}.{millis:03d}".rstrip("0").rstrip(".") if millis else str(secs)
    if hours:
        return f"{hours}h{minutes}m{sec_text}s"
    if minutes:
        return f"{minutes}m{sec_text}s"
    return f"{sec_text}s"
