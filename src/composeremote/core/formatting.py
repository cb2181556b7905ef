"""Size parsing and formatting helpers."""

import re


_UNITS = {
    "": 1,
    "B": 1,
    "KB": 1000,
    "MB": 1000**2,
    "GB": 1000**3,
    "TB": 1000**4,
    "KIB": 1024,
    "MIB": 1024**2,
    "GIB": 1024**3,
    "TIB": 1024**4,
}

_SIZE_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([A-Za-z]*)\s*$")


def parse_size(text: str) -> int:
    """Parse a human-readable size into bytes.

    Accepts plain byte counts and decimal (KB, MB, GB, TB) or binary
    (KiB, MiB, GiB, TiB) units, case-insensitively.

    Args:
        text: Size such as "512MB", "2GiB" or "1048576".

    Returns:
        Size in bytes.

    Raises:
        ValueError: If text is not a valid size.
    """
    match = _SIZE_RE.match(text)
    if match is None:
        raise ValueError(f"invalid size: {text!r}")
    number, unit = match.groups()
    try:
        multiplier = _UNITS[unit.upper()]
    except KeyError:
        raise ValueError(f"unknown size unit in {text!r}") from None
    return int(float(number) * multiplier)


def format_size(size_bytes: int) -> str:
    """Format size in bytes to human-readable format."""
    size = float(size_bytes)
    for unit in ["B", "KB", "MB", "GB"]:
        if size < 1024.0:
            return f"{size:.1f} {unit}"
        size /= 1024.0
    return f"{size:.1f} TB"
