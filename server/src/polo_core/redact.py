"""Helpers for keeping identifying material out of logs."""

MASK_LENGTH = 8


def mask(value: str | None, keep: int = MASK_LENGTH) -> str:
    """Return the first ``keep`` characters of ``value`` followed by an ellipsis."""
    if not value:
        return "<none>"
    if len(value) <= keep:
        return "*" * len(value)
    return f"{value[:keep]}..."
