"""Display helpers for CLI tables and log lines."""


def truncate_output(text: str, max_length: int = 80) -> str:
    """
    Flatten text to one line and cut it to fit a table cell.

    Args:
        text: Text to truncate.
        max_length: Maximum allowed length, including the ellipsis.

    Returns:
        Text with whitespace runs collapsed, ending in "..." if it was cut.
    """
    flat = " ".join(text.split())
    if len(flat) <= max_length:
        return flat
    return flat[: max(0, max_length - 3)] + "..."


def format_error(error: BaseException) -> str:
    """Render an exception as ``Type: message``."""
    return f"{type(error).__name__}: {error}"
