"""Built-in timestamp() function for getting current time."""

from datetime import datetime

from . import Functions


@Functions.register("timestamp")
def timestamp_function(format: str | None = None) -> str:
    """Get the current timestamp.

    Usage:
        {{timestamp}}  # outputs current datetime in ISO format
        {{timestamp("%Y-%m-%d")}}

    Args:
        format: strftime format string (default: ISO format)

    Returns:
        Formatted timestamp
    """
    now = datetime.now()
    if format is None:
        return now.isoformat()
    return now.strftime(format)
