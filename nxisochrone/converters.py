"""Unit conversions shared by the loaders and the synthesizer."""
import math
import time


def parse_time_to_seconds(time_str: str) -> int:
    """
    Converts a GTFS time string to the number of seconds since midnight.

    Hours may exceed 24 for trips that run past midnight of the service day.

    Raises
    ------
    ValueError
        If the string is not in ``H:MM:SS`` / ``HH:MM:SS`` format.
    """
    if not isinstance(time_str, str):
        raise ValueError(f"Invalid time format or value: {time_str!r} is not a string.")

    parts = time_str.strip().split(':')
    if len(parts) != 3:
        raise ValueError(f"Invalid time format or value: {time_str!r} is not 'HH:MM:SS'.")

    try:
        h, m, s = map(int, parts)
    except ValueError:
        raise ValueError(f"Invalid time format or value: {time_str!r}") from None

    # Allowed hours up to 48 to account for trips after midnight
    if not (0 <= h < 48 and 0 <= m < 60 and 0 <= s < 60):
        raise ValueError(
            f"Invalid time format or value: {time_str!r} "
            "(hours must be in 0-47, minutes and seconds in 0-59)."
        )

    return h * 3600 + m * 60 + s


def parse_seconds_to_time(seconds: int) -> str:
    """Converts the number of seconds since midnight to a time string."""
    return time.strftime('%H:%M:%S', time.gmtime(seconds))


def round_half_up(value: float) -> int:
    """Rounds to the nearest integer, halves away from zero for positive values."""
    return int(math.floor(value + 0.5))


def walking_time_seconds(distance_m: float, walking_speed: float) -> int:
    """Walking time in whole seconds for a distance in meters at a speed in m/s."""
    if walking_speed <= 0:
        raise ValueError("Walking speed must be positive.")
    return round_half_up(distance_m / walking_speed)
