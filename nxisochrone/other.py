"""Console logging for the package."""
import logging


logger = logging.getLogger("nxisochrone")
handler = logging.StreamHandler()
handler.setFormatter(logging.Formatter('%(levelname)s - %(message)s'))
logger.addHandler(handler)
logger.setLevel(logging.INFO)


def set_log_level(level):
    """
    Change the verbosity of the package logger.

    Parameters
    ----------
    level : int or str
        Logging level, e.g. ``logging.DEBUG`` or ``"WARNING"``.
    """
    if isinstance(level, str):
        level = level.upper()
    logger.setLevel(level)
