import logging
import sys


def setup_logging(level, loggers=("agecrypt",)):
    """Attach a stderr handler to the git-agecrypt loggers.

    stdout is never used: git reads the filtered content from it.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    for name in loggers:
        logger = logging.getLogger(name)
        logger.setLevel(level)
        logger.addHandler(handler)
    return handler
