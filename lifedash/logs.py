import logging
import os

logger = logging.getLogger('lifedash')


def configure_logging():
    level_name = os.getenv('LOG_LEVEL', 'INFO').upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    )


def log_event(level: int, message: str, **data):
    """Lightweight structured logging helper."""
    serialized = ' | '.join(f'{k}={v}' for k, v in data.items())
    logger.log(level, f"{message}{' | ' + serialized if serialized else ''}")
