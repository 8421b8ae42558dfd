import logging

from swiftstock.config import settings


def init_log(log_name: str = 'swiftstock') -> logging.Logger:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format='%(asctime)s - %(levelname)s - [%(name)s] %(message)s',
    )

    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)
    logging.getLogger('multipart').setLevel(logging.WARNING)

    return logging.getLogger(log_name)
