"""
Configure the logger

Every module logs through the `variants` logger. Pillow and botocore are
chatty at DEBUG (plugin discovery, request signing), so they stay at
WARNING, or LOG_LEVEL when that is higher.
"""

import logging
from core.config import get_settings

NOISY_LOGGERS = ("PIL", "botocore", "boto3", "s3transfer", "urllib3")

_level = logging.getLevelName(get_settings().LOG_LEVEL)

logging.basicConfig(
    level=_level,
    format="%(asctime)s - %(name)s - %(levelname)s - [%(module)s] %(message)s"
)
for _name in NOISY_LOGGERS:
    logging.getLogger(_name).setLevel(max(logging.WARNING, _level))

logger = logging.getLogger("variants")
