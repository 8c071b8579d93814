"""Application configuration"""

import logging
from dotenv import load_dotenv

from .loader import load_raw_config
from .pagination import Pagination
from .transport import Transport
from .validation import Validation

load_dotenv()

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s]: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logging.basicConfig(format=LOG_FORMAT, datefmt=DATE_FORMAT, level=logging.INFO)
logging.getLogger("httpx").setLevel(logging.WARNING)

_RAW_CONFIG = load_raw_config()

pagination = Pagination(_RAW_CONFIG)
transport = Transport(_RAW_CONFIG)
validation = Validation(_RAW_CONFIG)


class Config:
    pagination = pagination
    transport = transport
    validation = validation


__all__ = ["pagination", "transport", "validation", "Config"]
