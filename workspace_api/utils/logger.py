from loguru import logger
import sys
import os

LOG_FORMAT = "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{extra[component]}</cyan> | <level>{message}</level>"

logger.remove()
logger.configure(extra={"component": "workspace_api"})
_sink_id = logger.add(
    sink=sys.stdout,
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format=LOG_FORMAT,
    colorize=True,
)
app_logger = logger


def set_level(level: str) -> None:
    global _sink_id
    logger.remove(_sink_id)
    _sink_id = logger.add(
        sink=sys.stdout, level=level.upper(), format=LOG_FORMAT, colorize=True
    )
