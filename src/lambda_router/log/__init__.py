from lambda_router.log.levels import LogLevel
from lambda_router.log.logger import ConsoleLogger, Logger

__all__ = [
    "ConsoleLogger",
    "Logger",
    "LogLevel",
]
