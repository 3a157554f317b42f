"""
Logging utilities for the offline worker.

Reads the [logging] config section:

    [logging]
    level = "INFO"
    format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    console = true
    file = "logs/worker.log"
    file-level = "DEBUG"
    rotate = true
    rotate-backups = 7

    [logging.logger."internal.worker"]
    level = "DEBUG"
"""

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
NOISY_LOGGERS = ("httpx", "httpcore")
"""Third-party loggers that log every request at INFO"""


def getLogLevelByStr(levelStr: str, default: Optional[int] = None) -> Optional[int]:
    """Get log level by name ("debug", "INFO", ...), or default if the name is unknown."""
    level = logging.getLevelName(levelStr.upper())
    if isinstance(level, int):
        return level

    logger.error(f"Invalid log level name: {levelStr!r}")
    return default


def _levelOption(config: Dict[str, Any], key: str, fallback: int) -> int:
    if key not in config:
        return fallback
    level = getLogLevelByStr(config[key], fallback)
    return fallback if level is None else level


def _openLogFile(config: Dict[str, Any]) -> logging.Handler:
    logPath = Path(config["file"])
    logPath.parent.mkdir(parents=True, exist_ok=True)

    if not config.get("rotate", False):
        return logging.FileHandler(logPath, encoding="utf-8")
    return TimedRotatingFileHandler(
        filename=logPath,
        when="midnight",
        backupCount=int(config.get("rotate-backups", 7)),
        encoding="utf-8",
    )


def buildHandlers(name: str, config: Dict[str, Any], baseLevel: int) -> List[logging.Handler]:
    """
    Create the console and file handlers a logger section asks for.

    A file that can't be opened is logged and left out.
    """
    handlers: List[logging.Handler] = []

    if config.get("console", False):
        consoleHandler = logging.StreamHandler()
        consoleHandler.setLevel(_levelOption(config, "console-level", baseLevel))
        handlers.append(consoleHandler)
        logger.info(f"Logging {name} to console, level {logging.getLevelName(consoleHandler.level)}")

    if "file" in config:
        try:
            fileHandler = _openLogFile(config)
        except OSError as e:
            logger.error(f"Can't log {name} to {config['file']}: {e}")
        else:
            fileHandler.setLevel(_levelOption(config, "file-level", baseLevel))
            handlers.append(fileHandler)
            logger.info(f"Logging {name} to {config['file']}, level {logging.getLevelName(fileHandler.level)}")

    formatter = logging.Formatter(config.get("format", DEFAULT_LOG_FORMAT))
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def configureLogger(localLogger: logging.Logger, config: Dict[str, Any]) -> None:
    """Apply one logger section: level, propagation and a fresh set of handlers."""
    if "level" in config:
        level = getLogLevelByStr(config["level"])
        if level is not None:
            localLogger.setLevel(level)
    if "propagate" in config:
        localLogger.propagate = bool(config["propagate"])

    # Replace, never stack, handlers on reconfiguration
    for oldHandler in list(localLogger.handlers):
        localLogger.removeHandler(oldHandler)
        oldHandler.close()

    for handler in buildHandlers(localLogger.name, config, localLogger.getEffectiveLevel()):
        localLogger.addHandler(handler)


def initLogging(config: Dict[str, Any]) -> None:
    """
    Configure the root logger from the [logging] section, then each
    [logging.logger."<name>"] override.
    """
    rootLogger = logging.getLogger()
    rootLogger.setLevel(logging.INFO)
    configureLogger(rootLogger, config)

    rootLevel = rootLogger.getEffectiveLevel()
    if rootLevel < logging.WARNING:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    for loggerName, loggerConfig in config.get("logger", {}).items():
        logger.debug(f"Configuring logger {loggerName!r}: {loggerConfig}")
        configureLogger(logging.getLogger(loggerName), loggerConfig)

    logger.info(f"Logging configured, root level {logging.getLevelName(rootLevel)}, dood!")
