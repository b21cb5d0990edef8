"""
Logging client configuration for the relay service.

Console output is always enabled; records are also shipped to a centralized
log collector when LOGGING_HOST is set.
"""
import logging
import logging.handlers
import os

# Third-party loggers to silence (set to WARNING level)
NOISY_LOGGERS = ("httpx", "httpcore", "asyncio", "uvicorn.access")

_factory_installed = False


def _install_record_factory(service_name: str) -> None:
    """Stamp every log record with the service name (installed once)."""
    global _factory_installed
    if _factory_installed:
        return

    old_factory = logging.getLogRecordFactory()

    def record_factory(*args, **kwargs):
        record = old_factory(*args, **kwargs)
        record.service = service_name
        return record

    logging.setLogRecordFactory(record_factory)
    _factory_installed = True


def setup_logger(service_name: str, logger_name: str = "zoom_relay", level: str = "INFO") -> logging.Logger:
    """
    Setup the package logger.

    Modules log through logging.getLogger(__name__), so configuring the
    package logger covers the whole service.

    Args:
        service_name: Name stamped on each record (e.g. 'zoom-relay')
        logger_name: Logger to configure (defaults to the package logger)
        level: Minimum level for the package logger

    Returns:
        Configured logger
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Remove existing handlers
    logger.handlers = []
    logger.propagate = False

    _install_record_factory(service_name)

    # Ship to logging service when configured
    log_host = os.getenv("LOGGING_HOST")
    if log_host:
        log_port = int(os.getenv("LOGGING_PORT", 9999))
        logger.addHandler(logging.handlers.SocketHandler(log_host, log_port))

    console_handler = logging.StreamHandler()
    console_formatter = logging.Formatter(
        '%(asctime)s - [%(service)s] - %(levelname)s - %(message)s'
    )
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger
