import logging
from rich.logging import RichHandler
from .config import LOG_FILENAME

def setup_logger(level=logging.INFO, filename=LOG_FILENAME):
    """Sets up logging with RichHandler and file output, controlling library verbosity."""
    log_format = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"

    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers to prevent duplication if called again
    if logger.hasHandlers():
        logger.handlers.clear()

    # --- Handlers ---
    file_handler = logging.FileHandler(filename)
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(log_format))
    logger.addHandler(file_handler)

    rich_handler = RichHandler(rich_tracebacks=True, markup=True, show_path=False)
    rich_handler.setLevel(level)
    logger.addHandler(rich_handler)

    logger.info(f"Logger configured: Level={logging.getLevelName(level)}, File='{filename}'")

    # --- Control Azure SDK / HTTP Logger Verbosity ---
    if level > logging.DEBUG:
        noisy_loggers = [
            'azure.identity',
            'azure.mgmt',
            'azure.core.pipeline.policies.http_logging_policy',
            'urllib3.connectionpool',
        ]
        for logger_name in noisy_loggers:
            logging.getLogger(logger_name).setLevel(logging.WARNING)
            logger.debug(f"Set level for {logger_name} to WARNING")
    else:
        logger.debug("Main log level is DEBUG, keeping Azure SDK loggers verbose.")

    return logger

def get_resource_name(resource_id: str) -> str:
    """Returns the last segment of an ARM resource id (the resource name)."""
    if not resource_id:
        return ''
    return resource_id.rstrip('/').split('/')[-1]

def format_amount(value: float) -> str:
    """Formats a cost or price to two decimals for display."""
    return f"{value:.2f}"
