import logging
from .constants import LOG_COLORS, LOG_FORMAT

class ColorFormatter(logging.Formatter):
    """
    Custom logging formatter that adds ANSI color codes to log level names.

    Console output from cascade building can get long on national-size datasets
    (hundreds of plants), so warnings about unresolved downstream references are
    easier to spot when colorized:
    - INFO: Green
    - WARNING: Yellow
    - ERROR/CRITICAL: Red
    - DEBUG: Blue

    Attributes:
        COLORS (dict): Mapping from log level names to ANSI escape codes.
        RESET (str): ANSI escape code to reset color formatting.

    Examples:
        >>> handler = logging.StreamHandler()
        >>> handler.setFormatter(ColorFormatter('%(levelname)s - %(message)s'))
        >>> logging.getLogger().addHandler(handler)
    """
    COLORS = LOG_COLORS

    RESET = '\033[0m'

    def format(self, record):
        """
        Formats a log record by adding color codes to the level name.

        The record is copied first so that other handlers attached to the same
        logger (e.g. a plain file handler) still see the uncolored level name.

        Args:
            record (logging.LogRecord): The log record to format.

        Returns:
            str: The formatted log message with colorized level name.
        """
        record = logging.makeLogRecord(record.__dict__)
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.RESET}"
        return super().format(record)

def get_log_handlers(log_file=None, fmt=LOG_FORMAT):
    """
    Builds the handlers used by configure_logging.

    The console handler colors level names. The file handler, if any, writes
    plain text so that log files stay free of ANSI escape codes.

    Args:
        log_file (str, optional): Path of a log file. Defaults to None.
        fmt (str, optional): Format string shared by all handlers.

    Returns:
        list: logging.Handler instances with their formatters set.
    """
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(ColorFormatter(fmt))
    handlers = [console_handler]

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(fmt))
        handlers.append(file_handler)

    return handlers

def configure_logging(level=logging.INFO, log_file=None, fmt=LOG_FORMAT):
    """
    Configures the logging system for hydrocascade with color-coded output.

    Should be called once at the start of a script, before building a cascade
    topology or a water-balance model, so that build diagnostics are visible.

    Args:
        level (int or str, optional): Logging level, either a logging module
            constant or its name ('DEBUG', 'info', ...). Use DEBUG to see
            per-step model construction messages. Defaults to logging.INFO.
        log_file (str, optional): Path to a file where logs should also be written.
            If None, logs only to console. Defaults to None.
        fmt (str, optional): Log format. Defaults to LOG_FORMAT, which includes
            the emitting module.

    Side Effects:
        Configures the root logger with handlers and formatters.

    Examples:
        >>> from hydrocascade import configure_logging
        >>> configure_logging(level='DEBUG', log_file='cascade_build.log')
    """
    if isinstance(level, str):
        level = level.upper()

    logging.basicConfig(
        level=level,
        handlers=get_log_handlers(log_file, fmt)
    )
