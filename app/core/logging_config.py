import logging
import sys
import os
from typing import Optional

DEFAULT_FORMAT = (
    '%(asctime)s │ %(name)-28s │ %(levelname)-8s │ '
    '[%(filename)s:%(lineno)d] │ %(message)s'
)

# ANSI color codes
LEVEL_COLORS = {
    'DEBUG': '\033[36m',      # Cyan
    'INFO': '\033[32m',       # Green
    'WARNING': '\033[33m',    # Yellow
    'ERROR': '\033[1;91m',    # Bright Red Bold
    'CRITICAL': '\033[1;95m', # Bright Magenta Bold
}
NAME_COLOR = '\033[94m'
RESET = '\033[0m'


def colors_enabled(requested: bool = True) -> bool:
    """NO_COLOR and FORCE_COLOR win over the terminal check"""
    if not requested:
        return False
    if os.environ.get('NO_COLOR', '').lower() in ('1', 'true', 'yes'):
        return False
    if os.environ.get('FORCE_COLOR', '').lower() in ('1', 'true', 'yes'):
        return True
    if os.environ.get('TERM') == 'dumb':
        return False
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


class ColoredFormatter(logging.Formatter):
    """Colors the level name, logger name and message of each record"""

    def __init__(self, format_string: str = DEFAULT_FORMAT, use_colors: bool = True):
        super().__init__(format_string)
        self.use_colors = colors_enabled(use_colors)
        self._level_formatters = {}
        if self.use_colors:
            for level, color in LEVEL_COLORS.items():
                colored = (
                    format_string
                    .replace('%(levelname)s', f'{color}%(levelname)s{RESET}')
                    .replace('%(levelname)-8s', f'{color}%(levelname)-8s{RESET}')
                    .replace('%(name)s', f'{NAME_COLOR}%(name)s{RESET}')
                    .replace('%(name)-28s', f'{NAME_COLOR}%(name)-28s{RESET}')
                    .replace('%(message)s', f'{color}%(message)s{RESET}')
                )
                self._level_formatters[level] = logging.Formatter(colored)

    def format(self, record):
        formatter = self._level_formatters.get(record.levelname)
        if formatter is None:
            return super().format(record)
        return formatter.format(record)


def setup_logging(
    log_level: Optional[str] = None,
    format_string: Optional[str] = None,
    force_configure: bool = False,
    use_colors: bool = True
) -> None:
    """
    Configure the root logger with one colored stdout handler.

    Level comes from LOG_LEVEL unless given. Existing handlers are kept unless
    ``force_configure`` is set or there are none yet.
    """
    root_logger = logging.getLogger()
    if root_logger.handlers and not force_configure:
        return

    log_level = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
    numeric_level = getattr(logging, log_level, logging.INFO)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.setLevel(numeric_level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(ColoredFormatter(format_string or DEFAULT_FORMAT, use_colors=use_colors))
    root_logger.addHandler(console_handler)

    # SQL echo stays off unless asked for explicitly
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    root_logger.debug(f"Logging configured with level {log_level} (numeric: {numeric_level})")


def get_logger(name: str) -> logging.Logger:
    """Module logger; records propagate to the root handler"""
    logger = logging.getLogger(name)
    logger.handlers = []
    logger.propagate = True
    return logger
