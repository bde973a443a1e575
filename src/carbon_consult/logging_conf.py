import logging
import sys
import os
from typing import Optional

import colorama
from colorama import Fore, Style


class ColoredFormatter(logging.Formatter):
    """
    Formatter adding colors to log levels for console output.
    """
    def __init__(self, fmt: str, use_color: bool = True):
        super().__init__(fmt)
        self.use_color = use_color

        self.COLORS = {
            logging.DEBUG: Fore.BLUE,
            logging.INFO: Fore.GREEN,
            logging.WARNING: Fore.YELLOW,
            logging.ERROR: Fore.RED,
            logging.CRITICAL: Fore.RED + Style.BRIGHT,
        }

    def format(self, record: logging.LogRecord) -> str:
        if not self.use_color:
            return super().format(record)

        # Work on a copy: the same record also reaches the plain file handler
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelno, "")
        reset = Style.RESET_ALL
        record.levelname = f"{color}{record.levelname}{reset}"
        record.msg = f"{color}{record.getMessage()}{reset}"
        record.args = None
        return super().format(record)


def setup_logging(
    console_level: int = logging.INFO,
    file_path: Optional[str] = None,
    file_level: int = logging.DEBUG,
    no_color: bool = False
) -> logging.Logger:
    """
    Sets up the root logger with:
    - Console handler (colored by level, message only)
    - Optional File handler (clean text, detailed format)
    """
    colorama.init(autoreset=True)

    if os.environ.get("NO_COLOR"):
        no_color = True

    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG)  # Capture all, handlers filter

    # Avoid duplicate handlers on repeated setup
    if logger.hasHandlers():
        logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)

    is_tty = sys.stdout.isatty() if hasattr(sys.stdout, "isatty") else False
    use_color = is_tty and not no_color

    console_handler.setFormatter(ColoredFormatter("%(message)s", use_color=use_color))
    logger.addHandler(console_handler)

    if file_path:
        file_handler = logging.FileHandler(file_path, mode='w', encoding='utf-8')
        file_handler.setLevel(file_level)
        file_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        logger.addHandler(file_handler)

    # Third-party HTTP chatter stays out of the console
    for noisy in ("httpx", "openai", "urllib3", "matplotlib"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return logger
