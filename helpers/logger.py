import logging, os, sys, colorama
from typing import Optional
from colorama import Fore, Style
from helpers.constants import *


colorama.init(autoreset=True)

SUCCESS = 25
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ColoredFormatter(logging.Formatter):
    LEVEL_COLORS = {
        logging.DEBUG: Fore.BLUE,
        logging.INFO: Fore.CYAN,
        SUCCESS: Fore.GREEN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.MAGENTA,
    }


    def format(self, record: logging.LogRecord) -> str:
        # Work on a copy, other handlers share the record
        record = logging.makeLogRecord(record.__dict__)
        color = self.LEVEL_COLORS.get(record.levelno, "")
        record.levelname = f"{color}{record.levelname.center(8)}{Style.RESET_ALL}"
        return super().format(record)


def file_handler(log_dir: str) -> logging.Handler:
    os.makedirs(log_dir, exist_ok=True)
    handler = logging.FileHandler(os.path.join(log_dir, log_file_name))
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s", DATE_FORMAT))
    return handler


def console_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ColoredFormatter(
        f"{Fore.CYAN}%(asctime)s{Style.RESET_ALL} - %(levelname)s - {Fore.WHITE}%(message)s{Style.RESET_ALL}",
        DATE_FORMAT,
    ))
    return handler


class Logger:
    """Colored console logger with a SUCCESS level.

    File output is opt-in: pass log_dir, or set UAM_LOG_DIR, to also write
    uam-bypass.log into that directory.
    """

    def __init__(self, name: str, level: int = logging.DEBUG, log_dir: Optional[str] = None) -> None:
        logging.addLevelName(SUCCESS, "SUCCESS")
        self.name = name
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)

        if self.logger.handlers:
            return

        log_dir = log_dir or os.environ.get(log_dir_env)
        if log_dir:
            self.logger.addHandler(file_handler(log_dir))
        self.logger.addHandler(console_handler())


    def debug(self, message: str) -> None:
        self.logger.debug(message)


    def info(self, message: str) -> None:
        self.logger.info(message)


    def success(self, message: str) -> None:
        self.logger.log(SUCCESS, message)


    def warning(self, message: str) -> None:
        self.logger.warning(message)


    def error(self, message: str) -> None:
        self.logger.error(message)
