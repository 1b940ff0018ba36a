# logger_utils.py -  for logging messages and timing metrics, plus the session observer

import time
import os
from datetime import datetime
from typing import Any, Dict, Optional

from colorama import Fore, Style, init

init()

# Directory where log files are stored (created on first write)
LOG_DIR = os.environ.get("NEXT_WORD_LOG_DIR", "logs")

# Path to the default log file, can be overriden
DEFAULT_LOG_PATH = os.path.join(LOG_DIR, "predictor.log")


class Log:
    """Lightweight logger for writing messages and tracking metrics."""
    COLORS = {
        "DEBUG": Style.DIM,
        "INFO": Fore.BLUE,
        "WARNING": Fore.YELLOW,
        "ERROR": Fore.RED,
    }

    def __init__(self, path: Optional[str] = None, use_color: bool = True, echo: bool = True):
        self.path = path or DEFAULT_LOG_PATH
        self.use_color = use_color
        self.echo = echo
        self.file_error: Optional[OSError] = None

    def write(self, level: str, msg: str) -> str:
        """
        Append a log message to the log file with a timestamp.
        Each entry is written as: [YYYY-MM-DD HH:MM:SS] LEVEL   | message
        """
        ts = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        line = f"[{ts}] {level:<7} | {msg}"

        try:
            os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError as e:
            # log file unusable, keep going on the console only
            self.file_error = e

        if self.echo:
            if self.use_color and level in self.COLORS:
                print(f"{self.COLORS[level]}{line}{Style.RESET_ALL}")
            else:
                print(line)
        return line

    # Public logging methods
    def debug(self, msg: str) -> str:
        return self.write("DEBUG", msg)

    def info(self, msg: str) -> str:
        return self.write("INFO", msg)

    def warning(self, msg: str) -> str:
        return self.write("WARNING", msg)

    def error(self, msg: str) -> str:
        return self.write("ERROR", msg)

    def metric(self, tag: str, value: Any, unit: str = "") -> str:
        """
        Record a metric (timing, counts...).
        Example: [2024-05-01 12:45:02] INFO    | train done: 0.123s
        """
        return self.info(f"{tag}: {value}{unit}")

    def time_block(self, label: str) -> "_Timer":
        """
        Helper for measuring execution time of a code block.
        To use:
            with log.time_block("pretrain"):
                do_some_work()
        """
        return _Timer(self, label)


class _Timer:
    """Context manager used internally to measure time for a code block."""
    def __init__(self, log: Log, label: str):
        self.log = log
        self.label = label
        self.start = time.perf_counter()
        self.elapsed = 0.0

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.elapsed = round(time.perf_counter() - self.start, 3)
        self.log.metric(f"{self.label} done", self.elapsed, "s")


class LogObserver:
    """
    Turns session events into log lines. Successful phases are INFO
    (predict is DEBUG); failures are WARNING.
    """

    def __init__(self, log: Optional[Log] = None):
        self.log = log or Log()

    def on_event(self, phase: str, details: Dict[str, Any]) -> None:
        extra = ", ".join(f"{k}={v}" for k, v in details.items() if k not in ("ok", "error", "kind"))
        if not details.get("ok", True):
            kind = details.get("kind")
            kind = getattr(kind, "value", kind)
            self.log.warning(f"[Session] {phase} failed ({kind}): {details.get('error', '')}")
            return
        msg = f"[Session] {phase}" + (f": {extra}" if extra else "")
        if phase == "predict":
            self.log.debug(msg)
        else:
            self.log.info(msg)
