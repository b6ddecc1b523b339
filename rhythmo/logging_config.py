"""Logger setup for the Rhythmo process.

Console output always; a rotating file unless structured (JSON) logging is on.
"""
import json
import logging
import time
from logging.handlers import RotatingFileHandler
from typing import Any, Dict


class JsonFormatter(logging.Formatter):
    def format(self, record):
        base = {
            "ts": time.strftime('%Y-%m-%dT%H:%M:%S', time.gmtime(record.created)),
            "lvl": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            base["exc"] = self.formatException(record.exc_info)
        return json.dumps(base, ensure_ascii=False)


def setup_logging(config: Dict[str, Any]) -> logging.Logger:
    logger = logging.getLogger("Rhythmo")
    if logger.handlers:
        return logger
    structured = bool(config.get("structured_logging"))
    trace_on = bool(config.get("trace_logging"))
    if structured:
        fmt_console = JsonFormatter()
    else:
        fmt_console = logging.Formatter("%(asctime)s:%(levelname)s:%(name)s: %(message)s")
    logger.setLevel(logging.DEBUG if trace_on else logging.INFO)
    ch = logging.StreamHandler(); ch.setFormatter(fmt_console); logger.addHandler(ch)
    log_file = config.get("log_file")
    if not structured and log_file:
        fh = RotatingFileHandler(log_file, maxBytes=5_000_000, backupCount=3, encoding="utf-8")
        fh.setFormatter(fmt_console); logger.addHandler(fh)
    # discord.py logs under its own namespace; keep it quieter than ours
    logging.getLogger("discord").setLevel(logging.INFO if trace_on else logging.WARNING)
    logger.info("Logger initialized (structured=%s trace=%s)", structured, trace_on)
    return logger
