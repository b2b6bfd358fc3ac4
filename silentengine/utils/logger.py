# =============================================================================
# silentengine/utils/logger.py — Process logger with structured extras
# =============================================================================
# Usage: logger.info("llm_used", extra={"provider": "groq", "latency_ms": 12.3})
# Extra fields are appended to the line as JSON.
# =============================================================================

import json
import logging
import sys

LOGGER_NAME = "silentengine"

# Attributes every LogRecord carries; anything else came in through extra=
_RESERVED = set(logging.LogRecord("", 0, "", 0, "", None, None).__dict__) | {"message", "asctime"}


class ExtraFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = {k: v for k, v in record.__dict__.items() if k not in _RESERVED}
        if extras:
            line = f"{line} {json.dumps(extras, default=str)}"
        return line


def setup_logging(level: str | int = logging.INFO) -> logging.Logger:
    log = logging.getLogger(LOGGER_NAME)
    if not log.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(ExtraFormatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        log.addHandler(handler)
    log.setLevel(level)
    return log


logger = setup_logging()
