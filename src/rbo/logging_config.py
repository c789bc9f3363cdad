"""JSON log files: app.log and errors.log at the root, intake.log for
import runs and remote.log for hosted store calls."""
from __future__ import annotations

import json
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def _handler(path: Path, level: int) -> RotatingFileHandler:
    fh = RotatingFileHandler(path, maxBytes=2_000_000, backupCount=5, encoding="utf-8")
    fh.setFormatter(JsonFormatter(datefmt="%Y-%m-%d %H:%M:%S"))
    fh.setLevel(level)
    return fh


def setup_logging(logs_dir: Path, level: int = logging.INFO) -> None:
    logs_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(level)
    if root.handlers:
        return

    root.addHandler(_handler(logs_dir / "app.log", logging.INFO))
    root.addHandler(_handler(logs_dir / "errors.log", logging.ERROR))

    # import trail: parse results and reconcile outcomes
    intake_handler = _handler(logs_dir / "intake.log", logging.INFO)
    logging.getLogger("rbo.intake").addHandler(intake_handler)
    logging.getLogger("rbo.intake").setLevel(logging.INFO)

    # hosted store calls
    remote_handler = _handler(logs_dir / "remote.log", logging.INFO)
    logging.getLogger("rbo.remote").addHandler(remote_handler)
    logging.getLogger("rbo.remote").setLevel(logging.INFO)
