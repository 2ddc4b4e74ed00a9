import json
import logging
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger("locus_core")


class JsonFormatter(logging.Formatter):
    def __init__(self, redact_content: bool = False):
        super().__init__()
        self._redact_content = redact_content

    def format(self, record: logging.LogRecord) -> str:
        msg = record.getMessage()
        if self._redact_content:
            msg = (msg or "")[:64]
        payload = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "name": record.name,
            "msg": msg,
        }
        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            payload.update(extra)
        return json.dumps(payload, ensure_ascii=False)


def setup_logger(settings) -> logging.Logger:
    """挂载 JSON 文件日志，重复调用不会重复添加 handler。"""

    logger.setLevel(logging.INFO)
    log_dir = Path(settings.log_dir)
    target = (log_dir / "locus.log").resolve()
    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler) and Path(handler.baseFilename) == target:
            return logger
    log_dir.mkdir(parents=True, exist_ok=True)
    fh = logging.FileHandler(target, encoding="utf-8")
    fh.setLevel(logging.INFO)
    fh.setFormatter(JsonFormatter(redact_content=getattr(settings, "log_redact_content", False)))
    logger.addHandler(fh)
    return logger
