"""
This module contains the custom logger and formatter for the indexer.

To use the custom logger, install it as the root logger (see `processors/main.py`)
and log through the `logging` module:

        import logging
        logging.info("[Indexer] Processed batch", extra={"num_of_events": 12})
The resulting log message will be in JSON format:
    {
        "timestamp": "2024-03-15 14:29:31,000",
        "level": "INFO",
        "fields": {
            "message": "[Indexer] Processed batch",
            "num_of_events": 12
        },
        "module": "worker",
        "func_name": "run_cycle",
        "path_name": "/app/utils/worker.py",
        "line_no": 41
    }
Records logged with `logging.exception` also carry an "exception" key with the traceback.
"""

import logging
import json


class CustomLogger(logging.Logger):
    def makeRecord(
        self,
        name,
        level,
        fn,
        lno,
        msg,
        args,
        exc_info,
        func=None,
        extra=None,
        sinfo=None,
    ):
        if extra:
            extra = {"fields": extra}
        record = super(CustomLogger, self).makeRecord(
            name,
            level,
            fn,
            lno,
            msg,
            args,
            exc_info,
            func=func,
            extra=extra,
            sinfo=sinfo,
        )
        return record


# Create a custom JSON log formatter
class JsonFormatter(logging.Formatter):
    def format(self, record):
        fields = {"message": record.getMessage()}
        extra_fields = record.__dict__.get("fields", {})
        fields.update(extra_fields)
        log_data = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "fields": fields,
            "module": record.module,
            "func_name": record.funcName,
            "path_name": record.pathname,
            "line_no": record.lineno,
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str)


def configure_logger(name: str, level: int = logging.INFO) -> CustomLogger:
    logger = CustomLogger(name)
    logger.setLevel(level)

    # Create a stream handler for stdout
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(JsonFormatter())
    logger.addHandler(stream_handler)
    return logger
