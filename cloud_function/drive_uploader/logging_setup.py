"""
Structured JSON logging to stdout.

Cloud Functions (and Netlify) ship every stdout line to their log viewer;
Cloud Logging additionally lifts the ``severity`` field of a JSON line into
the entry's level.
"""
import logging
import sys

from pythonjsonlogger.json import JsonFormatter

SERVICE_NAME = "drive-uploader"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


class UploadJsonFormatter(JsonFormatter):
    """JSON formatter that tags every record with severity and service."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record["severity"] = record.levelname
        log_record["service"] = SERVICE_NAME


def setup_logging(level="INFO"):
    """
    Attach a JSON stdout handler to the root logger.

    Safe to call from every entry point: the handler is installed once per
    process, later calls only adjust the level.

    Returns:
        logging.Handler: the installed handler
    """
    root = logging.getLogger()
    root.setLevel(level)

    for existing in root.handlers:
        if isinstance(existing.formatter, UploadJsonFormatter):
            return existing

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(UploadJsonFormatter(LOG_FORMAT))
    root.addHandler(handler)

    # googleapiclient logs every discovery/cache decision at INFO
    logging.getLogger("googleapiclient.discovery_cache").setLevel(logging.ERROR)
    return handler
