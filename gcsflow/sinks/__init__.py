# ruff: noqa
from .date_pattern import DatePattern
from .file_format import FileFormat
from .gcs_sink import GCSBatchSink, GCSBatchSinkConfig
