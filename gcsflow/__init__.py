# flake8: noqa
import importlib.metadata

from .actions import GCSBucketDelete, GCSCopy, GCSMove, SourceDestConfig
from .core.context import StageContext
from .gcs.path import GCSPath
from .sinks import FileFormat, GCSBatchSink
from .validation import FailureCollector

__version__ = importlib.metadata.version("gcsflow")
