# ruff: noqa
from .copy import GCSCopy, GCSCopyConfig
from .delete import GCSBucketDelete, GCSBucketDeleteConfig
from .move import GCSMove
from .source_dest_config import SourceDestConfig
