# ruff: noqa
from .path import GCSPath
