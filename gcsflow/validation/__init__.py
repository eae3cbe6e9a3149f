# ruff: noqa
from .failure_collector import (
    Cause,
    ErrorKind,
    FailureCollector,
    ValidationFailure,
)
