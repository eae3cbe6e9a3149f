import dataclasses
import datetime
import logging
from typing import Dict, List, Optional

from gcsflow.validation import FailureCollector


class Metrics:
    """Sink for the metrics a plugin emits while it runs."""

    def gauge(self, name: str, value: int):
        raise NotImplementedError("gauge not implemented")


class LoggingMetrics(Metrics):
    def __init__(self) -> None:
        self.gauges: Dict[str, int] = {}

    def gauge(self, name: str, value: int):
        self.gauges[name] = value
        logging.info(f"metric {name}={value}")


class LineageRecorder:
    """Sink for the lineage of the datasets a plugin writes."""

    def record_write(self, operation: str, description: str, fields: List[str]):
        raise NotImplementedError("record_write not implemented")


class LoggingLineageRecorder(LineageRecorder):
    def __init__(self, reference_name: str) -> None:
        self.reference_name = reference_name
        self.records: List[Dict[str, object]] = []

    def record_write(self, operation: str, description: str, fields: List[str]):
        self.records.append(
            {"operation": operation, "description": description, "fields": fields}
        )
        logging.info(
            f"lineage {self.reference_name}: {operation} ({description}) "
            f"fields={fields}"
        )


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


@dataclasses.dataclass
class StageContext:
    """What the pipeline hands to a plugin when it runs a stage."""

    stage_name: str
    # Runtime arguments of the pipeline run.
    arguments: Dict[str, str] = dataclasses.field(default_factory=dict)
    failure_collector: FailureCollector = dataclasses.field(
        default_factory=FailureCollector
    )
    metrics: Metrics = dataclasses.field(default_factory=LoggingMetrics)
    lineage_recorder: Optional[LineageRecorder] = None
    # The time the run was logically started at, used for output suffixes.
    logical_start_time: datetime.datetime = dataclasses.field(default_factory=_utcnow)


ActionContext = StageContext

BatchSinkContext = StageContext
