"""Runs the stages of a pipeline file locally, one after another."""

import dataclasses
import logging
from typing import Any, Dict, List, Optional

import fsspec

from gcsflow import registry
from gcsflow.actions.delete import DeleteSummary
from gcsflow.config.pipeline_config import PipelineConfig, StageConfig
from gcsflow.core import utils
from gcsflow.core.context import LoggingLineageRecorder, LoggingMetrics, StageContext
from gcsflow.exceptions import UnresolvedMacroException, ValidationException
from gcsflow.schemas import Schema
from gcsflow.sinks import GCSBatchSink
from gcsflow.validation import FailureCollector, ValidationFailure


@dataclasses.dataclass
class StageOutcome:
    stage_name: str
    plugin: str
    result: Any = None


class PipelineRunner:
    def __init__(
        self,
        pipeline_config: PipelineConfig,
        *,
        file_system: Optional[fsspec.AbstractFileSystem] = None,
    ):
        self.pipeline_config = pipeline_config
        # Only used by sink stages, mainly to write somewhere other than GCS.
        self.file_system = file_system

    def _create(self, stage: StageConfig) -> registry.Plugin:
        plugin = registry.create_plugin(stage.plugin, stage.properties)
        if isinstance(plugin, GCSBatchSink) and self.file_system is not None:
            plugin.file_system = self.file_system
        return plugin

    @staticmethod
    def _input_schema(stage: StageConfig) -> Optional[Schema]:
        if not stage.input_schema:
            return None
        return Schema.parse_json(stage.input_schema)

    def validate(self) -> Dict[str, List[ValidationFailure]]:
        """Validates every stage and returns the failures of each one."""
        failures = {}
        for stage in self.pipeline_config.stages:
            collector = FailureCollector()
            plugin = self._create(stage)
            try:
                if isinstance(plugin, GCSBatchSink):
                    plugin.configure_pipeline(collector, self._input_schema(stage))
                else:
                    plugin.configure_pipeline(collector)
            except ValidationException:
                logging.info(f"Stage {stage.name} failed validation.")
            failures[stage.name] = collector.failures
        return failures

    def run_stage(self, stage: StageConfig) -> StageOutcome:
        plugin = self._create(stage)
        if plugin.config.macro_fields:
            raise UnresolvedMacroException(stage.name, list(plugin.config.macro_fields))
        context = StageContext(
            stage_name=stage.name,
            arguments=dict(self.pipeline_config.arguments),
            metrics=LoggingMetrics(),
        )
        logging.info(f"Running stage {stage.name} ({stage.plugin})")
        if isinstance(plugin, GCSBatchSink):
            context.lineage_recorder = LoggingLineageRecorder(
                plugin.config.reference_name
            )
            plugin.input_schema = self._input_schema(stage)
            plugin.prepare_run(context)
            records = utils.read_json_lines(stage.input) if stage.input else []
            return StageOutcome(stage.name, stage.plugin, plugin.write(records))
        result = plugin.run(context)
        if isinstance(result, DeleteSummary):
            result.log()
        return StageOutcome(stage.name, stage.plugin, result)

    def run(self) -> List[StageOutcome]:
        return [self.run_stage(stage) for stage in self.pipeline_config.stages]
