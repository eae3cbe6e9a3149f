import dataclasses
import os
from typing import Any, Dict, List, Optional

import dacite

from gcsflow.core import utils

PIPELINE_CONFIG_FILE = "pipeline.yaml"


@dataclasses.dataclass
class StageConfig:
    name: str
    plugin: str
    properties: Dict[str, Any] = dataclasses.field(default_factory=dict)
    # Local JSON lines file with the records a sink stage writes.
    input: Optional[str] = None
    # JSON schema of the records arriving at a sink stage.
    input_schema: Optional[str] = None


@dataclasses.dataclass
class PipelineConfig:
    stages: List[StageConfig]
    # Runtime arguments, e.g. gcp.cmek.key.name
    arguments: Dict[str, str] = dataclasses.field(default_factory=dict)

    @classmethod
    def load(cls, path: str = PIPELINE_CONFIG_FILE) -> "PipelineConfig":
        if os.path.isdir(path):
            path = os.path.join(path, PIPELINE_CONFIG_FILE)
        utils.assert_path_exists(path)
        config_dict = utils.read_yaml_file(path)
        config = dacite.from_dict(
            data_class=cls,
            data=config_dict,
            config=dacite.Config(cast=[str]),
        )
        names = [stage.name for stage in config.stages]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Stage names must be unique, found: {duplicates}")
        # Relative input files are resolved against the pipeline file.
        base_dir = os.path.dirname(os.path.abspath(path))
        for stage in config.stages:
            if stage.input is not None and not os.path.isabs(stage.input):
                stage.input = os.path.join(base_dir, stage.input)
        return config

    def stage(self, name: str) -> StageConfig:
        for stage in self.stages:
            if stage.name == name:
                return stage
        raise KeyError(f"No stage named `{name}`")
