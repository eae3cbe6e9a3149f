from typing import Any, ClassVar, Mapping

from gcsflow.config.plugin_config import GCPConfig
from gcsflow.core.context import ActionContext
from gcsflow.validation import FailureCollector

PLUGIN_TYPE = "action"


class Action:
    plugin_type: ClassVar[str] = PLUGIN_TYPE
    name: ClassVar[str]
    description: ClassVar[str]
    config_class: ClassVar[type]

    def __init__(self, config: GCPConfig):
        self.config = config

    @classmethod
    def from_properties(cls, properties: Mapping[str, Any]) -> "Action":
        return cls(cls.config_class.from_properties(properties))

    def configure_pipeline(self, collector: FailureCollector):
        """Validates the config when the pipeline is deployed."""
        self.config.validate(collector)

    def run(self, context: ActionContext):
        raise NotImplementedError("run not implemented")
