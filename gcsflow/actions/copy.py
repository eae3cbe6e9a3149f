import dataclasses
from typing import ClassVar, Optional

from gcsflow.actions._action import Action
from gcsflow.actions.source_dest_config import SourceDestConfig
from gcsflow.config.plugin_config import prop
from gcsflow.core.context import ActionContext
from gcsflow.gcs.transfer import TransferResult, transfer


@dataclasses.dataclass
class GCSCopyConfig(SourceDestConfig):
    NAME_RECURSIVE: ClassVar[str] = "recursive"

    # Whether to copy objects in all subdirectories.
    recursive: Optional[bool] = prop("recursive", False)


class GCSCopy(Action):
    name = "GCSCopy"
    description = "Copies objects in Google Cloud Storage."
    config_class = GCSCopyConfig

    config: GCSCopyConfig

    def run(self, context: ActionContext) -> TransferResult:
        self.config.validate(context.failure_collector)
        return transfer(
            self.config.get_storage_client(),
            self.config.get_source_path(),
            self.config.get_dest_path(),
            recursive=bool(self.config.recursive),
            overwrite=self.config.should_overwrite(),
        )
