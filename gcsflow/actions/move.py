from gcsflow.actions._action import Action
from gcsflow.actions.source_dest_config import SourceDestConfig
from gcsflow.core.context import ActionContext
from gcsflow.gcs.transfer import TransferResult, transfer


class GCSMove(Action):
    """Moves an object, or a directory with everything under it."""

    name = "GCSMove"
    description = "Moves objects in Google Cloud Storage."
    config_class = SourceDestConfig

    config: SourceDestConfig

    def run(self, context: ActionContext) -> TransferResult:
        self.config.validate(context.failure_collector)
        return transfer(
            self.config.get_storage_client(),
            self.config.get_source_path(),
            self.config.get_dest_path(),
            recursive=True,
            overwrite=self.config.should_overwrite(),
            delete_source=True,
        )
