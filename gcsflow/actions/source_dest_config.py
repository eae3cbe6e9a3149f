import dataclasses
from typing import ClassVar, Optional

from gcsflow.config.plugin_config import GCPConfig, prop
from gcsflow.gcs.path import GCSPath
from gcsflow.validation import FailureCollector


@dataclasses.dataclass
class SourceDestConfig(GCPConfig):
    """Properties shared by the copy and move actions."""

    NAME_SOURCE_PATH: ClassVar[str] = "sourcePath"
    NAME_DEST_PATH: ClassVar[str] = "destPath"
    NAME_OVERWRITE: ClassVar[str] = "overwrite"

    # Path to a source object or directory.
    source_path: Optional[str] = prop("sourcePath")
    # Path to the destination. The bucket must already exist.
    dest_path: Optional[str] = prop("destPath")
    # Whether to overwrite existing objects.
    overwrite: Optional[bool] = prop("overwrite", False)

    def get_source_path(self) -> GCSPath:
        return GCSPath.from_string(self.source_path)

    def get_dest_path(self) -> GCSPath:
        return GCSPath.from_string(self.dest_path)

    def should_overwrite(self) -> bool:
        return bool(self.overwrite)

    def validate(self, collector: FailureCollector):
        self.validate_property_values(collector)
        storage_client = None
        needs_storage = any(
            not self.contains_macro(name)
            for name in (self.NAME_SOURCE_PATH, self.NAME_DEST_PATH)
        )
        if needs_storage:
            storage_client = self.validate_storage_client(collector)

        if self.require(collector, self.NAME_SOURCE_PATH, self.source_path):
            self.validate_gcs_path(
                collector, storage_client, self.source_path, self.NAME_SOURCE_PATH
            )
        if self.require(collector, self.NAME_DEST_PATH, self.dest_path):
            self.validate_gcs_path(
                collector,
                storage_client,
                self.dest_path,
                self.NAME_DEST_PATH,
                corrective_action=(
                    "Please create the bucket or ensure you entered the correct "
                    "bucket path."
                ),
            )
        collector.get_or_raise()
