import dataclasses
import enum
import logging
from typing import ClassVar, List, Optional

import fsspec
from gcsfs.retry import HttpError
from google.auth.exceptions import GoogleAuthError

from gcsflow.actions._action import Action
from gcsflow.config.plugin_config import GCPConfig, prop
from gcsflow.core.context import ActionContext
from gcsflow.core.credentials import GCPCredentials
from gcsflow.core.utils import split_comma_list
from gcsflow.gcs.clients import file_system_options
from gcsflow.gcs.path import GCSPath
from gcsflow.validation import ErrorKind, FailureCollector

DELETE_COUNT_METRIC = "gc.file.delete.count"

_FILE_SYSTEM_ERRORS = (OSError, ValueError, HttpError, GoogleAuthError)


class DeleteStatus(enum.Enum):
    DELETED = "deleted"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclasses.dataclass
class DeleteResult:
    path: str
    status: DeleteStatus
    error: Optional[str] = None


@dataclasses.dataclass
class DeleteSummary:
    results: List[DeleteResult]

    def _count(self, status: DeleteStatus) -> int:
        return sum(1 for result in self.results if result.status == status)

    @property
    def deleted(self) -> int:
        return self._count(DeleteStatus.DELETED)

    @property
    def not_found(self) -> int:
        return self._count(DeleteStatus.NOT_FOUND)

    @property
    def failed(self) -> List[DeleteResult]:
        return [r for r in self.results if r.status == DeleteStatus.FAILED]

    def log(self):
        logging.info(
            f"Deleted {self.deleted} of {len(self.results)} path(s), "
            f"{self.not_found} not found, {len(self.failed)} failed."
        )
        for result in self.failed:
            logging.warning(f"Could not delete {result.path}: {result.error}")


@dataclasses.dataclass
class GCSBucketDeleteConfig(GCPConfig):
    NAME_PATHS: ClassVar[str] = "paths"

    # Comma separated list of objects to be deleted.
    paths: Optional[str] = prop("paths")

    def get_paths(self) -> List[str]:
        return split_comma_list(self.paths)

    def validate(self, collector: FailureCollector):
        self.validate_property_values(collector)
        if self.require(collector, self.NAME_PATHS, self.paths):
            storage_client = self.validate_storage_client(collector)
            paths = self.get_paths()
            if not paths:
                collector.add_failure(
                    f"Property '{self.NAME_PATHS}' does not contain any path.",
                    "Provide a comma separated list of paths to delete.",
                    ErrorKind.SYNTAX,
                ).with_config_property(self.NAME_PATHS)
            for path in paths:
                self.validate_gcs_path(
                    collector,
                    storage_client,
                    path,
                    self.NAME_PATHS,
                    as_element=True,
                )
        collector.get_or_raise()


class GCSBucketDelete(Action):
    """Deletes objects and directories from Google Cloud Storage.

    Deletion is best effort: a path that cannot be resolved or deleted is
    logged and reported in the returned summary, and the remaining paths are
    still processed.
    """

    name = "GCSBucketDelete"
    description = "Deletes objects from a Google Cloud Storage bucket"
    config_class = GCSBucketDeleteConfig

    config: GCSBucketDeleteConfig

    def _get_file_system(
        self, gcs_path: GCSPath, credentials: GCPCredentials, project_id: str
    ) -> fsspec.AbstractFileSystem:
        fs, _ = fsspec.core.url_to_fs(
            gcs_path.uri, **file_system_options(credentials, project_id)
        )
        return fs

    def run(self, context: ActionContext) -> DeleteSummary:
        self.config.validate(context.failure_collector)

        credentials = self.config.credentials()
        project_id = self.config.project_id
        gcs_paths = [GCSPath.from_string(path) for path in self.config.get_paths()]
        context.metrics.gauge(DELETE_COUNT_METRIC, len(gcs_paths))

        results = []
        for gcs_path in gcs_paths:
            try:
                # The handle always comes from the first path; every path shares
                # the gs:// scheme so they resolve to the same file system.
                fs = self._get_file_system(gcs_paths[0], credentials, project_id)
            except _FILE_SYSTEM_ERRORS as e:
                logging.info(f"Failed deleting file {gcs_path.uri}, {e}")
                results.append(DeleteResult(gcs_path.uri, DeleteStatus.FAILED, str(e)))
                continue
            try:
                if not fs.exists(gcs_path.fs_path):
                    results.append(DeleteResult(gcs_path.uri, DeleteStatus.NOT_FOUND))
                    continue
                fs.rm(gcs_path.fs_path, recursive=True)
            except _FILE_SYSTEM_ERRORS as e:
                logging.warning(f"Failed to delete path '{gcs_path.uri}'")
                results.append(DeleteResult(gcs_path.uri, DeleteStatus.FAILED, str(e)))
                continue
            results.append(DeleteResult(gcs_path.uri, DeleteStatus.DELETED))

        return DeleteSummary(results)
