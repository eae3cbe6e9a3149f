import dataclasses
import datetime
import logging
from typing import Any, ClassVar, Iterable, Mapping, Optional

import fsspec
from google.api_core import exceptions as api_exceptions

from gcsflow.config.plugin_config import GCPReferenceSinkConfig, prop
from gcsflow.core.context import BatchSinkContext
from gcsflow.exceptions import (
    BucketAccessException,
    InvalidDatePatternException,
    InvalidFileFormatException,
    InvalidSchemaException,
)
from gcsflow.gcs.clients import CMEK_KEY, create_bucket, get_file_system
from gcsflow.gcs.path import GCSPath
from gcsflow.schemas import Schema
from gcsflow.sinks.date_pattern import DatePattern
from gcsflow.sinks.file_format import FileFormat
from gcsflow.sinks.writers import FileWriter, Record
from gcsflow.validation import ErrorKind, FailureCollector

PLUGIN_TYPE = "batchsink"

LINEAGE_OPERATION = "Write"
LINEAGE_DESCRIPTION = "Wrote to Google Cloud Storage."


@dataclasses.dataclass
class GCSBatchSinkConfig(GCPReferenceSinkConfig):
    NAME_PATH: ClassVar[str] = "path"
    NAME_SUFFIX: ClassVar[str] = "suffix"
    NAME_FORMAT: ClassVar[str] = "format"
    NAME_DELIMITER: ClassVar[str] = "delimiter"
    NAME_SCHEMA: ClassVar[str] = "schema"
    NAME_LOCATION: ClassVar[str] = "location"

    # The path to write to. For example, gs://<bucket>/path/to/directory
    path: Optional[str] = prop("path")
    # The time format for the output directory that will be appended to the
    # path, e.g. 'yyyy-MM-dd-HH-mm' results in a directory like
    # '2015-01-01-20-42'.
    suffix: Optional[str] = prop("suffix")
    # One of 'json', 'avro', 'parquet', 'csv', 'tsv' or 'delimited'.
    format: Optional[str] = prop("format")
    # Only used by the 'delimited' format.
    delimiter: Optional[str] = prop("delimiter")
    # The schema of the data to write. 'avro' and 'parquet' require one.
    schema: Optional[str] = prop("schema")
    # Where the bucket is created, ignored if the bucket already exists.
    location: Optional[str] = prop("location")

    def get_gcs_path(self) -> GCSPath:
        return GCSPath.from_string(self.path)

    def get_bucket(self) -> str:
        return self.get_gcs_path().bucket

    def get_path(self) -> str:
        return self.get_gcs_path().uri

    def get_format(self) -> FileFormat:
        return FileFormat.from_string(self.format, lambda f: f.can_write)

    def get_schema(self) -> Optional[Schema]:
        if self.contains_macro(self.NAME_SCHEMA) or not self.schema:
            return None
        return Schema.parse_json(self.schema)

    def get_suffix_pattern(self) -> Optional[DatePattern]:
        if self.contains_macro(self.NAME_SUFFIX) or not self.suffix:
            return None
        return DatePattern(self.suffix)

    def get_delimiter(self) -> Optional[str]:
        file_format = self.get_format()
        if file_format == FileFormat.DELIMITED and self.delimiter:
            return self.delimiter
        return file_format.default_delimiter()

    def get_output_dir(self, logical_start_time: datetime.datetime) -> str:
        output_dir = self.get_gcs_path().fs_path
        pattern = self.get_suffix_pattern()
        if pattern is not None:
            output_dir = f"{output_dir}/{pattern.format(logical_start_time)}"
        return output_dir

    def validate(
        self, collector: FailureCollector, input_schema: Optional[Schema] = None
    ):
        self.validate_property_values(collector)
        self.validate_reference_name(collector)

        if self.require(collector, self.NAME_PATH, self.path):
            storage_client = self.validate_storage_client(collector)
            # The bucket is created at run time if it does not exist yet.
            self.validate_gcs_path(
                collector,
                storage_client,
                self.path,
                self.NAME_PATH,
                require_bucket=False,
            )

        if self.suffix and not self.contains_macro(self.NAME_SUFFIX):
            try:
                self.get_suffix_pattern()
            except InvalidDatePatternException as e:
                collector.add_failure(
                    f"Invalid suffix : {e}", None, ErrorKind.SYNTAX
                ).with_config_property(self.NAME_SUFFIX).with_stacktrace(e)

        file_format = None
        if self.require(collector, self.NAME_FORMAT, self.format):
            try:
                file_format = self.get_format()
            except InvalidFileFormatException as e:
                collector.add_failure(
                    str(e), None, ErrorKind.SYNTAX
                ).with_config_property(self.NAME_FORMAT).with_stacktrace(e)

        schema = None
        try:
            schema = self.get_schema()
        except InvalidSchemaException as e:
            collector.add_failure(str(e), None, ErrorKind.SYNTAX).with_config_property(
                self.NAME_SCHEMA
            ).with_stacktrace(e)
        schema = schema or input_schema

        if file_format is not None:
            self._validate_format(collector, file_format, schema)
        collector.get_or_raise()

    def _validate_format(
        self,
        collector: FailureCollector,
        file_format: FileFormat,
        schema: Optional[Schema],
    ):
        if (
            file_format.requires_schema
            and schema is None
            and not self.contains_macro(self.NAME_SCHEMA)
        ):
            collector.add_failure(
                f"The '{file_format.value}' format requires a schema.",
                "Provide the schema of the records to write.",
            ).with_config_property(self.NAME_SCHEMA)
        if not file_format.is_delimited:
            return
        if (
            file_format == FileFormat.DELIMITED
            and self.delimiter
            and not self.contains_macro(self.NAME_DELIMITER)
            and len(self.delimiter) != 1
        ):
            collector.add_failure(
                f"Invalid delimiter '{self.delimiter}'.",
                "The delimiter must be a single character.",
            ).with_config_property(self.NAME_DELIMITER)
        if schema is not None:
            for field in schema.fields:
                if not field.is_simple:
                    collector.add_failure(
                        f"Field '{field.name}' is of unsupported type "
                        f"'{field.non_null_type}'.",
                        f"The '{file_format.value}' format only supports simple "
                        "types. Remove the field or change the format.",
                    ).with_config_element(self.NAME_SCHEMA, field.name)


class GCSBatchSink:
    """Writes records to one or more files in a directory on GCS."""

    plugin_type: ClassVar[str] = PLUGIN_TYPE
    name: ClassVar[str] = "GCS"
    description: ClassVar[str] = (
        "Writes records to one or more files in a directory on Google Cloud Storage."
    )
    config_class: ClassVar[type] = GCSBatchSinkConfig

    def __init__(
        self,
        config: GCSBatchSinkConfig,
        file_system: Optional[fsspec.AbstractFileSystem] = None,
    ):
        self.config = config
        self.file_system = file_system
        self.input_schema: Optional[Schema] = None
        self._writer: Optional[FileWriter] = None

    @classmethod
    def from_properties(cls, properties: Mapping[str, Any]) -> "GCSBatchSink":
        return cls(GCSBatchSinkConfig.from_properties(properties))

    def configure_pipeline(
        self, collector: FailureCollector, input_schema: Optional[Schema] = None
    ):
        self.input_schema = input_schema
        self.config.validate(collector, input_schema)

    def _ensure_bucket(self, context: BatchSinkContext):
        storage_client = self.config.get_storage_client()
        bucket_name = self.config.get_bucket()
        try:
            bucket = storage_client.lookup_bucket(bucket_name)
            if bucket is None:
                create_bucket(
                    storage_client,
                    bucket_name,
                    self.config.location,
                    context.arguments.get(CMEK_KEY),
                )
        except api_exceptions.GoogleAPIError as e:
            raise BucketAccessException(bucket_name, str(e)) from e

    def _record_lineage(self, context: BatchSinkContext, schema: Optional[Schema]):
        if context.lineage_recorder is None or schema is None:
            return
        context.lineage_recorder.record_write(
            LINEAGE_OPERATION, LINEAGE_DESCRIPTION, schema.field_names
        )

    def prepare_run(self, context: BatchSinkContext) -> str:
        """Validates, makes sure the bucket exists and returns the output dir."""
        self.config.validate(context.failure_collector, self.input_schema)
        self._ensure_bucket(context)

        if self.file_system is None:
            self.file_system = get_file_system(
                self.config.credentials(), self.config.project_id
            )
        schema = self.config.get_schema() or self.input_schema
        output_dir = self.config.get_output_dir(context.logical_start_time)
        self._writer = FileWriter(
            output_dir=output_dir,
            file_format=self.config.get_format(),
            file_system=self.file_system,
            schema=schema,
            delimiter=self.config.get_delimiter(),
        )
        self._record_lineage(context, schema)
        logging.info(f"Writing {self.config.format} files to {output_dir}")
        return output_dir

    def write(self, records: Iterable[Record]) -> Optional[str]:
        if self._writer is None:
            raise RuntimeError("prepare_run must be called before writing records.")
        return self._writer.write(list(records))
