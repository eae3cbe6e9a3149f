import csv
import datetime
import io
import json
import unittest
from unittest import mock

import fastavro
import pyarrow as pa
import pyarrow.parquet as pq
from fsspec.implementations.memory import MemoryFileSystem
from google.api_core import exceptions

from gcsflow.core.context import BatchSinkContext, LoggingLineageRecorder
from gcsflow.exceptions import BucketAccessException, ValidationException
from gcsflow.gcs.clients import CMEK_KEY
from gcsflow.schemas import Schema
from gcsflow.sinks import GCSBatchSink, GCSBatchSinkConfig
from gcsflow.testing.fake_storage import FakeStorageClient
from gcsflow.validation import FailureCollector

_TIME = datetime.datetime(2024, 3, 5, 13, 8, tzinfo=datetime.timezone.utc)

_SCHEMA = json.dumps(
    {
        "type": "record",
        "name": "etlSchemaBody",
        "fields": [
            {"name": "id", "type": "long"},
            {"name": "name", "type": ["string", "null"]},
        ],
    }
)

_NESTED_SCHEMA = json.dumps(
    {
        "type": "record",
        "name": "etlSchemaBody",
        "fields": [
            {"name": "id", "type": "long"},
            {"name": "tags", "type": {"type": "array", "items": "string"}},
        ],
    }
)

_RECORDS = [{"id": 1, "name": "alice"}, {"id": 2, "name": "bob"}]


def _properties(**overrides):
    properties = {
        "referenceName": "gcs_sink",
        "project": "my-project",
        "path": "gs://my-bucket/output",
        "format": "json",
    }
    properties.update(overrides)
    return properties


class _StorageTestCase(unittest.TestCase):
    def setUp(self) -> None:
        patcher = mock.patch("gcsflow.config.plugin_config.GCPClients")
        self.clients_mock = patcher.start()
        self.addCleanup(patcher.stop)
        self.client = FakeStorageClient({"my-bucket": {}})
        self.clients_mock.return_value.get_storage_client.return_value = self.client


class GCSBatchSinkConfigTest(_StorageTestCase):
    def validate(self, input_schema=None, **overrides) -> FailureCollector:
        collector = FailureCollector()
        config = GCSBatchSinkConfig.from_properties(_properties(**overrides))
        try:
            config.validate(collector, input_schema)
        except ValidationException:
            pass
        return collector

    def test_valid_config(self):
        self.assertEqual([], self.validate().failures)

    def test_bucket_does_not_need_to_exist(self):
        self.assertEqual([], self.validate(path="gs://new-bucket/output").failures)

    def test_invalid_reference_name(self):
        collector = self.validate(referenceName="gcs sink")
        self.assertEqual(1, len(collector.failures_for("referenceName")))

    def test_path_is_required(self):
        collector = self.validate(path="")
        self.assertEqual(1, len(collector.failures_for("path")))

    def test_invalid_path(self):
        collector = self.validate(path="s3://my-bucket/output")
        self.assertEqual(1, len(collector.failures_for("path")))

    def test_invalid_suffix(self):
        collector = self.validate(suffix="yyyy-bb")
        failures = collector.failures_for("suffix")
        self.assertEqual(1, len(failures))
        self.assertTrue(failures[0].message.startswith("Invalid suffix : "))

    def test_unsupported_format(self):
        collector = self.validate(format="blob")
        self.assertEqual(1, len(collector.failures_for("format")))

    def test_invalid_schema(self):
        collector = self.validate(schema="{not json")
        self.assertEqual(1, len(collector.failures_for("schema")))

    def test_avro_requires_a_schema(self):
        collector = self.validate(format="avro")
        self.assertEqual(1, len(collector.failures_for("schema")))

    def test_parquet_requires_a_schema(self):
        collector = self.validate(format="parquet")
        failures = collector.failures_for("schema")
        self.assertEqual(1, len(failures))
        self.assertIn("'parquet' format requires a schema", failures[0].message)

    def test_avro_with_input_schema(self):
        collector = self.validate(
            input_schema=Schema.parse_json(_SCHEMA), format="avro"
        )
        self.assertEqual([], collector.failures)

    def test_delimiter_must_be_a_single_character(self):
        collector = self.validate(format="delimited", delimiter="||")
        self.assertEqual(1, len(collector.failures_for("delimiter")))

    def test_delimited_formats_reject_complex_fields(self):
        collector = self.validate(format="csv", schema=_NESTED_SCHEMA)
        self.assertEqual(1, len(collector.failures))
        cause = collector.failures[0].causes[0]
        self.assertEqual("schema", cause.config_property)
        self.assertEqual("tags", cause.config_element)

    def test_parquet_accepts_complex_fields(self):
        collector = self.validate(format="parquet", schema=_NESTED_SCHEMA)
        self.assertEqual([], collector.failures)

    def test_macros_are_not_validated(self):
        collector = self.validate(format="${format}", suffix="${suffix}")
        self.assertEqual([], collector.failures)

    def test_output_dir(self):
        config = GCSBatchSinkConfig.from_properties(
            _properties(suffix="yyyy-MM-dd-HH-mm")
        )
        self.assertEqual(
            "my-bucket/output/2024-03-05-13-08", config.get_output_dir(_TIME)
        )
        config = GCSBatchSinkConfig.from_properties(_properties())
        self.assertEqual("my-bucket/output", config.get_output_dir(_TIME))

    def test_delimiter(self):
        config = GCSBatchSinkConfig.from_properties(
            _properties(format="delimited", delimiter="|")
        )
        self.assertEqual("|", config.get_delimiter())
        # Only the delimited format reads the delimiter property.
        config = GCSBatchSinkConfig.from_properties(
            _properties(format="csv", delimiter="|")
        )
        self.assertEqual(",", config.get_delimiter())


class GCSBatchSinkTest(_StorageTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.file_system = MemoryFileSystem()

    def tearDown(self) -> None:
        MemoryFileSystem.store.clear()

    def context(self, **kwargs) -> BatchSinkContext:
        return BatchSinkContext(stage_name="sink", logical_start_time=_TIME, **kwargs)

    def sink(self, **overrides) -> GCSBatchSink:
        return GCSBatchSink(
            GCSBatchSinkConfig.from_properties(_properties(**overrides)),
            file_system=self.file_system,
        )

    def write(self, records, **overrides) -> str:
        sink = self.sink(**overrides)
        sink.prepare_run(self.context())
        return sink.write(records)

    def read_text(self, path: str) -> str:
        return self.file_system.cat(path).decode("utf-8")

    def test_prepare_run_returns_output_dir(self):
        sink = self.sink(suffix="yyyy-MM-dd-HH-mm")
        self.assertEqual(
            "my-bucket/output/2024-03-05-13-08", sink.prepare_run(self.context())
        )
        self.assertEqual([], self.client.created)

    def test_missing_bucket_is_created(self):
        sink = self.sink(path="gs://new-bucket/output", location="europe-west1")
        sink.prepare_run(self.context(arguments={CMEK_KEY: "projects/p/keys/k"}))

        self.assertEqual(1, len(self.client.created))
        bucket = self.client.created[0]
        self.assertEqual("new-bucket", bucket.name)
        self.assertEqual("europe-west1", bucket.location)
        self.assertEqual("projects/p/keys/k", bucket.default_kms_key_name)

    def test_missing_bucket_defaults_to_us(self):
        self.sink(path="gs://new-bucket/output").prepare_run(self.context())
        self.assertEqual("US", self.client.created[0].location)
        self.assertIsNone(self.client.created[0].default_kms_key_name)

    def test_bucket_access_error(self):
        client = mock.MagicMock()
        # The first lookup happens during validation.
        client.lookup_bucket.side_effect = [None, exceptions.Forbidden("denied")]
        self.clients_mock.return_value.get_storage_client.return_value = client

        with self.assertRaises(BucketAccessException) as context:
            self.sink().prepare_run(self.context())
        self.assertIn("my-bucket", str(context.exception))
        self.assertIn("denied", str(context.exception))

    def test_prepare_run_validates(self):
        with self.assertRaises(ValidationException):
            self.sink(format="xml").prepare_run(self.context())

    def test_lineage(self):
        recorder = LoggingLineageRecorder("gcs_sink")
        self.sink(schema=_SCHEMA).prepare_run(self.context(lineage_recorder=recorder))
        self.assertEqual(
            [
                {
                    "operation": "Write",
                    "description": "Wrote to Google Cloud Storage.",
                    "fields": ["id", "name"],
                }
            ],
            recorder.records,
        )

    def test_write_before_prepare_run(self):
        with self.assertRaises(RuntimeError):
            self.sink().write(_RECORDS)

    def test_empty_batch_writes_nothing(self):
        self.assertIsNone(self.write([]))
        self.assertFalse(self.file_system.exists("my-bucket/output"))

    def test_write_json(self):
        path = self.write(_RECORDS)
        self.assertTrue(path.startswith("my-bucket/output/part-"))
        self.assertTrue(path.endswith(".json"))
        lines = self.read_text(path).splitlines()
        self.assertEqual(_RECORDS, [json.loads(line) for line in lines])

    def test_write_json_with_dates(self):
        path = self.write([{"id": 1, "at": _TIME}])
        self.assertEqual(
            {"id": 1, "at": "2024-03-05T13:08:00+00:00"},
            json.loads(self.read_text(path)),
        )

    def test_write_csv(self):
        path = self.write(_RECORDS, format="csv", schema=_SCHEMA)
        self.assertTrue(path.endswith(".csv"))
        rows = list(csv.reader(io.StringIO(self.read_text(path))))
        self.assertEqual([["1", "alice"], ["2", "bob"]], rows)

    def test_write_tsv(self):
        path = self.write(_RECORDS, format="tsv", schema=_SCHEMA)
        self.assertTrue(path.endswith(".tsv"))
        rows = list(csv.reader(io.StringIO(self.read_text(path)), delimiter="\t"))
        self.assertEqual([["1", "alice"], ["2", "bob"]], rows)

    def test_write_delimited(self):
        path = self.write(_RECORDS, format="delimited", delimiter="|", schema=_SCHEMA)
        self.assertTrue(path.endswith(".txt"))
        rows = list(csv.reader(io.StringIO(self.read_text(path)), delimiter="|"))
        self.assertEqual([["1", "alice"], ["2", "bob"]], rows)

    def test_write_csv_without_schema(self):
        path = self.write(_RECORDS, format="csv")
        rows = list(csv.reader(io.StringIO(self.read_text(path))))
        self.assertEqual([["1", "alice"], ["2", "bob"]], rows)

    def test_write_avro(self):
        path = self.write(_RECORDS, format="avro", schema=_SCHEMA)
        self.assertTrue(path.endswith(".avro"))
        with self.file_system.open(path, "rb") as avro_file:
            self.assertEqual(_RECORDS, list(fastavro.reader(avro_file)))

    def test_write_avro_with_input_schema(self):
        sink = self.sink(format="avro")
        sink.configure_pipeline(FailureCollector(), Schema.parse_json(_SCHEMA))
        sink.prepare_run(self.context())
        path = sink.write(_RECORDS)
        with self.file_system.open(path, "rb") as avro_file:
            self.assertEqual(_RECORDS, list(fastavro.reader(avro_file)))

    def test_write_parquet(self):
        path = self.write(_RECORDS, format="parquet", schema=_SCHEMA)
        self.assertTrue(path.endswith(".parquet"))
        with self.file_system.open(path, "rb") as parquet_file:
            table = pq.read_table(parquet_file)
        self.assertEqual(_RECORDS, table.select(["id", "name"]).to_pylist())

    def test_write_parquet_keeps_nullable_longs(self):
        schema = json.dumps(
            {
                "type": "record",
                "name": "etlSchemaBody",
                "fields": [{"name": "id", "type": ["long", "null"]}],
            }
        )
        path = self.write([{"id": 1}, {"id": None}], format="parquet", schema=schema)
        with self.file_system.open(path, "rb") as parquet_file:
            table = pq.read_table(parquet_file).select(["id"])
        self.assertEqual(pa.int64(), table.schema.field("id").type)
        self.assertEqual([{"id": 1}, {"id": None}], table.to_pylist())

    def test_every_batch_gets_its_own_file(self):
        sink = self.sink()
        sink.prepare_run(self.context())
        first = sink.write(_RECORDS[:1])
        second = sink.write(_RECORDS[1:])
        self.assertNotEqual(first, second)
        self.assertEqual(2, len(self.file_system.ls("my-bucket/output")))


if __name__ == "__main__":
    unittest.main()
