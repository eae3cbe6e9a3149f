import os
import tempfile
import unittest

from gcsflow.config.pipeline_config import PIPELINE_CONFIG_FILE, PipelineConfig
from gcsflow.exceptions import PathNotFoundException

_PIPELINE = """\
arguments:
  gcp.cmek.key.name: projects/p/locations/us/keyRings/r/cryptoKeys/k
stages:
  - name: cleanup
    plugin: GCSBucketDelete
    properties:
      project: my-project
      paths: gs://my-bucket/tmp
  - name: sink
    plugin: GCS
    input: records.jsonl
    properties:
      referenceName: gcs_sink
      path: gs://my-bucket/output
      format: json
"""


class PipelineConfigTest(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self.temp_dir.cleanup)
        self.pipeline_file = os.path.join(self.temp_dir.name, PIPELINE_CONFIG_FILE)

    def write(self, contents: str):
        with open(self.pipeline_file, "w") as f:
            f.write(contents)

    def test_load(self):
        self.write(_PIPELINE)
        config = PipelineConfig.load(self.pipeline_file)

        self.assertEqual(["cleanup", "sink"], [stage.name for stage in config.stages])
        self.assertEqual(
            "projects/p/locations/us/keyRings/r/cryptoKeys/k",
            config.arguments["gcp.cmek.key.name"],
        )
        cleanup = config.stage("cleanup")
        self.assertEqual("GCSBucketDelete", cleanup.plugin)
        self.assertEqual("gs://my-bucket/tmp", cleanup.properties["paths"])
        self.assertIsNone(cleanup.input)

    def test_load_from_directory(self):
        self.write(_PIPELINE)
        config = PipelineConfig.load(self.temp_dir.name)
        self.assertEqual(2, len(config.stages))

    def test_relative_input_is_resolved_against_the_pipeline_file(self):
        self.write(_PIPELINE)
        config = PipelineConfig.load(self.pipeline_file)
        self.assertEqual(
            os.path.join(os.path.abspath(self.temp_dir.name), "records.jsonl"),
            config.stage("sink").input,
        )

    def test_missing_file(self):
        with self.assertRaises(PathNotFoundException):
            PipelineConfig.load(os.path.join(self.temp_dir.name, "missing.yaml"))

    def test_duplicate_stage_names(self):
        self.write(
            "stages:\n"
            "  - name: copy\n    plugin: GCSCopy\n"
            "  - name: copy\n    plugin: GCSMove\n"
        )
        with self.assertRaises(ValueError):
            PipelineConfig.load(self.pipeline_file)

    def test_unknown_stage(self):
        self.write(_PIPELINE)
        with self.assertRaises(KeyError):
            PipelineConfig.load(self.pipeline_file).stage("missing")


if __name__ == "__main__":
    unittest.main()
