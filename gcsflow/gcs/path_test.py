import unittest

from gcsflow.exceptions import InvalidGCSPathException
from gcsflow.gcs.path import GCSPath


class GCSPathTest(unittest.TestCase):
    def test_parse_with_scheme(self):
        path = GCSPath.from_string("gs://my-bucket/dir/file.json")
        self.assertEqual("my-bucket", path.bucket)
        self.assertEqual("dir/file.json", path.name)
        self.assertEqual("gs://my-bucket/dir/file.json", path.uri)
        self.assertEqual("my-bucket/dir/file.json", path.fs_path)

    def test_parse_with_leading_slash(self):
        path = GCSPath.from_string("/my-bucket/dir")
        self.assertEqual(GCSPath(bucket="my-bucket", name="dir"), path)

    def test_parse_without_scheme(self):
        path = GCSPath.from_string("  my.bucket_1/a  ")
        self.assertEqual(GCSPath(bucket="my.bucket_1", name="a"), path)

    def test_bucket_only(self):
        path = GCSPath.from_string("gs://my-bucket")
        self.assertEqual("", path.name)
        self.assertTrue(path.is_bucket)
        self.assertTrue(path.is_directory)
        self.assertEqual("my-bucket", path.fs_path)

    def test_directory(self):
        path = GCSPath.from_string("gs://my-bucket/dir/")
        self.assertFalse(path.is_bucket)
        self.assertTrue(path.is_directory)
        self.assertFalse(GCSPath.from_string("gs://my-bucket/dir").is_directory)

    def test_child(self):
        self.assertEqual(
            GCSPath(bucket="b-1", name="dir/x.txt"),
            GCSPath.from_string("gs://b-1/dir").child("x.txt"),
        )
        self.assertEqual(
            GCSPath(bucket="b-1", name="dir/x.txt"),
            GCSPath.from_string("gs://b-1/dir/").child("x.txt"),
        )
        self.assertEqual(
            GCSPath(bucket="b-1", name="x.txt"),
            GCSPath.from_string("gs://b-1").child("x.txt"),
        )

    def test_invalid_paths(self):
        invalid_paths = [
            "",
            "   ",
            "gs://",
            "gs:///dir",
            "s3://my-bucket/dir",
            "gs://My-Bucket/dir",
            "gs://my bucket/dir",
            "gs://my-bucket!/dir",
            "gs://ab/dir",
            "gs://" + "a" * 64,
            "gs://-bucket/dir",
            "gs://bucket-/dir",
        ]
        for invalid_path in invalid_paths:
            with self.subTest(path=invalid_path):
                with self.assertRaises(InvalidGCSPathException):
                    GCSPath.from_string(invalid_path)

    def test_invalid_path_is_value_error(self):
        with self.assertRaisesRegex(ValueError, "can not be empty"):
            GCSPath.from_string("")

    def test_dotted_bucket_names_can_be_longer(self):
        bucket = ".".join(["a" * 60] * 3)
        self.assertEqual(bucket, GCSPath.from_string(f"gs://{bucket}/x").bucket)


if __name__ == "__main__":
    unittest.main()
