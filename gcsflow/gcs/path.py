import dataclasses
import re

from gcsflow.core.types.gcp_types import GCSBucketName, GCSObjectName, GCSPathString
from gcsflow.exceptions import InvalidGCSPathException

SCHEME = "gs://"
ROOT_DIR = "/"

_BUCKET_CHARS = re.compile(r"^[a-z0-9._-]+$")
_MIN_BUCKET_LENGTH = 3
_MAX_BUCKET_LENGTH = 63
# Names containing dots may be up to 222 characters, with each dot-separated
# component no longer than 63 characters.
_MAX_DOTTED_BUCKET_LENGTH = 222


def _validate_bucket_name(bucket: str, path: str):
    if not bucket:
        raise InvalidGCSPathException(
            f"Path '{path}' does not contain a bucket name. The path must be of "
            "form 'gs://<bucket-name>/path'."
        )
    if not _BUCKET_CHARS.match(bucket):
        raise InvalidGCSPathException(
            f"Invalid bucket name in path '{path}'. Bucket name should only "
            "contain lower case letters, numbers, '-', '_' and '.'."
        )
    max_length = _MAX_DOTTED_BUCKET_LENGTH if "." in bucket else _MAX_BUCKET_LENGTH
    if not _MIN_BUCKET_LENGTH <= len(bucket) <= max_length:
        raise InvalidGCSPathException(
            f"Invalid bucket name in path '{path}'. Bucket name must be between "
            f"{_MIN_BUCKET_LENGTH} and {max_length} characters long."
        )
    if any(len(part) > _MAX_BUCKET_LENGTH for part in bucket.split(".")):
        raise InvalidGCSPathException(
            f"Invalid bucket name in path '{path}'. Each dot-separated component "
            f"of a bucket name must be at most {_MAX_BUCKET_LENGTH} characters."
        )
    if not (bucket[0].isalnum() and bucket[-1].isalnum()):
        raise InvalidGCSPathException(
            f"Invalid bucket name in path '{path}'. Bucket name must start and "
            "end with a letter or a number."
        )


@dataclasses.dataclass(frozen=True)
class GCSPath:
    bucket: GCSBucketName
    # Object name without a leading slash, empty when the path is a bucket.
    name: GCSObjectName = ""

    @classmethod
    def from_string(cls, path: GCSPathString) -> "GCSPath":
        if path is None or not path.strip():
            raise InvalidGCSPathException(
                "GCS path can not be empty. The path must be of form "
                "'gs://<bucket-name>/path'."
            )
        path = path.strip()
        if path.startswith(SCHEME):
            stripped = path[len(SCHEME) :]
        elif path.startswith(ROOT_DIR):
            stripped = path[len(ROOT_DIR) :]
        elif "://" in path:
            raise InvalidGCSPathException(
                f"Invalid scheme in path '{path}'. The path must be of form "
                "'gs://<bucket-name>/path'."
            )
        else:
            stripped = path
        bucket, _, name = stripped.partition("/")
        _validate_bucket_name(bucket, path)
        return cls(bucket=bucket, name=name.lstrip("/"))

    @property
    def uri(self) -> str:
        return f"{SCHEME}{self.bucket}/{self.name}"

    @property
    def is_bucket(self) -> bool:
        return not self.name

    @property
    def is_directory(self) -> bool:
        return self.is_bucket or self.name.endswith("/")

    @property
    def fs_path(self) -> str:
        """The path as understood by gcsfs, bucket/name without a scheme."""
        return f"{self.bucket}/{self.name}".rstrip("/")

    def child(self, relative_name: str) -> "GCSPath":
        if self.is_bucket:
            return GCSPath(bucket=self.bucket, name=relative_name)
        prefix = self.name if self.name.endswith("/") else f"{self.name}/"
        return GCSPath(bucket=self.bucket, name=f"{prefix}{relative_name}")

    def __str__(self) -> str:
        return self.uri
