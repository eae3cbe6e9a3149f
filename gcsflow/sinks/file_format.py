import enum
from typing import Callable, Optional

from gcsflow.exceptions import InvalidFileFormatException


class FileFormat(enum.Enum):
    AVRO = "avro"
    BLOB = "blob"
    CSV = "csv"
    DELIMITED = "delimited"
    JSON = "json"
    PARQUET = "parquet"
    TEXT = "text"
    TSV = "tsv"

    @property
    def can_write(self) -> bool:
        return self not in (FileFormat.BLOB, FileFormat.TEXT)

    @property
    def can_read(self) -> bool:
        return True

    @property
    def is_delimited(self) -> bool:
        return self in (FileFormat.CSV, FileFormat.DELIMITED, FileFormat.TSV)

    @property
    def extension(self) -> str:
        if self == FileFormat.DELIMITED:
            return "txt"
        return self.value

    @property
    def requires_schema(self) -> bool:
        return self in (FileFormat.AVRO, FileFormat.PARQUET)

    def default_delimiter(self) -> Optional[str]:
        if self == FileFormat.TSV:
            return "\t"
        if self.is_delimited:
            return ","
        return None

    @classmethod
    def from_string(
        cls,
        format_name: str,
        is_valid: Callable[["FileFormat"], bool] = lambda f: True,
    ) -> "FileFormat":
        valid_names = ", ".join(f.value for f in cls if is_valid(f))
        try:
            file_format = cls((format_name or "").strip().lower())
        except ValueError:
            file_format = None
        if file_format is None or not is_valid(file_format):
            raise InvalidFileFormatException(
                f"Invalid format '{format_name}'. The value must be one of "
                f"{valid_names}."
            )
        return file_format
