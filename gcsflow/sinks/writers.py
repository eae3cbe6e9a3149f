import base64
import datetime
import decimal
import json
from typing import Any, Dict, List, Optional

import fastavro
import fastparquet
import fsspec
import pandas as pd
import pyarrow as pa
import pyarrow.csv as pcsv

from gcsflow.core.utils import uuid
from gcsflow.schemas import Schema
from gcsflow.sinks.file_format import FileFormat

Record = Dict[str, Any]

# Integer and boolean columns keep their type when they contain nulls instead
# of being widened to float64 or object.
_NULLABLE_PANDAS_TYPES = {
    pa.int8(): pd.Int8Dtype(),
    pa.int16(): pd.Int16Dtype(),
    pa.int32(): pd.Int32Dtype(),
    pa.int64(): pd.Int64Dtype(),
    pa.bool_(): pd.BooleanDtype(),
}


def _json_default(value: Any):
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, decimal.Decimal):
        return str(value)
    if isinstance(value, bytes):
        return base64.b64encode(value).decode("ascii")
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class FileWriter:
    """Writes batches of records as part files under an output directory."""

    def __init__(
        self,
        *,
        output_dir: str,
        file_format: FileFormat,
        file_system: fsspec.AbstractFileSystem,
        schema: Optional[Schema] = None,
        delimiter: Optional[str] = None,
    ):
        self.output_dir = output_dir.rstrip("/")
        self.file_format = file_format
        self.file_system = file_system
        self.schema = schema
        self.delimiter = delimiter or file_format.default_delimiter()

    def _part_path(self) -> str:
        # This ensures each writer task is writing to a unique file
        return f"{self.output_dir}/part-{uuid(8)}.{self.file_format.extension}"

    def _to_table(self, batch: List[Record]) -> pa.Table:
        if self.schema is not None:
            return pa.Table.from_pylist(batch, schema=self.schema.to_arrow())
        return pa.Table.from_pylist(batch)

    def write(self, batch: List[Record]) -> Optional[str]:
        """Writes ``batch`` to a new part file and returns the file's path.

        Nothing is written for an empty batch.
        """
        if not batch:
            return None
        file_path = self._part_path()
        if self.file_format == FileFormat.PARQUET:
            data_frame = self._to_table(batch).to_pandas(
                types_mapper=_NULLABLE_PANDAS_TYPES.get
            )
            fastparquet.write(file_path, data_frame, open_with=self.file_system.open)
        elif self.file_format == FileFormat.AVRO:
            with self.file_system.open(file_path, "wb") as output:
                fastavro.writer(output, self.schema.parsed(), batch)
        elif self.file_format.is_delimited:
            table = self._to_table(batch)
            with self.file_system.open(file_path, "wb") as output:
                pcsv.write_csv(
                    table,
                    output,
                    write_options=pcsv.WriteOptions(
                        include_header=False, delimiter=self.delimiter
                    ),
                )
        elif self.file_format == FileFormat.JSON:
            # One JSON object per line.
            with self.file_system.open(file_path, "w") as output_file:
                for record in batch:
                    output_file.write(json.dumps(record, default=_json_default))
                    output_file.write("\n")
        else:
            raise ValueError(f"Unknown file format: {self.file_format}")
        return file_path
