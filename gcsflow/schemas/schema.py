"""Record schemas written in the pipeline's Avro-style JSON form.

A schema is a JSON record such as::

    {"type": "record", "name": "etlSchemaBody",
     "fields": [{"name": "id", "type": "long"},
                {"name": "name", "type": ["string", "null"]}]}

Parsing is delegated to fastavro so any schema accepted here can be written
as Avro. The same schema is converted to an Arrow schema for the columnar and
delimited writers.
"""

import dataclasses
import json
from typing import Any, Dict, List, Optional, Union

import fastavro
import pyarrow as pa
from fastavro.schema import SchemaParseException, UnknownType

from gcsflow.exceptions import InvalidSchemaException

AvroType = Union[str, Dict[str, Any], List[Any]]

_SIMPLE_TYPES = ("null", "boolean", "int", "long", "float", "double", "bytes", "string")

_PRIMITIVE_TO_ARROW = {
    "null": pa.null(),
    "boolean": pa.bool_(),
    "int": pa.int32(),
    "long": pa.int64(),
    "float": pa.float32(),
    "double": pa.float64(),
    "bytes": pa.binary(),
    "string": pa.string(),
}

_LOGICAL_TO_ARROW = {
    "date": pa.date32(),
    "time-millis": pa.time32("ms"),
    "time-micros": pa.time64("us"),
    "timestamp-millis": pa.timestamp("ms", tz="UTC"),
    "timestamp-micros": pa.timestamp("us", tz="UTC"),
}


@dataclasses.dataclass(frozen=True)
class Field:
    name: str
    type: AvroType

    @property
    def nullable(self) -> bool:
        return isinstance(self.type, list) and "null" in self.type

    @property
    def non_null_type(self) -> AvroType:
        if isinstance(self.type, list):
            types = [t for t in self.type if t != "null"]
            return types[0] if len(types) == 1 else types
        return self.type

    @property
    def is_simple(self) -> bool:
        inner = self.non_null_type
        if isinstance(inner, str):
            return inner in _SIMPLE_TYPES
        if isinstance(inner, dict):
            # Logical types annotate simple types and enums are written as names.
            return inner.get("type") == "enum" or (
                "logicalType" in inner and inner.get("type") in _SIMPLE_TYPES
            )
        return False


@dataclasses.dataclass(frozen=True)
class Schema:
    definition: Dict[str, Any]

    @classmethod
    def parse_json(cls, schema_json: str) -> "Schema":
        try:
            definition = json.loads(schema_json)
        except json.JSONDecodeError as e:
            raise InvalidSchemaException(f"Invalid schema: {e}") from e
        return cls.from_dict(definition)

    @classmethod
    def from_dict(cls, definition: Dict[str, Any]) -> "Schema":
        if not isinstance(definition, dict) or definition.get("type") != "record":
            raise InvalidSchemaException(
                "Invalid schema: the schema must be a JSON object of type 'record'."
            )
        try:
            fastavro.parse_schema(definition)
        except (SchemaParseException, UnknownType) as e:
            raise InvalidSchemaException(f"Invalid schema: {e}") from e
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidSchemaException(f"Invalid schema: {e!r}") from e
        return cls(definition=definition)

    @property
    def fields(self) -> List[Field]:
        return [
            Field(name=f["name"], type=f["type"]) for f in self.definition["fields"]
        ]

    @property
    def field_names(self) -> List[str]:
        return [field.name for field in self.fields]

    def parsed(self) -> Dict[str, Any]:
        """The schema in the form fastavro writers expect."""
        return fastavro.parse_schema(self.definition)

    def to_arrow(self) -> pa.Schema:
        return pa.schema([_to_arrow_field(f) for f in self.fields])

    def to_json(self) -> str:
        return json.dumps(self.definition)


def _to_arrow_field(field: Field) -> pa.Field:
    return pa.field(
        field.name, _to_arrow_type(field.non_null_type), nullable=field.nullable
    )


def _to_arrow_type(avro_type: AvroType) -> pa.DataType:
    if isinstance(avro_type, str):
        try:
            return _PRIMITIVE_TO_ARROW[avro_type]
        except KeyError:
            raise InvalidSchemaException(
                f"Named type reference `{avro_type}` is not supported."
            )
    if isinstance(avro_type, list):
        types = [t for t in avro_type if t != "null"]
        if len(types) != 1:
            raise InvalidSchemaException(
                f"Unions of several non-null types are not supported: {avro_type}"
            )
        return _to_arrow_type(types[0])

    type_name = avro_type.get("type")
    logical_type: Optional[str] = avro_type.get("logicalType")
    if logical_type == "decimal":
        return pa.decimal128(avro_type["precision"], avro_type.get("scale", 0))
    if logical_type in _LOGICAL_TO_ARROW:
        return _LOGICAL_TO_ARROW[logical_type]
    if type_name == "record":
        return pa.struct(
            [_to_arrow_field(Field(f["name"], f["type"])) for f in avro_type["fields"]]
        )
    if type_name == "array":
        return pa.list_(_to_arrow_type(avro_type["items"]))
    if type_name == "map":
        return pa.map_(pa.string(), _to_arrow_type(avro_type["values"]))
    if type_name == "enum":
        return pa.string()
    if type_name == "fixed":
        return pa.binary(avro_type["size"])
    return _to_arrow_type(type_name)
