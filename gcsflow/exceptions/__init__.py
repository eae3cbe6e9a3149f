# ruff: noqa
from .exceptions import (
    BucketAccessException,
    DestinationExistsException,
    InvalidDatePatternException,
    InvalidFileFormatException,
    InvalidGCSPathException,
    InvalidSchemaException,
    PathNotFoundException,
    SourceIsDestinationException,
    SourceNotFoundException,
    UnknownPluginException,
    UnresolvedMacroException,
    ValidationException,
)
