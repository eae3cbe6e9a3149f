from typing import TYPE_CHECKING, List

if TYPE_CHECKING:
    from gcsflow.validation.failure_collector import ValidationFailure


class InvalidGCSPathException(ValueError):
    """Raised when a string cannot be parsed into a GCS bucket and object."""


class InvalidFileFormatException(ValueError):
    """Raised when a format name is unknown or cannot be used by a plugin."""


class InvalidSchemaException(ValueError):
    """Raised when a record schema cannot be parsed."""


class InvalidDatePatternException(ValueError):
    """Raised when a date pattern used for an output suffix is malformed."""


class ValidationException(Exception):
    """Raised when one or more plugin properties failed validation.

    All failures collected during a validation pass are kept on the exception
    so the caller can report every problem at once.
    """

    def __init__(self, failures: List["ValidationFailure"]) -> None:
        self.failures = list(failures)
        details = "\n".join(f"  - {failure}" for failure in self.failures)
        super().__init__(
            f"Errors were encountered during validation. "
            f"{len(self.failures)} failure(s) found:\n{details}"
        )


class BucketAccessException(RuntimeError):
    """Raised when a destination bucket can neither be read nor created."""

    def __init__(self, bucket_name: str, message: str) -> None:
        long_message = (
            f"Unable to access or create bucket at path {bucket_name}. "
            "Ensure you entered the correct bucket path.\n\n"
            f"Full error: {message}"
        )
        super().__init__(long_message)


class SourceNotFoundException(Exception):
    """Raised when a copy or move source does not match any object."""

    def __init__(self, source_uri: str) -> None:
        super().__init__(
            f"Source path {source_uri} does not exist. Ensure you entered the "
            "correct object or directory path."
        )


class DestinationExistsException(Exception):
    """Raised when a copy or move would overwrite objects without permission."""

    def __init__(self, destination_uris: List[str]) -> None:
        self.destination_uris = list(destination_uris)
        super().__init__(
            f"{', '.join(self.destination_uris)} already exist(s). Set "
            "`overwrite` to true to replace existing objects."
        )


class UnknownPluginException(Exception):
    """Raised when a pipeline stage names a plugin that is not registered."""

    def __init__(self, plugin_name: str, known: List[str]) -> None:
        super().__init__(
            f"Unknown plugin `{plugin_name}`. Available plugins are: "
            f"{', '.join(sorted(known))}."
        )


class PathNotFoundException(Exception):
    """Raised when a local file the CLI needs is not found."""

    def __init__(self, message) -> None:
        long_message = (
            "Failed to find a required file. Please check the path and try again."
            f"\n\nFull error: {message}"
        )
        super().__init__(long_message)


class UnresolvedMacroException(Exception):
    """Raised when a plugin runs while some of its properties are still macros."""

    def __init__(self, stage_name: str, property_names: List[str]) -> None:
        super().__init__(
            f"Stage `{stage_name}` has unresolved macros for properties: "
            f"{', '.join(sorted(property_names))}. Macros must be resolved by the "
            "pipeline runtime before the stage can run."
        )


class SourceIsDestinationException(Exception):
    """Raised when a copy or move would write objects onto themselves."""

    def __init__(self, uris: List[str]) -> None:
        self.uris = list(uris)
        super().__init__(
            f"{', '.join(self.uris)} would be copied onto itself. Choose a "
            "destination path that differs from the source path."
        )
