"""Collects validation failures so every problem can be reported in one pass.

A plugin adds one failure per problem it finds and attaches the property (or
the element of a list property) that caused it so the pipeline UI can point
the user at the right field. Once validation is done ``get_or_raise`` turns
the accumulated failures into a single ``ValidationException``.
"""

import dataclasses
import enum
import traceback
from typing import List, Optional

from gcsflow.exceptions import ValidationException


class ErrorKind(enum.Enum):
    # The value could not be parsed, e.g. a malformed path or date pattern.
    SYNTAX = "syntax"
    # The remote API failed or the referenced resource does not exist.
    REMOTE = "remote"
    # The configured service account could not be loaded.
    CREDENTIALS = "credentials"
    INVALID = "invalid"


@dataclasses.dataclass(frozen=True)
class Cause:
    config_property: str
    config_element: Optional[str] = None

    def __str__(self) -> str:
        if self.config_element is None:
            return self.config_property
        return f"{self.config_property}[{self.config_element}]"


@dataclasses.dataclass
class ValidationFailure:
    message: str
    corrective_action: Optional[str] = None
    kind: ErrorKind = ErrorKind.INVALID
    causes: List[Cause] = dataclasses.field(default_factory=list)
    stacktrace: Optional[str] = None

    def with_config_property(self, name: str) -> "ValidationFailure":
        self.causes.append(Cause(config_property=name))
        return self

    def with_config_element(self, name: str, element: str) -> "ValidationFailure":
        self.causes.append(Cause(config_property=name, config_element=element))
        return self

    def with_stacktrace(self, error: BaseException) -> "ValidationFailure":
        self.stacktrace = "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        )
        return self

    @property
    def config_properties(self) -> List[str]:
        return [cause.config_property for cause in self.causes]

    def __str__(self) -> str:
        text = self.message
        if self.corrective_action:
            text = f"{text} {self.corrective_action}"
        if self.causes:
            text = f"{text} (field: {', '.join(str(c) for c in self.causes)})"
        return text


class FailureCollector:
    def __init__(self) -> None:
        self._failures: List[ValidationFailure] = []

    def add_failure(
        self,
        message: str,
        corrective_action: Optional[str] = None,
        kind: ErrorKind = ErrorKind.INVALID,
    ) -> ValidationFailure:
        failure = ValidationFailure(
            message=message, corrective_action=corrective_action, kind=kind
        )
        self._failures.append(failure)
        return failure

    @property
    def failures(self) -> List[ValidationFailure]:
        return list(self._failures)

    def failures_for(self, config_property: str) -> List[ValidationFailure]:
        return [f for f in self._failures if config_property in f.config_properties]

    def get_or_raise(self):
        if self._failures:
            raise ValidationException(self._failures)
