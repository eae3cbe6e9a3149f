"""Base configuration shared by every GCS plugin.

Plugin properties arrive from the pipeline as a flat mapping keyed by their
framework names (``serviceFilePath``, ``sourcePath``, ...). Each config is a
dataclass whose fields carry the framework name in their metadata so errors
can be attributed back to the property the user edited.
"""

import dataclasses
import logging
import re
from typing import Any, ClassVar, Dict, FrozenSet, Mapping, Optional

import dacite
from google.api_core import exceptions as api_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import storage

from gcsflow.core.credentials import GCPCredentials
from gcsflow.core.credentials.gcp_credentials import detect_project_id
from gcsflow.core.options.credentials_options import CredentialsOptions
from gcsflow.exceptions import InvalidGCSPathException
from gcsflow.gcs.clients import GCPClients
from gcsflow.gcs.path import GCSPath
from gcsflow.validation import ErrorKind, FailureCollector, ValidationFailure

AUTO_DETECT = "auto-detect"
SERVICE_ACCOUNT_FILE_PATH = "filePath"
SERVICE_ACCOUNT_JSON = "JSON"

MACRO_START = "${"


def prop(name: str, default: Any = None):
    """Declares a dataclass field bound to the plugin property ``name``."""
    return dataclasses.field(default=default, metadata={"property": name})


def contains_macro_syntax(value: Any) -> bool:
    return isinstance(value, str) and MACRO_START in value


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise ValueError(f"Expected a boolean value but got `{value}`.")


_DACITE_CONFIG = dacite.Config(type_hooks={bool: _to_bool}, cast=[str])

_BOOL_TYPES = (bool, Optional[bool])


@dataclasses.dataclass
class GCPConfig:
    NAME_PROJECT: ClassVar[str] = "project"
    NAME_SERVICE_ACCOUNT_TYPE: ClassVar[str] = "serviceAccountType"
    NAME_SERVICE_ACCOUNT_FILE_PATH: ClassVar[str] = "serviceFilePath"
    NAME_SERVICE_ACCOUNT_JSON: ClassVar[str] = "serviceAccountJSON"

    project: Optional[str] = prop("project", AUTO_DETECT)
    service_account_type: Optional[str] = prop(
        "serviceAccountType", SERVICE_ACCOUNT_FILE_PATH
    )
    service_file_path: Optional[str] = prop("serviceFilePath", AUTO_DETECT)
    service_account_json: Optional[str] = prop("serviceAccountJSON")

    # Framework names of the properties whose value is still a macro.
    macro_fields: FrozenSet[str] = dataclasses.field(
        default=frozenset(), init=False, repr=False
    )
    # Framework names of the properties whose value could not be converted,
    # mapped to the reason.
    invalid_properties: Dict[str, str] = dataclasses.field(
        default_factory=dict, init=False, repr=False
    )

    @classmethod
    def property_fields(cls) -> Mapping[str, dataclasses.Field]:
        return {
            field.metadata["property"]: field
            for field in dataclasses.fields(cls)
            if "property" in field.metadata
        }

    @classmethod
    def from_properties(cls, properties: Mapping[str, Any]):
        """Builds the config from the raw properties of a pipeline stage.

        Properties that still contain a macro are left at their default and
        recorded so validation can skip them until the runtime resolves them.
        Values that cannot be converted to the field's type are left at their
        default too and reported by ``validate_property_values``.
        """
        fields = cls.property_fields()
        data = {}
        macros = set()
        invalid = {}
        for name, value in properties.items():
            field = fields.get(name)
            if field is None:
                logging.warning(
                    f"Ignoring unknown property `{name}` for {cls.__name__}"
                )
                continue
            if contains_macro_syntax(value):
                macros.add(name)
                continue
            if field.type in _BOOL_TYPES:
                try:
                    value = _to_bool(value)
                except ValueError as e:
                    invalid[name] = str(e)
                    continue
            data[field.name] = value
        config = dacite.from_dict(data_class=cls, data=data, config=_DACITE_CONFIG)
        config.macro_fields = frozenset(macros)
        config.invalid_properties = invalid
        return config

    def validate_property_values(self, collector: FailureCollector):
        """Reports properties whose value could not be bound to the config."""
        for name, message in sorted(self.invalid_properties.items()):
            collector.add_failure(
                f"Invalid value for property '{name}': {message}",
                "Use either 'true' or 'false'.",
                ErrorKind.SYNTAX,
            ).with_config_property(name)

    def contains_macro(self, property_name: str) -> bool:
        return property_name in self.macro_fields

    @property
    def project_id(self) -> str:
        if self.project is None or self.project == AUTO_DETECT:
            project_id = detect_project_id()
            if project_id is None:
                raise ValueError(
                    "Could not detect Google Cloud project id from the environment. "
                    "Please specify a project id."
                )
            return project_id
        return self.project

    @property
    def is_service_account_json(self) -> bool:
        return self.service_account_type == SERVICE_ACCOUNT_JSON

    def get_service_account_file_path(self) -> Optional[str]:
        if (
            self.is_service_account_json
            or self.contains_macro(self.NAME_SERVICE_ACCOUNT_FILE_PATH)
            or not self.service_file_path
            or self.service_file_path == AUTO_DETECT
        ):
            return None
        return self.service_file_path

    def get_service_account_json(self) -> Optional[str]:
        if not self.is_service_account_json or self.contains_macro(
            self.NAME_SERVICE_ACCOUNT_JSON
        ):
            return None
        return self.service_account_json or None

    def credentials(self) -> GCPCredentials:
        return GCPCredentials(
            CredentialsOptions.from_service_account(
                file_path=self.get_service_account_file_path(),
                info=self.get_service_account_json(),
            )
        )

    def get_storage_client(self) -> storage.Client:
        project_id = self.project_id
        return GCPClients(credentials=self.credentials()).get_storage_client(
            project_id
        )

    def _credentials_contain_macro(self) -> bool:
        return any(
            self.contains_macro(name)
            for name in (
                self.NAME_PROJECT,
                self.NAME_SERVICE_ACCOUNT_TYPE,
                self.NAME_SERVICE_ACCOUNT_FILE_PATH,
                self.NAME_SERVICE_ACCOUNT_JSON,
            )
        )

    def _credentials_property(self) -> str:
        if self.is_service_account_json:
            return self.NAME_SERVICE_ACCOUNT_JSON
        return self.NAME_SERVICE_ACCOUNT_FILE_PATH

    def validate_storage_client(
        self, collector: FailureCollector
    ) -> Optional[storage.Client]:
        """Returns a storage client, or None after recording why there is none.

        None is also returned without a failure when the credential properties
        are macros, since remote checks cannot run until they are resolved.
        """
        if self._credentials_contain_macro():
            return None
        if self.service_account_type not in (
            SERVICE_ACCOUNT_FILE_PATH,
            SERVICE_ACCOUNT_JSON,
        ):
            collector.add_failure(
                f"Invalid service account type `{self.service_account_type}`.",
                f"Use `{SERVICE_ACCOUNT_FILE_PATH}` or `{SERVICE_ACCOUNT_JSON}`.",
            ).with_config_property(self.NAME_SERVICE_ACCOUNT_TYPE)
            return None
        try:
            project_id = self.project_id
        except ValueError as e:
            collector.add_failure(
                str(e), "Specify the project id.", ErrorKind.CREDENTIALS
            ).with_config_property(self.NAME_PROJECT)
            return None
        try:
            return GCPClients(credentials=self.credentials()).get_storage_client(
                project_id
            )
        except (OSError, ValueError, auth_exceptions.GoogleAuthError) as e:
            collector.add_failure(
                str(e),
                "Ensure you entered the correct file path.",
                ErrorKind.CREDENTIALS,
            ).with_config_property(self._credentials_property()).with_stacktrace(e)
            return None

    def require(self, collector: FailureCollector, property_name: str, value) -> bool:
        """Records a failure if a required, non-macro property is missing."""
        if self.contains_macro(property_name):
            return False
        if value is None or (isinstance(value, str) and not value.strip()):
            collector.add_failure(
                f"Property '{property_name}' is required.",
                f"Provide a value for '{property_name}'.",
            ).with_config_property(property_name)
            return False
        return True

    def validate_gcs_path(
        self,
        collector: FailureCollector,
        storage_client: Optional[storage.Client],
        raw_path: str,
        property_name: str,
        *,
        as_element: bool = False,
        require_bucket: bool = True,
        corrective_action: str = "Ensure you entered the correct bucket path.",
    ) -> Optional[GCSPath]:
        """Parses ``raw_path`` and checks its bucket exists and is accessible."""

        def attach(failure: ValidationFailure) -> ValidationFailure:
            if as_element:
                return failure.with_config_element(property_name, raw_path)
            return failure.with_config_property(property_name)

        try:
            gcs_path = GCSPath.from_string(raw_path)
        except InvalidGCSPathException as e:
            attach(collector.add_failure(str(e), None, ErrorKind.SYNTAX))
            return None
        if storage_client is None:
            return gcs_path
        try:
            bucket = storage_client.lookup_bucket(gcs_path.bucket)
        except (api_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError) as e:
            attach(
                collector.add_failure(str(e), corrective_action, ErrorKind.REMOTE)
            ).with_stacktrace(e)
            return gcs_path
        if bucket is None and require_bucket:
            attach(
                collector.add_failure(
                    "Bucket does not exist.", corrective_action, ErrorKind.REMOTE
                )
            )
        return gcs_path


_REFERENCE_NAME = re.compile(r"^[A-Za-z0-9_.$-]+$")


@dataclasses.dataclass
class GCPReferenceSinkConfig(GCPConfig):
    NAME_REFERENCE_NAME: ClassVar[str] = "referenceName"

    # Name used to uniquely identify this sink for lineage.
    reference_name: Optional[str] = prop("referenceName")

    def validate_reference_name(self, collector: FailureCollector):
        if not self.require(collector, self.NAME_REFERENCE_NAME, self.reference_name):
            return
        if not _REFERENCE_NAME.match(self.reference_name):
            collector.add_failure(
                f"Invalid reference name '{self.reference_name}'.",
                "Supported characters are: letters, numbers, and '_', '-', '.', "
                "or '$'.",
                ErrorKind.SYNTAX,
            ).with_config_property(self.NAME_REFERENCE_NAME)
