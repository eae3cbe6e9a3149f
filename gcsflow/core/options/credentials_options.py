import dataclasses
from typing import Optional


@dataclasses.dataclass
class GCPCredentialsOptions:
    # Path to a service account key file on the local filesystem.
    service_account_file_path: Optional[str]
    # This is a JSON string containing the service account info.
    # It can either be a service account key, or JSON config for workflow
    # identity federation.
    service_account_info: Optional[str]

    @classmethod
    def default(cls) -> "GCPCredentialsOptions":
        return cls(
            service_account_file_path=None,
            service_account_info=None,
        )


@dataclasses.dataclass
class CredentialsOptions:
    gcp_credentials_options: GCPCredentialsOptions

    @classmethod
    def default(cls) -> "CredentialsOptions":
        return cls(gcp_credentials_options=GCPCredentialsOptions.default())

    @classmethod
    def from_service_account(
        cls,
        *,
        file_path: Optional[str] = None,
        info: Optional[str] = None,
    ) -> "CredentialsOptions":
        return cls(
            gcp_credentials_options=GCPCredentialsOptions(
                service_account_file_path=file_path,
                service_account_info=info,
            )
        )
