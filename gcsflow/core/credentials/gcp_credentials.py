import json
import logging
from typing import Optional

import google.auth
from google.auth import exceptions
from google.oauth2 import service_account

from gcsflow.core.options.credentials_options import CredentialsOptions


class GCPCredentials:
    """Google Cloud credentials built from the configured service account."""

    def __init__(self, credentials_options: CredentialsOptions) -> None:
        gcp_options = credentials_options.gcp_credentials_options
        self.service_account_file_path = gcp_options.service_account_file_path
        self.service_account_info = gcp_options.service_account_info

    @property
    def token(self):
        """The token argument understood by gcsfs for these credentials."""
        if self.service_account_file_path is not None:
            return self.service_account_file_path
        if self.service_account_info is not None:
            return json.loads(self.service_account_info)
        return None

    def get_creds(self, quota_project_id: Optional[str] = None):
        # Errors loading an explicitly configured service account are raised so
        # they can be reported against the property that configured them.
        if self.service_account_file_path is not None:
            creds = service_account.Credentials.from_service_account_file(
                self.service_account_file_path
            )
        elif self.service_account_info is not None:
            creds = service_account.Credentials.from_service_account_info(
                json.loads(self.service_account_info),
            )
        else:
            try:
                creds, _ = google.auth.default(quota_project_id=quota_project_id)
                return creds
            except exceptions.DefaultCredentialsError:
                # if we failed to fetch the credentials fall back to anonymous
                # credentials. This can happen if a
                # user is running in an environment with no default creds.
                logging.warning(
                    "no default credentials found, using anonymous credentials"
                )
                return google.auth.credentials.AnonymousCredentials()
        if quota_project_id is not None and creds.project_id != quota_project_id:
            creds = creds.with_quota_project(quota_project_id)
        return creds


def detect_project_id() -> Optional[str]:
    """Returns the project of the ambient environment, if there is one."""
    try:
        _, project_id = google.auth.default()
    except exceptions.DefaultCredentialsError:
        return None
    return project_id
