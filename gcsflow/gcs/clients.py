import logging
from typing import Any, Dict, Optional

import fsspec
import gcsfs
from google.cloud import storage

from gcsflow.core.credentials import GCPCredentials
from gcsflow.core.types.gcp_types import CMEKKeyName, GCPProjectID, GCPRegion

# Runtime argument holding the customer-managed encryption key used when a
# plugin has to create a bucket.
CMEK_KEY = "gcp.cmek.key.name"

DEFAULT_BUCKET_LOCATION = "US"


class GCPClients:
    def __init__(
        self,
        *,
        credentials: GCPCredentials,
        quota_project_id: Optional[str] = None,
    ):
        self.credentials = credentials
        self.creds = credentials.get_creds(quota_project_id)

    def get_storage_client(self, project: GCPProjectID = None) -> storage.Client:
        return storage.Client(credentials=self.creds, project=project)


def get_file_system(
    credentials: GCPCredentials, project: GCPProjectID = None
) -> fsspec.AbstractFileSystem:
    return gcsfs.GCSFileSystem(**file_system_options(credentials, project))


def create_bucket(
    client: storage.Client,
    bucket_name: str,
    location: Optional[GCPRegion] = None,
    cmek_key: Optional[CMEKKeyName] = None,
) -> storage.Bucket:
    location = location or DEFAULT_BUCKET_LOCATION
    bucket = client.bucket(bucket_name)
    if cmek_key:
        bucket.default_kms_key_name = cmek_key
    logging.info(f"Creating bucket: {bucket_name} in location {location}")
    return client.create_bucket(bucket, location=location)


def file_system_options(
    credentials: GCPCredentials, project: GCPProjectID = None
) -> Dict[str, Any]:
    """Storage options fsspec needs to open gs:// urls with these credentials."""
    # Instance caching is disabled so every handle picks up the credentials it
    # was asked for.
    return {
        "project": project,
        "token": credentials.token,
        "skip_instance_cache": True,
    }
