# ruff: noqa
from .gcp_credentials import GCPCredentials
