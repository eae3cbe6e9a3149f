# ruff: noqa
from .credentials_options import CredentialsOptions, GCPCredentialsOptions
