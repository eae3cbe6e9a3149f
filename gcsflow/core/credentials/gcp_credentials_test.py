import json
import unittest
from unittest import mock

from google.auth import credentials as auth_credentials
from google.auth import exceptions

from gcsflow.core.credentials import GCPCredentials
from gcsflow.core.credentials.gcp_credentials import detect_project_id
from gcsflow.core.options import CredentialsOptions


class GCPCredentialsTest(unittest.TestCase):
    def test_token(self):
        self.assertIsNone(GCPCredentials(CredentialsOptions.default()).token)
        self.assertEqual(
            "/tmp/key.json",
            GCPCredentials(
                CredentialsOptions.from_service_account(file_path="/tmp/key.json")
            ).token,
        )
        info = {"type": "service_account"}
        self.assertEqual(
            info,
            GCPCredentials(
                CredentialsOptions.from_service_account(info=json.dumps(info))
            ).token,
        )

    @mock.patch("google.auth.default")
    def test_default_credentials(self, auth_mock: mock.MagicMock):
        creds = mock.MagicMock()
        auth_mock.return_value = (creds, "my-project")
        self.assertIs(creds, GCPCredentials(CredentialsOptions.default()).get_creds())

    @mock.patch("google.auth.default")
    def test_anonymous_fallback(self, auth_mock: mock.MagicMock):
        auth_mock.side_effect = exceptions.DefaultCredentialsError("no creds")
        with self.assertLogs(level="WARNING"):
            creds = GCPCredentials(CredentialsOptions.default()).get_creds()
        self.assertIsInstance(creds, auth_credentials.AnonymousCredentials)

    def test_missing_service_account_file(self):
        credentials = GCPCredentials(
            CredentialsOptions.from_service_account(file_path="/does/not/exist.json")
        )
        with self.assertRaises(OSError):
            credentials.get_creds()

    @mock.patch("google.auth.default")
    def test_detect_project_id(self, auth_mock: mock.MagicMock):
        auth_mock.return_value = (mock.MagicMock(), "my-project")
        self.assertEqual("my-project", detect_project_id())
        auth_mock.side_effect = exceptions.DefaultCredentialsError("no creds")
        self.assertIsNone(detect_project_id())


if __name__ == "__main__":
    unittest.main()
