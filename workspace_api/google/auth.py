import base64
import binascii
import json
from typing import Any, Dict, List, Optional

import requests
from google.auth.transport.requests import AuthorizedSession
from google.oauth2 import credentials as oauth_credentials
from google.oauth2 import service_account

from workspace_api.utils.errors import ConfigurationError
from workspace_api.utils.logger import app_logger as logger
from workspace_api.utils.settings import Settings

API_KEY = "api_key"
OAUTH_CLIENT = "oauth_client"
SERVICE_ACCOUNT = "service_account"

SERVICE_SCOPES = {
    "Admin SDK API": [
        "https://www.googleapis.com/auth/admin.directory.user",
        "https://www.googleapis.com/auth/admin.directory.group",
        "https://www.googleapis.com/auth/admin.directory.device.chromeos",
        "https://www.googleapis.com/auth/admin.directory.device.mobile",
        "https://www.googleapis.com/auth/admin.directory.rolemanagement",
        "https://www.googleapis.com/auth/admin.directory.customer.readonly",
    ],
    "Google Drive API": [
        "https://www.googleapis.com/auth/drive",
    ],
    "Google Sheets API": [
        "https://www.googleapis.com/auth/spreadsheets",
    ],
    "Chrome Policy API": [
        "https://www.googleapis.com/auth/chrome.management.policy",
    ],
    "Admin Reports API": [
        "https://www.googleapis.com/auth/admin.reports.audit.readonly",
        "https://www.googleapis.com/auth/admin.reports.usage.readonly",
    ],
}


def dedupe(values: List[str]) -> List[str]:
    return list(dict.fromkeys(values))


def resolve_scopes(scopes: List[str]) -> List[str]:
    """Expand service names like "Google Drive API" into their scope URLs."""
    resolved = []
    for scope in dedupe(scopes):
        if scope.startswith("https://www.googleapis.com/auth/"):
            resolved.append(scope)
        elif scope in SERVICE_SCOPES:
            resolved.extend(SERVICE_SCOPES[scope])
        else:
            raise ConfigurationError(f"Unknown Google scope or service: {scope}")
    return dedupe(resolved)


def _decode_b64_json(value: Optional[str], name: str) -> Dict[str, Any]:
    if not value:
        raise ConfigurationError(f"{name} must be set when GOOGLE_CICD is enabled")
    try:
        return json.loads(base64.b64decode(value))
    except (binascii.Error, ValueError) as e:
        raise ConfigurationError(f"{name} is not base64 encoded JSON: {e}") from e


class GoogleAuth:
    def __init__(
        self,
        auth_type: str = SERVICE_ACCOUNT,
        scopes: Optional[List[str]] = None,
        subject: Optional[str] = None,
        credentials_file: Optional[str] = None,
        credentials_info: Optional[Dict[str, Any]] = None,
        api_key: Optional[str] = None,
    ) -> None:
        self.auth_type = auth_type
        self.scopes = resolve_scopes(scopes or [])
        self.subject = subject
        self.credentials_file = credentials_file
        self.credentials_info = credentials_info
        self.api_key = api_key
        self._credentials = None

    def __repr__(self) -> str:
        return f"GoogleAuth({self.auth_type}, subject={self.subject})"

    @classmethod
    def from_settings(cls, settings: Settings) -> "GoogleAuth":
        auth_type = settings.GOOGLE_AUTH_TYPE
        credentials_info = None
        api_key = settings.GOOGLE_API_KEY
        if settings.GOOGLE_CICD:
            logger.debug("Reading Google credentials from environment variables")
            if auth_type == SERVICE_ACCOUNT:
                credentials_info = _decode_b64_json(
                    settings.GOOGLE_SERVICE_ACCOUNT, "GOOGLE_SERVICE_ACCOUNT"
                )
            elif auth_type == OAUTH_CLIENT:
                credentials_info = _decode_b64_json(
                    settings.GOOGLE_OAUTH_CLIENT, "GOOGLE_OAUTH_CLIENT"
                )
        return cls(
            auth_type=auth_type,
            scopes=settings.GOOGLE_SCOPES,
            subject=settings.GOOGLE_SUBJECT,
            credentials_file=settings.GOOGLE_CREDENTIALS_FILE,
            credentials_info=credentials_info,
            api_key=api_key,
        )

    @property
    def credentials(self):
        if self._credentials is None and self.auth_type != API_KEY:
            self._credentials = self._load_credentials()
        return self._credentials

    def _load_credentials(self):
        if self.credentials_info is None and not self.credentials_file:
            raise ConfigurationError(
                f"No credentials provided for auth type {self.auth_type}"
            )

        if self.auth_type == SERVICE_ACCOUNT:
            logger.debug("Loading service account credentials")
            if self.credentials_info is not None:
                creds = service_account.Credentials.from_service_account_info(
                    self.credentials_info, scopes=self.scopes
                )
            else:
                creds = service_account.Credentials.from_service_account_file(
                    self.credentials_file, scopes=self.scopes
                )
            if self.subject:
                logger.debug(f"Delegating service account to {self.subject}")
                creds = creds.with_subject(self.subject)
            return creds

        if self.auth_type == OAUTH_CLIENT:
            logger.debug("Loading authorized user credentials")
            if self.credentials_info is not None:
                return oauth_credentials.Credentials.from_authorized_user_info(
                    self.credentials_info, scopes=self.scopes or None
                )
            return oauth_credentials.Credentials.from_authorized_user_file(
                self.credentials_file, scopes=self.scopes or None
            )

        raise ConfigurationError(f"Unsupported auth type: {self.auth_type}")

    def session(self) -> requests.Session:
        if self.auth_type == API_KEY:
            if not self.api_key:
                raise ConfigurationError("GOOGLE_API_KEY must be set for api_key auth")
            session = requests.Session()
            session.params = {"key": self.api_key}
            return session
        return AuthorizedSession(self.credentials)

    def impersonate(self, email: str) -> "GoogleAuth":
        if self.auth_type != SERVICE_ACCOUNT:
            raise ConfigurationError(
                "Impersonation requires service account credentials"
            )
        logger.info(f"Impersonating {email}")
        auth = GoogleAuth(
            auth_type=self.auth_type,
            subject=email,
            credentials_file=self.credentials_file,
            credentials_info=self.credentials_info,
            api_key=self.api_key,
        )
        auth.scopes = list(self.scopes)
        return auth
