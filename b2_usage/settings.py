from __future__ import annotations
"""Credential and endpoint settings loaded from the environment."""

from dataclasses import dataclass
import os
from pathlib import Path
from typing import Mapping

from dotenv import dotenv_values
import keyring
from keyring.errors import KeyringError

from .services import DEFAULT_AUTH_URL

DEFAULT_ENV_FILE = ".env"
KEYCHAIN_SERVICE = "pyb2du"

ACCOUNT_ID_VARS = ("B2_ACCOUNT_ID", "B2_APPLICATION_KEY_ID")
APPLICATION_KEY_VAR = "B2_APPLICATION_KEY"
AUTH_URL_VAR = "B2_AUTH_URL"
S3_ENDPOINT_VAR = "B2_S3_ENDPOINT_URL"


class ConfigurationError(RuntimeError):
    """Raised when required credentials or endpoints are not configured."""


@dataclass(frozen=True)
class AuditSettings:
    """Explicit configuration for one audit run."""

    account_id: str
    application_key: str
    auth_url: str = DEFAULT_AUTH_URL
    s3_endpoint_url: str = ""

    def require_s3_endpoint(self) -> str:
        if not self.s3_endpoint_url:
            raise ConfigurationError(f"{S3_ENDPOINT_VAR} is required for the s3 backend")
        return self.s3_endpoint_url


class KeychainStore:
    """Encapsulates OS keychain access for application keys."""

    def __init__(self, service_name: str = KEYCHAIN_SERVICE):
        self._service_name = service_name

    def get_secret(self, account_id: str) -> str:
        if not account_id:
            return ""
        try:
            return keyring.get_password(self._service_name, account_id) or ""
        except KeyringError:
            return ""


def load_settings(
    env_file: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
    keychain: KeychainStore | None = None,
) -> AuditSettings:
    """Build :class:`AuditSettings` from a dotenv file and the environment.

    Environment variables take precedence over the dotenv file. The
    application key falls back to the OS keychain when neither provides it.

    Raises:
        ConfigurationError: when the account id or application key is missing.
    """
    values = _read_env_file(env_file)
    values.update(os.environ if environ is None else environ)

    account_id = _first_value(values, ACCOUNT_ID_VARS)
    if not account_id:
        raise ConfigurationError(f"{ACCOUNT_ID_VARS[0]} is not set")

    application_key = (values.get(APPLICATION_KEY_VAR) or "").strip()
    if not application_key:
        application_key = (keychain or KeychainStore()).get_secret(account_id)
    if not application_key:
        raise ConfigurationError(f"{APPLICATION_KEY_VAR} is not set")

    return AuditSettings(
        account_id=account_id,
        application_key=application_key,
        auth_url=(values.get(AUTH_URL_VAR) or "").strip() or DEFAULT_AUTH_URL,
        s3_endpoint_url=(values.get(S3_ENDPOINT_VAR) or "").strip(),
    )


def _read_env_file(env_file: str | Path | None) -> dict[str, str]:
    path = Path(env_file) if env_file is not None else Path(DEFAULT_ENV_FILE)
    if not path.is_file():
        if env_file is not None:
            raise ConfigurationError(f"Environment file '{path}' does not exist")
        return {}
    return {key: value for key, value in dotenv_values(path).items() if value is not None}


def _first_value(values: Mapping[str, str], names: tuple[str, ...]) -> str:
    for name in names:
        value = (values.get(name) or "").strip()
        if value:
            return value
    return ""
