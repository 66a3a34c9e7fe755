"""credentials.py — Database credential lookup in Secrets Manager.

The secret is a JSON object holding ``username`` and ``password``.
"""
from __future__ import annotations

import json
from dataclasses import dataclass

from botocore.exceptions import BotoCoreError, ClientError

from aws_clients import _get_secretsmanager
from config import BlogPostsConfig, logger

__all__ = [
    "CredentialsError",
    "DbCredentials",
    "_fetch_db_credentials",
    "_parse_secret_string",
]


class CredentialsError(RuntimeError):
    """Database credentials could not be resolved."""


@dataclass(frozen=True)
class DbCredentials:
    username: str
    password: str

    def __repr__(self) -> str:
        return f"DbCredentials(username={self.username!r}, password='***')"


def _parse_secret_string(secret_string: str) -> DbCredentials:
    try:
        secret = json.loads(secret_string)
    except (json.JSONDecodeError, TypeError) as exc:
        raise CredentialsError("Database secret is not valid JSON") from exc
    if not isinstance(secret, dict):
        raise CredentialsError("Database secret must be a JSON object")

    username = secret.get("username")
    password = secret.get("password")
    if not isinstance(username, str) or not isinstance(password, str):
        raise CredentialsError("Database secret missing username/password")
    return DbCredentials(username=username, password=password)


def _fetch_db_credentials(config: BlogPostsConfig) -> DbCredentials:
    if not config.secret_name:
        raise CredentialsError("SECRET_NAME not set")

    logger.info("[INFO] Getting DB credentials secret=%s", config.secret_name)
    try:
        resp = _get_secretsmanager(config.secrets_region).get_secret_value(
            SecretId=config.secret_name
        )
    except ClientError as exc:
        code = exc.response.get("Error", {}).get("Code", "ClientError")
        raise CredentialsError(f"Secret fetch failed: {code}") from exc
    except BotoCoreError as exc:
        raise CredentialsError(f"Secret fetch failed: {exc.__class__.__name__}") from exc

    secret_string = resp.get("SecretString")
    if not secret_string:
        raise CredentialsError("Secret has no SecretString value")

    creds = _parse_secret_string(secret_string)
    logger.debug("Got DB credentials")
    return creds
