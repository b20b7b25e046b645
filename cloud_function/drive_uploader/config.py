"""
Process configuration for the Drive upload function.

Everything is read from environment variables once and carried around as an
immutable Settings object:
- GOOGLE_SERVICE_ACCOUNT_JSON: service account key JSON (contents, not a path)
- DRIVE_FOLDER_ID: Drive folder that receives the uploads
- UPLOAD_TOKEN: optional shared secret expected in the X-Upload-Token header
- LOG_LEVEL: defaults to INFO
"""
from __future__ import annotations
import os
import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Mapping, Optional

from .errors import ConfigError

DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"
REQUIRED_CREDENTIAL_FIELDS = ("client_email", "private_key")


@dataclass(frozen=True)
class Settings:
    service_account_json: Optional[str] = None
    drive_folder_id: Optional[str] = None
    upload_token: Optional[str] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            service_account_json=env.get("GOOGLE_SERVICE_ACCOUNT_JSON") or None,
            drive_folder_id=env.get("DRIVE_FOLDER_ID") or None,
            # An empty token counts as "not configured": uploads are open.
            upload_token=env.get("UPLOAD_TOKEN") or None,
            log_level=_log_level(env.get("LOG_LEVEL")),
        )

    @property
    def token_required(self) -> bool:
        return bool(self.upload_token)

    def service_account_info(self) -> dict:
        """
        Parse and validate the service account JSON.

        Raises:
            ConfigError: if the JSON is absent, malformed or lacks an email or
                private key. The message never includes the JSON itself.
        """
        if not self.service_account_json:
            raise ConfigError("Missing GOOGLE_SERVICE_ACCOUNT_JSON")

        try:
            info = json.loads(self.service_account_json)
        except json.JSONDecodeError as e:
            # JSONDecodeError keeps the whole document in e.doc; don't chain it.
            raise ConfigError(
                f"GOOGLE_SERVICE_ACCOUNT_JSON is not valid JSON (line {e.lineno}, column {e.colno})"
            ) from None

        if not isinstance(info, dict):
            raise ConfigError("GOOGLE_SERVICE_ACCOUNT_JSON must be a JSON object")

        missing = [
            key for key in REQUIRED_CREDENTIAL_FIELDS
            if not isinstance(info.get(key), str) or not info[key].strip()
        ]
        if missing:
            raise ConfigError(f"GOOGLE_SERVICE_ACCOUNT_JSON is missing {', '.join(missing)}")

        info = dict(info)
        # Keys pasted into dashboards often keep their newlines escaped.
        info["private_key"] = info["private_key"].replace("\\n", "\n")
        info.setdefault("token_uri", DEFAULT_TOKEN_URI)
        return info

    def require_folder_id(self) -> str:
        if not self.drive_folder_id:
            raise ConfigError("Missing DRIVE_FOLDER_ID")
        return self.drive_folder_id


def _log_level(value: Optional[str]) -> str:
    """Upper-cased level name; unknown names fall back to INFO."""
    level = (value or "INFO").strip().upper()
    # getLevelName maps registered names to their number, anything else to a string
    if not isinstance(logging.getLevelName(level), int):
        return "INFO"
    return level


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Settings for this process, read from the environment on first use."""
    return Settings.from_env()
