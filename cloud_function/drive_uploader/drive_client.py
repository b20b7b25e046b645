import io
import logging
from typing import Optional

import httplib2
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload

from .config import Settings
from .errors import ConfigError, UpstreamFailure

logger = logging.getLogger(__name__)

# Only files this app created; never the whole drive.
SCOPES = ["https://www.googleapis.com/auth/drive.file"]
# httplib2 errors (DNS, redirects) do not derive from OSError.
TRANSPORT_ERRORS = (GoogleAuthError, httplib2.HttpLib2Error, OSError)


def build_credentials(info: dict) -> service_account.Credentials:
    """Service account credentials from validated key info (see Settings.service_account_info)."""
    try:
        return service_account.Credentials.from_service_account_info(info, scopes=SCOPES)
    except (ValueError, TypeError, GoogleAuthError) as e:
        # Raised for unreadable private keys.
        raise ConfigError(f"Service account credentials could not be loaded: {type(e).__name__}") from None


class DriveStorage:
    """Thin wrapper over the Drive v3 files resource."""

    def __init__(self, drive, folder_id: str):
        self.drive = drive
        self.folder_id = folder_id

    @classmethod
    def from_settings(cls, settings: Settings) -> "DriveStorage":
        info = settings.service_account_info()
        folder_id = settings.require_folder_id()
        creds = build_credentials(info)
        drive = build("drive", "v3", credentials=creds, cache_discovery=False)
        logger.debug("Drive client ready", extra={"service_account": info["client_email"]})
        return cls(drive, folder_id)

    def create_file(self, name: str, mime_type: str, data: bytes,
                    parent_folder_id: Optional[str] = None) -> str:
        """
        Upload ``data`` as a new file in one request and return its Drive id.

        Raises:
            UpstreamFailure: the API rejected the call or could not be reached.
                There is no retry.
        """
        parent = parent_folder_id or self.folder_id
        media = MediaIoBaseUpload(io.BytesIO(data), mimetype=mime_type, resumable=False)

        try:
            created = self.drive.files().create(
                body={"name": name, "parents": [parent]},
                media_body=media,
                fields="id",
                supportsAllDrives=True,
            ).execute()
        except HttpError as e:
            raise UpstreamFailure(f"Drive rejected upload of {name!r}: HTTP {e.resp.status}") from e
        except TRANSPORT_ERRORS as e:
            raise UpstreamFailure(f"Drive upload of {name!r} failed: {type(e).__name__}") from e

        file_id = created.get("id", "")
        logger.info("Drive file created", extra={"drive_file_id": file_id, "drive_name": name})
        return file_id

    def get_folder(self, folder_id: Optional[str] = None) -> dict:
        """Metadata of the target folder; confirms the service account can see it."""
        try:
            return self.drive.files().get(
                fileId=folder_id or self.folder_id,
                fields="id,name,mimeType",
                supportsAllDrives=True,
            ).execute()
        except HttpError as e:
            raise UpstreamFailure(f"Drive folder lookup failed: HTTP {e.resp.status}") from e
        except TRANSPORT_ERRORS as e:
            raise UpstreamFailure(f"Drive folder lookup failed: {type(e).__name__}") from e


def get_drive_storage(settings: Settings) -> DriveStorage:
    """Build the storage client for one request."""
    return DriveStorage.from_settings(settings)
