"""Upload of merged audio to a Google Drive folder."""

import logging
import mimetypes
import os

import google.auth.exceptions
import httplib2
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaFileUpload

from gmail_tts.constants import DRIVE_UPLOAD_CHUNK_BYTES
from gmail_tts.errors import (
    AuthorizationError,
    NotFoundError,
    OperationTimeoutError,
    ProviderError,
    TransportError,
)

logger = logging.getLogger(__name__)


class DriveUploader:
    """Creates files in one Drive folder through a Drive v3 service object."""

    def __init__(self, service, folder_id: str = ""):
        self.service = service
        self.folder_id = folder_id

    def upload(self, path: str, name: str | None = None) -> dict:
        """Upload path and return {"id": ..., "webViewLink": ...}."""
        if not os.path.exists(path):
            raise NotFoundError(f"Nothing to upload at {path}")

        metadata = {"name": name or os.path.basename(path)}
        if self.folder_id:
            metadata["parents"] = [self.folder_id]
        mime_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
        media = MediaFileUpload(path, mimetype=mime_type, chunksize=DRIVE_UPLOAD_CHUNK_BYTES, resumable=True)

        try:
            created = (
                self.service.files()
                .create(body=metadata, media_body=media, fields="id,webViewLink", supportsAllDrives=True)
                .execute()
            )
        except HttpError as e:
            raise ProviderError(f"Drive upload failed for {path}", status_code=e.resp.status) from e
        except TimeoutError as e:
            raise OperationTimeoutError(f"Drive upload timed out for {path}") from e
        except google.auth.exceptions.RefreshError as e:
            raise AuthorizationError(f"Drive token rejected: {e}") from e
        except (OSError, httplib2.HttpLib2Error, google.auth.exceptions.GoogleAuthError) as e:
            raise TransportError(f"Drive unreachable: {e}") from e

        logger.info("Uploaded %s to Drive as %s", path, created.get("id"))
        return created
