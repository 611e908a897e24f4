"""Filesystem attachment store for original baseline and supplier workbooks."""

import hashlib
import logging
import os

from domain.ports import AttachmentStorePort

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "upload.xlsx"


class FileAttachmentStore(AttachmentStorePort):
    """Keeps imported workbooks under *storage_dir* as ``<sha256[:12]>_<basename>``.

    Re-saving identical content under the same name overwrites the same file.
    """

    def __init__(self, storage_dir: str):
        self._storage_dir = storage_dir

    def _destination(self, content_hash: str, filename: str) -> str:
        # Only the basename is kept so "../" in a filename cannot escape the store
        basename = os.path.basename(filename or "") or DEFAULT_FILENAME
        return os.path.join(self._storage_dir, f"{content_hash[:12]}_{basename}")

    def save(self, content: bytes, filename: str) -> tuple[str, str]:
        """Write *content* into the store; return (file_path, sha256 hex digest)."""
        content_hash = hashlib.sha256(content).hexdigest()
        destination = self._destination(content_hash, filename)
        os.makedirs(self._storage_dir, exist_ok=True)
        with open(destination, "wb") as f:
            f.write(content)
        logger.debug("Attachment %s saved (%d bytes)", destination, len(content))
        return destination, content_hash

    def find(self, content_hash: str, filename: str) -> str | None:
        """Path of a previously stored workbook, or None."""
        candidate = self._destination(content_hash, filename)
        return candidate if os.path.isfile(candidate) else None
