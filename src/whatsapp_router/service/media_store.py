"""
Local Media Store

Writes downloaded WhatsApp media under an upload directory served as
static files, returning the public reference stored on the message.
"""

import logging
from pathlib import Path
from uuid import uuid4

logger = logging.getLogger(__name__)


def extension_for(mime_type: str) -> str:
    """
    File extension from a MIME type's subtype.

    "audio/ogg; codecs=opus" -> "ogg", "image/jpeg" -> "jpeg"
    """
    subtype = mime_type.split("/", 1)[1] if "/" in mime_type else "bin"
    return subtype.split(";", 1)[0].strip() or "bin"


class LocalMediaStore:
    """Media files on the local filesystem."""

    def __init__(self, upload_dir: str | Path, public_prefix: str = "/uploads"):
        self.upload_dir = Path(upload_dir)
        self.public_prefix = public_prefix.rstrip("/")

    def save(self, data: bytes, mime_type: str, filename: str | None = None) -> str:
        """
        Save media bytes.

        Args:
            data: File content
            mime_type: MIME type reported by WhatsApp
            filename: Original filename (documents), kept as a suffix of the
                stored name; a bare uuid name is used otherwise

        Returns:
            Public reference, e.g. "/uploads/<filename>"
        """
        self.upload_dir.mkdir(parents=True, exist_ok=True)

        # Never let a sender-supplied name escape the upload dir or
        # replace a file stored for another message
        original = Path(filename).name if filename else ""
        if original:
            name = f"{uuid4().hex}_{original}"
        else:
            name = f"{uuid4()}.{extension_for(mime_type)}"

        (self.upload_dir / name).write_bytes(data)

        logger.debug(
            f"Saved media file {name}",
            extra={"mime_type": mime_type, "size": len(data)},
        )
        return f"{self.public_prefix}/{name}"

    def path_for(self, local_ref: str) -> Path:
        """Filesystem path of a stored reference."""
        return self.upload_dir / Path(local_ref).name

    def delete(self, local_ref: str) -> bool:
        """Best-effort delete. Returns False when the file could not be removed."""
        try:
            self.path_for(local_ref).unlink()
        except OSError as e:
            logger.warning(f"Failed to delete media file {local_ref}: {e}")
            return False
        return True
