import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from carehome.core.errors import InvalidRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IncomingFile:
    filename: str
    content_type: Optional[str]
    data: bytes


class AttachmentStore:
    """Writes leave attachments to a local directory and returns their metadata."""

    def __init__(self, upload_dir: str, now_fn: Callable[[], datetime]):
        self.upload_dir = Path(upload_dir)
        self.now_fn = now_fn

    def save(self, files: list[IncomingFile]) -> list[dict]:
        """
        Store every file or none of them: on the first failed write the files
        already written are removed and the batch is rejected.
        """
        if not files:
            return []

        self.upload_dir.mkdir(parents=True, exist_ok=True)

        saved = []
        for i, f in enumerate(files):
            uploaded_at = self.now_fn()
            # strip any client-side directories from the name
            original = Path(f.filename or "attachment").name
            stamp = int(uploaded_at.timestamp() * 1000)
            stored = f"{stamp}-{original}"
            path = self.upload_dir / stored
            try:
                if path.exists():
                    stored = f"{stamp}-{i}-{original}"
                    path = self.upload_dir / stored
                saved.append(
                    {
                        "filename": original,
                        "stored_filename": stored,
                        "path": str(path),
                        "size": len(f.data),
                        "content_type": f.content_type,
                        "uploaded_at": uploaded_at.isoformat(),
                    }
                )
                path.write_bytes(f.data)
            except OSError as e:
                logger.warning("Failed to store attachment %d (%s): %s", i, original[:64], e)
                self.discard(saved)
                raise InvalidRequest(f"Attachment {i + 1} could not be stored")

            logger.info("Stored attachment %s (%d bytes)", path, len(f.data))

        return saved

    def discard(self, saved: list[dict]) -> None:
        for meta in saved:
            try:
                Path(meta["path"]).unlink(missing_ok=True)
            except OSError:
                logger.exception("Failed to remove attachment %s", meta["stored_filename"])
