import uuid
from pathlib import Path, PurePosixPath

from esg_lite.documents.exceptions import StorageError


def document_file_key(user_id: str, file_name: str, file_uuid: str | None = None) -> str:
    """Build the storage key: {user_id}/{uuid}{ext}"""
    suffix = PurePosixPath(file_name).suffix.lower()
    return f"{user_id}/{file_uuid or uuid.uuid4().hex}{suffix}"


class FileStorage:
    """Stores and reads document bytes under a local files root."""

    FILES_ROOT = Path("/app/files")

    def __init__(self, files_root: Path | None = None) -> None:
        self._files_root = files_root if files_root is not None else self.FILES_ROOT

    def save(self, user_id: str, file_name: str, content: bytes) -> str:
        """Write ``content`` to a fresh key and return the key."""
        file_key = document_file_key(user_id, file_name)
        path = self._resolve_path(file_key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
        except OSError as exc:
            raise StorageError(f"Cannot write {file_key}: {exc}") from exc
        return file_key

    def load(self, file_key: str) -> bytes:
        """Read document bytes from disk.

        Raises:
            FileNotFoundError: if the file does not exist at resolved path.
            StorageError: if the key escapes the files root.
        """
        path = self._resolve_path(file_key)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        return path.read_bytes()

    def delete(self, file_key: str) -> None:
        self._resolve_path(file_key).unlink(missing_ok=True)

    def _resolve_path(self, file_key: str) -> Path:
        root = self._files_root.resolve()
        path = (root / file_key).resolve()
        if not path.is_relative_to(root):
            raise StorageError(f"Invalid file key: {file_key}")
        return path
