"""Low-level JSON file I/O with atomic writes."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, List, Optional

logger = logging.getLogger(__name__)

JSON_INDENT = 2
ENCODING = "utf-8"


class StorageError(Exception):
    """A file operation failed for a reason other than the file being absent."""

    def __init__(self, operation: str, path: Path, cause: BaseException):
        self.operation = operation
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"Failed while {operation} ({path}): {cause}")


class CorruptFileError(StorageError):
    """A stored file exists but does not contain a valid document."""


class JsonFileStore:
    """Reads and atomically writes JSON and text files."""

    def ensure_directory(self, dir_path: Path, operation: str = "creating directory") -> None:
        """Create ``dir_path`` and its parents; a no-op if it already exists."""
        try:
            Path(dir_path).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Error creating directory {dir_path}: {e}")
            raise StorageError(operation, dir_path, e) from e

    def read_json(self, file_path: Path, operation: str) -> Optional[Any]:
        """
        Read and parse a JSON file.

        Args:
            file_path: File to read
            operation: Description used in error messages

        Returns:
            Parsed document, or None if the file does not exist

        Raises:
            CorruptFileError: File is not valid JSON
            StorageError: Any other I/O failure
        """
        path = Path(file_path)
        try:
            text = path.read_text(encoding=ENCODING)
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.error(f"Error while {operation}: {e}")
            raise StorageError(operation, path, e) from e

        try:
            return json.loads(text)
        except ValueError as e:
            logger.error(f"Malformed JSON while {operation}: {path}: {e}")
            raise CorruptFileError(operation, path, e) from e

    def write_json(self, file_path: Path, data: Any, operation: str) -> None:
        """Serialise ``data`` and atomically replace ``file_path`` with it."""
        try:
            text = json.dumps(data, indent=JSON_INDENT, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StorageError(operation, file_path, e) from e
        self.write_text(file_path, text, operation)

    def write_text(self, file_path: Path, content: str, operation: str) -> None:
        """
        Atomically replace ``file_path`` with ``content``.

        The content goes to a temporary sibling file which is fsynced and then
        renamed over the target, so readers see either the old or the new file.
        On failure the temporary file is removed and the target is untouched.
        """
        path = Path(file_path)
        self.ensure_directory(path.parent, operation)

        tmp_name: Optional[str] = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                encoding=ENCODING,
                dir=path.parent,
                prefix=f".{path.name}.",
                suffix=".tmp",
                delete=False,
            ) as f:
                tmp_name = f.name
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as e:
            logger.error(f"Error while {operation}: {e}")
            raise StorageError(operation, path, e) from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError as cleanup_error:
                    logger.warning(f"Could not remove temp file {tmp_name}: {cleanup_error}")

    def collect_json_files(self, root_dir: Path) -> List[Path]:
        """Recursively list JSON files under ``root_dir`` (empty if it does not exist)."""
        root = Path(root_dir)
        if not root.exists():
            return []
        return sorted(p for p in root.rglob("*.json") if p.is_file())
