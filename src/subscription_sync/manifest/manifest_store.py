"""
Flat-file storage for the subscription manifest.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, List, Set, Union

from ..error_handling import ManifestError, ManifestFormatError, ManifestNotFoundError
from ..models import SubscriptionRecord

logger = logging.getLogger(__name__)


class ManifestStore:
    """
    Reads and writes the manifest JSON file.

    The file is a JSON array of ``{"repo", "status", "new"}`` objects. It is
    always rewritten as a whole; there is no field-level merging.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> List[SubscriptionRecord]:
        """
        Load and validate the manifest.

        Returns:
            Records in file order

        Raises:
            ManifestNotFoundError: If the file does not exist
            ManifestFormatError: If the content is not a valid manifest
            ManifestError: If the file cannot be read
        """
        if not self.exists():
            raise ManifestNotFoundError(
                f"Manifest file not found: {self.path}. Run 'export' first.",
                manifest_path=str(self.path)
            )

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ManifestFormatError(
                f"Manifest {self.path} is not valid UTF-8 JSON: {e}",
                manifest_path=str(self.path),
                cause=e
            ) from e
        except OSError as e:
            raise ManifestError(
                f"Cannot read manifest {self.path}: {e}",
                manifest_path=str(self.path),
                cause=e
            ) from e

        records = self._parse(data)
        logger.debug(f"Loaded {len(records)} records from {self.path}")
        return records

    def load_or_empty(self) -> List[SubscriptionRecord]:
        """Load the manifest, or return an empty list if it does not exist yet."""
        if not self.exists():
            logger.info(f"No manifest at {self.path}; starting from an empty one")
            return []
        return self.load()

    def save(self, records: List[SubscriptionRecord]) -> None:
        """
        Replace the manifest with ``records``.

        The content goes to a temporary file next to the target which is then
        renamed over it, so the previous manifest stays intact if writing fails.
        """
        payload = json.dumps([record.to_dict() for record in records], indent=2) + "\n"

        directory = self.path.parent
        directory.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=str(directory)
        )
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(payload)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.info(f"Wrote {len(records)} records to {self.path}")

    def _parse(self, data: Any) -> List[SubscriptionRecord]:
        if not isinstance(data, list):
            raise ManifestFormatError(
                f"Manifest {self.path} must contain a JSON array",
                manifest_path=str(self.path)
            )

        invalid = [index for index, entry in enumerate(data) if not self._is_valid_entry(entry)]
        if invalid:
            raise ManifestFormatError(
                f"Manifest {self.path} has {len(invalid)} malformed entries; "
                "each needs a string 'repo', a string 'status' and a boolean 'new'",
                manifest_path=str(self.path),
                invalid_entries=invalid
            )

        records = [SubscriptionRecord.from_dict(entry) for entry in data]

        seen: Set[str] = set()
        duplicates = []
        for index, record in enumerate(records):
            if record.repo in seen:
                duplicates.append(index)
            seen.add(record.repo)
        if duplicates:
            raise ManifestFormatError(
                f"Manifest {self.path} lists the same repository more than once",
                manifest_path=str(self.path),
                invalid_entries=duplicates
            )

        return records

    @staticmethod
    def _is_valid_entry(entry: Any) -> bool:
        return (
            isinstance(entry, dict)
            and isinstance(entry.get("repo"), str)
            and bool(entry["repo"])
            and isinstance(entry.get("status"), str)
            and isinstance(entry.get("new"), bool)
        )
