# app/repositories/software_repo.py
import logging
from datetime import datetime, timezone
from pathlib import Path

from app.schemas.software import SoftwareData

logger = logging.getLogger(__name__)


class SoftwareRepository:
    """
    Data access layer for the legacy JSON catalog file.

    - Missing file => empty catalog.
    - save() refuses unless the deployment marks the file writable
      (static / read-only hosts).
    """

    def __init__(self, path: str | Path, writable: bool = False):
        self.path = Path(path)
        self.writable = writable

    def load(self) -> SoftwareData:
        if not self.path.exists():
            logger.warning(f"Legacy data file {self.path} not found, using an empty catalog")
            return SoftwareData()
        return SoftwareData.model_validate_json(self.path.read_text(encoding="utf-8"))

    def save(self, data: SoftwareData) -> bool:
        if not self.writable:
            logger.info(f"Legacy data file {self.path} is read-only, update not persisted")
            return False

        data.metadata.total_software = len(data.software)
        data.metadata.last_updated = datetime.now(timezone.utc).isoformat()

        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            data.model_dump_json(by_alias=True, indent=2),
            encoding="utf-8",
        )
        return True
