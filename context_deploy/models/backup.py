"""Backup manifest model"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Any


@dataclass
class BackupManifest:
    """Record of what one deployment backed up and created

    ``original_paths[i]`` was copied to ``backup_paths[i]``. The backup
    directory is only created once the first file is snapshotted.

    An ``on_demand`` manifest belongs to a run whose conflicts are decided
    one by one. It stays in memory until a resolution first asks for a
    snapshot, and only counts as a backup set from then on.
    """

    backup_dir: Path
    original_paths: List[Path] = field(default_factory=list)
    backup_paths: List[Path] = field(default_factory=list)
    checksums: List[str] = field(default_factory=list)
    created_paths: List[Path] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)
    platform: Optional[str] = None
    on_demand: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.original_paths and not self.created_paths

    @property
    def is_active(self) -> bool:
        """Whether this manifest holds anything a rollback would use"""
        if self.on_demand:
            return bool(self.original_paths)
        return not self.is_empty

    def contains(self, path: Path) -> bool:
        path = Path(path)
        return path in self.original_paths or path in self.created_paths

    def add_entry(self, original: Path, backup: Path, checksum: str = "") -> None:
        self.original_paths.append(original)
        self.backup_paths.append(backup)
        self.checksums.append(checksum)

    def remove_entry(self, original: Path) -> None:
        index = self.original_paths.index(original)
        del self.original_paths[index]
        del self.backup_paths[index]
        del self.checksums[index]

    def set_checksum(self, original: Path, checksum: str) -> None:
        self.checksums[self.original_paths.index(original)] = checksum

    def backup_for(self, original: Path) -> Optional[Path]:
        """Backup copy of ``original``, if this manifest has one"""
        if original not in self.original_paths:
            return None
        return self.backup_paths[self.original_paths.index(original)]

    def entries(self):
        """Iterate (original, backup, checksum) triples"""
        return zip(self.original_paths, self.backup_paths, self.checksums)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "backup_dir": str(self.backup_dir),
            "original_paths": [str(p) for p in self.original_paths],
            "backup_paths": [str(p) for p in self.backup_paths],
            "checksums": list(self.checksums),
            "created_paths": [str(p) for p in self.created_paths],
            "created_at": self.created_at.isoformat(),
            "platform": self.platform
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BackupManifest":
        return cls(
            backup_dir=Path(data["backup_dir"]),
            original_paths=[Path(p) for p in data.get("original_paths", [])],
            backup_paths=[Path(p) for p in data.get("backup_paths", [])],
            checksums=list(data.get("checksums", [])),
            created_paths=[Path(p) for p in data.get("created_paths", [])],
            created_at=datetime.fromisoformat(data["created_at"]) if data.get("created_at") else datetime.now(),
            platform=data.get("platform")
        )
