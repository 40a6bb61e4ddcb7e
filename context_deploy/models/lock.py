"""Lock model"""

import socket
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, Optional


@dataclass
class Lock:
    """A held cross-process lock, persisted as a JSON file"""

    resource: str
    owner_pid: int
    acquired_at: float
    lease_duration: float
    token: str
    path: Optional[Path] = None
    hostname: str = field(default_factory=socket.gethostname)

    def age(self, now: Optional[float] = None) -> float:
        return (now if now is not None else time.time()) - self.acquired_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resource": self.resource,
            "pid": self.owner_pid,
            "acquired_at": self.acquired_at,
            "lease_duration": self.lease_duration,
            "token": self.token,
            "hostname": self.hostname
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], path: Optional[Path] = None) -> "Lock":
        return cls(
            resource=data["resource"],
            owner_pid=int(data["pid"]),
            acquired_at=float(data["acquired_at"]),
            lease_duration=float(data["lease_duration"]),
            token=data["token"],
            path=path,
            hostname=data.get("hostname", "")
        )
