"""
Hold value object.

A hold is transient: whichever store keeps it, consumers treat it as
absent once expires_at has passed. Nothing sweeps expired holds.
"""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import uuid4


@dataclass
class HoldRecord:
    tenant_id: str
    table_id: str
    party_size: int
    start: datetime
    end: datetime
    idempotency_key: str
    created_at: datetime
    expires_at: datetime
    id: str = field(default_factory=lambda: str(uuid4()))

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

    def ttl_seconds(self, now: datetime) -> int:
        return max(0, int((self.expires_at - now).total_seconds()))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "table_id": self.table_id,
            "party_size": self.party_size,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "idempotency_key": self.idempotency_key,
            "created_at": self.created_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "HoldRecord":
        return cls(
            id=data["id"],
            tenant_id=data["tenant_id"],
            table_id=data["table_id"],
            party_size=int(data["party_size"]),
            start=datetime.fromisoformat(data["start"]),
            end=datetime.fromisoformat(data["end"]),
            idempotency_key=data["idempotency_key"],
            created_at=datetime.fromisoformat(data["created_at"]),
            expires_at=datetime.fromisoformat(data["expires_at"]),
        )
