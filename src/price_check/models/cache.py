from dataclasses import dataclass
from datetime import datetime

from ..timeutil import parse_iso, to_iso
from .analysis import PriceAnalysis


@dataclass
class PriceCacheEntry:
    """A cached analysis together with its expiry and hit bookkeeping."""
    id: str
    query: str
    analysis: PriceAnalysis
    created_at: datetime
    expires_at: datetime
    hit_count: int = 0

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "query": self.query,
            "analysis": self.analysis.to_dict(),
            "createdAt": to_iso(self.created_at),
            "expiresAt": to_iso(self.expires_at),
            "hitCount": self.hit_count,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PriceCacheEntry":
        return cls(
            id=data["id"],
            query=data.get("query", ""),
            analysis=PriceAnalysis.from_dict(data["analysis"]),
            created_at=parse_iso(data["createdAt"]),
            expires_at=parse_iso(data["expiresAt"]),
            hit_count=data.get("hitCount", 0),
        )


@dataclass
class SavedQuery:
    id: str
    query: str
    name: str
    created_at: datetime
    last_used: datetime
    use_count: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "query": self.query,
            "name": self.name,
            "createdAt": to_iso(self.created_at),
            "lastUsed": to_iso(self.last_used),
            "useCount": self.use_count,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SavedQuery":
        created_at = parse_iso(data["createdAt"])
        return cls(
            id=str(data["id"]),
            query=data.get("query", ""),
            name=data.get("name", ""),
            created_at=created_at,
            last_used=parse_iso(data.get("lastUsed")) or created_at,
            use_count=data.get("useCount", 0),
        )


@dataclass
class CacheStats:
    """Aggregate cache statistics.

    ``hit_rate`` is the mean number of hits per entry, not a 0-1 ratio.
    """
    total_entries: int = 0
    hit_rate: float = 0.0
    oldest_entry: datetime | None = None
    newest_entry: datetime | None = None
