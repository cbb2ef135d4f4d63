"""Search filter model."""
import hashlib
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from ..errors import UnsupportedFilterError
from .document import CONFIDENTIALITY_LEVELS, SOURCE_TYPES


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass(frozen=True)
class SearchFilters:
    """Conjunctive predicates over document metadata.

    A document missing a filtered field does not match that predicate.
    """
    source_types: Optional[tuple[str, ...]] = None
    departments: Optional[tuple[str, ...]] = None
    confidentiality: Optional[tuple[str, ...]] = None
    uploaded_after: Optional[datetime] = None
    uploaded_before: Optional[datetime] = None

    def __post_init__(self):
        for name in ("source_types", "departments", "confidentiality"):
            value = getattr(self, name)
            if value is not None and not isinstance(value, tuple):
                if isinstance(value, str):
                    value = (value,)
                object.__setattr__(self, name, tuple(value))
        for name in ("uploaded_after", "uploaded_before"):
            value = getattr(self, name)
            if value is not None:
                if not isinstance(value, datetime):
                    raise UnsupportedFilterError(f"{name} must be a datetime")
                object.__setattr__(self, name, _as_utc(value))
        self._validate()

    def _validate(self) -> None:
        if self.confidentiality:
            bad = [c for c in self.confidentiality if c not in CONFIDENTIALITY_LEVELS]
            if bad:
                raise UnsupportedFilterError(f"Unknown confidentiality level(s): {bad}")
        if self.source_types:
            known = set(SOURCE_TYPES.values())
            bad = [t for t in self.source_types if t not in known]
            if bad:
                raise UnsupportedFilterError(f"Unknown source type(s): {bad}")
        if (
            self.uploaded_after is not None
            and self.uploaded_before is not None
            and self.uploaded_after > self.uploaded_before
        ):
            raise UnsupportedFilterError("uploaded_after is later than uploaded_before")

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "SearchFilters":
        """Build filters from a plain mapping, rejecting unknown keys."""
        data = dict(data or {})
        unknown = set(data) - set(cls.__dataclass_fields__)
        if unknown:
            raise UnsupportedFilterError(f"Unsupported filter(s): {sorted(unknown)}")
        for name in ("uploaded_after", "uploaded_before"):
            if isinstance(data.get(name), str):
                try:
                    data[name] = datetime.fromisoformat(data[name])
                except ValueError as e:
                    raise UnsupportedFilterError(f"Invalid {name}: {e}") from e
        return cls(**data)

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in self.__dataclass_fields__)

    def matches(self, metadata: dict) -> bool:
        """Check chunk/document metadata against every predicate."""
        if self.source_types is not None and metadata.get("source_type") not in self.source_types:
            return False
        if self.departments is not None and metadata.get("department") not in self.departments:
            return False
        if (
            self.confidentiality is not None
            and metadata.get("confidentiality") not in self.confidentiality
        ):
            return False
        uploaded_at = metadata.get("uploaded_at")
        if self.uploaded_after is not None:
            if uploaded_at is None or uploaded_at < self.uploaded_after.timestamp():
                return False
        if self.uploaded_before is not None:
            if uploaded_at is None or uploaded_at > self.uploaded_before.timestamp():
                return False
        return True

    def to_chroma_where(self) -> dict | None:
        """Translate to a Chroma ``where`` clause."""
        clauses: list[dict] = []
        if self.source_types is not None:
            clauses.append({"source_type": {"$in": list(self.source_types)}})
        if self.departments is not None:
            clauses.append({"department": {"$in": list(self.departments)}})
        if self.confidentiality is not None:
            clauses.append({"confidentiality": {"$in": list(self.confidentiality)}})
        if self.uploaded_after is not None:
            clauses.append({"uploaded_at": {"$gte": self.uploaded_after.timestamp()}})
        if self.uploaded_before is not None:
            clauses.append({"uploaded_at": {"$lte": self.uploaded_before.timestamp()}})

        if not clauses:
            return None
        if len(clauses) == 1:
            return clauses[0]
        return {"$and": clauses}

    def fingerprint(self) -> str:
        """Stable short hash, used in cache keys."""
        payload = {}
        for name in sorted(self.__dataclass_fields__):
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, datetime):
                payload[name] = value.isoformat()
            else:
                payload[name] = sorted(value)
        raw = json.dumps(payload, sort_keys=True, ensure_ascii=False)
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:16]
