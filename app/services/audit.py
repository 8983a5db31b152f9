from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import Any, Mapping

from fastapi.encoders import jsonable_encoder

from app.core.logging import get_audit_logger


@dataclass(frozen=True, slots=True)
class AuditEntry:
    actor_id: str | None
    action: str
    resource_type: str
    resource_id: str
    changes: dict[str, dict[str, Any]] | None = None

    def summary(self) -> str:
        if not self.changes:
            return self.action
        fields = sorted(self.changes)
        shown = ", ".join(fields[:3])
        return f"{self.action}: {shown}{'...' if len(fields) > 3 else ''}"


def _jsonable(value: Any) -> Any:
    return jsonable_encoder(
        value,
        custom_encoder={datetime: datetime.isoformat, date: date.isoformat},
    )


def field_changes(
    old: Mapping[str, Any] | None,
    new: Mapping[str, Any] | None,
) -> dict[str, dict[str, Any]] | None:
    """Per-field ``{"from", "to"}`` pairs for every key whose value differs."""
    before = _jsonable(dict(old or {}))
    after = _jsonable(dict(new or {}))
    changes = {
        key: {"from": before.get(key), "to": after.get(key)}
        for key in sorted(before.keys() | after.keys())
        if before.get(key) != after.get(key)
    }
    return changes or None


def record_audit_event(
    *,
    actor_id: str | None,
    action: str,
    resource_type: str,
    resource_id: str,
    old_value: Mapping[str, Any] | None = None,
    new_value: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Emit one structured entry on the audit log stream and return it."""
    entry = AuditEntry(
        actor_id=actor_id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        changes=field_changes(old_value, new_value),
    )
    event = asdict(entry)
    get_audit_logger().info(entry.summary(), extra={"event": event})
    return event
