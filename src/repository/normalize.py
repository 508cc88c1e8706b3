"""Wire <-> domain mapping for bets and profiles, plus write validation.

Records from either backend (remote JSON or local SQLite rows) share the
wire shape. Normalization is total: every domain field has a coercer and a
default, so malformed rows degrade field by field instead of failing a read.
"""

from __future__ import annotations

import json
import math
import logging
from collections.abc import Callable
from typing import Any, NamedTuple

from src.store.models import Bet, BetStatus, Event, Profile, calc_total_coef, derive_bet_type

logger = logging.getLogger(__name__)


class ValidationError(ValueError):
    """A bet or profile failed validation; nothing was persisted."""


class FieldMap(NamedTuple):
    wire: str
    domain: str
    coerce: Callable[[Any], Any]
    default: Any


def _to_float(value: Any) -> float:
    return float(value)


def _to_optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


def _to_str(value: Any) -> str:
    return "" if value is None else str(value)


def _to_status(value: Any) -> str:
    return BetStatus(str(value)).value


def _to_events(value: Any) -> list[Event]:
    if isinstance(value, str):
        value = json.loads(value) if value.strip() else []
    if not isinstance(value, list):
        raise TypeError(f"events must be a list, got {type(value).__name__}")
    events: list[Event] = []
    for raw in value:
        if not isinstance(raw, dict):
            continue
        try:
            coef = float(raw.get("coef", 1.0))
        except (TypeError, ValueError):
            coef = 1.0
        events.append(Event(
            name=_to_str(raw.get("name")),
            market=_to_str(raw.get("market")),
            coef=coef,
        ))
    return events


BET_FIELDS: tuple[FieldMap, ...] = (
    FieldMap("id", "id", _to_optional_int, None),
    FieldMap("events", "events", _to_events, []),
    FieldMap("amount", "amount", _to_float, 0.0),
    FieldMap("status", "status", _to_status, BetStatus.PENDING.value),
    FieldMap("profile_id", "profile_id", _to_optional_int, None),
    FieldMap("created_at", "date", _to_str, ""),
    FieldMap("image", "image", lambda v: v or None, None),
)

PROFILE_FIELDS: tuple[FieldMap, ...] = (
    FieldMap("id", "id", _to_optional_int, None),
    FieldMap("name", "name", _to_str, ""),
    FieldMap("description", "description", _to_str, ""),
    FieldMap("color", "color", _to_str, "#3b82f6"),
    FieldMap("icon", "icon", _to_str, "fa-user"),
    FieldMap("created_at", "created_at", _to_str, ""),
)


def _apply(fields: tuple[FieldMap, ...], raw: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for f in fields:
        value = raw.get(f.wire)
        if value is None:
            out[f.domain] = _copy_default(f.default)
            continue
        try:
            out[f.domain] = f.coerce(value)
        except (TypeError, ValueError) as e:
            logger.debug("Bad %s=%r (%s), using default", f.wire, value, e)
            out[f.domain] = _copy_default(f.default)
    return out


def _copy_default(default: Any) -> Any:
    return list(default) if isinstance(default, list) else default


def bet_from_wire(raw: dict[str, Any]) -> Bet:
    """Normalize a stored/remote record into a Bet.

    total_coef and type are re-derived from the events rather than trusted.
    """
    bet = Bet(**_apply(BET_FIELDS, raw))
    bet.recompute()
    return bet


def profile_from_wire(raw: dict[str, Any]) -> Profile:
    return Profile(**_apply(PROFILE_FIELDS, raw))


def bet_to_wire(bet: Bet, *, include_id: bool = True) -> dict[str, Any]:
    """Wire record for a bet. Nested events are JSON-encoded for transport."""
    record: dict[str, Any] = {
        "events": json.dumps(
            [{"name": e.name, "market": e.market, "coef": float(e.coef)} for e in bet.events],
            ensure_ascii=False,
        ),
        "total_coef": float(calc_total_coef(bet.events)),
        "amount": float(bet.amount),
        "status": str(bet.status),
        "type": str(derive_bet_type(bet.events)),
        "profile_id": bet.profile_id,
        "created_at": bet.date,
        "image": bet.image,
    }
    if include_id and bet.id is not None:
        record["id"] = bet.id
    return record


def profile_to_wire(profile: Profile, *, include_id: bool = True) -> dict[str, Any]:
    record: dict[str, Any] = {
        "name": profile.name,
        "description": profile.description,
        "color": profile.color,
        "icon": profile.icon,
        "created_at": profile.created_at,
    }
    if include_id and profile.id is not None:
        record["id"] = profile.id
    return record


# ---------------------------------------------------------------------------
# Validation (runs before any persistence call)
# ---------------------------------------------------------------------------


def validate_bet(bet: Bet) -> None:
    if not bet.events:
        raise ValidationError("A bet needs at least one event")
    for i, e in enumerate(bet.events, 1):
        if not str(e.name).strip():
            raise ValidationError(f"Event {i}: name is required")
        if not str(e.market).strip():
            raise ValidationError(f"Event {i}: market is required")
        try:
            coef = float(e.coef)
        except (TypeError, ValueError):
            raise ValidationError(f"Event {i}: coef must be a number") from None
        if not math.isfinite(coef) or coef < 1:
            raise ValidationError(f"Event {i}: coef must be >= 1, got {coef}")
    try:
        amount = float(bet.amount)
    except (TypeError, ValueError):
        raise ValidationError("Amount must be a number") from None
    if not math.isfinite(amount) or amount < 0:
        raise ValidationError(f"Amount must be >= 0, got {amount}")
    if str(bet.status) not in {s.value for s in BetStatus}:
        raise ValidationError(f"Unknown status: {bet.status!r}")


def validate_profile(profile: Profile) -> None:
    if not str(profile.name or "").strip():
        raise ValidationError("Profile name is required")
