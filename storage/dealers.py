"""Persistence helpers for dealers and their settings."""
from __future__ import annotations

import datetime as dt
import re
import sqlite3
import uuid
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from config.settings import settings

from .sqlite import get_conn

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    return _SLUG_RE.sub("-", (name or "").strip().lower()).strip("-")


class DealerPayload(BaseModel):
    name: str
    slug: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("dealer name is required")
        return value


class DealerSettings(BaseModel):
    """Branding and dealer-fit preferences; unset values fall back to app defaults."""

    logo_url: Optional[str] = None
    theme_color: str = Field(default_factory=lambda: settings.DEFAULT_THEME_COLOR)
    contact_email: Optional[str] = None
    max_pti_ratio: float = Field(default_factory=lambda: settings.DEFAULT_MAX_PTI_RATIO)
    require_valid_driver_license: bool = Field(
        default_factory=lambda: settings.DEFAULT_REQUIRE_VALID_DRIVER_LICENSE
    )
    min_down_payment: float = Field(default_factory=lambda: settings.DEFAULT_MIN_DOWN_PAYMENT)
    min_residence_months: int = Field(default_factory=lambda: settings.DEFAULT_MIN_RESIDENCE_MONTHS)
    min_employment_months: int = Field(default_factory=lambda: settings.DEFAULT_MIN_EMPLOYMENT_MONTHS)


_SETTING_COLUMNS: List[str] = list(DealerSettings.model_fields)


def _now() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


def create_dealer(**data: Any) -> Dict[str, Any]:
    """Insert a dealer row and return it. Raises ``ValueError`` on a duplicate slug."""

    payload = DealerPayload(**data)
    slug = slugify(payload.slug or payload.name)
    if not slug:
        raise ValueError("dealer slug is empty")
    dealer = {"id": uuid.uuid4().hex, "name": payload.name, "slug": slug, "created_at": _now()}
    try:
        with get_conn() as conn:
            conn.execute(
                "INSERT INTO dealers (id, name, slug, created_at) VALUES (?, ?, ?, ?)",
                (dealer["id"], dealer["name"], dealer["slug"], dealer["created_at"]),
            )
    except sqlite3.IntegrityError as exc:
        raise ValueError(f"dealer {slug!r} already exists") from exc
    return dealer


def resolve_dealer(key: str) -> Dict[str, Any]:
    """Look a dealer up by id, exact name or slug. Raises ``KeyError`` when unknown."""

    key = (key or "").strip()
    if not key:
        raise KeyError("dealer key is empty")
    with get_conn() as conn:
        row = conn.execute(
            """SELECT id, name, slug, created_at FROM dealers
               WHERE id = ? OR name = ? OR slug = ?
               ORDER BY CASE WHEN id = ? THEN 0 WHEN slug = ? THEN 1 ELSE 2 END
               LIMIT 1""",
            (key, key, slugify(key), key, slugify(key)),
        ).fetchone()
    if row is None:
        raise KeyError(f"dealer {key!r} not found")
    return dict(row)


def load_dealer_settings(dealer_id: str) -> DealerSettings:
    with get_conn() as conn:
        row = conn.execute(
            f"SELECT {', '.join(_SETTING_COLUMNS)} FROM dealer_settings WHERE dealer_id = ?",
            (dealer_id,),
        ).fetchone()
    if row is None:
        return DealerSettings()
    stored = {key: row[key] for key in _SETTING_COLUMNS if row[key] is not None}
    return DealerSettings.model_validate(stored)


def upsert_dealer_settings(dealer_id: str, **updates: Any) -> DealerSettings:
    """Merge ``updates`` over the stored (or default) settings and persist them."""

    current = load_dealer_settings(dealer_id).model_dump()
    current.update({key: value for key, value in updates.items() if key in _SETTING_COLUMNS})
    merged = DealerSettings.model_validate(current)
    values = merged.model_dump()
    columns = ", ".join(_SETTING_COLUMNS)
    placeholders = ", ".join("?" for _ in _SETTING_COLUMNS)
    assignments = ", ".join(f"{key} = excluded.{key}" for key in _SETTING_COLUMNS)
    with get_conn() as conn:
        conn.execute(
            f"""INSERT INTO dealer_settings (dealer_id, {columns}, updated_at)
                VALUES (?, {placeholders}, ?)
                ON CONFLICT(dealer_id) DO UPDATE SET {assignments}, updated_at = excluded.updated_at""",
            (dealer_id, *[values[key] for key in _SETTING_COLUMNS], _now()),
        )
    return merged


__all__ = [
    "DealerPayload",
    "DealerSettings",
    "create_dealer",
    "load_dealer_settings",
    "resolve_dealer",
    "slugify",
    "upsert_dealer_settings",
]
