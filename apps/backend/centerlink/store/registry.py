"""Seed data import helpers."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from .models import CommunityCenter

_SEED_PATH = Path(__file__).resolve().parents[2] / "seed" / "centers.json"


def load_seed() -> dict:
    """Load the bundled center directory JSON."""
    with _SEED_PATH.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def seed_centers(session: Session) -> int:
    """Insert seed centers that are not yet present in the DB."""
    existing = set(session.execute(select(CommunityCenter.id)).scalars().all())
    added = 0
    for entry in _iter_centers(load_seed()):
        if entry["id"] in existing:
            continue
        session.add(
            CommunityCenter(
                id=entry["id"],
                name=entry["name"],
                location=entry["location"],
                latitude=entry["latitude"],
                longitude=entry["longitude"],
                description=entry.get("description", ""),
                services=list(entry.get("services", [])),
                verified=bool(entry.get("verified", False)),
                added_by=entry.get("added_by", "admin"),
                manager_id=entry.get("manager_id"),
                phone=entry.get("phone"),
                email=entry.get("email"),
                website=entry.get("website"),
            )
        )
        added += 1
    return added


def _iter_centers(data: dict) -> Iterable[dict]:
    yield from data.get("centers", [])
