from __future__ import annotations

from typing import Generator

from fastapi import Header

from stockledger.app.core.config import settings
from stockledger.app.db.session import SessionLocal
from stockledger.services.demand import DemandFeed, NoDemand


def get_db() -> Generator:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_actor(x_actor: str | None = Header(default=None, alias="X-Actor")) -> str:
    # opaque audit token; authentication happens upstream
    if x_actor and x_actor.strip():
        return x_actor.strip()
    return settings.DEFAULT_ACTOR


def get_demand_feed() -> DemandFeed:
    """Override with app.dependency_overrides to plug the planning component in."""
    return NoDemand()
