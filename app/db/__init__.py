"""Database module."""

from app.db.database import SessionLocal, engine, get_db, init_db
from app.db.models import (
    Base,
    Carrier,
    Client,
    Collection,
    CollectionKind,
    CollectionStatus,
    Driver,
    Item,
    Product,
    Profile,
    TeamShift,
    User,
)

__all__ = [
    "SessionLocal",
    "engine",
    "get_db",
    "init_db",
    "Base",
    "User",
    "Client",
    "Product",
    "Driver",
    "Carrier",
    "Collection",
    "CollectionKind",
    "CollectionStatus",
    "Item",
    "Profile",
    "TeamShift",
]
