"""SQLAlchemy ORM models.

Every business table carries ``user_id``: rows are owned by exactly one
account and all reads and writes are filtered by it.
"""

import enum
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _uuid() -> str:
    return str(uuid4())


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class Base(DeclarativeBase):
    pass


class CollectionStatus(str, enum.Enum):
    """Lifecycle of a collection or delivery."""

    PENDING = "pendente"
    SCHEDULED = "agendada"  # scheduled / in transit
    COMPLETED = "concluida"


class CollectionKind(str, enum.Enum):
    """Whether a row is a pickup (collection) or a drop-off (delivery)."""

    COLLECTION = "coleta"
    DELIVERY = "entrega"


class TeamShift(str, enum.Enum):
    DAY = "day"
    NIGHT = "night"


class User(Base):
    """An account. Owns every other row."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    full_name: Mapped[str] = mapped_column(String(255))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class Client(Base):
    __tablename__ = "clients"
    __table_args__ = (UniqueConstraint("name", "user_id", name="uq_clients_name_user"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(255))
    phone: Mapped[Optional[str]] = mapped_column(String(50))
    email: Mapped[Optional[str]] = mapped_column(String(255))
    address: Mapped[Optional[str]] = mapped_column(String(500))
    address_number: Mapped[Optional[str]] = mapped_column(String(20))
    cep: Mapped[Optional[str]] = mapped_column(String(20))
    cnpj: Mapped[Optional[str]] = mapped_column(String(30))
    contact_person: Mapped[Optional[str]] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (UniqueConstraint("code", "user_id", name="uq_products_code_user"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    code: Mapped[str] = mapped_column(String(100))
    description: Mapped[Optional[str]] = mapped_column(Text)
    model: Mapped[Optional[str]] = mapped_column(String(255))
    serial_number: Mapped[Optional[str]] = mapped_column(String(100))
    image_url: Mapped[Optional[str]] = mapped_column(String(500))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class Driver(Base):
    __tablename__ = "drivers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(255))
    phone: Mapped[Optional[str]] = mapped_column(String(50))
    vehicle_plate: Mapped[Optional[str]] = mapped_column(String(20))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class Carrier(Base):
    """Transport company (transportadora)."""

    __tablename__ = "carriers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(255))
    cnpj: Mapped[Optional[str]] = mapped_column(String(30))
    phone: Mapped[Optional[str]] = mapped_column(String(50))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class Profile(Base):
    """Technician or supervisor.

    Supervisors have no ``supervisor_id``; technicians may point at one.
    """

    __tablename__ = "profiles"
    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "first_name",
            "last_name",
            "phone_number",
            name="uq_profiles_name_phone",
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    first_name: Mapped[Optional[str]] = mapped_column(String(100))
    last_name: Mapped[Optional[str]] = mapped_column(String(100))
    phone_number: Mapped[Optional[str]] = mapped_column(String(50))
    role: Mapped[str] = mapped_column(String(50), default="standard")
    supervisor_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("profiles.id", ondelete="SET NULL")
    )
    team_shift: Mapped[TeamShift] = mapped_column(
        Enum(TeamShift, values_callable=_enum_values, name="team_shift"),
        default=TeamShift.DAY,
    )
    address: Mapped[Optional[str]] = mapped_column(String(500))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )


class Collection(Base):
    """A collection (coleta) or a delivery (entrega), told apart by ``kind``."""

    __tablename__ = "collections"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    unique_number: Mapped[Optional[str]] = mapped_column(String(50), index=True)
    client_control: Mapped[Optional[str]] = mapped_column(String(100))

    # Partner / client snapshot
    parceiro: Mapped[Optional[str]] = mapped_column(String(255))
    contato: Mapped[Optional[str]] = mapped_column(String(255))
    telefone: Mapped[Optional[str]] = mapped_column(String(50))
    email: Mapped[Optional[str]] = mapped_column(String(255))
    cnpj: Mapped[Optional[str]] = mapped_column(String(30))

    # Origin
    endereco_origem: Mapped[Optional[str]] = mapped_column(String(500))
    cep_origem: Mapped[Optional[str]] = mapped_column(String(20))
    origin_address_number: Mapped[Optional[str]] = mapped_column(String(20))
    origin_lat: Mapped[Optional[float]] = mapped_column(Float)
    origin_lng: Mapped[Optional[float]] = mapped_column(Float)

    # Destination
    endereco_destino: Mapped[Optional[str]] = mapped_column(String(500))
    cep_destino: Mapped[Optional[str]] = mapped_column(String(20))
    destination_address_number: Mapped[Optional[str]] = mapped_column(String(20))
    destination_lat: Mapped[Optional[float]] = mapped_column(Float)
    destination_lng: Mapped[Optional[float]] = mapped_column(Float)

    previsao_coleta: Mapped[Optional[date]] = mapped_column(Date, index=True)
    qtd_aparelhos_solicitado: Mapped[Optional[int]] = mapped_column(Integer)
    modelo_aparelho: Mapped[Optional[str]] = mapped_column(String(255))
    freight_value: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    observacao: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[CollectionStatus] = mapped_column(
        Enum(CollectionStatus, values_callable=_enum_values, name="collection_status"),
        default=CollectionStatus.PENDING,
        index=True,
    )
    kind: Mapped[CollectionKind] = mapped_column(
        Enum(CollectionKind, values_callable=_enum_values, name="collection_kind"),
        default=CollectionKind.COLLECTION,
        index=True,
    )
    contrato: Mapped[Optional[str]] = mapped_column(String(100))
    nf_glbl: Mapped[Optional[str]] = mapped_column(String(100))
    partner_code: Mapped[Optional[str]] = mapped_column(String(100))

    client_id: Mapped[Optional[str]] = mapped_column(ForeignKey("clients.id", ondelete="SET NULL"))
    driver_id: Mapped[Optional[str]] = mapped_column(ForeignKey("drivers.id", ondelete="SET NULL"))
    carrier_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("carriers.id", ondelete="SET NULL")
    )
    responsible_user_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL")
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    items: Mapped[list["Item"]] = relationship(
        back_populates="collection",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Item(Base):
    """Line item of a collection. Status mirrors the parent at creation."""

    __tablename__ = "items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    collection_id: Mapped[str] = mapped_column(
        ForeignKey("collections.id", ondelete="CASCADE"), index=True
    )
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(Text)
    model: Mapped[Optional[str]] = mapped_column(String(255))
    quantity: Mapped[int] = mapped_column(Integer)
    status: Mapped[CollectionStatus] = mapped_column(
        Enum(CollectionStatus, values_callable=_enum_values, name="collection_status"),
        default=CollectionStatus.PENDING,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    collection: Mapped[Collection] = relationship(back_populates="items")
