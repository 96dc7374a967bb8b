"""Pydantic schemas for the import pipeline.

Records extracted from files form a tagged union: each variant declares a
``record_type`` literal and its own required fields, so the pipeline never
guesses a record's kind from which attributes happen to be present.
"""

import enum
from datetime import date
from decimal import Decimal
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from app.db.models import CollectionKind, CollectionStatus, TeamShift


class ImportKind(str, enum.Enum):
    """Entity category handled by one import run."""

    COLLECTIONS = "collections"  # collections and deliveries
    PRODUCTS = "products"
    CLIENTS = "clients"
    TECHNICIANS = "technicians"
    SUPERVISORS = "supervisors"


class ImportStep(str, enum.Enum):
    """States of an import session."""

    UPLOAD = "upload"
    PARSING = "parsing"
    PARSE_ERROR = "parse_error"
    PREVIEW = "preview"
    IMPORTING = "importing"
    IMPORT_ERROR = "import_error"
    DONE = "done"


# ---------------------------------------------------------------------------
# Import records
# ---------------------------------------------------------------------------


class _RecordBase(BaseModel):
    model_config = ConfigDict(use_enum_values=False)


class CollectionRecord(_RecordBase):
    """A collection or delivery row."""

    record_type: Literal["collection"] = "collection"

    unique_number: Optional[str] = None
    client_control: Optional[str] = None
    parceiro: str = ""
    contato: Optional[str] = None
    telefone: Optional[str] = None
    email: Optional[str] = None
    cnpj: Optional[str] = None
    endereco_origem: str = ""
    cep_origem: Optional[str] = None
    origin_address_number: Optional[str] = None
    origin_lat: Optional[float] = None
    origin_lng: Optional[float] = None
    endereco_destino: Optional[str] = None
    cep_destino: Optional[str] = None
    destination_address_number: Optional[str] = None
    destination_lat: Optional[float] = None
    destination_lng: Optional[float] = None
    previsao_coleta: Optional[date] = None
    qtd_aparelhos_solicitado: int = 1
    modelo_aparelho: Optional[str] = None
    freight_value: Optional[Decimal] = None
    observacao: Optional[str] = None
    status_coleta: CollectionStatus = CollectionStatus.PENDING
    type: CollectionKind = CollectionKind.COLLECTION
    contrato: Optional[str] = None
    nf_glbl: Optional[str] = None
    partner_code: Optional[str] = None


class ProductRecord(_RecordBase):
    record_type: Literal["product"] = "product"

    code: str = ""
    description: Optional[str] = None
    model: Optional[str] = None
    serial_number: Optional[str] = None


class ClientRecord(_RecordBase):
    record_type: Literal["client"] = "client"

    name: str = ""
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    address_number: Optional[str] = None
    cep: Optional[str] = None
    cnpj: Optional[str] = None
    contact_person: Optional[str] = None


class _ProfileRecordBase(_RecordBase):
    first_name: str = ""
    last_name: Optional[str] = None
    phone_number: Optional[str] = None
    role: Optional[str] = None
    supervisor_id: Optional[str] = None
    team_shift: Optional[TeamShift] = None
    address: Optional[str] = None


class TechnicianRecord(_ProfileRecordBase):
    record_type: Literal["technician"] = "technician"


class SupervisorRecord(_ProfileRecordBase):
    """Supervisor row. Any parsed ``supervisor_id`` is discarded on write."""

    record_type: Literal["supervisor"] = "supervisor"


ImportRecord = Annotated[
    Union[CollectionRecord, ProductRecord, ClientRecord, TechnicianRecord, SupervisorRecord],
    Field(discriminator="record_type"),
]

RECORD_TYPES: dict[ImportKind, type[BaseModel]] = {
    ImportKind.COLLECTIONS: CollectionRecord,
    ImportKind.PRODUCTS: ProductRecord,
    ImportKind.CLIENTS: ClientRecord,
    ImportKind.TECHNICIANS: TechnicianRecord,
    ImportKind.SUPERVISORS: SupervisorRecord,
}


# ---------------------------------------------------------------------------
# API payloads
# ---------------------------------------------------------------------------


class ImportPreview(BaseModel):
    """Result of parsing and validating an uploaded file."""

    session_id: str
    kind: ImportKind
    filename: str
    total: int
    records: list[ImportRecord] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class ImportExecuteRequest(BaseModel):
    session_id: str = Field(..., min_length=1)


class ImportOutcome(BaseModel):
    """What a successful write reports back.

    ``count`` is the number of records submitted for insert-if-absent kinds
    (duplicates are not subtracted) and the number of inserted rows for
    collections.
    """

    kind: ImportKind
    count: int = 0
    items_created: int = 0
    items_failed: int = 0
    message: str = ""


class ImportFormats(BaseModel):
    """Accepted file extensions per kind."""

    formats: dict[ImportKind, list[str]]
