"""File parsing for the import pipeline.

A file is read into plain row dicts by a format reader (CSV, Excel, JSON),
then each row is mapped onto the record variant of the selected kind.
Header names are matched case- and accent-insensitively against per-field
alias lists that cover the Portuguese spreadsheet headers used by operators
and the English field names used in JSON exports.
"""

import csv
import io
import json
import logging
import random
import string
import time
import unicodedata
import zipfile
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Optional

from openpyxl import load_workbook
from openpyxl.utils.datetime import from_excel
from openpyxl.utils.exceptions import InvalidFileException
from pydantic import BaseModel, ValidationError

from app.db.models import CollectionKind, CollectionStatus, TeamShift
from app.imports.errors import FileReadError, UnsupportedFormatError
from app.imports.schemas import (
    ClientRecord,
    CollectionRecord,
    ImportKind,
    ProductRecord,
    SupervisorRecord,
    TechnicianRecord,
)

logger = logging.getLogger(__name__)

# Accepted extensions per kind, in display order
ACCEPTED_FORMATS: dict[ImportKind, tuple[str, ...]] = {
    ImportKind.COLLECTIONS: ("xlsx", "csv", "pdf"),
    ImportKind.PRODUCTS: ("xlsx", "csv", "json"),
    ImportKind.CLIENTS: ("xlsx", "csv", "json"),
    ImportKind.TECHNICIANS: ("xlsx", "csv", "json"),
    ImportKind.SUPERVISORS: ("xlsx", "csv", "json"),
}

PDF_SIMULATION_WARNING = (
    "PDF extraction is simulated: the records below are sample data, not the "
    "content of the uploaded document. Integrate an OCR service for real extraction."
)

_DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y", "%Y/%m/%d", "%d/%m/%y")

_STATUS_ALIASES = {
    "concluida": CollectionStatus.COMPLETED,
    "concluido": CollectionStatus.COMPLETED,
    "completed": CollectionStatus.COMPLETED,
    "agendada": CollectionStatus.SCHEDULED,
    "agendado": CollectionStatus.SCHEDULED,
    "scheduled": CollectionStatus.SCHEDULED,
    "em transito": CollectionStatus.SCHEDULED,
    "in transit": CollectionStatus.SCHEDULED,
    "in_transit": CollectionStatus.SCHEDULED,
}

_SHIFT_ALIASES = {
    "day": TeamShift.DAY,
    "dia": TeamShift.DAY,
    "diurno": TeamShift.DAY,
    "night": TeamShift.NIGHT,
    "noite": TeamShift.NIGHT,
    "noturno": TeamShift.NIGHT,
}


@dataclass
class ParseResult:
    """Records extracted from one file plus non-fatal warnings."""

    records: list[BaseModel]
    warnings: list[str] = field(default_factory=list)
    extension: str = ""


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------


def normalize_header(name: Any) -> str:
    """Lower-case, strip accents and collapse whitespace in a column header."""
    text = unicodedata.normalize("NFKD", str(name))
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    return " ".join(text.replace("_", " ").casefold().split())


def generate_unique_number(prefix: str = "IMP") -> str:
    """Build a compact reference like ``IMP-LX3K2F9A-4HZQ1``."""
    millis = int(time.time() * 1000)
    digits = string.digits + string.ascii_lowercase
    encoded = ""
    while millis:
        millis, rem = divmod(millis, 36)
        encoded = digits[rem] + encoded
    suffix = "".join(random.choices(digits, k=5))
    return f"{prefix}-{encoded or '0'}-{suffix}".upper()


def _text(value: Any) -> Optional[str]:
    """Convert a cell value to a stripped string, or None when blank."""
    if value is None:
        return None
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float) and value.is_integer():
        # Excel stores phone numbers and codes as floats
        value = int(value)
    text = str(value).strip()
    return text or None


def _pick(row: dict[str, Any], *aliases: str) -> Any:
    """Return the first non-blank value among the aliased columns."""
    for alias in aliases:
        value = row.get(normalize_header(alias))
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def _pick_text(row: dict[str, Any], *aliases: str) -> Optional[str]:
    return _text(_pick(row, *aliases))


def _parse_int(value: Any, default: int) -> int:
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    try:
        return int(float(str(value).strip().replace(",", ".")))
    except (ValueError, OverflowError):
        return default


def _normalize_decimal_text(text: str) -> str:
    text = text.replace("R$", "").replace(" ", "")
    if "," in text and "." in text:
        if text.rfind(",") > text.rfind("."):
            # 1.234,56
            text = text.replace(".", "").replace(",", ".")
        else:
            # 1,234.56
            text = text.replace(",", "")
    else:
        text = text.replace(",", ".")
    return text


def _parse_decimal(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        parsed = Decimal(str(value))
    else:
        text = _text(value)
        if not text:
            return None
        try:
            parsed = Decimal(_normalize_decimal_text(text))
        except InvalidOperation:
            return None
    # NaN and Infinity are unparseable amounts
    return parsed if parsed.is_finite() else None


def _parse_float(value: Any) -> Optional[float]:
    parsed = _parse_decimal(value)
    return float(parsed) if parsed is not None else None


def _parse_date(value: Any) -> Optional[date]:
    """Accept spreadsheet dates, Excel serials, ISO and dd/mm/yyyy strings."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            converted = from_excel(value)
        except (ValueError, OverflowError):
            return None
        if isinstance(converted, timedelta):
            return None
        return converted.date() if isinstance(converted, datetime) else converted
    text = _text(value)
    if not text:
        return None
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        logger.debug("Unrecognised date value %r", text)
        return None


def _parse_status(value: Any) -> CollectionStatus:
    text = _text(value)
    if not text:
        return CollectionStatus.PENDING
    return _STATUS_ALIASES.get(normalize_header(text), CollectionStatus.PENDING)


def _parse_kind(value: Any) -> CollectionKind:
    text = _text(value)
    if text and normalize_header(text) in ("entrega", "delivery"):
        return CollectionKind.DELIVERY
    return CollectionKind.COLLECTION


def _parse_shift(value: Any) -> Optional[TeamShift]:
    text = _text(value)
    if not text:
        return None
    return _SHIFT_ALIASES.get(normalize_header(text))


# ---------------------------------------------------------------------------
# Format readers
# ---------------------------------------------------------------------------


def _normalize_row(raw: dict[Any, Any]) -> dict[str, Any]:
    row: dict[str, Any] = {}
    for key, value in raw.items():
        if key is None:
            continue
        name = normalize_header(key)
        # First occurrence wins for duplicated headers
        row.setdefault(name, value)
    return row


def _is_blank_row(row: dict[str, Any]) -> bool:
    return all(_text(v) is None for v in row.values())


def _decode(content: bytes) -> str:
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        return content.decode("latin-1")


def read_csv_rows(content: bytes) -> list[dict[str, Any]]:
    """Read a delimited text file. The delimiter is sniffed between ``,`` and ``;``."""
    text = _decode(content)
    if not text.strip():
        return []
    sample = text[:4096]
    try:
        dialect = csv.Sniffer().sniff(sample, delimiters=",;")
        delimiter = dialect.delimiter
    except csv.Error:
        delimiter = ","

    try:
        reader = csv.DictReader(io.StringIO(text), delimiter=delimiter)
        rows = [_normalize_row(raw) for raw in reader]
    except csv.Error as e:
        raise FileReadError(f"Could not read CSV file: {e}") from e
    return [row for row in rows if not _is_blank_row(row)]


def read_excel_rows(content: bytes) -> list[dict[str, Any]]:
    """Read the first worksheet of an .xlsx file; the first row is the header."""
    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, ValueError) as e:
        raise FileReadError(
            "Could not read XLSX file. Check that it is a valid spreadsheet."
        ) from e

    try:
        worksheet = workbook.worksheets[0]
        rows_iter = worksheet.iter_rows(values_only=True)
        header = next(rows_iter, None)
        if header is None:
            return []
        columns = [normalize_header(h) if h is not None else None for h in header]
        rows: list[dict[str, Any]] = []
        for values in rows_iter:
            raw = {col: val for col, val in zip(columns, values) if col}
            row = _normalize_row(raw)
            if row and not _is_blank_row(row):
                rows.append(row)
        return rows
    finally:
        workbook.close()


def read_json_rows(content: bytes) -> list[dict[str, Any]]:
    """Read a JSON array of objects."""
    try:
        data = json.loads(_decode(content))
    except json.JSONDecodeError as e:
        raise FileReadError(f"Could not read JSON file: {e.msg} (line {e.lineno})") from e
    if not isinstance(data, list):
        raise FileReadError("JSON file must contain a list of objects.")
    rows = []
    for index, entry in enumerate(data, start=1):
        if not isinstance(entry, dict):
            raise FileReadError(f"JSON entry {index} is not an object.")
        rows.append(_normalize_row(entry))
    return rows


READERS: dict[str, Callable[[bytes], list[dict[str, Any]]]] = {
    "csv": read_csv_rows,
    "xlsx": read_excel_rows,
    "json": read_json_rows,
}


# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def map_collection_row(row: dict[str, Any]) -> CollectionRecord:
    return CollectionRecord(
        unique_number=_pick_text(row, "Número da Coleta", "unique_number")
        or generate_unique_number("IMP"),
        client_control=_pick_text(row, "Controle do Cliente", "client_control"),
        parceiro=_pick_text(row, "Cliente", "Parceiro", "parceiro") or "",
        contato=_pick_text(row, "Contato", "contato"),
        telefone=_pick_text(row, "Telefone", "telefone"),
        email=_pick_text(row, "Email", "E-mail"),
        cnpj=_pick_text(row, "CNPJ"),
        endereco_origem=_pick_text(row, "Endereço de Origem", "Endereço", "endereco_origem")
        or "",
        cep_origem=_pick_text(row, "CEP de Origem", "CEP", "cep_origem"),
        origin_address_number=_pick_text(row, "Número de Origem", "origin_address_number"),
        origin_lat=_parse_float(_pick(row, "Latitude de Origem", "origin_lat")),
        origin_lng=_parse_float(_pick(row, "Longitude de Origem", "origin_lng")),
        endereco_destino=_pick_text(row, "Endereço de Destino", "endereco_destino"),
        cep_destino=_pick_text(row, "CEP de Destino", "cep_destino"),
        destination_address_number=_pick_text(
            row, "Número de Destino", "destination_address_number"
        ),
        destination_lat=_parse_float(_pick(row, "Latitude de Destino", "destination_lat")),
        destination_lng=_parse_float(_pick(row, "Longitude de Destino", "destination_lng")),
        previsao_coleta=_parse_date(
            _pick(row, "Data da Coleta", "Previsão de Coleta", "Data", "previsao_coleta")
        ),
        qtd_aparelhos_solicitado=_parse_int(
            _pick(row, "Quantidade", "qtd_aparelhos_solicitado"), default=1
        ),
        modelo_aparelho=_pick_text(row, "Produto", "Código do Produto", "modelo_aparelho"),
        freight_value=_parse_decimal(_pick(row, "Valor do Frete", "freight_value")),
        observacao=_pick_text(row, "Observações", "Observação", "observacao"),
        status_coleta=_parse_status(_pick(row, "Status", "status_coleta")),
        type=_parse_kind(_pick(row, "Tipo", "type")),
        contrato=_pick_text(row, "Contrato", "contrato"),
        nf_glbl=_pick_text(row, "NF", "nf_glbl"),
        partner_code=_pick_text(row, "Código do Parceiro", "partner_code"),
    )


def map_product_row(row: dict[str, Any]) -> ProductRecord:
    return ProductRecord(
        code=_pick_text(row, "Código", "code") or "",
        description=_pick_text(row, "Descrição", "description", "Nome", "name"),
        model=_pick_text(row, "Modelo", "model", "Categoria", "category"),
        serial_number=_pick_text(row, "Número de Série", "serial_number"),
    )


def map_client_row(row: dict[str, Any]) -> ClientRecord:
    return ClientRecord(
        name=_pick_text(row, "Nome", "Nome do Cliente", "name") or "",
        phone=_pick_text(row, "Telefone", "phone"),
        email=_pick_text(row, "Email", "E-mail"),
        address=_pick_text(row, "Endereço", "address"),
        address_number=_pick_text(row, "Número", "address_number"),
        cep=_pick_text(row, "CEP", "cep"),
        cnpj=_pick_text(row, "CNPJ"),
        contact_person=_pick_text(row, "Pessoa de Contato", "contact_person", "Contato"),
    )


def _profile_fields(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "first_name": _pick_text(row, "Nome", "Primeiro Nome", "first_name") or "",
        "last_name": _pick_text(row, "Sobrenome", "last_name"),
        "phone_number": _pick_text(row, "Telefone", "phone_number", "phone"),
        "role": _pick_text(row, "Função", "Cargo", "role"),
        "supervisor_id": _pick_text(row, "ID do Supervisor", "Supervisor", "supervisor_id"),
        "team_shift": _parse_shift(_pick(row, "Turno", "team_shift")),
        "address": _pick_text(row, "Endereço", "address"),
    }


def map_technician_row(row: dict[str, Any]) -> TechnicianRecord:
    return TechnicianRecord(**_profile_fields(row))


def map_supervisor_row(row: dict[str, Any]) -> SupervisorRecord:
    return SupervisorRecord(**_profile_fields(row))


ROW_MAPPERS: dict[ImportKind, Callable[[dict[str, Any]], BaseModel]] = {
    ImportKind.COLLECTIONS: map_collection_row,
    ImportKind.PRODUCTS: map_product_row,
    ImportKind.CLIENTS: map_client_row,
    ImportKind.TECHNICIANS: map_technician_row,
    ImportKind.SUPERVISORS: map_supervisor_row,
}


# ---------------------------------------------------------------------------
# Document stand-in
# ---------------------------------------------------------------------------


def parse_collection_document(filename: str, content: bytes) -> list[CollectionRecord]:
    """Stand-in for document extraction.

    No extraction service is integrated: the result is sample data tagged with
    the source filename. Callers must surface ``PDF_SIMULATION_WARNING``.
    """
    today = date.today()
    note = f"Data extracted from PDF (simulated) from file: {filename}"
    return [
        CollectionRecord(
            unique_number=generate_unique_number("PDF"),
            client_control="OS-PDF-001",
            parceiro="Cliente PDF Simulado",
            contato="11987654321",
            telefone="11987654321",
            email="joao.silva@pdf.com",
            cnpj="00.000.000/0001-00",
            endereco_origem="Rua da Amostra, 100, Bairro Teste, Cidade Fictícia - SP",
            cep_origem="01000-000",
            previsao_coleta=today,
            qtd_aparelhos_solicitado=3,
            modelo_aparelho="Equipamento PDF",
            freight_value=Decimal("75.00"),
            observacao=note,
            status_coleta=CollectionStatus.PENDING,
            type=CollectionKind.COLLECTION,
        ),
        CollectionRecord(
            unique_number=generate_unique_number("PDF"),
            client_control="OS-PDF-002",
            parceiro="Outro Cliente PDF",
            contato="Maria Souza",
            telefone="21912345678",
            email="maria.souza@pdf.com",
            cnpj="00.000.000/0002-00",
            endereco_origem="Av. Simulação, 50, Centro, Rio de Janeiro - RJ",
            cep_origem="20000-000",
            previsao_coleta=today,
            qtd_aparelhos_solicitado=1,
            modelo_aparelho="Componente PDF",
            freight_value=Decimal("25.00"),
            observacao=note,
            status_coleta=CollectionStatus.SCHEDULED,
            type=CollectionKind.DELIVERY,
        ),
    ]


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


def get_extension(filename: str) -> str:
    """Return the lower-cased extension without the dot ('' when absent)."""
    if not filename or "." not in filename:
        return ""
    return filename.rsplit(".", 1)[-1].strip().lower()


def parse_file(filename: str, content: bytes, kind: ImportKind) -> ParseResult:
    """Parse an uploaded file into records of the given kind.

    Args:
        filename: Original filename; its extension selects the reader.
        content: Raw file bytes.
        kind: Active import kind.

    Returns:
        ParseResult: Records in reader order plus warnings.

    Raises:
        UnsupportedFormatError: Extension not accepted for ``kind``.
        FileReadError: Content could not be read.
    """
    kind = ImportKind(kind)
    extension = get_extension(filename)
    accepted = ACCEPTED_FORMATS[kind]
    if extension not in accepted:
        raise UnsupportedFormatError(kind.value, extension, accepted)

    if extension == "pdf":
        records = parse_collection_document(filename, content)
        logger.info("Simulated PDF extraction for %s: %d records", filename, len(records))
        return ParseResult(records=records, warnings=[PDF_SIMULATION_WARNING], extension=extension)

    rows = READERS[extension](content)
    mapper = ROW_MAPPERS[kind]
    records = []
    for index, row in enumerate(rows, start=1):
        try:
            records.append(mapper(row))
        except ValidationError as e:
            raise FileReadError(f"Row {index} could not be read: {e.errors()[0]['msg']}") from e

    logger.info("Parsed %s as %s: %d records", filename, kind.value, len(records))
    return ParseResult(records=records, extension=extension)
