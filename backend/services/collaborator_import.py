# services/collaborator_import.py — Senior / TOTVS payroll export normalization
import csv
import io
import logging
import re
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from errors import BadRequestError
from models import Collaborator

logger = logging.getLogger("kanban-hub.imports")

DEFAULT_STATUS = "Ativo"


class ImportFormat(str, Enum):
    SENIOR = "senior"
    TOTVS = "totvs"


@dataclass
class CanonicalCollaborator:
    name: Optional[str]
    email: Optional[str]
    cpf: Optional[str]
    pis: Optional[str]
    employee_id: Optional[str]
    status: str
    role: Optional[str]

    def to_dict(self) -> dict:
        return asdict(self)


# Canonical field -> source columns, first non-empty wins
FIELD_MAPS: Dict[ImportFormat, Dict[str, Tuple[str, ...]]] = {
    ImportFormat.SENIOR: {
        "name": ("nomFun", "NOME"),
        "email": ("emaPar", "EMAIL"),
        "cpf": ("numCpf", "CPF"),
        "pis": ("pisPasep", "PIS"),
        "employee_id": ("numCad", "MATRICULA"),
        "status": ("sitAfa",),
        "role": ("titCar", "CARGO"),
    },
    ImportFormat.TOTVS: {
        "name": ("NOME_FUNCIONARIO", "NOME"),
        "email": ("EMAIL", "EMAIL_CORP"),
        "cpf": ("CPF",),
        "pis": ("PIS_PASEP",),
        "employee_id": ("CHAPA", "MATRICULA"),
        "status": ("COD_SITUACAO",),
        "role": ("FUNCAO",),
    },
}

STATUS_MAPS: Dict[ImportFormat, Dict[str, str]] = {
    ImportFormat.SENIOR: {"1": "Ativo", "7": "Ativo", "3": "Férias", "4": "Inativo"},
    ImportFormat.TOTVS: {"A": "Ativo", "F": "Férias", "D": "Inativo"},
}


def _first(row: Mapping[str, str], keys: Sequence[str]) -> Optional[str]:
    for key in keys:
        value = row.get(key)
        if value is not None and str(value).strip():
            return str(value).strip()
    return None


def _digits(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return re.sub(r"\D", "", value) or None


def parse_format(value: str) -> ImportFormat:
    try:
        return ImportFormat(value.lower())
    except ValueError:
        raise BadRequestError(f"Unsupported import type: {value}. Use 'senior' or 'totvs'")


def normalize(raw_row: Mapping[str, str], fmt: ImportFormat) -> CanonicalCollaborator:
    """Map one export row to the canonical collaborator shape"""
    fields = FIELD_MAPS[fmt]
    status_code = _first(raw_row, fields["status"])
    email = _first(raw_row, fields["email"])
    return CanonicalCollaborator(
        name=_first(raw_row, fields["name"]),
        email=email.lower() if email else None,
        cpf=_digits(_first(raw_row, fields["cpf"])),
        pis=_digits(_first(raw_row, fields["pis"])),
        employee_id=_first(raw_row, fields["employee_id"]),
        status=STATUS_MAPS[fmt].get((status_code or "").upper(), DEFAULT_STATUS),
        role=_first(raw_row, fields["role"]),
    )


def parse_import_file(content: bytes, fmt: ImportFormat) -> List[CanonicalCollaborator]:
    """Read a `;`-separated export; rows without name or email are dropped"""
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise BadRequestError("Import file must be UTF-8 encoded")

    reader = csv.DictReader(io.StringIO(text), delimiter=";")
    rows = []
    for raw in reader:
        collaborator = normalize(raw, fmt)
        if collaborator.name and collaborator.email:
            rows.append(collaborator)
    return rows


async def upsert_collaborators(
    db: AsyncSession, company_id: str, collaborators: Sequence[CanonicalCollaborator],
) -> Dict[str, int]:
    """Insert or update by (company, email); commits once"""
    emails = [c.email for c in collaborators]
    existing = {
        row.email: row
        for row in (await db.execute(
            select(Collaborator).where(
                Collaborator.company_id == company_id, Collaborator.email.in_(emails),
            )
        )).scalars().all()
    }

    created = updated = 0
    for item in collaborators:
        values = item.to_dict()
        row = existing.get(item.email)
        if row:
            for key, value in values.items():
                if value is not None:
                    setattr(row, key, value)
            updated += 1
        else:
            row = Collaborator(company_id=company_id, **values)
            db.add(row)
            existing[item.email] = row
            created += 1

    await db.commit()
    logger.info(f"Imported collaborators for company {company_id}: {created} created, {updated} updated")
    return {"created": created, "updated": updated}
