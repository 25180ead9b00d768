# tests/test_collaborator_import.py — Senior / TOTVS normalization and import endpoint
import pytest
from httpx import AsyncClient
from sqlalchemy import select

from errors import BadRequestError
from models import Collaborator
from routers.imports import MAX_IMPORT_BYTES
from services.collaborator_import import ImportFormat, normalize, parse_format, parse_import_file
from tests.conftest import get_auth_headers

SENIOR_ROW = {
    "nomFun": "Maria Silva",
    "emaPar": "Maria.Silva@Example.com",
    "numCpf": "123.456.789-09",
    "pisPasep": "120.5678.901-2",
    "numCad": "1001",
    "sitAfa": "3",
    "titCar": "Analista",
}

TOTVS_ROW = {
    "NOME_FUNCIONARIO": "Maria Silva",
    "EMAIL_CORP": "maria.silva@example.com",
    "CPF": "12345678909",
    "PIS_PASEP": "12056789012",
    "CHAPA": "1001",
    "COD_SITUACAO": "F",
    "FUNCAO": "Analista",
}

SENIOR_CSV = (
    "\ufeffnomFun;emaPar;numCpf;sitAfa;titCar\n"
    "Maria Silva;maria@example.com;111.222.333-44;1;Analista\n"
    "Sem Email;;555.666.777-88;1;Auxiliar\n"
    "João Souza;joao@example.com;999.888.777-66;4;Gerente\n"
)


def test_senior_and_totvs_rows_normalize_alike():
    senior = normalize(SENIOR_ROW, ImportFormat.SENIOR)
    totvs = normalize(TOTVS_ROW, ImportFormat.TOTVS)
    assert senior == totvs
    assert senior.to_dict() == {
        "name": "Maria Silva",
        "email": "maria.silva@example.com",
        "cpf": "12345678909",
        "pis": "12056789012",
        "employee_id": "1001",
        "status": "Férias",
        "role": "Analista",
    }


@pytest.mark.parametrize("code,expected", [("1", "Ativo"), ("7", "Ativo"), ("4", "Inativo"), ("99", "Ativo"), (None, "Ativo")])
def test_senior_status_codes(code, expected):
    row = {"NOME": "X", "EMAIL": "x@example.com", "sitAfa": code}
    assert normalize(row, ImportFormat.SENIOR).status == expected


def test_totvs_fallback_columns():
    row = {"NOME": "Ana", "EMAIL": "ana@example.com", "MATRICULA": "77", "COD_SITUACAO": "d"}
    result = normalize(row, ImportFormat.TOTVS)
    assert result.name == "Ana"
    assert result.employee_id == "77"
    assert result.status == "Inativo"
    assert result.cpf is None


def test_parse_file_skips_rows_without_email():
    rows = parse_import_file(SENIOR_CSV.encode("utf-8"), ImportFormat.SENIOR)
    assert [r.name for r in rows] == ["Maria Silva", "João Souza"]
    assert rows[0].cpf == "11122233344"
    assert rows[1].status == "Inativo"


def test_unknown_format():
    with pytest.raises(BadRequestError):
        parse_format("sap")
    assert parse_format("TOTVS") is ImportFormat.TOTVS


@pytest.mark.asyncio
async def test_import_preview(client: AsyncClient, db_session, test_user):
    resp = await client.post(
        "/api/v1/imports/collaborators",
        params={"type": "senior"},
        files={"file": ("export.csv", SENIOR_CSV.encode("utf-8"), "text/csv")},
        headers=get_auth_headers(test_user),
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["count"] == 2
    assert data["format"] == "senior"
    assert (await db_session.execute(select(Collaborator))).scalars().all() == []


@pytest.mark.asyncio
async def test_import_commit_requires_manager(client: AsyncClient, test_user):
    resp = await client.post(
        "/api/v1/imports/collaborators",
        params={"type": "senior", "commit": "true"},
        files={"file": ("export.csv", SENIOR_CSV.encode("utf-8"), "text/csv")},
        headers=get_auth_headers(test_user),
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_import_commit_upserts(client: AsyncClient, db_session, manager_user):
    headers = get_auth_headers(manager_user)
    upload = {"file": ("export.csv", SENIOR_CSV.encode("utf-8"), "text/csv")}
    first = await client.post(
        "/api/v1/imports/collaborators", params={"type": "senior", "commit": "true"},
        files=upload, headers=headers,
    )
    assert first.status_code == 200
    assert first.json()["data"]["created"] == 2

    second = await client.post(
        "/api/v1/imports/collaborators", params={"type": "senior", "commit": "true"},
        files=upload, headers=headers,
    )
    assert second.json()["data"]["created"] == 0
    assert second.json()["data"]["updated"] == 2

    rows = (await db_session.execute(
        select(Collaborator.email, Collaborator.company_id).order_by(Collaborator.email)
    )).all()
    assert [tuple(r) for r in rows] == [
        ("joao@example.com", manager_user.company_id),
        ("maria@example.com", manager_user.company_id),
    ]


@pytest.mark.asyncio
async def test_import_rejects_unknown_type(client: AsyncClient, test_user):
    resp = await client.post(
        "/api/v1/imports/collaborators",
        params={"type": "sap"},
        files={"file": ("export.csv", b"a;b\n1;2\n", "text/csv")},
        headers=get_auth_headers(test_user),
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_import_rejects_oversized_file(client: AsyncClient, test_user):
    oversized = SENIOR_CSV.encode("utf-8") + b"x" * (MAX_IMPORT_BYTES + 1)
    resp = await client.post(
        "/api/v1/imports/collaborators",
        params={"type": "senior"},
        files={"file": ("export.csv", oversized, "text/csv")},
        headers=get_auth_headers(test_user),
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Import file exceeds 5 MB"


@pytest.mark.asyncio
async def test_import_accepts_file_at_size_limit(client: AsyncClient, test_user):
    body = SENIOR_CSV.encode("utf-8")
    padded = body + b"\n" * (MAX_IMPORT_BYTES - len(body))
    resp = await client.post(
        "/api/v1/imports/collaborators",
        params={"type": "senior"},
        files={"file": ("export.csv", padded, "text/csv")},
        headers=get_auth_headers(test_user),
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["count"] == 2
