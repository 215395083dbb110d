"""Folder browsing, manifest detail, processing, and document routes."""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from httpx import AsyncClient

from docportal.features.files.manifest import parse_manifest
from docportal.infra.storage import InMemoryStorage, StorageTimeoutError
from tests.support import BUCKET, CARTAS, FACTURAS, HeadersFactory, seed_grant

pytestmark = pytest.mark.asyncio

SOURCE = "Recepcion/Muestreo/"
LETTERS_MANIFEST = "lote_C112_20240501.csv"
INVOICE_MANIFEST = "lote_F401_20240501.csv"


async def test_listing_without_folder_filters_by_typology(
    app: FastAPI,
    async_client: AsyncClient,
    auth_headers: HeadersFactory,
    storage: InMemoryStorage,
) -> None:
    await seed_grant(app, "usuario2", CARTAS)
    storage.seed(BUCKET, f"{SOURCE}{LETTERS_MANIFEST}", "idDocumento\nD1\n")
    storage.seed(BUCKET, f"{SOURCE}{INVOICE_MANIFEST}", "idDocumento\nD9\n")
    storage.seed(BUCKET, f"{SOURCE}notas.txt", "no manifest")

    response = await async_client.get("/api/files", headers=auth_headers("usuario2"))

    assert response.status_code == 200
    body = response.json()
    assert body["bucket"] == BUCKET
    assert body["prefix"] == SOURCE
    assert [item["name"] for item in body["files"]] == [LETTERS_MANIFEST]
    assert body["files"][0]["typologyCode"] == "C112"


async def test_folder_listing_inside_scope(
    app: FastAPI,
    async_client: AsyncClient,
    auth_headers: HeadersFactory,
    storage: InMemoryStorage,
) -> None:
    await seed_grant(app, "usuario2", CARTAS)
    storage.seed(BUCKET, f"{CARTAS}/2024/{LETTERS_MANIFEST}", "idDocumento\nD1\n")
    storage.seed(BUCKET, f"{CARTAS}/{LETTERS_MANIFEST}", "idDocumento\nD1\n")

    folders = await async_client.get("/api/folders", headers=auth_headers("usuario2"))
    files = await async_client.get(
        "/api/files",
        params={"folder": f"/{CARTAS}/2024"},
        headers=auth_headers("usuario2"),
    )

    assert folders.status_code == 200
    assert folders.json()["folders"] == [
        {"name": "2024", "path": f"{CARTAS}/2024", "fullPath": f"{CARTAS}/2024/"},
    ]
    assert files.status_code == 200
    assert [item["key"] for item in files.json()["files"]] == [
        f"{CARTAS}/2024/{LETTERS_MANIFEST}"
    ]


async def test_folder_outside_scope_is_forbidden(
    app: FastAPI,
    async_client: AsyncClient,
    auth_headers: HeadersFactory,
) -> None:
    await seed_grant(app, "usuario2", CARTAS)

    response = await async_client.get(
        "/api/folders",
        params={"folder": FACTURAS},
        headers=auth_headers("usuario2"),
    )

    assert response.status_code == 403
    assert response.json()["detail"] == f"No permission for folder: {FACTURAS}"


async def test_user_without_grants_is_forbidden(
    async_client: AsyncClient,
    auth_headers: HeadersFactory,
) -> None:
    response = await async_client.get("/api/files", headers=auth_headers("usuario3"))

    assert response.status_code == 403


async def test_inconsistent_tokens_are_rejected(
    app: FastAPI,
    async_client: AsyncClient,
    auth_headers: HeadersFactory,
) -> None:
    await seed_grant(app, "alice", CARTAS)

    response = await async_client.get(
        "/api/files",
        headers=auth_headers("alice", id_username="bob"),
    )

    assert response.status_code == 401
    assert response.json()["detail"] == "Inconsistent tokens"


async def test_manifest_detail(
    app: FastAPI,
    async_client: AsyncClient,
    auth_headers: HeadersFactory,
    storage: InMemoryStorage,
) -> None:
    await seed_grant(app, "usuario2", CARTAS)
    storage.seed(BUCKET, f"{SOURCE}{LETTERS_MANIFEST}", "idDocumento;cliente\nD1;ACME\n")

    response = await async_client.get(
        f"/api/files/{LETTERS_MANIFEST}",
        headers=auth_headers("usuario2"),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["headers"] == ["idDocumento", "cliente"]
    assert body["rows"] == [{"idDocumento": "D1", "cliente": "ACME"}]
    assert body["documentGroupPath"] == CARTAS


async def test_manifest_detail_outside_typology_is_forbidden(
    app: FastAPI,
    async_client: AsyncClient,
    auth_headers: HeadersFactory,
    storage: InMemoryStorage,
) -> None:
    await seed_grant(app, "usuario2", CARTAS)
    storage.seed(BUCKET, f"{SOURCE}{INVOICE_MANIFEST}", "idDocumento\nD9\n")

    response = await async_client.get(
        f"/api/files/{INVOICE_MANIFEST}",
        headers=auth_headers("usuario2"),
    )

    assert response.status_code == 403


async def test_missing_manifest_is_404(
    app: FastAPI,
    async_client: AsyncClient,
    auth_headers: HeadersFactory,
) -> None:
    await seed_grant(app, "usuario2", CARTAS)

    response = await async_client.get(
        f"/api/files/{LETTERS_MANIFEST}",
        headers=auth_headers("usuario2"),
    )

    assert response.status_code == 404


async def test_process_manifest_end_to_end(
    app: FastAPI,
    async_client: AsyncClient,
    auth_headers: HeadersFactory,
    storage: InMemoryStorage,
) -> None:
    await seed_grant(app, "usuario1", CARTAS)
    source_key = f"{CARTAS}/{LETTERS_MANIFEST}"
    storage.seed(BUCKET, source_key, "idDocumento,cliente\nD1,ACME\nD2,Globex\nD3,Initech\n")
    storage.seed(BUCKET, "Recepcion/D1", b"%PDF-1")
    storage.seed(BUCKET, "Recepcion/D2", b"%PDF-2")

    response = await async_client.post(
        "/api/files/process",
        json={
            "fileName": LETTERS_MANIFEST,
            "folderPath": CARTAS,
            "resultado": "KO parcial",
            "idSpool": "SP-1",
        },
        headers=auth_headers("usuario1", name="Usuario Uno"),
    )

    assert response.status_code == 200
    body = response.json()
    destination = f"Recepcion/Muestreo/Resultado/{LETTERS_MANIFEST}"
    assert body["sourceKey"] == source_key
    assert body["sourceDeleted"] is True
    assert body["destinationKey"] == destination
    assert body["rowsTotal"] == 3
    assert body["documentsMoved"] == ["D1", "D2"]
    assert body["documentsFailed"] == [{"id": "D3", "reason": "not found"}]
    assert body["processedBy"] == "Usuario Uno"
    assert body["processedAt"].endswith("Z")

    keys = storage.keys(BUCKET)
    assert source_key not in keys
    assert {"Recepcion/Archivo/D1", "Recepcion/Archivo/D2"} <= set(keys)
    stamped = parse_manifest(await storage.get(BUCKET, destination))
    assert {row["resultado"] for row in stamped.rows} == {"KO parcial"}
    assert {row["matriculaValidador"] for row in stamped.rows} == {"usuario1"}


async def test_process_rejects_empty_manifest(
    app: FastAPI,
    async_client: AsyncClient,
    auth_headers: HeadersFactory,
    storage: InMemoryStorage,
) -> None:
    await seed_grant(app, "usuario2", CARTAS)
    storage.seed(BUCKET, f"{SOURCE}{LETTERS_MANIFEST}", "idDocumento\n")

    response = await async_client.post(
        "/api/files/process",
        json={"fileName": LETTERS_MANIFEST, "resultado": "OK"},
        headers=auth_headers("usuario2"),
    )

    assert response.status_code == 422
    assert f"{SOURCE}{LETTERS_MANIFEST}" in storage.keys(BUCKET)


async def test_process_rejects_unknown_outcome(
    app: FastAPI,
    async_client: AsyncClient,
    auth_headers: HeadersFactory,
) -> None:
    await seed_grant(app, "usuario2", CARTAS)

    response = await async_client.post(
        "/api/files/process",
        json={"fileName": LETTERS_MANIFEST, "resultado": "MAYBE"},
        headers=auth_headers("usuario2"),
    )

    assert response.status_code == 422


async def test_process_rejects_path_like_names(
    app: FastAPI,
    async_client: AsyncClient,
    auth_headers: HeadersFactory,
) -> None:
    await seed_grant(app, "usuario2", CARTAS)

    response = await async_client.post(
        "/api/files/process",
        json={"fileName": "../secret.csv", "folderPath": CARTAS, "resultado": "OK"},
        headers=auth_headers("usuario2"),
    )

    assert response.status_code == 422


async def test_process_conflicts_while_manifest_is_leased(
    app: FastAPI,
    async_client: AsyncClient,
    auth_headers: HeadersFactory,
    storage: InMemoryStorage,
) -> None:
    await seed_grant(app, "usuario2", CARTAS)
    source_key = f"{SOURCE}{LETTERS_MANIFEST}"
    storage.seed(BUCKET, source_key, "idDocumento\nD1\n")
    app.state.processing_leases.acquire(BUCKET, source_key, holder="usuario1")

    response = await async_client.post(
        "/api/files/process",
        json={"fileName": LETTERS_MANIFEST, "resultado": "OK"},
        headers=auth_headers("usuario2"),
    )

    assert response.status_code == 409
    assert source_key in storage.keys(BUCKET)


async def test_grant_selector_headers(
    app: FastAPI,
    async_client: AsyncClient,
    auth_headers: HeadersFactory,
) -> None:
    cartas = await seed_grant(app, "usuario1", CARTAS)
    await seed_grant(app, "usuario1", FACTURAS)
    foreign = await seed_grant(app, "usuario2", CARTAS)

    selected = await async_client.get(
        "/api/folders",
        headers={**auth_headers("usuario1"), "X-Grant-Id": str(cartas.id)},
    )
    default = await async_client.get("/api/folders", headers=auth_headers("usuario1"))
    stolen = await async_client.get(
        "/api/folders",
        headers={**auth_headers("usuario1"), "X-Grant-Id": str(foreign.id)},
    )

    assert selected.json()["prefix"] == f"{CARTAS}/"
    assert default.json()["prefix"] == f"{FACTURAS}/"
    assert stolen.status_code == 403


async def test_document_exists_and_download(
    app: FastAPI,
    async_client: AsyncClient,
    auth_headers: HeadersFactory,
    storage: InMemoryStorage,
) -> None:
    await seed_grant(app, "usuario2", CARTAS)
    storage.seed(BUCKET, "Recepcion/D1.pdf", b"%PDF-1.7")
    headers = auth_headers("usuario2")

    present = await async_client.get("/api/documents/D1.pdf/exists", headers=headers)
    absent = await async_client.get("/api/documents/D2.pdf/exists", headers=headers)
    download = await async_client.get("/api/documents/D1.pdf", headers=headers)
    missing = await async_client.get("/api/documents/D2.pdf", headers=headers)

    assert present.json() == {"documentId": "D1.pdf", "exists": True}
    assert absent.json()["exists"] is False
    assert download.status_code == 200
    assert download.content == b"%PDF-1.7"
    assert download.headers["content-disposition"] == 'attachment; filename="D1.pdf"'
    assert missing.status_code == 404


async def test_storage_timeout_is_service_unavailable(
    app: FastAPI,
    async_client: AsyncClient,
    auth_headers: HeadersFactory,
    storage: InMemoryStorage,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    await seed_grant(app, "usuario2", CARTAS)

    async def _timed_out(bucket: str, key: str) -> bytes:
        raise StorageTimeoutError("get_object", 10.0)

    monkeypatch.setattr(storage, "get", _timed_out)

    response = await async_client.get("/api/documents/D1.pdf", headers=auth_headers("usuario2"))

    assert response.status_code == 503
    assert response.headers["content-type"].startswith("application/problem+json")
