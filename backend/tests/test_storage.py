"""Document store adapters and policy index loading, using tmp_path."""
import asyncio
import io
import json
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from auditmatch.exceptions import NotFoundError, UpstreamServiceError, ValidationError
from auditmatch.services.policy_index import PolicyIndex
from auditmatch.storage.local_store import LocalDocumentStore
from auditmatch.storage.s3_store import S3DocumentStore


@pytest.fixture
def policy_root(tmp_path):
    privacy = tmp_path / "Privacy"
    privacy.mkdir()
    (privacy / "HIPAA Privacy Policy.pdf").write_bytes(b"%PDF-privacy")
    (privacy / "notes.txt").write_text("ignored")
    (tmp_path / "Claims").mkdir()
    (tmp_path / ".hidden").mkdir()
    return tmp_path


@pytest.fixture
def store(policy_root):
    return LocalDocumentStore(str(policy_root))


# --- LocalDocumentStore ---

@pytest.mark.asyncio
async def test_list_folders(store):
    folders = await store.list_folders("")
    assert [(f.id, f.name) for f in folders] == [("Claims", "Claims"), ("Privacy", "Privacy")]


@pytest.mark.asyncio
async def test_list_files_only_pdf(store):
    files = await store.list_files("Privacy")
    assert [(f.id, f.name) for f in files] == [("Privacy/HIPAA Privacy Policy.pdf", "HIPAA Privacy Policy.pdf")]
    assert files[0].size == len(b"%PDF-privacy")


@pytest.mark.asyncio
async def test_get_bytes_and_metadata(store):
    file_id = "Privacy/HIPAA Privacy Policy.pdf"
    assert await store.get_bytes(file_id) == b"%PDF-privacy"
    metadata = await store.get_metadata(file_id)
    assert metadata.mime_type == "application/pdf"
    assert metadata.modified_time.endswith("+00:00")


@pytest.mark.asyncio
async def test_missing_file_raises(store):
    with pytest.raises(NotFoundError):
        await store.get_bytes("Privacy/missing.pdf")
    with pytest.raises(NotFoundError):
        await store.list_files("Nope")


@pytest.mark.asyncio
async def test_traversal_blocked(store):
    with pytest.raises(NotFoundError):
        await store.get_bytes("../outside.pdf")


@pytest.mark.asyncio
async def test_unreachable_root(tmp_path):
    store = LocalDocumentStore(str(tmp_path / "missing"))
    with pytest.raises(UpstreamServiceError):
        await store.list_folders("")


# --- S3DocumentStore ---

def _client_error(code):
    return ClientError({"Error": {"Code": code, "Message": code}}, "HeadObject")


@pytest.fixture
def s3_client():
    client = MagicMock()
    paginator = MagicMock()
    paginator.paginate.return_value = [
        {
            "CommonPrefixes": [{"Prefix": "policies/Privacy/"}],
            "Contents": [
                {"Key": "policies/Privacy/HIPAA.pdf", "Size": 12},
                {"Key": "policies/Privacy/readme.md", "Size": 3},
            ],
        }
    ]
    client.get_paginator.return_value = paginator
    client.get_object.return_value = {"Body": io.BytesIO(b"%PDF-s3")}
    client.head_object.return_value = {
        "ContentLength": 7,
        "ContentType": "application/pdf",
        "LastModified": datetime(2025, 1, 2, tzinfo=timezone.utc),
    }
    return client


@pytest.mark.asyncio
async def test_s3_listing(s3_client):
    store = S3DocumentStore("bucket", prefix="policies", client=s3_client)
    folders = await store.list_folders("")
    assert [(f.id, f.name) for f in folders] == [("policies/Privacy", "Privacy")]
    files = await store.list_files("policies/Privacy")
    assert [f.name for f in files] == ["HIPAA.pdf"]
    kwargs = s3_client.get_paginator.return_value.paginate.call_args.kwargs
    assert kwargs["Prefix"] == "policies/Privacy/"
    assert kwargs["Delimiter"] == "/"


@pytest.mark.asyncio
async def test_s3_bytes_and_metadata(s3_client):
    store = S3DocumentStore("bucket", client=s3_client)
    assert await store.get_bytes("policies/Privacy/HIPAA.pdf") == b"%PDF-s3"
    metadata = await store.get_metadata("policies/Privacy/HIPAA.pdf")
    assert metadata.name == "HIPAA.pdf"
    assert metadata.modified_time.startswith("2025-01-02")


@pytest.mark.asyncio
async def test_s3_errors_mapped(s3_client):
    store = S3DocumentStore("bucket", client=s3_client)
    s3_client.head_object.side_effect = _client_error("404")
    with pytest.raises(NotFoundError):
        await store.get_metadata("missing.pdf")
    s3_client.get_object.side_effect = _client_error("AccessDenied")
    with pytest.raises(UpstreamServiceError):
        await store.get_bytes("secret.pdf")


# --- PolicyIndex ---

@pytest.mark.asyncio
async def test_policy_index_json(tmp_path):
    path = tmp_path / "index.json"
    path.write_text(json.dumps([
        {"subfolder": "Privacy", "pdf_name": "HIPAA.pdf", "category": "Privacy & Security",
         "keywords": ["privacy"], "short_description": "Privacy rules"},
        {"subfolder": "Broken"},
    ]))
    index = PolicyIndex(str(path))
    descriptors = await index.load()
    assert [d.key for d in descriptors] == ["Privacy/HIPAA.pdf"]
    assert descriptors[0].description == "Privacy rules"
    assert index.count == 1
    assert index.get() == descriptors


@pytest.mark.asyncio
async def test_policy_index_yaml(tmp_path):
    path = tmp_path / "index.yaml"
    path.write_text("- subfolder: Claims\n  pdf_name: Appeals.pdf\n  keywords: appeals, grievance\n")
    descriptors = await PolicyIndex(str(path)).load()
    assert descriptors[0].keywords == ["appeals", "grievance"]


@pytest.mark.asyncio
async def test_policy_index_errors(tmp_path):
    missing = PolicyIndex(str(tmp_path / "none.json"))
    with pytest.raises(NotFoundError):
        await missing.load()
    with pytest.raises(UpstreamServiceError):
        missing.get()

    not_a_list = tmp_path / "dict.json"
    not_a_list.write_text('{"a": 1}')
    with pytest.raises(ValidationError):
        await PolicyIndex(str(not_a_list)).load()


@pytest.mark.asyncio
async def test_local_store_scans_off_event_loop(store, monkeypatch):
    offloaded = []
    original = asyncio.to_thread

    async def recording_to_thread(func, *args, **kwargs):
        offloaded.append(func.__name__)
        return await original(func, *args, **kwargs)

    monkeypatch.setattr(asyncio, "to_thread", recording_to_thread)
    await store.list_folders("")
    await store.list_files("Privacy")
    await store.get_metadata("Privacy/HIPAA Privacy Policy.pdf")
    assert await store.get_bytes("Privacy/HIPAA Privacy Policy.pdf") == b"%PDF-privacy"
    assert offloaded == ["_list_folders_sync", "_list_files_sync", "_get_metadata_sync", "_file_path_sync"]
