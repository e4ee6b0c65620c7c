"""Tests for identifier resolution, existence checks and bounded downloads."""
import asyncio

import pytest

from auditmatch.exceptions import NotFoundError, UpstreamServiceError
from auditmatch.schemas.policy import DocumentDescriptor
from auditmatch.schemas.store import FileEntry
from auditmatch.services import content_service as content_module
from auditmatch.services.content_service import MAX_CACHEABLE_BYTES, match_file
from conftest import FakeDocumentStore, make_content_service


def _descriptor(subfolder, name):
    return DocumentDescriptor(subfolder=subfolder, name=name)


def _entries(*names):
    return [FileEntry(id=f"f/{name}", name=name) for name in names]


class TestMatchFile:
    def test_extension_insensitive(self):
        entry = match_file("HIPAA Privacy Policy", _entries("HIPAA Privacy Policy.pdf"))
        assert entry.name == "HIPAA Privacy Policy.pdf"

    def test_case_insensitive_both_directions(self):
        assert match_file("hipaa privacy policy v2.pdf", _entries("HIPAA Privacy Policy.PDF")) is not None
        assert match_file("Privacy.pdf", _entries("2024 privacy manual.pdf")) is not None

    def test_first_listed_match_wins(self):
        entry = match_file("Policy.pdf", _entries("Policy A.pdf", "Policy B.pdf"))
        assert entry.name == "Policy A.pdf"

    def test_no_match(self):
        assert match_file("Billing.pdf", _entries("Claims Appeals.pdf")) is None


class TestResolve:
    @pytest.mark.asyncio
    async def test_resolve_and_cache(self, content_service, fake_store):
        descriptor = _descriptor("Privacy", "HIPAA Privacy Policy")
        assert await content_service.resolve(descriptor) == "Privacy/HIPAA Privacy Policy.pdf"
        await content_service.resolve(descriptor)
        assert fake_store.calls["list_files"] == 1
        assert fake_store.calls["list_folders"] == 1

    @pytest.mark.asyncio
    async def test_resolve_missing(self, content_service):
        with pytest.raises(NotFoundError):
            await content_service.resolve(_descriptor("Finance", "Budget.pdf"))
        with pytest.raises(NotFoundError):
            await content_service.resolve(_descriptor("Privacy", "Nope.pdf"))

    @pytest.mark.asyncio
    async def test_batch_resolve_one_listing_per_folder(self, content_service, fake_store):
        descriptors = [
            _descriptor("Privacy", "HIPAA Privacy Policy.pdf"),
            _descriptor("Privacy", "Breach Notification.pdf"),
            _descriptor("Privacy", "Missing.pdf"),
            _descriptor("Claims", "Claims Appeals.pdf"),
            _descriptor("Finance", "Budget.pdf"),
        ]
        resolved = await content_service.batch_resolve(descriptors)
        assert resolved == {
            "Privacy/HIPAA Privacy Policy.pdf": "Privacy/HIPAA Privacy Policy.pdf",
            "Privacy/Breach Notification.pdf": "Privacy/Breach Notification.pdf",
            "Privacy/Missing.pdf": None,
            "Claims/Claims Appeals.pdf": "Claims/Claims Appeals.pdf",
            "Finance/Budget.pdf": None,
        }
        assert fake_store.calls["list_files"] == 2
        assert await content_service.preload_identifiers(descriptors) == 3

    @pytest.mark.asyncio
    async def test_unreachable_store(self, fake_store):
        fake_store.reachable = False
        service = make_content_service(fake_store)
        with pytest.raises(UpstreamServiceError):
            await service.build_folder_mapping()
        assert not service.mapping_built


class TestExistence:
    @pytest.mark.asyncio
    async def test_chunks_with_pause(self, monkeypatch):
        pauses = []

        async def record_sleep(ms):
            pauses.append(ms)

        monkeypatch.setattr(content_module, "sleep_ms", record_sleep)
        files = {f"Doc{i}.pdf": b"x" for i in range(23)}
        store = FakeDocumentStore({"Privacy": files})
        service = make_content_service(store, existence_pause_ms=200)
        ids = [f"Privacy/Doc{i}.pdf" for i in range(23)] + ["Privacy/Ghost.pdf"]

        results = await service.batch_check_exists(ids)
        assert sum(results.values()) == 23
        assert results["Privacy/Ghost.pdf"] is False
        # 24 ids in chunks of 10 -> three chunks, two pauses
        assert pauses == [200, 200]

    @pytest.mark.asyncio
    async def test_descriptor_flags_in_order(self, content_service):
        flags = await content_service.check_descriptors_exist(
            [
                _descriptor("Claims", "Claims Appeals.pdf"),
                _descriptor("Finance", "Budget.pdf"),
                _descriptor("Privacy", "Breach Notification.pdf"),
            ]
        )
        assert flags == [True, False, True]


class TestFetch:
    @pytest.mark.asyncio
    async def test_cache_hit_skips_store(self, content_service, fake_store):
        first = await content_service.fetch("Claims/Claims Appeals.pdf")
        second = await content_service.fetch("Claims/Claims Appeals.pdf")
        assert first == second
        assert fake_store.calls["get_bytes"] == 1

    @pytest.mark.asyncio
    async def test_concurrent_requests_share_download(self):
        store = FakeDocumentStore({"Privacy": {"A.pdf": b"a"}}, delay=0.02)
        service = make_content_service(store)
        results = await asyncio.gather(*(service.fetch("Privacy/A.pdf") for _ in range(5)))
        assert results == [b"a"] * 5
        assert store.calls["get_bytes"] == 1

    @pytest.mark.asyncio
    async def test_concurrency_cap(self):
        files = {f"Doc{i}.pdf": b"x" for i in range(12)}
        store = FakeDocumentStore({"Privacy": files}, delay=0.02)
        service = make_content_service(store, max_concurrent_downloads=3)
        await asyncio.gather(*(service.fetch(f"Privacy/Doc{i}.pdf") for i in range(12)))
        assert store.max_active_downloads == 3
        assert service.get_stats()["active_downloads"] == 0

    @pytest.mark.asyncio
    async def test_large_payload_not_cached(self):
        store = FakeDocumentStore({"Privacy": {"Big.pdf": b"x" * MAX_CACHEABLE_BYTES}})
        service = make_content_service(store)
        await service.fetch("Privacy/Big.pdf")
        await service.fetch("Privacy/Big.pdf")
        assert store.calls["get_bytes"] == 2

    @pytest.mark.asyncio
    async def test_download_error_wrapped(self, content_service, fake_store):
        fake_store.failing_ids.add("Claims/Claims Appeals.pdf")
        with pytest.raises(UpstreamServiceError):
            await content_service.fetch("Claims/Claims Appeals.pdf")

    @pytest.mark.asyncio
    async def test_fetch_text(self, content_service, fake_store):
        text = await content_service.fetch_text(_descriptor("Claims", "Claims Appeals.pdf"))
        assert text.startswith("Appeals are resolved")

        fake_store.failing_ids.add("Privacy/Breach Notification.pdf")
        assert await content_service.fetch_text(_descriptor("Privacy", "Breach Notification.pdf")) is None
        assert await content_service.fetch_text(_descriptor("Finance", "Budget.pdf")) is None


class TestHousekeeping:
    def test_adjust_concurrency_clamped(self, content_service):
        assert content_service.adjust_concurrency(0) == 1
        assert content_service.adjust_concurrency(50) == 10
        assert content_service.adjust_concurrency(4) == 4

    @pytest.mark.asyncio
    async def test_clear_caches_resets_mapping(self, content_service):
        await content_service.resolve(_descriptor("Claims", "Claims Appeals.pdf"))
        assert content_service.mapping_built
        content_service.clear_caches()
        assert not content_service.mapping_built
        assert content_service.get_stats()["identifier_cache_size"] == 0
