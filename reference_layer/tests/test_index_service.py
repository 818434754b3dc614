"""Tests for the index lifecycle: lazy single-flight build, reset, diagnostics."""

import asyncio
import threading
from pathlib import Path
from typing import Optional

import pytest

from ..src.index_service import DocumentLoad, IndexService, display_names, load_document
from ..src.schemas.page import PageText
from .conftest import FLOORS_TEXT, FakeProvider


class SlowProvider(FakeProvider):
    """Provider that blocks until released, to hold a build in flight."""

    def __init__(self, documents):
        super().__init__(documents)
        self.release = threading.Event()

    def extract_pages(self, path: Path, max_pages: Optional[int] = None) -> list[PageText]:
        self.release.wait(timeout=5)
        return super().extract_pages(path, max_pages)


class TestLoadDocument:
    """Tests for best-effort per-document loading."""

    def test_success(self, make_docs, floors_provider):
        (path,) = make_docs("custodial.pdf")
        load = load_document(path, floors_provider)
        assert load.ok
        assert len(load.chunks) == 1
        assert load.chunks[0].doc_name == "custodial.pdf"

    def test_missing_file(self, tmp_path, floors_provider):
        load = load_document(tmp_path / "custodial.pdf", floors_provider)
        assert not load.ok
        assert load.error == "file not found"
        assert load.chunks == []
        assert floors_provider.calls == []

    def test_extraction_failure(self, make_docs):
        (path,) = make_docs("broken.pdf")
        provider = FakeProvider({}, broken={"broken.pdf"})
        load = load_document(path, provider)
        assert not load.ok
        assert load.error == "corrupt document"

    def test_unexpected_provider_error(self, make_docs):
        (path,) = make_docs("odd.pdf")

        class ExplodingProvider:
            def extract_pages(self, path, max_pages=None):
                raise RuntimeError("boom")

        load = load_document(path, ExplodingProvider())
        assert isinstance(load, DocumentLoad)
        assert load.error == "boom"


class TestEnsureIndex:
    """Tests for lazy, cached index construction."""

    @pytest.mark.asyncio
    async def test_builds_lazily(self, make_docs, floors_provider):
        service = IndexService(doc_paths=make_docs("custodial.pdf"), provider=floors_provider)
        assert not service.is_built
        assert floors_provider.calls == []

        index = await service.ensure_index()
        assert service.is_built
        assert index.total_chunks == 1

    @pytest.mark.asyncio
    async def test_cached_after_build(self, make_docs, floors_provider):
        service = IndexService(doc_paths=make_docs("custodial.pdf"), provider=floors_provider)
        first = await service.ensure_index()
        second = await service.ensure_index()
        assert first is second
        assert floors_provider.calls == ["custodial.pdf"]

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_build(self, make_docs, floors_provider):
        service = IndexService(doc_paths=make_docs("custodial.pdf"), provider=floors_provider)
        results = await asyncio.gather(*[service.ensure_index() for _ in range(10)])
        assert all(r is results[0] for r in results)
        assert floors_provider.calls == ["custodial.pdf"]

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_cancel_build(self, make_docs):
        provider = SlowProvider({"custodial.pdf": [PageText(page=1, text=FLOORS_TEXT)]})
        service = IndexService(doc_paths=make_docs("custodial.pdf"), provider=provider)

        waiter = asyncio.create_task(service.ensure_index())
        await asyncio.sleep(0.01)
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter

        provider.release.set()
        index = await service.ensure_index()
        assert index.total_chunks == 1
        assert provider.calls == ["custodial.pdf"]

    @pytest.mark.asyncio
    async def test_configuration_order_preserved(self, make_docs):
        provider = FakeProvider({
            "b.pdf": [PageText(page=1, text="beta"), PageText(page=2, text="beta two")],
            "a.pdf": [PageText(page=1, text="alpha")],
        })
        service = IndexService(doc_paths=make_docs("b.pdf", "a.pdf"), provider=provider)
        index = await service.ensure_index()
        assert [(c.doc_name, c.page) for c in index.chunks] == [
            ("b.pdf", 1),
            ("b.pdf", 2),
            ("a.pdf", 1),
        ]

    @pytest.mark.asyncio
    async def test_failed_documents_do_not_abort_build(self, make_docs, tmp_path):
        paths = make_docs("good.pdf", "broken.pdf") + [tmp_path / "missing.pdf"]
        provider = FakeProvider(
            {"good.pdf": [PageText(page=1, text="good content")]},
            broken={"broken.pdf"},
        )
        service = IndexService(doc_paths=paths, provider=provider)
        index = await service.ensure_index()

        assert index.total_chunks == 1
        assert {Path(f.path).name: f.error for f in index.load_errors} == {
            "broken.pdf": "corrupt document",
            "missing.pdf": "file not found",
        }

    @pytest.mark.asyncio
    async def test_build_error_is_retried(self, make_docs, monkeypatch):
        service = IndexService(doc_paths=make_docs("custodial.pdf"), provider=FakeProvider({}))
        attempts = []

        def failing_build(chunks, load_errors=None):
            attempts.append(1)
            raise RuntimeError("table build failed")

        monkeypatch.setattr("reference_layer.src.index_service.build_tfidf_index", failing_build)
        with pytest.raises(RuntimeError):
            await service.ensure_index()
        with pytest.raises(RuntimeError):
            await service.ensure_index()
        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_failed_build_with_no_waiters_is_cleared(self, make_docs, monkeypatch):
        provider = SlowProvider({"custodial.pdf": [PageText(page=1, text=FLOORS_TEXT)]})
        service = IndexService(doc_paths=make_docs("custodial.pdf"), provider=provider)
        attempts = []

        def failing_build(chunks, load_errors=None):
            attempts.append(1)
            raise RuntimeError("table build failed")

        monkeypatch.setattr("reference_layer.src.index_service.build_tfidf_index", failing_build)

        waiter = asyncio.create_task(service.ensure_index())
        await asyncio.sleep(0.01)
        build = service._build_task
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter

        provider.release.set()
        await asyncio.wait([build])
        await asyncio.sleep(0)

        assert isinstance(build.exception(), RuntimeError)
        assert service._build_task is None

        with pytest.raises(RuntimeError):
            await service.ensure_index()
        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_same_file_name_in_different_folders(self, tmp_path):
        paths = []
        for folder in ("a", "b"):
            (tmp_path / folder).mkdir()
            path = tmp_path / folder / "spec.pdf"
            path.write_bytes(b"")
            paths.append(path)

        provider = FakeProvider({"spec.pdf": [PageText(page=1, text="floors swept")]})
        service = IndexService(doc_paths=paths, provider=provider)
        index = await service.ensure_index()

        ids = [c.chunk_id for c in index.chunks]
        assert len(ids) == 2
        assert len(set(ids)) == 2
        assert [c.doc_name for c in index.chunks] == ["a/spec.pdf", "b/spec.pdf"]

        diag = await service.diagnostics()
        assert [(f.doc_name, f.page_count) for f in diag.files] == [
            ("a/spec.pdf", 1),
            ("b/spec.pdf", 1),
        ]

    @pytest.mark.asyncio
    async def test_same_path_configured_twice(self, make_docs, floors_provider):
        (path,) = make_docs("custodial.pdf")
        service = IndexService(doc_paths=[path, path], provider=floors_provider)
        index = await service.ensure_index()

        assert index.total_chunks == 1
        assert floors_provider.calls == ["custodial.pdf"]
        diag = await service.diagnostics()
        assert len(diag.configured_paths) == 1


class TestResetIndex:
    """Tests for explicit invalidation."""

    @pytest.mark.asyncio
    async def test_reset_forces_rebuild(self, make_docs):
        provider = FakeProvider({"custodial.pdf": [PageText(page=1, text="old text")]})
        service = IndexService(doc_paths=make_docs("custodial.pdf"), provider=provider)

        old = await service.ensure_index()
        provider.documents["custodial.pdf"] = [PageText(page=1, text="new text"), PageText(page=2, text="more")]
        assert (await service.ensure_index()) is old

        service.reset_index()
        assert not service.is_built
        new = await service.ensure_index()

        assert new is not old
        assert new.total_chunks == 2
        assert old.total_chunks == 1
        assert provider.calls == ["custodial.pdf", "custodial.pdf"]

    @pytest.mark.asyncio
    async def test_reset_during_build_is_not_cached(self, make_docs):
        provider = SlowProvider({"custodial.pdf": [PageText(page=1, text=FLOORS_TEXT)]})
        service = IndexService(doc_paths=make_docs("custodial.pdf"), provider=provider)

        in_flight = asyncio.create_task(service.ensure_index())
        await asyncio.sleep(0.01)
        service.reset_index()
        provider.release.set()

        stale = await in_flight
        assert stale.total_chunks == 1
        assert not service.is_built

        fresh = await service.ensure_index()
        assert fresh is not stale


class TestServiceRetrieve:
    """Tests for retrieval through the service."""

    @pytest.mark.asyncio
    async def test_floors_example(self, make_docs, floors_provider):
        service = IndexService(doc_paths=make_docs("custodial.pdf"), provider=floors_provider)

        result = await service.retrieve("trash", char_budget=4000, top_k=8)
        assert FLOORS_TEXT in result.text
        assert result.segments[0].doc_name == "custodial.pdf"

        fallback = await service.retrieve("", char_budget=4000, top_k=1)
        assert fallback.segments == result.segments

        assert await service.retrieve("trash", char_budget=5, top_k=8) is None

    @pytest.mark.asyncio
    async def test_empty_corpus_returns_none(self, tmp_path):
        service = IndexService(doc_paths=[tmp_path / "missing.pdf"], provider=FakeProvider({}))
        assert await service.retrieve("trash") is None

    @pytest.mark.asyncio
    async def test_invalid_parameters_fail_before_build(self, make_docs, floors_provider):
        service = IndexService(doc_paths=make_docs("custodial.pdf"), provider=floors_provider)
        with pytest.raises(ValueError):
            await service.retrieve("trash", char_budget=0)
        with pytest.raises(ValueError):
            await service.retrieve("trash", top_k=0)
        assert floors_provider.calls == []

    @pytest.mark.asyncio
    async def test_repeated_calls_identical(self, make_docs, floors_provider):
        service = IndexService(doc_paths=make_docs("custodial.pdf"), provider=floors_provider)
        first = await service.retrieve("floors swept", char_budget=500, top_k=2)
        second = await service.retrieve("floors swept", char_budget=500, top_k=2)
        assert first == second


class TestDiagnostics:
    """Tests for index diagnostics."""

    @pytest.mark.asyncio
    async def test_counts_and_paths(self, make_docs, tmp_path):
        paths = make_docs("spec.pdf", "notes.txt") + [tmp_path / "missing.pdf"]
        provider = FakeProvider({
            "spec.pdf": [
                PageText(page=1, text="x " * 1000),
                PageText(page=2, text="short"),
                PageText(page=3, text="   "),
            ],
            "notes.txt": [PageText(page=1, text="notes")],
        })
        service = IndexService(doc_paths=paths, provider=provider)
        diag = await service.diagnostics()

        assert diag.total_chunks == 5
        assert [(f.doc_name, f.page_count) for f in diag.files] == [("spec.pdf", 2), ("notes.txt", 1)]
        assert [(Path(p.path).name, p.exists) for p in diag.configured_paths] == [
            ("spec.pdf", True),
            ("notes.txt", True),
            ("missing.pdf", False),
        ]
        assert [Path(f.path).name for f in diag.load_errors] == ["missing.pdf"]

    @pytest.mark.asyncio
    async def test_uses_cached_index(self, make_docs, floors_provider):
        service = IndexService(doc_paths=make_docs("custodial.pdf"), provider=floors_provider)
        await service.ensure_index()
        await service.diagnostics()
        await service.diagnostics()
        assert floors_provider.calls == ["custodial.pdf"]

    @pytest.mark.asyncio
    async def test_empty_corpus(self, tmp_path):
        service = IndexService(doc_paths=[tmp_path / "missing.pdf"], provider=FakeProvider({}))
        diag = await service.diagnostics()
        assert diag.total_chunks == 0
        assert diag.files == []
        assert diag.configured_paths[0].exists is False


class TestConfiguration:
    """Tests for source configuration."""

    def test_relative_paths_made_absolute(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        service = IndexService(doc_paths=["docs/spec.pdf"], provider=FakeProvider({}))
        assert service.doc_paths == [tmp_path / "docs" / "spec.pdf"]

    def test_empty_list_uses_default(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        service = IndexService(doc_paths=[], provider=FakeProvider({}))
        assert len(service.doc_paths) == 1
        assert service.doc_paths[0].name == "2024_National_Custodial_Specification_October_2024-1.pdf"

    def test_invalid_chunk_chars(self):
        with pytest.raises(ValueError):
            IndexService(doc_paths=["a.pdf"], provider=FakeProvider({}), chunk_chars=0)

    @pytest.mark.asyncio
    async def test_independent_instances(self, make_docs, floors_provider):
        paths = make_docs("custodial.pdf")
        a = IndexService(doc_paths=paths, provider=floors_provider)
        b = IndexService(doc_paths=paths, provider=floors_provider)
        await a.ensure_index()
        b_index = await b.ensure_index()

        a.reset_index()
        assert not a.is_built
        assert b.is_built
        assert (await b.ensure_index()) is b_index

    def test_duplicate_paths_collapsed(self, make_docs):
        (path,) = make_docs("spec.pdf")
        service = IndexService(doc_paths=[path, str(path), path], provider=FakeProvider({}))
        assert service.doc_paths == [path]


class TestDisplayNames:
    """Tests for per-document display names."""

    def test_unique_names_unchanged(self):
        paths = [Path("/docs/spec.pdf"), Path("/docs/notes.txt")]
        assert display_names(paths) == {
            Path("/docs/spec.pdf"): "spec.pdf",
            Path("/docs/notes.txt"): "notes.txt",
        }

    def test_shared_names_use_parent_folder(self):
        paths = [Path("/docs/a/spec.pdf"), Path("/docs/b/spec.pdf"), Path("/docs/notes.txt")]
        assert list(display_names(paths).values()) == ["a/spec.pdf", "b/spec.pdf", "notes.txt"]

    def test_shared_parent_gets_suffix(self):
        paths = [Path("/x/a/spec.pdf"), Path("/y/a/spec.pdf")]
        assert list(display_names(paths).values()) == ["a/spec.pdf", "a/spec.pdf#2"]
