"""Tests for the corpus state, readers-writer lock and Chroma store."""

import asyncio
import time

import pytest

from docqa.core.errors import StoreNotInitializedError
from docqa.core.models import Chunk
from docqa.store.corpus import Corpus, CorpusState, ReadWriteLock

from conftest import FakeChunkStore, FakeEmbeddingBackend


class TestReadWriteLock:
    @pytest.mark.asyncio
    async def test_readers_share(self):
        lock = ReadWriteLock()
        events = []

        async def reader(name):
            async with lock.read():
                events.append(f"{name}-start")
                await asyncio.sleep(0.02)
                events.append(f"{name}-end")

        await asyncio.gather(reader("a"), reader("b"))
        assert events[:2] == ["a-start", "b-start"]

    @pytest.mark.asyncio
    async def test_writer_waits_for_reader(self):
        lock = ReadWriteLock()
        events = []

        async def reader():
            async with lock.read():
                events.append("read-start")
                await asyncio.sleep(0.05)
                events.append("read-end")

        async def writer():
            await asyncio.sleep(0.01)
            async with lock.write():
                events.append("write")

        await asyncio.gather(reader(), writer())
        assert events == ["read-start", "read-end", "write"]

    @pytest.mark.asyncio
    async def test_reader_waits_for_writer(self):
        lock = ReadWriteLock()
        events = []

        async def writer():
            async with lock.write():
                events.append("write-start")
                await asyncio.sleep(0.05)
                events.append("write-end")

        async def reader():
            await asyncio.sleep(0.01)
            async with lock.read():
                events.append("read")

        await asyncio.gather(writer(), reader())
        assert events == ["write-start", "write-end", "read"]


class SlowFakeChunkStore(FakeChunkStore):
    def search(self, query_embedding, k):
        results = super().search(query_embedding, k)
        time.sleep(0.1)
        return results


class RecordingSlowStore(FakeChunkStore):
    def __init__(self):
        super().__init__()
        self.events = []

    def replace(self, texts, embeddings):
        self.events.append("replace")
        return super().replace(texts, embeddings)

    def search(self, query_embedding, k):
        self.events.append("search-start")
        time.sleep(0.1)
        self.events.append("search-end")
        return super().search(query_embedding, k)


class TestCorpus:
    @pytest.mark.asyncio
    async def test_state_transitions(self):
        corpus = Corpus(FakeChunkStore(), FakeEmbeddingBackend())
        assert corpus.state is CorpusState.UNINITIALIZED

        await corpus.replace(["first chunk", "second chunk"])

        assert corpus.state is CorpusState.ACTIVE
        hits = await corpus.search("chunk", k=15)
        assert [h.content for h in hits] == ["first chunk", "second chunk"]

    @pytest.mark.asyncio
    async def test_search_without_corpus(self):
        corpus = Corpus(FakeChunkStore(), FakeEmbeddingBackend())
        with pytest.raises(StoreNotInitializedError):
            await corpus.search("anything", k=15)

    @pytest.mark.asyncio
    async def test_replace_supersedes_previous_document(self):
        corpus = Corpus(FakeChunkStore(), FakeEmbeddingBackend())
        await corpus.replace(["old document"])
        await corpus.replace(["new document"])

        hits = await corpus.search("document", k=15)
        assert [h.content for h in hits] == ["new document"]

    @pytest.mark.asyncio
    async def test_in_flight_search_completes_before_swap(self):
        corpus = Corpus(SlowFakeChunkStore(), FakeEmbeddingBackend())
        await corpus.replace(["old document"])

        search = asyncio.create_task(corpus.search("document", k=15))
        await asyncio.sleep(0.02)
        await corpus.replace(["new document"])

        hits = await search
        assert [h.content for h in hits] == ["old document"]
        assert [h.content for h in await corpus.search("document", k=15)] == ["new document"]

    @pytest.mark.asyncio
    async def test_timed_out_search_holds_lock_until_store_returns(self):
        store = RecordingSlowStore()
        corpus = Corpus(store, FakeEmbeddingBackend(), search_timeout=0.02)
        await corpus.replace(["old document"])
        store.events.clear()

        with pytest.raises(asyncio.TimeoutError):
            await corpus.search("document", k=15)
        await corpus.replace(["new document"])

        assert store.events == ["search-start", "search-end", "replace"]

    @pytest.mark.asyncio
    async def test_embeds_documents_and_query(self):
        embeddings = FakeEmbeddingBackend()
        corpus = Corpus(FakeChunkStore(), embeddings)
        await corpus.replace(["a", "b"])
        await corpus.search("question", k=3)
        assert embeddings.calls == [["a", "b"], ["question"]]

    @pytest.mark.asyncio
    async def test_attach_existing(self):
        corpus = Corpus(FakeChunkStore([Chunk(content="kept", score=0.1)]), FakeEmbeddingBackend())
        assert await corpus.attach_existing() is True
        assert corpus.is_active


class TestChromaChunkStore:
    def _store(self, tmp_path, name="test_chunks"):
        pytest.importorskip("chromadb")
        from docqa.store.vector_store import ChromaChunkStore

        return ChromaChunkStore(collection_name=name, persist_directory=str(tmp_path / "chroma"))

    def test_inactive_until_replaced(self, tmp_path):
        store = self._store(tmp_path)
        assert not store.is_active
        assert store.attach() is False
        with pytest.raises(StoreNotInitializedError):
            store.search([1.0, 0.0, 0.0], k=3)

    def test_search_returns_distances_closest_first(self, tmp_path):
        store = self._store(tmp_path)
        store.replace(
            ["east", "north", "up"],
            [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]],
        )
        hits = store.search([0.9, 0.1, 0.0], k=15)

        assert len(hits) == 3
        assert hits[0].content == "east"
        assert hits[0].score < 0.1
        assert [h.score for h in hits] == sorted(h.score for h in hits)

    def test_scores_are_squared_l2_distances(self, tmp_path):
        store = self._store(tmp_path)
        store.replace(["a", "b"], [[1.0, 0.0], [0.6, 0.8]])
        hits = store.search([1.0, 0.0], k=2)

        assert [h.content for h in hits] == ["a", "b"]
        assert hits[0].score == pytest.approx(0.0, abs=1e-6)
        # (1 - 0.6)^2 + (0 - 0.8)^2
        assert hits[1].score == pytest.approx(0.8, abs=1e-5)

    def test_failed_replace_keeps_previous_document(self, tmp_path):
        store = self._store(tmp_path)
        store.replace(["old passage"], [[1.0, 0.0]])

        with pytest.raises(Exception):
            store.replace(["new passage"], [["not-a-number"]])

        assert store.is_active
        assert store.count() == 1
        assert [h.content for h in store.search([1.0, 0.0], k=5)] == ["old passage"]
        assert store._collection_names() == ["test_chunks"]

    def test_replace_drops_previous_chunks(self, tmp_path):
        store = self._store(tmp_path)
        store.replace(["old a", "old b"], [[1.0, 0.0], [0.0, 1.0]])
        store.replace(["new"], [[1.0, 0.0]])
        assert store.count() == 1
        assert [h.content for h in store.search([1.0, 0.0], k=15)] == ["new"]

    def test_duplicate_passages_are_kept(self, tmp_path):
        store = self._store(tmp_path)
        store.replace(["same text", "same text"], [[1.0, 0.0], [1.0, 0.0]])
        assert store.count() == 2

    def test_attach_to_existing_collection(self, tmp_path):
        first = self._store(tmp_path, name="persisted")
        first.replace(["kept"], [[1.0, 0.0]])

        second = self._store(tmp_path, name="persisted")
        assert second.attach() is True
        assert [h.content for h in second.search([1.0, 0.0], k=5)] == ["kept"]

    def test_mismatched_lengths(self, tmp_path):
        store = self._store(tmp_path)
        with pytest.raises(ValueError):
            store.replace(["a", "b"], [[1.0, 0.0]])
