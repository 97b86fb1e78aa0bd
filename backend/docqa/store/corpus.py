"""
The active corpus: the one indexed document questions are answered from.

Uploads and queries share a single Corpus. Queries hold the read side of a
readers-writer lock while they search; replacing the indexed document holds
the write side, so a query never observes a half-swapped collection.
Embedding of a new document happens before the write lock is taken.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from enum import Enum
from typing import AsyncIterator

from docqa.core.embeddings import EmbeddingBackend
from docqa.core.errors import StoreNotInitializedError
from docqa.core.models import Chunk
from docqa.store.vector_store import ChromaChunkStore

logger = logging.getLogger(__name__)


class CorpusState(str, Enum):
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"


class ReadWriteLock:
    """
    asyncio readers-writer lock.

    Any number of readers may hold the lock together; a writer holds it
    alone. Waiting writers block new readers so uploads are not starved.
    """

    def __init__(self):
        self._cond = asyncio.Condition()
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @asynccontextmanager
    async def read(self) -> AsyncIterator[None]:
        async with self._cond:
            await self._cond.wait_for(
                lambda: not self._writer and self._waiting_writers == 0
            )
            self._readers += 1
        try:
            yield
        finally:
            async with self._cond:
                self._readers -= 1
                self._cond.notify_all()

    @asynccontextmanager
    async def write(self) -> AsyncIterator[None]:
        async with self._cond:
            self._waiting_writers += 1
            try:
                await self._cond.wait_for(
                    lambda: not self._writer and self._readers == 0
                )
            finally:
                self._waiting_writers -= 1
                self._cond.notify_all()
            self._writer = True
        try:
            yield
        finally:
            async with self._cond:
                self._writer = False
                self._cond.notify_all()


class Corpus:
    """
    Embedding store adapter bound to the currently indexed document.

    Usage:
        corpus = Corpus(store, embeddings)
        await corpus.replace(chunks)
        hits = await corpus.search("What is the notice period?", k=15)
    """

    def __init__(
        self,
        store: ChromaChunkStore,
        embeddings: EmbeddingBackend,
        search_timeout: float = 30.0,
    ):
        self.store = store
        self.embeddings = embeddings
        self.search_timeout = search_timeout
        self._lock = ReadWriteLock()

    @property
    def state(self) -> CorpusState:
        return CorpusState.ACTIVE if self.store.is_active else CorpusState.UNINITIALIZED

    @property
    def is_active(self) -> bool:
        return self.state is CorpusState.ACTIVE

    async def attach_existing(self) -> bool:
        """Activate a collection left over from a previous run."""
        async with self._lock.write():
            return await asyncio.to_thread(self.store.attach)

    async def replace(self, texts: list[str]) -> int:
        """Index texts as the new corpus, superseding the previous one."""
        vectors = await self.embeddings.embed_documents(texts)
        async with self._lock.write():
            count = await asyncio.to_thread(self.store.replace, texts, vectors)
        logger.info(f"Corpus replaced: {count} chunks active")
        return count

    async def _search_holding_lock(self, query_vector: list[float], k: int) -> list[Chunk]:
        async with self._lock.read():
            return await asyncio.to_thread(self.store.search, query_vector, k)

    async def search(self, query_text: str, k: int) -> list[Chunk]:
        """
        Return the k stored chunks nearest to query_text, closest first.

        A worker thread cannot be interrupted, so a search that times out or
        whose caller goes away keeps the read side until the store returns.
        """
        if not self.is_active:
            raise StoreNotInitializedError()

        query_vector = await self.embeddings.embed_query(query_text)
        search = asyncio.ensure_future(self._search_holding_lock(query_vector, k))
        search.add_done_callback(_log_abandoned_search)
        try:
            return await asyncio.wait_for(asyncio.shield(search), timeout=self.search_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Similarity search exceeded {self.search_timeout}s")
            raise


def _log_abandoned_search(task: "asyncio.Future[list[Chunk]]") -> None:
    if not task.cancelled() and task.exception() is not None:
        logger.debug(f"Search finished with error: {task.exception()}")
