"""
Chroma-backed chunk store.

Operates in three modes:
- Client/server (HttpClient) when CHROMA_HOST is set
- Embedded PersistentClient when CHROMA_PERSIST_DIRECTORY is set
- Ephemeral in-memory client otherwise

The collection uses squared L2 distance and reports it raw: lower is
closer, 0 is identical. For normalized vectors this is twice the cosine
distance.
"""

import hashlib
import logging
from pathlib import Path
from typing import Any, Optional

from docqa.config import Settings, settings as default_settings
from docqa.core.errors import StoreNotInitializedError
from docqa.core.models import Chunk

logger = logging.getLogger(__name__)

ADD_BATCH_SIZE = 1000
STAGING_SUFFIX = "-staging"
# Chroma default space; scores are squared L2 distances
DISTANCE_SPACE = "l2"


def chunk_id(content: str, position: int) -> str:
    """Content-addressed id; the position keeps repeated passages distinct."""
    digest = hashlib.sha256(content.encode("utf-8")).hexdigest()[:16]
    return f"{digest}-{position}"


class ChromaChunkStore:
    """
    Holds the chunks of the active document in one Chroma collection.

    Usage:
        store = ChromaChunkStore(collection_name="pdf-documents")
        store.replace(texts, embeddings)
        hits = store.search(query_embedding, k=15)
    """

    def __init__(
        self,
        collection_name: str = "pdf-documents",
        persist_directory: Optional[str] = None,
        chroma_host: Optional[str] = None,
        chroma_port: int = 8000,
        client: Any = None,
    ):
        import chromadb

        if client is not None:
            self._client = client
        elif chroma_host:
            self._client = chromadb.HttpClient(host=chroma_host, port=chroma_port)
            logger.info(f"Chroma: connected to {chroma_host}:{chroma_port}")
        elif persist_directory:
            Path(persist_directory).mkdir(parents=True, exist_ok=True)
            self._client = chromadb.PersistentClient(path=persist_directory)
            logger.info(f"Chroma: persistent at {persist_directory}")
        else:
            self._client = chromadb.EphemeralClient()
            logger.info("Chroma: ephemeral (in-memory)")

        self.collection_name = collection_name
        self._collection = None

    @property
    def is_active(self) -> bool:
        return self._collection is not None

    def _collection_names(self) -> list[str]:
        return [
            c if isinstance(c, str) else c.name
            for c in self._client.list_collections()
        ]

    def attach(self) -> bool:
        """Bind to a previously indexed collection, if a non-empty one exists."""
        if self.collection_name not in self._collection_names():
            logger.info("No existing collection found. Upload a PDF to create one.")
            return False

        collection = self._client.get_collection(name=self.collection_name)
        if collection.count() == 0:
            logger.info(f"Collection {self.collection_name} is empty")
            return False

        self._collection = collection
        logger.info(
            f"Connected to existing collection {self.collection_name} "
            f"({collection.count()} chunks)"
        )
        return True

    def replace(self, texts: list[str], embeddings: list[list[float]]) -> int:
        """
        Index texts in a fresh collection, then swap it in for the current one.

        The new collection is filled under a staging name first. If any batch
        fails, the staging collection is dropped and the current document
        stays active.
        """
        if len(texts) != len(embeddings):
            raise ValueError(
                f"Got {len(texts)} texts but {len(embeddings)} embeddings"
            )

        staging_name = f"{self.collection_name}{STAGING_SUFFIX}"
        if staging_name in self._collection_names():
            self._client.delete_collection(name=staging_name)

        staging = self._client.create_collection(
            name=staging_name,
            metadata={"hnsw:space": DISTANCE_SPACE},
        )
        try:
            for start in range(0, len(texts), ADD_BATCH_SIZE):
                batch = texts[start:start + ADD_BATCH_SIZE]
                staging.add(
                    ids=[chunk_id(text, start + i) for i, text in enumerate(batch)],
                    documents=batch,
                    embeddings=embeddings[start:start + ADD_BATCH_SIZE],
                    metadatas=[{"position": start + i} for i in range(len(batch))],
                )
        except Exception:
            logger.error(f"Indexing into {staging_name} failed, keeping current collection")
            self._client.delete_collection(name=staging_name)
            raise

        if self.collection_name in self._collection_names():
            self._client.delete_collection(name=self.collection_name)
        self._collection = None
        staging.modify(name=self.collection_name)

        self._collection = self._client.get_collection(name=self.collection_name)
        logger.info(f"Indexed {len(texts)} chunks into {self.collection_name}")
        return len(texts)

    def search(self, query_embedding: list[float], k: int) -> list[Chunk]:
        """Return up to k chunks ordered by ascending distance."""
        if self._collection is None:
            raise StoreNotInitializedError()

        n = min(k, self._collection.count())
        if n == 0:
            return []

        results = self._collection.query(
            query_embeddings=[query_embedding],
            n_results=n,
            include=["documents", "distances"],
        )

        documents = results["documents"][0]
        distances = results["distances"][0]
        return [
            Chunk(content=text, score=float(distance))
            for text, distance in zip(documents, distances)
        ]

    def count(self) -> int:
        return self._collection.count() if self._collection is not None else 0


def build_chunk_store(config: Optional[Settings] = None) -> ChromaChunkStore:
    """Create the chunk store described by configuration."""
    config = config or default_settings
    return ChromaChunkStore(
        collection_name=config.chroma_collection,
        persist_directory=config.chroma_persist_directory,
        chroma_host=config.chroma_host,
        chroma_port=config.chroma_port,
    )
