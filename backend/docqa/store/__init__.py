"""Vector storage for the active document."""

from .vector_store import ChromaChunkStore, build_chunk_store
from .corpus import Corpus, CorpusState

__all__ = ["ChromaChunkStore", "build_chunk_store", "Corpus", "CorpusState"]
