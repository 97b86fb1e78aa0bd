"""PDF question answering service: retrieval, reranking and generation over one uploaded document."""

__version__ = "0.1.0"
