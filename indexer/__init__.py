"""Indexer package for SiteChat.

Embeddings, persistence and retrieval over crawled website chunks.
"""

from .ranker import RetrievalResult, cosine_similarity, rank
from .context_builder import build_context, build_messages
from .website_store import EmbeddingDimensionError, StoredChunk, WebsiteNotFound, WebsiteStore
from .models import Base, Website, WebsiteChat, WebsiteChatMessage, WebsiteChunk, WebsiteStatus, MessageRole

__all__ = [
    'RetrievalResult',
    'cosine_similarity',
    'rank',
    'build_context',
    'build_messages',
    'EmbeddingDimensionError',
    'StoredChunk',
    'WebsiteNotFound',
    'WebsiteStore',
    'Base',
    'Website',
    'WebsiteChat',
    'WebsiteChatMessage',
    'WebsiteChunk',
    'WebsiteStatus',
    'MessageRole',
]
