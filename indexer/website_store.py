"""Relational store for websites, chunk embeddings and chat history.

Wraps a SQLAlchemy session factory. Every method runs in its own
session and commits before returning; returned ORM objects are detached
(the factory is built with ``expire_on_commit=False``).
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session

from pipelines.chunker import ContentChunk

from .models import (
    DEFAULT_CHAT_TITLE,
    MessageRole,
    Website,
    WebsiteChat,
    WebsiteChatMessage,
    WebsiteChunk,
    WebsiteStatus,
)

logger = logging.getLogger(__name__)


class WebsiteNotFound(LookupError):
    """Raised when a website id does not exist."""

    def __init__(self, website_id: str):
        super().__init__(f"Website not found: {website_id}")
        self.website_id = website_id


class EmbeddingDimensionError(ValueError):
    """Raised when an embedding does not match the website's dimension."""

    def __init__(self, website_id: str, expected: int, actual: int):
        super().__init__(
            f"Embedding dimension {actual} does not match dimension {expected} of website {website_id}"
        )
        self.website_id = website_id
        self.expected = expected
        self.actual = actual


@dataclass(frozen=True)
class StoredChunk:
    """A chunk row as seen by the ranker."""
    text: str
    embedding: List[float]
    chunk_index: int
    metadata: Dict[str, Any] = field(default_factory=dict)


class WebsiteStore:
    """Persistence operations over websites and their owned rows."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Session scope that commits on success and rolls back on error."""
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _require_website(self, session: Session, website_id: str) -> Website:
        website = session.get(Website, website_id)
        if website is None:
            raise WebsiteNotFound(website_id)
        return website

    # Websites

    def create_website(self, url: str, title: Optional[str] = "Processing...",
                       status: WebsiteStatus = WebsiteStatus.PENDING) -> Website:
        with self.session() as session:
            website = Website(url=url, title=title, status=WebsiteStatus(status).value)
            session.add(website)
            session.flush()
            logger.info(f"Created website {website.id} for {url}")
            return website

    def get_website(self, website_id: str) -> Optional[Website]:
        with self.session() as session:
            return session.get(Website, website_id)

    def list_websites(self) -> List[Website]:
        """All websites, newest first."""
        with self.session() as session:
            return session.query(Website).order_by(Website.created_at.desc()).all()

    def update_website_status(self, website_id: str, status: WebsiteStatus) -> Website:
        with self.session() as session:
            website = self._require_website(session, website_id)
            website.status = WebsiteStatus(status).value
            logger.debug(f"Website {website_id} status -> {website.status}")
            return website

    def update_website_details(self, website_id: str, title: Optional[str] = None,
                               description: Optional[str] = None) -> Website:
        with self.session() as session:
            website = self._require_website(session, website_id)
            website.title = title or "Untitled"
            website.description = description or None
            return website

    def delete_website(self, website_id: str) -> bool:
        """Delete a website with its chunks, chats and messages.

        Returns:
            False when the website did not exist
        """
        with self.session() as session:
            website = session.get(Website, website_id)
            if website is None:
                return False
            session.delete(website)
            logger.info(f"Deleted website {website_id}")
            return True

    # Chunks

    def website_dimension(self, website_id: str) -> Optional[int]:
        """Embedding dimension already stored for a website, if any."""
        with self.session() as session:
            return self._stored_dimension(session, website_id)

    def _stored_dimension(self, session: Session, website_id: str) -> Optional[int]:
        row = (
            session.query(WebsiteChunk.embedding_dim)
            .filter(WebsiteChunk.website_id == website_id)
            .first()
        )
        return row[0] if row else None

    def bulk_insert_chunks(self, website_id: str, chunks: Sequence[ContentChunk],
                           embeddings: Sequence[Sequence[float]]) -> int:
        """Store chunks with their embeddings.

        Args:
            website_id: Owning website
            chunks: Chunks in document order
            embeddings: One vector per chunk, same order

        Returns:
            Number of rows inserted

        Raises:
            WebsiteNotFound: If the website does not exist
            EmbeddingDimensionError: If a vector's dimension differs from the website's
        """
        if len(chunks) != len(embeddings):
            raise ValueError(f"Got {len(chunks)} chunks but {len(embeddings)} embeddings")
        if not chunks:
            return 0

        with self.session() as session:
            self._require_website(session, website_id)
            expected = self._stored_dimension(session, website_id) or len(embeddings[0])

            rows = []
            for chunk, embedding in zip(chunks, embeddings):
                vector = [float(value) for value in embedding]
                if len(vector) != expected:
                    raise EmbeddingDimensionError(website_id, expected, len(vector))
                rows.append(WebsiteChunk(
                    website_id=website_id,
                    content=chunk.text,
                    chunk_index=chunk.chunk_index,
                    embedding=vector,
                    embedding_dim=len(vector),
                    chunk_metadata=dict(chunk.metadata),
                ))

            session.add_all(rows)
            logger.debug(f"Inserted {len(rows)} chunks for website {website_id}")
            return len(rows)

    def list_chunks(self, website_id: str) -> List[StoredChunk]:
        """All chunks of a website in insertion order."""
        with self.session() as session:
            rows = (
                session.query(WebsiteChunk)
                .filter(WebsiteChunk.website_id == website_id)
                .order_by(WebsiteChunk.id)
                .all()
            )
            return [
                StoredChunk(
                    text=row.content,
                    embedding=list(row.embedding),
                    chunk_index=row.chunk_index,
                    metadata=dict(row.chunk_metadata or {}),
                )
                for row in rows
            ]

    def count_chunks(self, website_id: str) -> int:
        with self.session() as session:
            return (
                session.query(func.count(WebsiteChunk.id))
                .filter(WebsiteChunk.website_id == website_id)
                .scalar()
            ) or 0

    # Chats

    def get_or_create_chat(self, website_id: str) -> WebsiteChat:
        """Return the website's first chat, creating the default chat if needed."""
        with self.session() as session:
            self._require_website(session, website_id)
            chat = (
                session.query(WebsiteChat)
                .filter(WebsiteChat.website_id == website_id)
                .order_by(WebsiteChat.created_at)
                .first()
            )
            if chat is None:
                chat = WebsiteChat(website_id=website_id, title=DEFAULT_CHAT_TITLE)
                session.add(chat)
                session.flush()
            return chat

    def add_chat_message(self, chat_id: str, role: MessageRole, content: str) -> WebsiteChatMessage:
        with self.session() as session:
            message = WebsiteChatMessage(chat_id=chat_id, role=MessageRole(role).value, content=content)
            session.add(message)
            session.flush()
            return message

    def list_chat_messages(self, chat_id: str) -> List[WebsiteChatMessage]:
        """Messages of a chat in creation order."""
        with self.session() as session:
            return (
                session.query(WebsiteChatMessage)
                .filter(WebsiteChatMessage.chat_id == chat_id)
                .order_by(WebsiteChatMessage.created_at, WebsiteChatMessage.id)
                .all()
            )
