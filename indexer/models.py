"""Database models for websites, their chunks and chat history."""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, JSON, String, Text
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

DEFAULT_CHAT_TITLE = "Default Chat"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


def _isoformat(value: datetime) -> str:
    return value.isoformat() if value else None


class WebsiteStatus(str, Enum):
    """Ingestion lifecycle: pending -> processing -> completed | failed."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class Website(Base):
    """A submitted website and its ingestion status."""
    __tablename__ = 'websites'

    id = Column(String(32), primary_key=True, default=_new_id)
    url = Column(String(2048), nullable=False)
    title = Column(String(500), nullable=True)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=WebsiteStatus.PENDING.value)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    # Relationships
    chunks = relationship("WebsiteChunk", back_populates="website", cascade="all, delete-orphan")
    chats = relationship("WebsiteChat", back_populates="website", cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_websites_created_at', 'created_at'),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'url': self.url,
            'title': self.title,
            'description': self.description,
            'status': self.status,
            'created_at': _isoformat(self.created_at),
            'updated_at': _isoformat(self.updated_at),
        }


class WebsiteChunk(Base):
    """A chunk of page text with its embedding."""
    __tablename__ = 'website_chunks'

    id = Column(Integer, primary_key=True, autoincrement=True)
    website_id = Column(String(32), ForeignKey('websites.id', ondelete='CASCADE'), nullable=False)
    content = Column(Text, nullable=False)
    chunk_index = Column(Integer, nullable=False)
    embedding = Column(JSON, nullable=False)
    embedding_dim = Column(Integer, nullable=False)
    # "metadata" is reserved on declarative classes
    chunk_metadata = Column('metadata', JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    website = relationship("Website", back_populates="chunks")

    __table_args__ = (
        Index('idx_website_chunks_website_id', 'website_id'),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'website_id': self.website_id,
            'content': self.content,
            'chunk_index': self.chunk_index,
            'embedding_dim': self.embedding_dim,
            'metadata': self.chunk_metadata or {},
            'created_at': _isoformat(self.created_at),
        }


class WebsiteChat(Base):
    """A conversation about one website."""
    __tablename__ = 'website_chats'

    id = Column(String(32), primary_key=True, default=_new_id)
    website_id = Column(String(32), ForeignKey('websites.id', ondelete='CASCADE'), nullable=False)
    title = Column(String(200), nullable=False, default=DEFAULT_CHAT_TITLE)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    website = relationship("Website", back_populates="chats")
    messages = relationship("WebsiteChatMessage", back_populates="chat", cascade="all, delete-orphan",
                            order_by="WebsiteChatMessage.id")

    __table_args__ = (
        Index('idx_website_chats_website_id', 'website_id'),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'website_id': self.website_id,
            'title': self.title,
            'created_at': _isoformat(self.created_at),
        }


class WebsiteChatMessage(Base):
    """One user or assistant turn."""
    __tablename__ = 'website_chat_messages'

    # Autoincrement id orders messages created within the same timestamp
    id = Column(Integer, primary_key=True, autoincrement=True)
    chat_id = Column(String(32), ForeignKey('website_chats.id', ondelete='CASCADE'), nullable=False)
    role = Column(String(20), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    chat = relationship("WebsiteChat", back_populates="messages")

    __table_args__ = (
        Index('idx_website_chat_messages_chat_id', 'chat_id'),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'chat_id': self.chat_id,
            'role': self.role,
            'content': self.content,
            'created_at': _isoformat(self.created_at),
        }
