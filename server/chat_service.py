"""Question answering over an ingested website."""

import logging
import time
from typing import Dict, List, Optional, Sequence

from indexer.context_builder import DEFAULT_HISTORY_LIMIT, build_messages
from indexer.embeddings import EmbeddingService
from indexer.models import MessageRole, WebsiteChatMessage, WebsiteStatus
from indexer.ranker import RetrievalResult, rank
from indexer.website_store import WebsiteNotFound, WebsiteStore
from observability.logging import log_performance
from observability.metrics import record_retrieval_metrics

from .completion import CompletionClient

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 5


class WebsiteNotReady(RuntimeError):
    """Raised when chatting with a website whose ingestion has not completed."""

    def __init__(self, website_id: str, status: str):
        super().__init__("Website is not ready yet")
        self.website_id = website_id
        self.status = status


class ChatService:
    """Retrieval-augmented chat for one store."""

    def __init__(self, store: WebsiteStore, embedding_service: EmbeddingService,
                 completion_client: CompletionClient, top_k: int = DEFAULT_TOP_K,
                 history_limit: int = DEFAULT_HISTORY_LIMIT):
        self.store = store
        self.embedding_service = embedding_service
        self.completion_client = completion_client
        self.top_k = top_k
        self.history_limit = history_limit

    def find_relevant_chunks(self, website_id: str, query: str,
                             top_k: Optional[int] = None) -> List[RetrievalResult]:
        """Embed the query and rank the website's chunks against it."""
        start_time = time.time()
        query_vector = self.embedding_service.embed(query)
        candidates = self.store.list_chunks(website_id)
        results = rank(query_vector, candidates, self.top_k if top_k is None else top_k)
        record_retrieval_metrics(time.time() - start_time)
        logger.debug(f"Retrieved {len(results)} of {len(candidates)} chunks for website {website_id}")
        return results

    @log_performance(threshold_ms=10000.0)
    def generate_response(self, website_id: str, query: str,
                          history: Optional[Sequence[Dict[str, str]]] = None) -> str:
        """Answer a question from the website's most relevant chunks."""
        results = self.find_relevant_chunks(website_id, query)
        messages = build_messages(query, results, history, history_limit=self.history_limit)
        return self.completion_client.complete(messages)

    def handle_message(self, website_id: str, message: str) -> WebsiteChatMessage:
        """Store a user message, answer it and store the answer.

        The user message is stored before the answer is generated, so it
        survives a completion failure.

        Returns:
            The stored assistant message

        Raises:
            ValueError: If the message is blank
            WebsiteNotFound: If the website does not exist
            WebsiteNotReady: If ingestion has not completed
            CompletionError: If the completion provider fails
        """
        if not message or not message.strip():
            raise ValueError("Message is required")

        website = self.store.get_website(website_id)
        if website is None:
            raise WebsiteNotFound(website_id)
        if website.status != WebsiteStatus.COMPLETED.value:
            raise WebsiteNotReady(website_id, website.status)

        chat = self.store.get_or_create_chat(website_id)
        history = [
            {"role": previous.role, "content": previous.content}
            for previous in self.store.list_chat_messages(chat.id)
        ]

        self.store.add_chat_message(chat.id, MessageRole.USER, message)
        answer = self.generate_response(website_id, message, history)
        return self.store.add_chat_message(chat.id, MessageRole.ASSISTANT, answer)
