"""Prompt context assembly for grounded answers."""

import logging
from typing import Dict, List, Optional, Sequence

from .ranker import RetrievalResult

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a helpful assistant that answers questions based on website content. "
    "Use the provided context to answer questions accurately and concisely."
)
CONTEXT_SEPARATOR = "\n\n---\n\n"
DEFAULT_HISTORY_LIMIT = 10


def format_header(metadata: Dict) -> str:
    """'<article_title or title> | By <author> | <publish_date>' with empty parts left out."""
    parts = [
        metadata.get("article_title") or metadata.get("title"),
        f"By {metadata['author']}" if metadata.get("author") else None,
        metadata.get("publish_date") or None,
    ]
    return " | ".join(part for part in parts if part)


def build_context(results: Sequence[RetrievalResult]) -> str:
    """Format ranked chunks as numbered article blocks."""
    blocks = [
        f"[Article {i}: {format_header(result.metadata)}]\n{result.text}"
        for i, result in enumerate(results, start=1)
    ]
    return CONTEXT_SEPARATOR.join(blocks)


def build_messages(query: str,
                   results: Sequence[RetrievalResult],
                   history: Optional[Sequence[Dict[str, str]]] = None,
                   history_limit: int = DEFAULT_HISTORY_LIMIT,
                   system_prompt: str = SYSTEM_PROMPT) -> List[Dict[str, str]]:
    """Build the completion request messages.

    Args:
        query: The user's question
        results: Ranked chunks, most relevant first
        history: Earlier turns as {"role", "content"} dicts, oldest first
        history_limit: Number of most recent turns kept
        system_prompt: Instruction placed first

    Returns:
        System message, the retained history, then the user message with context
    """
    history = list(history or [])
    kept = history[-history_limit:] if history_limit > 0 else []

    messages = [{"role": "system", "content": system_prompt}]
    messages.extend({"role": turn["role"], "content": turn["content"]} for turn in kept)
    messages.append({
        "role": "user",
        "content": f"Context from website:\n{build_context(results)}\n\nQuestion: {query}",
    })

    logger.debug(f"Built {len(messages)} messages ({len(kept)} history turns, {len(results)} context chunks)")
    return messages
