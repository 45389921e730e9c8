"""Tests for prompt context assembly."""

from indexer.context_builder import (
    CONTEXT_SEPARATOR,
    SYSTEM_PROMPT,
    build_context,
    build_messages,
    format_header,
)
from indexer.ranker import RetrievalResult


def result(text, **metadata):
    return RetrievalResult(text=text, metadata=metadata, similarity=0.9)


class TestFormatHeader:
    """Article header lines."""

    def test_full_header(self):
        header = format_header({"article_title": "Post", "title": "Site", "author": "Jane",
                                "publish_date": "2024-01-01"})
        assert header == "Post | By Jane | 2024-01-01"

    def test_falls_back_to_title(self):
        assert format_header({"title": "Site"}) == "Site"

    def test_missing_parts_dropped(self):
        assert format_header({"title": "Site", "author": None, "publish_date": ""}) == "Site"
        assert format_header({}) == ""


def test_build_context_numbers_articles():
    context = build_context([result("First text", title="One"), result("Second text", title="Two")])

    blocks = context.split(CONTEXT_SEPARATOR)
    assert blocks == ["[Article 1: One]\nFirst text", "[Article 2: Two]\nSecond text"]


class TestBuildMessages:
    """Completion request messages."""

    def test_message_layout(self):
        messages = build_messages("What is it?", [result("Body", title="Page")])

        assert messages[0] == {"role": "system", "content": SYSTEM_PROMPT}
        assert messages[-1]["role"] == "user"
        assert messages[-1]["content"] == "Context from website:\n[Article 1: Page]\nBody\n\nQuestion: What is it?"
        assert len(messages) == 2

    def test_history_between_system_and_question(self):
        history = [{"role": "user", "content": "hi"}, {"role": "assistant", "content": "hello"}]
        messages = build_messages("q", [], history)

        assert [m["content"] for m in messages[1:3]] == ["hi", "hello"]
        assert len(messages) == 4

    def test_history_limited_to_most_recent(self):
        history = [{"role": "user", "content": f"turn {i}"} for i in range(15)]
        messages = build_messages("q", [], history, history_limit=10)

        kept = [m["content"] for m in messages[1:-1]]
        assert kept == [f"turn {i}" for i in range(5, 15)]

    def test_history_limit_zero(self):
        messages = build_messages("q", [], [{"role": "user", "content": "old"}], history_limit=0)
        assert len(messages) == 2

    def test_extra_history_fields_dropped(self):
        history = [{"role": "user", "content": "hi", "id": 7}]
        messages = build_messages("q", [], history)
        assert messages[1] == {"role": "user", "content": "hi"}
