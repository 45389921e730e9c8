import os
import sys

import pytest

# Add the parent directory to the path so the project packages import
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from config.database import DatabaseConfig, create_session_factory
from indexer.website_store import WebsiteStore


@pytest.fixture
def store(tmp_path):
    """Website store over a fresh SQLite file."""
    config = DatabaseConfig(url=f"sqlite:///{tmp_path / 'sitechat.db'}")
    return WebsiteStore(create_session_factory(config))


def page_html(title="Test Page", body="", links=(), head=""):
    """Small HTML document builder for crawler and extraction tests."""
    anchors = "".join(f'<a href="{href}">{href}</a>' for href in links)
    return (
        f"<html><head><title>{title}</title>{head}</head>"
        f"<body><nav>{anchors}</nav><main>{body}</main></body></html>"
    )


LONG_PARAGRAPH = (
    "This paragraph carries enough plain text to pass the minimum content "
    "length used when picking the main content block of a page. "
) * 3
