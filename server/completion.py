"""Completion provider client.

Talks to any OpenAI-compatible chat completions endpoint through the
openai SDK. OpenRouter is the default endpoint.
"""

import logging
import time
from typing import Dict, List, Optional

from openai import OpenAI, OpenAIError

from observability.metrics import record_completion_metrics

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_MODEL = "meta-llama/llama-3.2-3b-instruct:free"
EMPTY_RESPONSE = "No response generated"


class CompletionError(RuntimeError):
    """Raised when the completion provider fails or is not configured."""


class CompletionClient:
    """Chat completion client."""

    def __init__(self, api_key: Optional[str] = None, base_url: str = DEFAULT_BASE_URL,
                 model: str = DEFAULT_MODEL, timeout: float = 60.0, client: Optional[OpenAI] = None):
        self.api_key = api_key
        self.base_url = base_url
        self.model = model
        self.timeout = timeout
        self._client = client

    def _get_client(self) -> OpenAI:
        if self._client is None:
            if not self.api_key:
                raise CompletionError("Completion provider API key is not configured")
            self._client = OpenAI(api_key=self.api_key, base_url=self.base_url, timeout=self.timeout)
        return self._client

    def complete(self, messages: List[Dict[str, str]]) -> str:
        """Send the messages and return the first choice's text.

        Raises:
            CompletionError: On provider or configuration errors
        """
        start_time = time.time()
        try:
            response = self._get_client().chat.completions.create(model=self.model, messages=messages)
        except OpenAIError as e:
            record_completion_metrics(time.time() - start_time, error=str(e))
            logger.error(f"Completion request failed: {e}")
            raise CompletionError(str(e)) from e
        except CompletionError as e:
            record_completion_metrics(time.time() - start_time, error=str(e))
            raise

        record_completion_metrics(time.time() - start_time)

        content = None
        if response.choices:
            content = response.choices[0].message.content
        return content or EMPTY_RESPONSE
