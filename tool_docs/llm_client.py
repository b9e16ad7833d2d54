"""Text-generation client used by the example-prompt, improvement and family stages.

Deep module: callers pass a system and user prompt in and get text back.
Model limits, retries and response unpacking are handled internally.
"""

import logging
import os
import threading
import time
from dataclasses import dataclass
from typing import Optional

from openhands.sdk import LLM
from openhands.sdk.llm import Message, TextContent

from tool_docs.model_config import output_cap

logger = logging.getLogger(__name__)


class GenerationError(Exception):
    """The text-generation service failed or returned nothing usable."""


def _resolve_api_key() -> Optional[str]:
    """Resolve API key: LLM_API_KEY → OPENROUTER_API_KEY → key file."""
    key = os.getenv("LLM_API_KEY") or os.getenv("OPENROUTER_API_KEY")
    if not key:
        key_file = os.getenv("LLM_API_KEY_FILE")
        if key_file and os.path.exists(key_file):
            with open(key_file) as f:
                key = f.read().strip()
    return key


@dataclass(frozen=True)
class LLMSettings:
    model: str = ""
    base_url: str = ""
    api_key: Optional[str] = None
    timeout: int = 300
    max_retries: int = 3

    @property
    def configured(self) -> bool:
        return bool(self.model)

    @classmethod
    def from_env(cls) -> "LLMSettings":
        return cls(
            model=os.getenv("LLM_MODEL", ""),
            base_url=os.getenv("LLM_BASE_URL", ""),
            api_key=_resolve_api_key(),
            timeout=int(os.getenv("LLM_TIMEOUT", "300")),
            max_retries=int(os.getenv("LLM_MAX_RETRIES", "3")),
        )


class TextGenerator:
    """Thin wrapper over ``openhands.sdk.LLM`` with one client per task.

    Args:
        settings: Resolved model, endpoint and credentials.
        retry_delay: Base delay in seconds for exponential backoff.
    """

    def __init__(self, settings: LLMSettings, retry_delay: float = 1.0):
        if not settings.configured:
            raise ValueError("LLM_MODEL is not set; cannot create a text generator")
        self.settings = settings
        self.retry_delay = retry_delay
        self._clients: dict[str, LLM] = {}
        self._lock = threading.Lock()

    def _client(self, task: str) -> LLM:
        with self._lock:
            client = self._clients.get(task)
            if client is None:
                kwargs = {}
                if self.settings.base_url:
                    kwargs["base_url"] = self.settings.base_url
                if self.settings.api_key:
                    kwargs["api_key"] = self.settings.api_key
                client = LLM(
                    model=self.settings.model,
                    timeout=self.settings.timeout,
                    max_output_tokens=output_cap(self.settings.model, task),
                    reasoning_effort="none",
                    enable_encrypted_reasoning=False,
                    **kwargs,
                )
                self._clients[task] = client
            return client

    def complete(self, system_prompt: str, user_prompt: str, task: str = "default") -> str:
        """Run one completion and return the concatenated text blocks.

        Raises:
            GenerationError: every attempt failed or the response was empty.
        """
        messages = []
        if system_prompt:
            messages.append(Message(role="system", content=[TextContent(text=system_prompt)]))
        messages.append(Message(role="user", content=[TextContent(text=user_prompt)]))

        last_error: Optional[Exception] = None
        for attempt in range(self.settings.max_retries):
            try:
                logger.debug("Completion for %s (attempt %d/%d)", task, attempt + 1, self.settings.max_retries)
                response = self._client(task).completion(messages=messages)

                # LLMResponse.message.content is a list of content objects
                text = ""
                for block in response.message.content:
                    if hasattr(block, "text"):
                        text += block.text
                if text.strip():
                    return text
                last_error = GenerationError("empty response")
            except Exception as exc:
                logger.warning("Completion failed for %s: %s: %s", task, type(exc).__name__, exc)
                last_error = exc

            if attempt < self.settings.max_retries - 1:
                wait = self.retry_delay * (2 ** attempt)
                logger.info("Retrying %s in %.1fs", task, wait)
                time.sleep(wait)

        raise GenerationError(
            f"{task} generation failed after {self.settings.max_retries} attempts: {last_error}"
        )


def create_text_generator(settings: LLMSettings) -> Optional[TextGenerator]:
    """Return a generator, or None (fallback mode) when no model is configured."""
    if not settings.configured:
        logger.warning("LLM_MODEL not set; LLM stages will use static fallbacks")
        return None
    return TextGenerator(settings)
