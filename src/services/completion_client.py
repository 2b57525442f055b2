"""Completion client backed by the Anthropic Messages API.

Takes the composed chat message list (system entries first, then
alternating user/assistant turns) and returns one generated reply.
Any failure is a hard ``ProviderError``: there is no retry here, the
orchestrator surfaces it to its caller.

Example:
    client = AnthropicCompletionClient(config.completion)
    result = await client.complete(messages, model="claude-haiku-4-5")
"""

import asyncio
import logging
import time
from typing import Any

import anthropic
from anthropic import AsyncAnthropic

from src.cli.config import CompletionConfig
from src.errors import ProviderError
from src.orchestrator.models import CompletionResult

logger = logging.getLogger(__name__)


def to_anthropic_messages(
    messages: list[dict[str, str]],
) -> tuple[str, list[dict[str, str]]]:
    """Split a chat message list into a system prompt and Messages API turns.

    System entries are joined into the system prompt. The remaining turns
    must start with a user turn and alternate roles, so leading assistant
    turns are dropped and consecutive same-role turns are merged.

    Args:
        messages: Dicts with 'role' and 'content'.

    Returns:
        Tuple of (system prompt, turns).
    """
    system_parts: list[str] = []
    turns: list[dict[str, str]] = []
    for message in messages:
        role = message.get("role")
        content = (message.get("content") or "").strip()
        if not content:
            continue
        if role == "system":
            system_parts.append(content)
            continue
        if role not in ("user", "assistant"):
            continue
        if not turns and role == "assistant":
            continue
        if turns and turns[-1]["role"] == role:
            turns[-1] = {"role": role, "content": f"{turns[-1]['content']}\n\n{content}"}
        else:
            turns.append({"role": role, "content": content})
    return "\n\n".join(system_parts), turns


def _extract_text(response: Any) -> str:
    blocks = getattr(response, "content", None) or []
    parts = [
        getattr(block, "text", "")
        for block in blocks
        if getattr(block, "type", "text") == "text"
    ]
    return "".join(p for p in parts if p).strip()


class AnthropicCompletionClient:
    """CompletionProvider implementation over ``AsyncAnthropic``."""

    def __init__(
        self,
        config: CompletionConfig,
        client: AsyncAnthropic | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Completion defaults (model, token ceiling, temperature).
            client: Pre-built SDK client (tests inject a mock). Built lazily
                from the configured API key otherwise.
        """
        self._config = config
        self._client = client

    def _get_client(self) -> AsyncAnthropic:
        if self._client is None:
            if not self._config.api_key:
                raise ProviderError.from_code("E-2004")
            self._client = AsyncAnthropic(api_key=self._config.api_key)
        return self._client

    async def complete(
        self,
        messages: list[dict[str, str]],
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        timeout: float | None = None,
    ) -> CompletionResult:
        """Generate one reply.

        Args:
            messages: Chat messages (system, then history, then the new turn).
            model: Model id; defaults to the configured model.
            max_tokens: Token ceiling; defaults to the configured ceiling.
            temperature: Sampling temperature; defaults to the configured value.
            timeout: Seconds before the call is abandoned.

        Returns:
            CompletionResult with the generated text and token usage.

        Raises:
            ProviderError: Missing credentials, non-success status, timeout,
                connection failure, or empty text.
        """
        client = self._get_client()
        model = model or self._config.default_model
        max_tokens = max_tokens or self._config.max_tokens
        temperature = self._config.temperature if temperature is None else temperature
        timeout = timeout or self._config.timeout_seconds

        system, turns = to_anthropic_messages(messages)
        request: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": turns,
        }
        if system:
            request["system"] = system

        started = time.monotonic()
        try:
            response = await asyncio.wait_for(
                client.messages.create(**request), timeout=timeout
            )
        except (asyncio.TimeoutError, anthropic.APITimeoutError) as e:
            raise ProviderError.from_code("E-2003", timeout=timeout) from e
        except anthropic.APIStatusError as e:
            raise ProviderError.from_code(
                "E-2001",
                status=e.status_code,
                reason=e.message,
                details={"model": model},
            ) from e
        except anthropic.APIConnectionError as e:
            raise ProviderError.from_code("E-2005", reason=str(e)) from e
        latency_ms = int((time.monotonic() - started) * 1000)

        text = _extract_text(response)
        if not text:
            raise ProviderError.from_code("E-2002", model=model)

        usage = getattr(response, "usage", None)
        result = CompletionResult(
            text=text,
            model=getattr(response, "model", None) or model,
            input_tokens=getattr(usage, "input_tokens", None),
            output_tokens=getattr(usage, "output_tokens", None),
            latency_ms=latency_ms,
        )
        logger.info(
            "Completion ok: model=%s latency=%dms output_tokens=%s",
            result.model, latency_ms, result.output_tokens,
        )
        return result
