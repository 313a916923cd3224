"""
Anthropic Claude adapter for streamed chat completions.
"""

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any, Optional

import anthropic

from infrastructure.config.settings import settings

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = """You are YawlAI, a helpful and unrestricted AI assistant. You provide comprehensive, accurate, and helpful responses to any questions or requests. You are knowledgeable, creative, and aim to be as useful as possible to users.

IMPORTANT: When discussing brands, companies, products, or services, always mention their specific names clearly. For example:
- Instead of "a popular sportswear brand", say "Nike"
- Instead of "a leading tech company", say "Apple" or "Microsoft"
- Instead of "an electric vehicle manufacturer", say "Tesla"
- Instead of "an e-commerce platform", say "Amazon"
- Instead of "a streaming service", say "Netflix"

Be specific and use actual brand names, company names, and product names in your responses. This helps users get more precise and useful information.

When users upload documents, analyze them thoroughly and provide detailed insights. You can:
- Summarize document contents
- Answer questions about the documents
- Extract key information
- Analyze data and patterns
- Provide recommendations based on the content
- Compare multiple documents if provided

Always be thorough in your analysis and provide actionable insights when reviewing uploaded documents.

Be conversational, helpful, and engaging in your responses. Use specific names and brands when relevant to make your answers more informative and useful."""

API_KEY_PREFIX = "sk-ant-"


class ChatServiceError(Exception):
    """Base error for chat completion failures, carrying its HTTP mapping."""

    status_code = 502
    error = "AI provider error"

    def __init__(self, details: str, error: Optional[str] = None):
        super().__init__(details)
        self.details = details
        if error:
            self.error = error

    def to_dict(self) -> dict[str, str]:
        return {"error": self.error, "details": self.details}


class ChatConfigurationError(ChatServiceError):
    status_code = 500
    error = "API key not configured"


class ChatAuthenticationError(ChatServiceError):
    status_code = 401
    error = "Invalid API key"


class ChatQuotaExceededError(ChatServiceError):
    status_code = 429
    error = "API quota exceeded"


class ChatRateLimitError(ChatServiceError):
    status_code = 429
    error = "Rate limit exceeded"


class ChatProviderError(ChatServiceError):
    pass


def classify_error(exc: Exception) -> ChatServiceError:
    """Map an SDK exception to the matching ChatServiceError."""
    if isinstance(exc, ChatServiceError):
        return exc

    message = str(exc) or exc.__class__.__name__
    lowered = message.lower()

    if isinstance(exc, (anthropic.AuthenticationError, anthropic.PermissionDeniedError)):
        return ChatAuthenticationError("The Anthropic API key is invalid or has been revoked")
    if "credit balance" in lowered or "quota" in lowered or "billing" in lowered:
        return ChatQuotaExceededError("Anthropic API quota has been exceeded or there is a billing issue")
    if isinstance(exc, anthropic.RateLimitError) or "rate limit" in lowered:
        return ChatRateLimitError("Too many requests, please try again later")
    if "api key" in lowered or "x-api-key" in lowered:
        return ChatAuthenticationError("The Anthropic API key is invalid or has been revoked")
    return ChatProviderError(message)


@dataclass
class ChatUsage:
    """Token usage of one completion, filled in once the stream finishes."""

    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    completed: bool = False

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class AnthropicChatService:
    """Chat completion service using Anthropic Claude."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        self._api_key = api_key if api_key is not None else settings.anthropic_api_key
        self._model = model or settings.anthropic_model
        self._max_tokens = settings.anthropic_max_tokens
        self._temperature = settings.anthropic_temperature
        self._client: Optional[anthropic.AsyncAnthropic] = None
        if self._api_key:
            self._client = anthropic.AsyncAnthropic(
                api_key=self._api_key,
                timeout=float(settings.anthropic_timeout),
            )

    @property
    def model(self) -> str:
        return self._model

    @property
    def configured(self) -> bool:
        return self._client is not None

    def _require_client(self) -> anthropic.AsyncAnthropic:
        if not self._api_key or self._client is None:
            raise ChatConfigurationError("ANTHROPIC_API_KEY environment variable is not set")
        if not self._api_key.startswith(API_KEY_PREFIX):
            raise ChatConfigurationError(f"Anthropic API key should start with '{API_KEY_PREFIX}'")
        return self._client

    @staticmethod
    def _to_provider_messages(messages: list[dict[str, str]]) -> list[dict[str, str]]:
        """Drop empty turns and leading assistant turns the API would reject."""
        result = [
            {"role": m["role"], "content": m["content"]}
            for m in messages
            if m.get("content", "").strip()
        ]
        while result and result[0]["role"] != "user":
            result.pop(0)
        return result

    async def stream_chat(
        self,
        messages: list[dict[str, str]],
        system: str = SYSTEM_PROMPT,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        usage: Optional[ChatUsage] = None,
    ) -> AsyncIterator[str]:
        """
        Stream the assistant reply as text chunks.

        Provider failures are raised as ChatServiceError subclasses.  When
        *usage* is given it receives the final token counts after the last
        chunk.
        """
        client = self._require_client()
        provider_messages = self._to_provider_messages(messages)
        if not provider_messages:
            raise ChatProviderError("Conversation must contain a user message", error="Invalid messages")

        try:
            async with client.messages.stream(
                model=self._model,
                max_tokens=max_tokens or self._max_tokens,
                temperature=self._temperature if temperature is None else temperature,
                system=system,
                messages=provider_messages,
            ) as stream:
                async for text in stream.text_stream:
                    yield text
                final = await stream.get_final_message()
        except anthropic.APIError as e:
            logger.error("Anthropic streaming error: %s", e)
            raise classify_error(e) from e

        if usage is not None:
            usage.input_tokens = final.usage.input_tokens
            usage.output_tokens = final.usage.output_tokens
            usage.completed = True
        logger.info(
            "Chat completion finished: %d input / %d output tokens",
            final.usage.input_tokens,
            final.usage.output_tokens,
        )

    async def check_connection(self) -> dict[str, Any]:
        """Issue a one-token completion and report the classified outcome."""
        report: dict[str, Any] = {
            "configured": bool(self._api_key),
            "key_format_valid": bool(self._api_key) and self._api_key.startswith(API_KEY_PREFIX),
            "model": self._model,
            "ok": False,
        }
        try:
            client = self._require_client()
            response = await client.messages.create(
                model=self._model,
                max_tokens=1,
                messages=[{"role": "user", "content": "ping"}],
            )
            report["ok"] = True
            report["usage"] = {
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
            }
        except Exception as e:
            error = classify_error(e)
            logger.warning("AI connection check failed: %s", error.details)
            report["error"] = error.to_dict()
            report["status_code"] = error.status_code
        return report


# Singleton instance
chat_service = AnthropicChatService()
