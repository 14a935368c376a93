"""
LLM Client

Text generation for analysis, brand voice extraction, and content writing,
with token usage tracking. Claude is the default provider; OpenAI is
available for callers that ask for it.
"""

import json
import logging
import os
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

import anthropic
import openai

from .result import ApiResult

logger = logging.getLogger(__name__)

FENCE_PATTERN = re.compile(r"^```(?:json)?\s*|\s*```$", re.MULTILINE)


@dataclass
class TokenUsage:
    """Track token usage across calls."""
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass
class LLMResponse:
    """Response from an LLM call."""
    content: str
    usage: TokenUsage
    model: str
    provider: str
    stop_reason: Optional[str] = None


def strip_code_fences(text: str) -> str:
    """Remove ``` / ```json fences models like to wrap JSON in."""
    return FENCE_PATTERN.sub("", text.strip()).strip()


def parse_json_response(text: str) -> Any:
    """
    Parse JSON from model output.

    Falls back to the outermost {...} block when the model adds prose around it.
    """
    cleaned = strip_code_fences(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        start, end = cleaned.find("{"), cleaned.rfind("}")
        if start == -1 or end <= start:
            raise
        return json.loads(cleaned[start:end + 1])


class LLMClient:
    """
    Async LLM client over Anthropic and OpenAI.

    Usage:
        llm = LLMClient()
        result = await llm.complete("Summarize this page...", system="You are...")
        data = await llm.complete_json("Return JSON with keys a, b")
    """

    DEFAULT_MODELS = {
        "anthropic": "claude-sonnet-4-20250514",
        "openai": "gpt-4o",
    }
    MAX_TOKENS = 4000
    TEMPERATURE = 0.3

    def __init__(
        self,
        anthropic_api_key: Optional[str] = None,
        openai_api_key: Optional[str] = None,
        default_provider: str = "anthropic",
        anthropic_client: Optional[anthropic.AsyncAnthropic] = None,
        openai_client: Optional[openai.AsyncOpenAI] = None,
    ):
        """
        Initialize LLM client.

        Args:
            anthropic_api_key: Anthropic API key (defaults to ANTHROPIC_API_KEY)
            openai_api_key: OpenAI API key (defaults to OPENAI_API_KEY)
            default_provider: "anthropic" or "openai"
            anthropic_client: Pre-built client (tests)
            openai_client: Pre-built client (tests)
        """
        anthropic_api_key = anthropic_api_key or os.getenv("ANTHROPIC_API_KEY")
        openai_api_key = openai_api_key or os.getenv("OPENAI_API_KEY")

        self._anthropic = anthropic_client or (
            anthropic.AsyncAnthropic(api_key=anthropic_api_key) if anthropic_api_key else None
        )
        self._openai = openai_client or (
            openai.AsyncOpenAI(api_key=openai_api_key) if openai_api_key else None
        )
        if self._anthropic is None and self._openai is None:
            raise ValueError("ANTHROPIC_API_KEY or OPENAI_API_KEY must be provided")

        if default_provider == "anthropic" and self._anthropic is None:
            default_provider = "openai"
        elif default_provider == "openai" and self._openai is None:
            default_provider = "anthropic"
        self.default_provider = default_provider

        self.total_usage = TokenUsage()
        self.call_count = 0

    async def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: int = MAX_TOKENS,
        temperature: float = TEMPERATURE,
        provider: Optional[str] = None,
        model: Optional[str] = None,
    ) -> ApiResult[LLMResponse]:
        """
        Generate a completion.

        Args:
            prompt: User prompt
            system: System prompt
            max_tokens: Maximum output tokens
            temperature: Sampling temperature
            provider: Override the default provider
            model: Override the provider's default model

        Returns:
            ApiResult with LLMResponse
        """
        provider = provider or self.default_provider
        model = model or self.DEFAULT_MODELS[provider]

        if provider == "openai":
            response = await self._complete_openai(prompt, system, max_tokens, temperature, model)
        else:
            response = await self._complete_anthropic(prompt, system, max_tokens, temperature, model)

        if response.success:
            usage = response.data.usage
            self.total_usage.input_tokens += usage.input_tokens
            self.total_usage.output_tokens += usage.output_tokens
            self.call_count += 1
            logger.info(f"{provider} call: {usage.input_tokens} in, {usage.output_tokens} out")

        return response

    async def complete_json(self, prompt: str, system: Optional[str] = None, **kwargs) -> ApiResult[Any]:
        """Generate a completion and parse it as JSON."""
        result = await self.complete(prompt, system=system, **kwargs)
        if not result.success:
            return result

        try:
            return ApiResult.ok(parse_json_response(result.data.content))
        except json.JSONDecodeError as e:
            logger.warning(f"LLM returned invalid JSON: {e}")
            return ApiResult.fail("LLM_PARSE_ERROR", f"Model returned invalid JSON: {e}", 502)

    async def _complete_anthropic(
        self,
        prompt: str,
        system: Optional[str],
        max_tokens: int,
        temperature: float,
        model: str,
    ) -> ApiResult[LLMResponse]:
        if self._anthropic is None:
            raise ValueError("ANTHROPIC_API_KEY not provided")

        kwargs: Dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            kwargs["system"] = system

        try:
            response = await self._anthropic.messages.create(**kwargs)
        except anthropic.APIStatusError as e:
            logger.error(f"Anthropic API error: {e}")
            return ApiResult.fail("ANTHROPIC_ERROR", str(e), e.status_code)
        except anthropic.APIError as e:
            logger.error(f"Anthropic API error: {e}")
            return ApiResult.fail("ANTHROPIC_ERROR", str(e), 0)

        content = "".join(block.text for block in response.content if hasattr(block, "text"))
        return ApiResult.ok(
            LLMResponse(
                content=content,
                usage=TokenUsage(
                    input_tokens=response.usage.input_tokens,
                    output_tokens=response.usage.output_tokens,
                ),
                model=model,
                provider="anthropic",
                stop_reason=response.stop_reason,
            )
        )

    async def _complete_openai(
        self,
        prompt: str,
        system: Optional[str],
        max_tokens: int,
        temperature: float,
        model: str,
    ) -> ApiResult[LLMResponse]:
        if self._openai is None:
            raise ValueError("OPENAI_API_KEY not provided")

        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        try:
            response = await self._openai.chat.completions.create(
                model=model,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except openai.APIStatusError as e:
            logger.error(f"OpenAI API error: {e}")
            return ApiResult.fail("OPENAI_ERROR", str(e), e.status_code)
        except openai.APIError as e:
            logger.error(f"OpenAI API error: {e}")
            return ApiResult.fail("OPENAI_ERROR", str(e), 0)

        choice = response.choices[0] if response.choices else None
        usage = response.usage
        return ApiResult.ok(
            LLMResponse(
                content=(choice.message.content or "") if choice else "",
                usage=TokenUsage(
                    input_tokens=usage.prompt_tokens if usage else 0,
                    output_tokens=usage.completion_tokens if usage else 0,
                ),
                model=model,
                provider="openai",
                stop_reason=choice.finish_reason if choice else None,
            )
        )
