"""
Ollama completion service implementation.
"""

import time
from typing import Optional

import httpx

from quillsmith.config import get_settings
from quillsmith.services.llm.base import CompletionService
from quillsmith.services.llm.models import CompletionResult, ModelOptions
from quillsmith.services.llm.pricing import build_cost_info
from quillsmith.utils.exceptions import (
    AuthenticationError,
    ProviderRuntimeError,
    UnclassifiedProviderError,
    UsageCapError,
)
from quillsmith.utils.logging import get_logger

logger = get_logger(__name__)


class OllamaService(CompletionService):
    """
    Ollama completion service.

    Provides local inference via Ollama's REST API. The provider part of
    ``ModelOptions`` is only used for cost accounting.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        default_model: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        settings = get_settings()
        self.base_url = base_url or settings.llm.base_url
        self.default_model = default_model or settings.llm.default_model or "llama3.1:8b"
        self.timeout = timeout or settings.llm.timeout
        self._verify_ssl = settings.llm.verify_ssl

        self._client: Optional[httpx.AsyncClient] = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                base_url=self.base_url,
                verify=self._verify_ssl,
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def prompt(
        self,
        text: str,
        options: Optional[ModelOptions] = None,
    ) -> CompletionResult:
        """
        Generate a completion using Ollama's ``/api/generate`` endpoint.
        """
        model = (options.model if options else None) or self.default_model
        provider = (options.provider if options else None) or "ollama"

        logger.debug(f"Generating with {model}: {text[:100]}...")
        start_time = time.time()

        payload = {
            "model": model,
            "prompt": text,
            "stream": False,
        }

        try:
            client = await self._get_client()
            response = await client.post("/api/generate", json=payload)
            response.raise_for_status()
            data = response.json()

        except httpx.TimeoutException:
            logger.error(f"Ollama timeout for model {model}")
            raise ProviderRuntimeError(
                f"timeout after {self.timeout}s", details=f"Model: {model}"
            )
        except httpx.ConnectError as e:
            logger.error(f"Cannot connect to Ollama at {self.base_url}")
            raise ProviderRuntimeError(
                f"connection error: cannot reach Ollama at {self.base_url}",
                details=str(e),
            )
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error(f"Ollama HTTP error: {status}")
            if status in (401, 403):
                raise AuthenticationError(f"unauthorized ({status})")
            if status == 429:
                raise UsageCapError(f"rate limit exceeded ({status})")
            if status >= 500:
                raise ProviderRuntimeError(f"server error ({status})")
            raise UnclassifiedProviderError(
                f"AI provider failed: request returned status {status}",
                details=f"Model: {model}",
            )
        except httpx.HTTPError as e:
            logger.error(f"Ollama transport error for model {model}: {e}")
            raise ProviderRuntimeError(
                f"transport error: {type(e).__name__}", details=str(e)
            )
        except ValueError as e:
            logger.error(f"Ollama returned a body that is not JSON for model {model}")
            raise ProviderRuntimeError("malformed response: body is not JSON", details=str(e))

        if not isinstance(data, dict) or not isinstance(data.get("response", ""), str):
            logger.error(f"Ollama returned an unexpected payload for model {model}")
            raise ProviderRuntimeError(
                "malformed response: expected an object with a text response",
                details=f"Model: {model}",
            )

        generation_time = time.time() - start_time
        content = data.get("response", "").strip()

        cost_info = build_cost_info(
            text,
            content,
            ModelOptions(provider=provider, model=model),
            input_tokens=data.get("prompt_eval_count"),
            output_tokens=data.get("eval_count"),
        )

        logger.info(
            f"Generated {cost_info.output_tokens} tokens with {model} "
            f"in {generation_time:.2f}s"
        )

        return CompletionResult(content=content, cost_info=cost_info)

    async def health_check(self) -> bool:
        """Check if Ollama is reachable."""
        try:
            client = await self._get_client()
            response = await client.get("/api/tags")
            return response.status_code == 200
        except httpx.HTTPError:
            return False
