import asyncio
import base64
from typing import Any, Dict, List, Optional, Sequence, Union

import httpx
from httpx import HTTPStatusError, TimeoutException

from ideagraph.core.config import settings
from ideagraph.core.exceptions import APIClientError, APITimeoutError, ConfigurationError
from ideagraph.utils.json_parser import parse_json_safely
from ideagraph.utils.logging import get_logger

LOGGER = get_logger(__name__)

ContentPart = Union[str, Dict[str, Any]]


class BaseLLMClient:
    """Base client for LLM API interactions.

    Handles common logic for HTTP requests, retries, timeout management,
    and error logging.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: int = 60,
        max_retries: int = 3,
        retry_delay: int = 2
    ):
        """Initialize the LLM client.

        Args:
            api_key: API key for authentication
            base_url: Base URL for the API
            timeout: Request timeout in seconds
            max_retries: Maximum number of retries
            retry_delay: Base delay for exponential backoff
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.logger = LOGGER

    async def call_api(
        self,
        endpoint: str = "",
        payload: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> Dict[str, Any]:
        """POST to the API with retry logic.

        Raises:
            APIClientError: If the API call fails after retries
            APITimeoutError: If the API call times out after retries
        """
        url = f"{self.base_url}{endpoint}"

        default_headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if headers:
            default_headers.update(headers)

        self.logger.debug(
            f"Calling LLM API: {url}",
            extra={"timeout": self.timeout}
        )

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            for attempt in range(self.max_retries):
                try:
                    response = await client.post(url, headers=default_headers, json=payload)
                    response.raise_for_status()
                    return response.json()

                except HTTPStatusError as e:
                    await self._handle_http_error(e, attempt, url)

                except TimeoutException as e:
                    await self._handle_timeout_error(e, attempt, url)

                except httpx.HTTPError as e:
                    await self._handle_transport_error(e, attempt, url)

        raise APIClientError(f"Failed to call API {url} after {self.max_retries} attempts")

    async def _handle_http_error(self, error: HTTPStatusError, attempt: int, url: str):
        status_code = error.response.status_code
        error_body = error.response.text

        self.logger.warning(
            f"API HTTP error (Attempt {attempt + 1}/{self.max_retries})",
            extra={
                "url": url,
                "status_code": status_code,
                "error_body": error_body[:500]
            }
        )

        # 4xx is not retried, except rate limiting
        if 400 <= status_code < 500 and status_code != 429:
            raise APIClientError(f"API Client Error {status_code}: {error_body[:200]}", original_error=error)

        if attempt < self.max_retries - 1:
            await self._wait_before_retry(attempt)
        else:
            raise APIClientError(f"API HTTP Error {status_code} after retries", original_error=error)

    async def _handle_timeout_error(self, error: TimeoutException, attempt: int, url: str):
        self.logger.warning(
            f"API Timeout (Attempt {attempt + 1}/{self.max_retries})",
            extra={"url": url}
        )

        if attempt < self.max_retries - 1:
            await self._wait_before_retry(attempt)
        else:
            raise APITimeoutError(f"API Timeout after {self.max_retries} attempts", original_error=error)

    async def _handle_transport_error(self, error: httpx.HTTPError, attempt: int, url: str):
        self.logger.warning(
            f"API transport error (Attempt {attempt + 1}/{self.max_retries})",
            extra={"url": url, "error": str(error)}
        )

        if attempt < self.max_retries - 1:
            await self._wait_before_retry(attempt)
        else:
            raise APIClientError(f"API Error: {str(error)}", original_error=error)

    async def _wait_before_retry(self, attempt: int):
        """Exponential backoff wait."""
        wait_time = self.retry_delay * (2 ** attempt)
        await asyncio.sleep(wait_time)


def pdf_part(pdf_bytes: bytes, filename: str) -> Dict[str, Any]:
    """Chat content part carrying a PDF inline."""
    encoded = base64.b64encode(pdf_bytes).decode("ascii")
    return {
        "type": "file",
        "file": {
            "filename": filename,
            "file_data": f"data:application/pdf;base64,{encoded}",
        },
    }


class OpenAICompatibleClient:
    """Structured generation and embeddings over an OpenAI-compatible API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        embedding_model: Optional[str] = None,
        timeout: Optional[int] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[int] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.llm.api_key
        self.model = model or settings.llm.extraction_model
        self.embedding_model = embedding_model or settings.llm.embedding_model

        self.client = BaseLLMClient(
            api_key=self.api_key,
            base_url=base_url or settings.llm.api_base_url,
            timeout=timeout or settings.llm.timeout_seconds,
            max_retries=max_retries or settings.llm.max_retries,
            retry_delay=retry_delay if retry_delay is not None else settings.llm.retry_delay,
        )

        LOGGER.info(f"Initialized OpenAI-compatible client with model {self.model}")

    def _require_key(self) -> None:
        if not self.api_key:
            raise ConfigurationError("LLM_API_KEY is not configured")

    async def generate_json(
        self,
        system_instruction: str,
        parts: Sequence[ContentPart],
        json_schema: Optional[Dict[str, Any]] = None,
        schema_name: str = "response",
        model: Optional[str] = None,
    ) -> Any:
        """Generate a JSON response and return it parsed.

        Args:
            system_instruction: System prompt
            parts: User content parts (strings or chat content part dicts)
            json_schema: Optional strict JSON schema for the response
            schema_name: Name reported with the schema
            model: Override of the client's default model

        Raises:
            APIClientError: If the call fails or the reply is not JSON
        """
        self._require_key()

        content: List[Dict[str, Any]] = [
            {"type": "text", "text": part} if isinstance(part, str) else part
            for part in parts
        ]
        payload: Dict[str, Any] = {
            "model": model or self.model,
            "temperature": 0.0,
            "messages": [
                {"role": "system", "content": system_instruction},
                {"role": "user", "content": content},
            ],
        }
        if json_schema is not None:
            payload["response_format"] = {
                "type": "json_schema",
                "json_schema": {"name": schema_name, "schema": json_schema, "strict": True},
            }
        else:
            payload["response_format"] = {"type": "json_object"}

        response = await self.client.call_api("/chat/completions", payload=payload)

        choices = response.get("choices") or []
        if not choices:
            LOGGER.error(f"Unexpected completion response format: {str(response)[:500]}")
            raise APIClientError("Invalid response format from model provider")

        text = choices[0].get("message", {}).get("content") or ""
        parsed = parse_json_safely(text)
        if parsed is None:
            LOGGER.warning(
                "Model reply was not valid JSON",
                extra={"response_preview": text[:300]}
            )
            raise APIClientError("Model returned malformed JSON")
        return parsed

    async def embed(self, texts: Sequence[str]) -> List[List[float]]:
        """One embedding per input text, in input order."""
        if not texts:
            return []
        self._require_key()

        response = await self.client.call_api(
            "/embeddings",
            payload={"model": self.embedding_model, "input": list(texts)},
        )
        data = response.get("data") or []
        if len(data) != len(texts):
            raise APIClientError(
                f"Expected {len(texts)} embeddings, received {len(data)}"
            )
        ordered = sorted(data, key=lambda item: item.get("index", 0))
        return [list(item["embedding"]) for item in ordered]


class LocalEmbeddingClient:
    """Embeddings computed in-process with sentence-transformers."""

    def __init__(self, model_name: Optional[str] = None):
        self.model_name = model_name or settings.llm.local_embedding_model
        self._model = None

    @property
    def model(self):
        """Lazy-load the model to avoid import overhead."""
        if self._model is None:
            from sentence_transformers import SentenceTransformer
            LOGGER.info(f"Loading local embedding model {self.model_name}")
            self._model = SentenceTransformer(self.model_name)
        return self._model

    async def embed(self, texts: Sequence[str]) -> List[List[float]]:
        if not texts:
            return []
        vectors = await asyncio.to_thread(self.model.encode, list(texts))
        return [list(map(float, vector)) for vector in vectors]


def create_embedding_client(provider: Optional[str] = None):
    """Embedding client for the configured provider (``api`` or ``local``)."""
    provider = provider or settings.llm.embedding_provider
    if provider == "local":
        return LocalEmbeddingClient()
    if provider == "api":
        return OpenAICompatibleClient()
    raise ConfigurationError(f"Unknown embedding provider: {provider}")
