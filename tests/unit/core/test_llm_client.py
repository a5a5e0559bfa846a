from unittest.mock import AsyncMock, patch

import httpx
import pytest

from ideagraph.core.exceptions import APIClientError, APITimeoutError, ConfigurationError
from ideagraph.core.llm_client import BaseLLMClient, OpenAICompatibleClient, create_embedding_client

BASE_URL = "https://llm.test/v1"


def _response(status_code, payload=None, path="/chat/completions"):
    return httpx.Response(
        status_code,
        json=payload if payload is not None else {},
        request=httpx.Request("POST", f"{BASE_URL}{path}"),
    )


def _completion(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


@pytest.fixture
def http():
    """Patched httpx.AsyncClient; configure ``http.post`` per test."""
    client = AsyncMock()
    with patch("ideagraph.core.llm_client.httpx.AsyncClient") as factory:
        factory.return_value.__aenter__.return_value = client
        yield client


@pytest.fixture
def base_client():
    return BaseLLMClient(api_key="key", base_url=BASE_URL + "/", max_retries=3, retry_delay=0)


@pytest.fixture
def client():
    return OpenAICompatibleClient(
        api_key="key", base_url=BASE_URL, model="test-model",
        embedding_model="test-embed", max_retries=2, retry_delay=0,
    )


class TestBaseLLMClient:

    @pytest.mark.asyncio
    async def test_retries_rate_limit(self, http, base_client):
        http.post.side_effect = [_response(429), _response(200, {"ok": True})]

        assert await base_client.call_api("/chat/completions", payload={}) == {"ok": True}
        assert http.post.await_count == 2
        assert http.post.await_args.args[0] == f"{BASE_URL}/chat/completions"

    @pytest.mark.asyncio
    async def test_client_errors_fail_fast(self, http, base_client):
        http.post.return_value = _response(400, {"error": "bad request"})

        with pytest.raises(APIClientError, match="400"):
            await base_client.call_api("/chat/completions", payload={})
        assert http.post.await_count == 1

    @pytest.mark.asyncio
    async def test_server_errors_exhaust_retries(self, http, base_client):
        http.post.return_value = _response(503)

        with pytest.raises(APIClientError, match="503"):
            await base_client.call_api("/chat/completions", payload={})
        assert http.post.await_count == 3

    @pytest.mark.asyncio
    async def test_timeouts(self, http, base_client):
        http.post.side_effect = httpx.ReadTimeout("slow")

        with pytest.raises(APITimeoutError):
            await base_client.call_api("/chat/completions", payload={})
        assert http.post.await_count == 3

    @pytest.mark.asyncio
    async def test_transport_error_then_success(self, http, base_client):
        http.post.side_effect = [httpx.ConnectError("refused"), _response(200, {"ok": 1})]

        assert await base_client.call_api("/embeddings", payload={}) == {"ok": 1}

    @pytest.mark.asyncio
    async def test_sends_bearer_token(self, http, base_client):
        http.post.return_value = _response(200, {})

        await base_client.call_api("/chat/completions", payload={"a": 1})

        headers = http.post.await_args.kwargs["headers"]
        assert headers["Authorization"] == "Bearer key"
        assert http.post.await_args.kwargs["json"] == {"a": 1}


class TestGenerateJson:

    @pytest.mark.asyncio
    async def test_builds_strict_schema_request(self, client):
        client.client.call_api = AsyncMock(return_value=_completion('{"edges": []}'))
        schema = {"type": "object"}

        result = await client.generate_json(
            "system", ["user text", {"type": "file", "file": {}}], json_schema=schema, schema_name="things"
        )

        assert result == {"edges": []}
        endpoint = client.client.call_api.await_args.args[0]
        payload = client.client.call_api.await_args.kwargs["payload"]
        assert endpoint == "/chat/completions"
        assert payload["model"] == "test-model"
        assert payload["temperature"] == 0.0
        assert payload["messages"][0] == {"role": "system", "content": "system"}
        assert payload["messages"][1]["content"] == [
            {"type": "text", "text": "user text"},
            {"type": "file", "file": {}},
        ]
        assert payload["response_format"] == {
            "type": "json_schema",
            "json_schema": {"name": "things", "schema": schema, "strict": True},
        }

    @pytest.mark.asyncio
    async def test_without_schema_requests_json_object(self, client):
        client.client.call_api = AsyncMock(return_value=_completion("{}"))

        await client.generate_json("system", ["text"])

        payload = client.client.call_api.await_args.kwargs["payload"]
        assert payload["response_format"] == {"type": "json_object"}

    @pytest.mark.asyncio
    async def test_fenced_reply_is_parsed(self, client):
        client.client.call_api = AsyncMock(return_value=_completion('```json\n{"ideas": []}\n```'))

        assert await client.generate_json("system", ["text"]) == {"ideas": []}

    @pytest.mark.asyncio
    async def test_malformed_reply_raises(self, client):
        client.client.call_api = AsyncMock(return_value=_completion("I cannot help with that"))

        with pytest.raises(APIClientError, match="malformed JSON"):
            await client.generate_json("system", ["text"])

    @pytest.mark.asyncio
    async def test_missing_choices_raises(self, client):
        client.client.call_api = AsyncMock(return_value={"error": "overloaded"})

        with pytest.raises(APIClientError):
            await client.generate_json("system", ["text"])

    @pytest.mark.asyncio
    async def test_requires_api_key(self):
        client = OpenAICompatibleClient(api_key="", base_url=BASE_URL)
        client.client.call_api = AsyncMock()

        with pytest.raises(ConfigurationError):
            await client.generate_json("system", ["text"])
        client.client.call_api.assert_not_awaited()


class TestEmbed:

    @pytest.mark.asyncio
    async def test_orders_by_index(self, client):
        client.client.call_api = AsyncMock(return_value={"data": [
            {"index": 1, "embedding": [0.0, 1.0]},
            {"index": 0, "embedding": [1.0, 0.0]},
        ]})

        vectors = await client.embed(["first", "second"])

        assert vectors == [[1.0, 0.0], [0.0, 1.0]]
        payload = client.client.call_api.await_args.kwargs["payload"]
        assert payload == {"model": "test-embed", "input": ["first", "second"]}

    @pytest.mark.asyncio
    async def test_count_mismatch_raises(self, client):
        client.client.call_api = AsyncMock(return_value={"data": [{"index": 0, "embedding": [1.0]}]})

        with pytest.raises(APIClientError):
            await client.embed(["first", "second"])

    @pytest.mark.asyncio
    async def test_empty_input_skips_call(self, client):
        client.client.call_api = AsyncMock()

        assert await client.embed([]) == []
        client.client.call_api.assert_not_awaited()


def test_unknown_embedding_provider():
    with pytest.raises(ConfigurationError):
        create_embedding_client("carrier-pigeon")
