"""Tests for the embedding providers and their factory."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from kbsearch.common.config import KnowledgeSearchConfig
from kbsearch.embeddings.base import (
    DisabledEmbeddingProvider,
    EmbeddingGenerationFailedError,
    EmbeddingUnavailableError,
)
from kbsearch.embeddings.factory import create_embedding_provider
from kbsearch.embeddings.http import HttpEmbeddingProvider
from kbsearch.embeddings.openai import OpenAIEmbeddingProvider


@pytest.fixture
def no_openai_key(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("KB_OPENAI_API_KEY", raising=False)


class TestHttpEmbeddingProvider:

    @pytest.mark.asyncio
    async def test_embed_posts_items_and_reads_first_vector(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"vectors": [[0.1, 0.2, 0.3]], "model": "mini"})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        provider = HttpEmbeddingProvider("http://embed.local/", model="mini", dimensions=3, client=client)

        vector = await provider.embed("  managed postgres  ")
        assert vector == [0.1, 0.2, 0.3]
        assert str(requests[0].url) == "http://embed.local/api/v1/embed"
        assert json.loads(requests[0].content) == {"items": [{"text": "managed postgres"}], "model": "mini"}
        await client.aclose()

    @pytest.mark.asyncio
    async def test_error_status_raises_generation_failed(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(503)))
        provider = HttpEmbeddingProvider("http://embed.local", client=client)

        with pytest.raises(EmbeddingGenerationFailedError) as exc_info:
            await provider.embed("postgres")
        assert exc_info.value.context["provider"] == "http"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_empty_vectors_raise_generation_failed(self):
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"vectors": []}))
        )
        provider = HttpEmbeddingProvider("http://embed.local", client=client)

        with pytest.raises(EmbeddingGenerationFailedError):
            await provider.embed("postgres")
        await client.aclose()

    @pytest.mark.asyncio
    async def test_empty_text_is_rejected_without_request(self):
        handler = MagicMock()
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        provider = HttpEmbeddingProvider("http://embed.local", client=client)

        with pytest.raises(EmbeddingGenerationFailedError):
            await provider.embed("   ")
        handler.assert_not_called()
        await client.aclose()

    def test_status(self):
        provider = HttpEmbeddingProvider("http://embed.local", model="mini", dimensions=384)
        status = provider.status()
        assert status.available is True
        assert status.provider == "http"
        assert status.model == "mini"
        assert status.dimensions == 384
        assert status.reason is None


class TestOpenAIEmbeddingProvider:

    def test_unavailable_without_api_key(self, no_openai_key):
        provider = OpenAIEmbeddingProvider()
        assert provider.is_available() is False
        assert provider.status().reason == "OPENAI_API_KEY not set"

    def test_api_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        assert OpenAIEmbeddingProvider().is_available() is True

    @pytest.mark.asyncio
    async def test_embed_without_key_raises_unavailable(self, no_openai_key):
        with pytest.raises(EmbeddingUnavailableError):
            await OpenAIEmbeddingProvider().embed("postgres")

    @pytest.mark.asyncio
    async def test_embed_requests_dimensions_for_v3_models(self):
        client = MagicMock()
        client.embeddings.create = AsyncMock(
            return_value=SimpleNamespace(data=[SimpleNamespace(embedding=[0.5, 0.25])])
        )
        provider = OpenAIEmbeddingProvider(model="text-embedding-3-small", dimensions=2, client=client)

        assert await provider.embed(" postgres ") == [0.5, 0.25]
        client.embeddings.create.assert_awaited_once_with(
            model="text-embedding-3-small",
            input="postgres",
            encoding_format="float",
            dimensions=2,
        )

    @pytest.mark.asyncio
    async def test_older_models_omit_dimensions(self):
        client = MagicMock()
        client.embeddings.create = AsyncMock(
            return_value=SimpleNamespace(data=[SimpleNamespace(embedding=[0.5])])
        )
        provider = OpenAIEmbeddingProvider(model="text-embedding-ada-002", client=client)

        await provider.embed("postgres")
        assert "dimensions" not in client.embeddings.create.await_args.kwargs

    @pytest.mark.asyncio
    async def test_api_failure_raises_generation_failed(self):
        client = MagicMock()
        client.embeddings.create = AsyncMock(side_effect=RuntimeError("rate limited"))
        provider = OpenAIEmbeddingProvider(client=client)

        with pytest.raises(EmbeddingGenerationFailedError) as exc_info:
            await provider.embed("postgres")
        assert "rate limited" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_empty_response_raises_generation_failed(self):
        client = MagicMock()
        client.embeddings.create = AsyncMock(return_value=SimpleNamespace(data=[]))
        provider = OpenAIEmbeddingProvider(client=client)

        with pytest.raises(EmbeddingGenerationFailedError):
            await provider.embed("postgres")


@pytest.mark.asyncio
async def test_disabled_provider():
    provider = DisabledEmbeddingProvider("embeddings disabled by configuration", dimensions=8)
    assert provider.is_available() is False
    assert provider.dimensions == 8
    assert provider.status().reason == "embeddings disabled by configuration"
    with pytest.raises(EmbeddingUnavailableError):
        await provider.embed("postgres")


class TestEmbeddingProviderFactory:

    def test_none_provider(self):
        provider = create_embedding_provider(
            KnowledgeSearchConfig(kb_embedding_provider="none", kb_embedding_dimensions=32)
        )
        assert isinstance(provider, DisabledEmbeddingProvider)
        assert provider.dimensions == 32

    def test_http_provider(self):
        provider = create_embedding_provider(KnowledgeSearchConfig(
            kb_embedding_provider="http",
            kb_embedding_service_url="http://embed.local:9006",
            kb_embedding_model="mini",
            kb_embedding_dimensions=384,
        ))
        assert isinstance(provider, HttpEmbeddingProvider)
        assert provider.base_url == "http://embed.local:9006"
        assert provider.dimensions == 384

    def test_openai_provider_without_key_is_unavailable(self, no_openai_key):
        provider = create_embedding_provider(KnowledgeSearchConfig(kb_embedding_provider="openai"))
        assert isinstance(provider, OpenAIEmbeddingProvider)
        assert provider.is_available() is False

    def test_openai_provider_with_configured_key(self, no_openai_key):
        provider = create_embedding_provider(
            KnowledgeSearchConfig(kb_embedding_provider="openai", kb_openai_api_key="sk-test")
        )
        assert provider.is_available() is True
