"""Tests for embedding providers and the local model loader."""

import asyncio
import logging
import pytest
from unittest.mock import Mock

from conftest import CountingModelFactory, FakeModel
from vaultmind.common import embedding_service
from vaultmind.common.embedding_service import (
    LoadStatus,
    LocalEmbeddingProvider,
    LocalModelLoader,
    RemoteEmbeddingProvider,
    get_local_model_loader,
)
from vaultmind.common.errors import ProviderError


class TestLocalModelLoader:
    @pytest.mark.asyncio
    async def test_concurrent_loads_share_one_construction(self):
        factory = CountingModelFactory(delay=0.05)
        loader = LocalModelLoader("test-model", model_factory=factory)

        models = await asyncio.gather(loader.load(), loader.load(), loader.load())

        assert factory.calls == ["test-model"]
        assert models[0] is models[1] is models[2]
        assert loader.state.status == LoadStatus.READY

    @pytest.mark.asyncio
    async def test_progress_is_reported_in_order(self):
        loader = LocalModelLoader("test-model", model_factory=CountingModelFactory())
        seen = []
        loader.add_listener(lambda state: seen.append(state.progress))

        assert loader.progress == 0
        assert not loader.is_loading
        await loader.load()

        assert seen == [10, 80, 100]
        assert loader.progress == 100
        assert not loader.is_loading

    @pytest.mark.asyncio
    async def test_loading_flag_visible_to_listeners(self):
        loader = LocalModelLoader("test-model", model_factory=CountingModelFactory())
        flags = []
        loader.add_listener(lambda state: flags.append(state.is_loading))

        await loader.load()

        assert flags == [True, True, False]

    @pytest.mark.asyncio
    async def test_failed_load_is_remembered(self):
        factory = CountingModelFactory(error=RuntimeError("download failed"))
        loader = LocalModelLoader("test-model", model_factory=factory)

        with pytest.raises(ProviderError, match="download failed"):
            await loader.load()
        with pytest.raises(ProviderError):
            await loader.load()

        assert len(factory.calls) == 1
        assert loader.state.status == LoadStatus.FAILED
        assert "download failed" in loader.state.reason
        assert not loader.is_loading

    @pytest.mark.asyncio
    async def test_cancelled_load_is_recorded_as_failed(self, caplog):
        factory = CountingModelFactory(delay=0.2)
        loader = LocalModelLoader("test-model", model_factory=factory)

        waiter = asyncio.ensure_future(loader.load())
        await asyncio.sleep(0.01)
        assert loader.is_loading

        with caplog.at_level(logging.WARNING, logger="vaultmind.common.embedding_service"):
            loader._load_task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await waiter

        assert loader.state.status == LoadStatus.FAILED
        assert loader.state.reason == "load cancelled"
        assert not loader.is_loading
        assert "was cancelled" in caplog.text
        with pytest.raises(ProviderError, match="load cancelled"):
            await loader.load()
        assert len(factory.calls) == 1

    @pytest.mark.asyncio
    async def test_broken_listener_does_not_stop_load(self, caplog):
        loader = LocalModelLoader("test-model", model_factory=CountingModelFactory())

        def broken(state):
            raise ValueError("listener bug")

        loader.add_listener(broken)
        with caplog.at_level(logging.WARNING, logger="vaultmind.common.embedding_service"):
            await loader.load()

        assert loader.state.status == LoadStatus.READY
        assert "listener bug" in caplog.text

    def test_get_local_model_loader_is_singleton(self, monkeypatch):
        monkeypatch.setattr(embedding_service, "_loader_instance", None)
        first = get_local_model_loader("model-a")
        second = get_local_model_loader("model-b")
        assert first is second
        assert first.model_name == "model-a"


class TestLocalEmbeddingProvider:
    @pytest.mark.asyncio
    async def test_embedding_is_normalized(self):
        loader = LocalModelLoader("test-model", model_factory=lambda name: FakeModel([1.0, 2.0, 2.0]))
        vector = await LocalEmbeddingProvider(loader).embed("hello")

        assert vector == pytest.approx([1 / 3, 2 / 3, 2 / 3])

    @pytest.mark.asyncio
    async def test_empty_text_does_not_load(self):
        factory = CountingModelFactory()
        loader = LocalModelLoader("test-model", model_factory=factory)

        assert await LocalEmbeddingProvider(loader).embed("  ") == []
        assert factory.calls == []
        assert loader.state.status == LoadStatus.UNLOADED

    @pytest.mark.asyncio
    async def test_load_failure_yields_empty_vector(self, caplog):
        loader = LocalModelLoader("test-model", model_factory=CountingModelFactory(error=OSError("no disk")))

        with caplog.at_level(logging.WARNING, logger="vaultmind.common.embedding_service"):
            vector = await LocalEmbeddingProvider(loader).embed("hello")

        assert vector == []
        assert "Local embedding failed" in caplog.text


class TestRemoteEmbeddingProvider:
    def _client(self, **attrs):
        client = Mock()
        client.provider = "openai"
        client.is_available = True
        client.supports_embeddings = True
        for name, value in attrs.items():
            setattr(client, name, value)
        return client

    @pytest.mark.asyncio
    async def test_returns_provider_vector(self):
        client = self._client()
        client.embed.return_value = [0.5, 0.5]

        assert await RemoteEmbeddingProvider(client).embed("hello") == [0.5, 0.5]
        client.embed.assert_called_once_with("hello")

    @pytest.mark.asyncio
    async def test_provider_error_yields_empty_vector(self):
        client = self._client()
        client.embed.side_effect = RuntimeError("rate limited")

        assert await RemoteEmbeddingProvider(client).embed("hello") == []

    @pytest.mark.asyncio
    async def test_provider_without_embeddings_is_skipped(self):
        client = self._client(provider="anthropic", supports_embeddings=False)

        assert await RemoteEmbeddingProvider(client).embed("hello") == []
        client.embed.assert_not_called()

    @pytest.mark.asyncio
    async def test_unavailable_client_is_skipped(self):
        client = self._client(is_available=False)

        assert await RemoteEmbeddingProvider(client).embed("hello") == []
        client.embed.assert_not_called()
