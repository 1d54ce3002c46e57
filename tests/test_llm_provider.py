"""Tests for the model provider against a local HTTP server."""

import asyncio
import pytest
from aiohttp import web
from aiohttp import test_utils

from llm import LLMProvider, LLMUnavailableError


@pytest.fixture
async def serve():
    """Start an aiohttp app with the given routes; returns the server."""
    servers = []

    async def _serve(*routes):
        app = web.Application()
        for method, path, handler in routes:
            app.router.add_route(method, path, handler)
        server = test_utils.TestServer(app)
        await server.start_server()
        servers.append(server)
        return server

    yield _serve

    for server in servers:
        await server.close()


def _ollama(server, model="phi3:mini"):
    return LLMProvider(backend="ollama", model=model, base_url=str(server.make_url("/")))


def _openai(server, model="phi3:mini"):
    return LLMProvider(
        backend="openai",
        model=model,
        base_url=str(server.make_url("/v1")),
        api_key="test-key",
    )


class TestOllamaBackend:
    """Test generation through /api/generate."""

    async def test_payload_and_response(self, serve):
        received = []

        async def generate(request):
            received.append(await request.json())
            return web.json_response({"response": '  {"tool": "get_quote"}\n'})

        server = await serve(("POST", "/api/generate", generate))
        provider = _ollama(server)
        try:
            text = await provider.generate("Select tool", temperature=0.01, top_p=0.7, max_tokens=600, timeout=2)
        finally:
            await provider.close()

        assert text == '{"tool": "get_quote"}'
        assert len(received) == 1
        payload = received[0]
        assert payload["model"] == "phi3:mini"
        assert payload["prompt"] == "Select tool"
        assert payload["stream"] is False
        assert payload["options"] == {"temperature": 0.01, "top_p": 0.7, "num_predict": 600}

    async def test_bad_status(self, serve):
        async def generate(request):
            return web.Response(status=500, text="model crashed")

        server = await serve(("POST", "/api/generate", generate))
        provider = _ollama(server)
        try:
            with pytest.raises(LLMUnavailableError, match="HTTP 500"):
                await provider.generate("Select tool", timeout=2)
        finally:
            await provider.close()

    async def test_timeout(self, serve):
        calls = []

        async def generate(request):
            calls.append(request.path)
            await asyncio.sleep(0.5)
            return web.json_response({"response": "late"})

        server = await serve(("POST", "/api/generate", generate))
        provider = _ollama(server)
        try:
            with pytest.raises(LLMUnavailableError, match="timed out"):
                await provider.generate("Select tool", timeout=0.05)
        finally:
            await provider.close()
        assert calls == ["/api/generate"]

    async def test_connection_refused(self):
        provider = LLMProvider(backend="ollama", model="phi3:mini", base_url="http://127.0.0.1:1")
        try:
            with pytest.raises(LLMUnavailableError, match="not reachable"):
                await provider.generate("Select tool", timeout=2)
        finally:
            await provider.close()

    async def test_status_matches_model_family(self, serve):
        async def tags(request):
            return web.json_response({"models": [{"name": "phi3:latest"}, {"name": "llama3.2:1b"}]})

        server = await serve(("GET", "/api/tags", tags))
        present, missing = _ollama(server), _ollama(server, model="mistral:7b")
        try:
            assert await present.check_status() is True
            assert await missing.check_status() is False
        finally:
            await present.close()
            await missing.close()

    async def test_status_when_down(self):
        provider = LLMProvider(backend="ollama", model="phi3:mini", base_url="http://127.0.0.1:1")
        try:
            assert await provider.check_status() is False
        finally:
            await provider.close()


class TestOpenAIBackend:
    """Test generation through an OpenAI-compatible endpoint."""

    async def test_single_request_on_failure(self, serve):
        hits = []

        async def completions(request):
            hits.append(request.path)
            return web.json_response({"error": {"message": "overloaded"}}, status=503)

        server = await serve(("POST", "/v1/chat/completions", completions))
        provider = _openai(server)
        try:
            with pytest.raises(LLMUnavailableError, match="HTTP 503"):
                await provider.generate("Select tool", timeout=2)
        finally:
            await provider.close()

        assert hits == ["/v1/chat/completions"]

    async def test_payload_and_response(self, serve):
        received = []

        async def completions(request):
            received.append(await request.json())
            return web.json_response({
                "id": "chatcmpl-1",
                "object": "chat.completion",
                "created": 0,
                "model": "phi3:mini",
                "choices": [{
                    "index": 0,
                    "message": {"role": "assistant", "content": ' ["Tesla news"] '},
                    "finish_reason": "stop",
                }],
            })

        server = await serve(("POST", "/v1/chat/completions", completions))
        provider = _openai(server)
        try:
            text = await provider.generate("Suggest", temperature=0.7, top_p=0.9, max_tokens=500, timeout=2)
        finally:
            await provider.close()

        assert text == '["Tesla news"]'
        payload = received[0]
        assert payload["messages"] == [{"role": "user", "content": "Suggest"}]
        assert payload["temperature"] == 0.7
        assert payload["top_p"] == 0.9
        assert payload["max_tokens"] == 500
        assert payload["stream"] is False

    async def test_timeout_is_not_retried(self, serve):
        hits = []

        async def completions(request):
            hits.append(request.path)
            await asyncio.sleep(0.5)
            return web.json_response({})

        server = await serve(("POST", "/v1/chat/completions", completions))
        provider = _openai(server)
        try:
            with pytest.raises(LLMUnavailableError):
                await provider.generate("Select tool", timeout=0.05)
        finally:
            await provider.close()

        assert len(hits) == 1

    async def test_status_lists_models(self, serve):
        async def models(request):
            return web.json_response({
                "object": "list",
                "data": [{"id": "phi3:mini", "object": "model", "created": 0, "owned_by": "local"}],
            })

        server = await serve(("GET", "/v1/models", models))
        present, missing = _openai(server), _openai(server, model="gpt-4o")
        try:
            assert await present.check_status() is True
            assert await missing.check_status() is False
        finally:
            await present.close()
            await missing.close()


def test_unknown_backend():
    with pytest.raises(ValueError):
        LLMProvider(backend="gemini")
