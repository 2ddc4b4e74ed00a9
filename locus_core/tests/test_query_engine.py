import json

import httpx
import pytest

from locus_core.agents.query_engine import QueryEngine
from locus_core.domain.exceptions import ProviderHttpError, TransportError, ValidationError
from locus_core.domain.models import ConversationTurn, ProviderKind, QueryRequest
from locus_core.infrastructure.http.transport import NON_ASCII_HEADER_MESSAGE, StreamTransport


class SettingsStub:
    http_timeout = 5.0
    openai_base_url = "https://api.openai.com/v1"
    openai_model_name = "gpt-4o"
    gemini_base_url = "https://generativelanguage.googleapis.com/v1beta"
    gemini_model_name = "gemini-1.5-flash"


class FakeTransport:
    """按顺序交出预置的原始块，可选地在最后抛出异常。"""

    def __init__(self, chunks=None, error=None):
        self.chunks = list(chunks or [])
        self.error = error
        self.calls = []

    async def open(self, wire, streaming=True, error_label="API"):
        self.calls.append((wire, streaming))
        for chunk in self.chunks:
            yield chunk
        if self.error is not None:
            raise self.error


def make_request(provider=ProviderKind.OPENAI, credential="sk-test", **kw):
    return QueryRequest(
        provider=provider,
        system_prompt="You are a professor.",
        conversation=[ConversationTurn(role="user", content="the unexamined life")],
        credential=credential,
        **kw,
    )


async def collect(engine, req):
    return [fragment async for fragment in engine.stream(req)]


@pytest.mark.asyncio
async def test_stream_openai_two_chunks():
    transport = FakeTransport(
        [
            'data: {"choices":[{"delta":{"content":"Socrates "}}]}\n',
            'data: {"choices":[{"delta":{"content":"means..."}}]}\ndata: [DONE]\n',
        ]
    )
    engine = QueryEngine(SettingsStub(), transport=transport)
    fragments = await collect(engine, make_request())
    assert fragments == ["Socrates ", "means..."]
    wire, streaming = transport.calls[0]
    assert streaming is True
    assert wire.url.endswith("/chat/completions")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "provider", [ProviderKind.OPENAI, ProviderKind.GEMINI, ProviderKind.ANTHROPIC]
)
@pytest.mark.parametrize("credential", [None, ""])
async def test_missing_credential_yields_single_error_without_network(provider, credential):
    transport = FakeTransport(["data: [DONE]\n"])
    engine = QueryEngine(SettingsStub(), transport=transport)
    fragments = await collect(engine, make_request(provider=provider, credential=credential))
    assert fragments == ["Error: API Key is missing. Please configure it in Settings."]
    assert transport.calls == []


@pytest.mark.asyncio
async def test_custom_endpoint_without_credential_is_allowed():
    transport = FakeTransport(['data: {"choices":[{"delta":{"content":"local"}}]}\n'])
    engine = QueryEngine(SettingsStub(), transport=transport)
    req = make_request(
        provider=ProviderKind.CUSTOM,
        credential=None,
        endpoint="http://localhost:1234/v1",
        model="llama3",
    )
    assert await collect(engine, req) == ["local"]
    wire, _ = transport.calls[0]
    assert "Authorization" not in wire.headers


@pytest.mark.asyncio
async def test_custom_endpoint_missing_base_url():
    transport = FakeTransport()
    engine = QueryEngine(SettingsStub(), transport=transport)
    req = make_request(provider=ProviderKind.CUSTOM, model="llama3")
    fragments = await collect(engine, req)
    assert fragments == ["Error: Custom endpoint requires a base URL. Please configure it in Settings."]
    assert transport.calls == []


@pytest.mark.asyncio
async def test_anthropic_returns_informational_fragment():
    transport = FakeTransport()
    engine = QueryEngine(SettingsStub(), transport=transport)
    fragments = await collect(engine, make_request(provider=ProviderKind.ANTHROPIC))
    assert fragments == ["Anthropic integration is coming soon."]
    assert transport.calls == []


@pytest.mark.asyncio
async def test_http_error_after_partial_output():
    transport = FakeTransport(
        ['data: {"choices":[{"delta":{"content":"partial"}}]}\n'],
        error=ProviderHttpError(500, "upstream exploded"),
    )
    engine = QueryEngine(SettingsStub(), transport=transport)
    fragments = await collect(engine, make_request())
    assert fragments == ["partial", "\n\nError: API Error (500): upstream exploded"]


@pytest.mark.asyncio
async def test_transport_error_becomes_fragment():
    transport = FakeTransport(error=TransportError(code="NETWORK_ERROR", message="connection refused"))
    engine = QueryEngine(SettingsStub(), transport=transport)
    fragments = await collect(engine, make_request())
    assert fragments == ["\n\nError: connection refused"]


@pytest.mark.asyncio
async def test_invalid_request_raises():
    engine = QueryEngine(SettingsStub(), transport=FakeTransport())
    req = make_request()
    req.conversation.append(ConversationTurn(role="assistant", content="dangling"))
    with pytest.raises(ValidationError):
        await collect(engine, req)
    req.conversation.clear()
    with pytest.raises(ValidationError):
        await collect(engine, req)


@pytest.mark.asyncio
async def test_gemini_end_to_end_over_http():
    captured = {}
    reply = {"candidates": [{"content": {"parts": [{"text": "We read Plato together."}]}}]}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["request"] = request
        return httpx.Response(200, json=reply)

    transport = StreamTransport(timeout=5.0, http_transport=httpx.MockTransport(handler))
    engine = QueryEngine(SettingsStub(), transport=transport)
    fragments = await collect(engine, make_request(provider=ProviderKind.GEMINI, credential="g-key"))
    assert fragments == ["We read Plato together."]

    request = captured["request"]
    assert request.url.params["key"] == "g-key"
    assert request.url.path.endswith("/models/gemini-1.5-flash:generateContent")
    assert "authorization" not in request.headers
    text = json.loads(request.content)["contents"][0]["parts"][0]["text"]
    assert text.startswith("You are a professor.\n\nUSER: the unexamined life")
    assert text.endswith("ASSISTANT:")


@pytest.mark.asyncio
async def test_gemini_http_error_over_http():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, text="API key not valid")

    transport = StreamTransport(timeout=5.0, http_transport=httpx.MockTransport(handler))
    engine = QueryEngine(SettingsStub(), transport=transport)
    text = await engine.collect(make_request(provider=ProviderKind.GEMINI))
    assert text == "\n\nError: Gemini API Error (400): API key not valid"


@pytest.mark.asyncio
async def test_engine_is_reusable_across_calls():
    transport = FakeTransport(['data: {"choices":[{"delta":{"content":"again"}}]}\n'])
    engine = QueryEngine(SettingsStub(), transport=transport)
    assert await engine.collect(make_request()) == "again"
    assert await engine.collect(make_request()) == "again"
    assert len(transport.calls) == 2


@pytest.mark.asyncio
async def test_non_ascii_credential_becomes_error_fragment():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="data: [DONE]\n")

    transport = StreamTransport(timeout=5.0, http_transport=httpx.MockTransport(handler))
    engine = QueryEngine(SettingsStub(), transport=transport)
    fragments = await collect(engine, make_request(credential="sk-abc”"))
    assert fragments == ["\n\nError: " + NON_ASCII_HEADER_MESSAGE]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error, expected",
    [
        (RuntimeError("decoder blew up"), "\n\nError: decoder blew up"),
        (TypeError(), "\n\nError: TypeError"),
    ],
)
async def test_unexpected_error_after_partial_output(error, expected):
    transport = FakeTransport(['data: {"choices":[{"delta":{"content":"partial"}}]}\n'], error=error)
    engine = QueryEngine(SettingsStub(), transport=transport)
    fragments = await collect(engine, make_request())
    assert fragments == ["partial", expected]


class BrokenAdapter:
    name = "openai"
    streaming = True
    error_label = "API"

    def build_request(self, req):
        raise TypeError("Object of type set is not JSON serializable")

    def new_decoder(self):
        raise AssertionError("not reached")


@pytest.mark.asyncio
async def test_adapter_failure_becomes_error_fragment():
    transport = FakeTransport()
    engine = QueryEngine(SettingsStub(), transport=transport, adapters={ProviderKind.OPENAI: BrokenAdapter()})
    fragments = await collect(engine, make_request())
    assert fragments == ["Error: Object of type set is not JSON serializable"]
    assert transport.calls == []
