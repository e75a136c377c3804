"""HTTP-level tests for the proxy routes."""
import base64
import json

import pytest

from conftest import FakeAdapter
from ollamaproxy.core.app import create_app
from ollamaproxy.core.errors import UpstreamError
from ollamaproxy.core.registry import ProviderKind
from ollamaproxy.providers.base import GenerationOptions, GenerationResult


def _lines(response):
    return [json.loads(line) for line in response.get_data(as_text=True).splitlines() if line]


def _make_client(settings, registry, adapter, log_stream):
    app = create_app(settings, registry=registry, adapters={ProviderKind.OPENAI: adapter}, log_stream=log_stream)
    return app.test_client()


def test_root_liveness(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "Ollama is running" in response.get_data(as_text=True)


def test_version(client, settings):
    response = client.get("/api/version")
    assert response.get_json() == {"version": settings.app_version}


def test_tags_hide_inactive_providers(client):
    models = client.get("/api/tags").get_json()["models"]
    assert [model["name"] for model in models] == ["gpt-4o-mini"]
    assert models[0]["digest"] == "sha256:gpt4omini"
    assert models[0]["modified_at"].endswith("Z")


def test_cors_headers_on_every_response(client):
    for response in (client.get("/api/tags"), client.get("/nope"), client.post("/api/chat", data="{")):
        assert response.headers["Access-Control-Allow-Origin"] == "*"
        assert response.headers["Access-Control-Allow-Methods"] == "GET, POST, OPTIONS"
        assert response.headers["Access-Control-Allow-Headers"] == "Content-Type"


def test_options_preflight_anywhere(client):
    for path in ("/api/chat", "/anything/else"):
        response = client.open(path, method="OPTIONS")
        assert response.status_code == 200
        assert response.get_data() == b""
        assert response.headers["Access-Control-Allow-Origin"] == "*"


@pytest.mark.parametrize("method,path", [("GET", "/missing"), ("GET", "/api/chat"), ("POST", "/api/tags")])
def test_unmatched_routes_are_404(client, method, path):
    response = client.open(path, method=method)
    assert response.status_code == 404
    assert response.get_json() == {"error": "Not found"}


def test_chat_non_stream(client, fake_adapter):
    fake_adapter.result = GenerationResult(text="Hello!", reasoning="because")
    response = client.post(
        "/api/chat",
        json={
            "model": "gpt-4o-mini",
            "messages": [{"role": "user", "content": "hi"}, {"role": "assistant", "content": ""}],
            "options": {"temperature": 0.7},
        },
    )
    assert response.status_code == 200
    body = response.get_json()
    assert body["model"] == "gpt-4o-mini"
    assert body["done"] is True
    assert body["message"] == {"role": "assistant", "content": "Hello!", "reasoning": "because"}
    assert "messages" not in body
    assert "context" not in body
    kind, model, messages, options = fake_adapter.calls[0]
    assert (kind, model) == ("complete", "gpt-4o-mini")
    assert messages == [{"role": "user", "content": "hi"}]
    assert options == GenerationOptions(temperature=0.7)


def test_generate_non_stream_includes_debug_messages(client, fake_adapter):
    raw = [{"role": "assistant", "content": "x"}]
    fake_adapter.result = GenerationResult(text="x", raw_messages=raw)
    response = client.post("/api/generate", json={"model": "gpt-4o-mini", "prompt": "say x", "context": [1, 2]})
    body = response.get_json()
    assert body["response"] == "x"
    assert body["messages"] == raw
    assert body["context"] == [1, 2]
    assert "reasoning" not in body
    assert fake_adapter.calls[0][2] == [{"role": "user", "content": "say x"}]


@pytest.mark.parametrize("path,payload", [
    ("/api/chat", {"model": "llama3", "messages": [{"role": "user", "content": "hi"}]}),
    ("/api/generate", {"model": "llama3", "prompt": "hi"}),
    ("/api/generate", {"model": "llama3", "prompt": "hi", "stream": True}),
])
def test_unknown_model_makes_no_upstream_call(client, fake_adapter, path, payload):
    response = client.post(path, json=payload)
    assert response.status_code == 500
    assert response.get_json() == {"error": "Model llama3 not supported"}
    assert fake_adapter.calls == []


def test_inactive_provider_is_reported(client, fake_adapter):
    response = client.post("/api/generate", json={"model": "gemini-2.5-flash", "prompt": "hi"})
    assert response.status_code == 500
    assert response.get_json() == {"error": "Provider google not available"}
    assert fake_adapter.calls == []


@pytest.mark.parametrize("stream", [False, True])
def test_blank_messages_make_no_upstream_call(client, fake_adapter, stream):
    response = client.post(
        "/api/chat",
        json={"model": "gpt-4o-mini", "stream": stream, "messages": [{"role": "user", "content": "  "}]},
    )
    assert response.status_code == 500
    assert response.get_json() == {"error": "No valid messages found"}
    assert fake_adapter.calls == []


def test_malformed_json_body(client, fake_adapter):
    response = client.post("/api/chat", data="{not json", content_type="application/json")
    assert response.status_code == 500
    assert "error" in response.get_json()
    assert fake_adapter.calls == []


def test_non_object_body_is_malformed(client):
    response = client.post("/api/generate", json=["a"])
    assert response.status_code == 500
    assert "JSON object" in response.get_json()["error"]


def test_upstream_error_non_stream(client, fake_adapter):
    def _fail(*args):
        raise UpstreamError("openai", 429, "slow down")

    fake_adapter.complete = _fail
    response = client.post("/api/generate", json={"model": "gpt-4o-mini", "prompt": "hi"})
    assert response.status_code == 500
    assert response.get_json() == {"error": "openai error 429: slow down"}


def test_generate_stream_three_deltas(settings, registry, log_stream):
    adapter = FakeAdapter(deltas=["Hel", "lo", "!"])
    client = _make_client(settings, registry, adapter, log_stream)
    response = client.post(
        "/api/generate",
        json={"model": "gpt-4o-mini", "prompt": "greet", "stream": True, "context": [7, 8, 9]},
    )
    assert response.status_code == 200
    assert response.mimetype == "application/x-ndjson"
    lines = _lines(response)
    assert len(lines) == 4
    assert [line["done"] for line in lines] == [False, False, False, True]
    assert "".join(line["response"] for line in lines[:3]) == "Hello!"
    assert lines[3]["context"] == [7, 8, 9]
    assert lines[3]["response"] == ""
    assert adapter.closed


def test_chat_stream_final_line_carries_reasoning(settings, registry, log_stream):
    adapter = FakeAdapter(deltas=["a", "b"], reasoning="thought")
    client = _make_client(settings, registry, adapter, log_stream)
    response = client.post(
        "/api/chat",
        json={"model": "gpt-4o-mini", "stream": True, "messages": [{"role": "user", "content": "q"}]},
    )
    lines = _lines(response)
    assert [line["message"]["content"] for line in lines] == ["a", "b", ""]
    assert lines[-1]["done"] is True
    assert lines[-1]["message"]["reasoning"] == "thought"
    assert "context" not in lines[-1]


def test_stream_failure_becomes_terminal_error_line(settings, registry, log_stream):
    adapter = FakeAdapter(deltas=["one", "two"], fail_after=1, error=UpstreamError("openai", 500, "boom"))
    client = _make_client(settings, registry, adapter, log_stream)
    response = client.post(
        "/api/chat",
        json={"model": "gpt-4o-mini", "stream": True, "messages": [{"role": "user", "content": "q"}]},
    )
    assert response.status_code == 200
    lines = _lines(response)
    assert len(lines) == 2
    assert lines[0]["done"] is False
    assert lines[1]["done"] is True
    assert lines[1]["error"] == "openai error 500: boom"
    assert adapter.closed
    assert "stream_error" in log_stream.getvalue()


def test_vision_generate_reaches_adapter_as_blocks(client, fake_adapter):
    image = base64.b64encode(b"jpeg").decode("ascii")
    client.post("/api/generate", json={"model": "gpt-4o-mini", "prompt": "describe", "images": [image]})
    assert fake_adapter.calls[0][2] == [
        {
            "role": "user",
            "content": [
                {"type": "text", "text": "describe"},
                {"type": "image", "image": "data:image/jpeg;base64," + image},
            ],
        }
    ]


def test_unsupported_image_is_reported(client, fake_adapter):
    response = client.post(
        "/api/generate",
        json={"model": "gpt-4o-mini", "prompt": "describe", "images": ["/tmp/cat.jpg"]},
    )
    assert response.status_code == 500
    assert "Unsupported image input" in response.get_json()["error"]
    assert fake_adapter.calls == []


def test_access_log_line_written(client, log_stream):
    client.get("/api/version")
    records = [json.loads(line) for line in log_stream.getvalue().splitlines() if line]
    access = [record for record in records if record["message"] == "request"]
    assert access[-1]["path"] == "/api/version"
    assert access[-1]["status"] == 200
    assert "ts" not in access[-1]
