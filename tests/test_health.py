"""
Tests for health, info and model listing endpoints.
"""
from grappa import should

from .conftest import make_client


def test_health_check(test_client):
    """Test health check endpoint"""
    response = test_client.get("/health")
    response.status_code | should.equal(200)
    response.headers["content-type"] | should.equal("application/json")
    response.json() | should.equal(
        {
            "status": "ok",
            "service": "OpenAI to NVIDIA NIM Proxy",
            "reasoning_display": False,
            "thinking_mode": False,
            "api_configured": True,
        }
    )


def test_health_reports_toggles(mock_backend):
    client = make_client(mock_backend, api_key=None, show_reasoning=True, thinking_mode=True)

    result = client.get("/health").json()
    result["reasoning_display"] | should.be.true
    result["thinking_mode"] | should.be.true
    result["api_configured"] | should.equal(False)


def test_root(test_client_show_reasoning):
    result = test_client_show_reasoning.get("/").json()

    result["endpoints"] | should.equal(
        {"health": "/health", "models": "/v1/models", "chat": "/v1/chat/completions"}
    )
    result["config"] | should.equal({"reasoning_display": True, "thinking_mode": False})


def test_list_models_shows_friendly_names_only(test_client):
    result = test_client.get("/v1/models").json()

    result["object"] | should.equal("list")
    ids = [model["id"] for model in result["data"]]
    ids | should.contain("gpt-4")
    ids | should.contain("claude-3-haiku")
    ids | should.do_not.contain("meta/llama-3.1-8b-instruct")
    for model in result["data"]:
        model | should.have.keys("id", "object", "created", "owned_by")
        model["object"] | should.equal("model")
        model["owned_by"] | should.equal("nvidia-nim-proxy")


def test_list_models_includes_configured_aliases(mock_backend):
    client = make_client(mock_backend, model_aliases={"house-model": "acme/house-7b"})

    ids = [model["id"] for model in client.get("/v1/models").json()["data"]]
    ids | should.equal(["house-model"])


def test_get_model(test_client):
    result = test_client.get("/v1/models/anything-goes").json()
    result["id"] | should.equal("anything-goes")
    result["object"] | should.equal("model")

    result = test_client.get("/v1/models/meta/llama-3.1-70b-instruct").json()
    result["id"] | should.equal("meta/llama-3.1-70b-instruct")
