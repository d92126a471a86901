"""
FastAPI contract tests.

A fake pipeline is injected through dependency overrides, so no provider,
search index or network is touched. Covers response shapes, request
validation and the rule that expected pipeline failures are HTTP 200 with
success=false.
"""

import asyncio
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from models.outcome import ErrorKind, PipelineResult
from models.records import CandidateRecord, Category, EnrichmentRecord
from server.app import create_app
from server.dependencies import get_pipeline
from server.disconnect import cancel_on_disconnect, watch_disconnect

pytestmark = pytest.mark.integration


class FakePipeline:
    def __init__(self, discover_result=None, enrichment_result=None):
        self.discover_result = discover_result
        self.enrichment_result = enrichment_result
        self.discover_calls = []
        self.enrichment_calls = []
        self.cancel_events = []

    def provider_status(self):
        return {"discovery": [{"provider": "openrouter/perplexity/sonar", "configured": True}]}

    async def discover(self, exclusion_titles, *, cancel_event=None):
        self.cancel_events.append(cancel_event)
        self.discover_calls.append(list(exclusion_titles))
        return self.discover_result

    async def generate_enrichment(self, title, question, variant_a, variant_b, *, cancel_event=None):
        self.cancel_events.append(cancel_event)
        self.enrichment_calls.append((title, question, variant_a, variant_b))
        return self.enrichment_result


def _candidate():
    return CandidateRecord(
        title="Pikachu Tail",
        question="Does Pikachu's tail have a black tip?",
        variant_a="Black tip",
        variant_b="All yellow",
        category=Category.POPCULTURE,
    )


def _enrichment():
    fallback = "https://www.google.com/search?q=Pikachu+Mandela+effect"
    return EnrichmentRecord(
        current_state="All yellow.",
        scientific="Schema.",
        community="Many remember black.",
        history="Since 2016.",
        residue="Fan art.",
        source_link=fallback,
        scientific_source=fallback,
        community_source=fallback,
        history_source=fallback,
        residue_source=fallback,
        category=Category.POPCULTURE,
    )


@pytest.fixture()
def fake_pipeline():
    return FakePipeline(
        discover_result=PipelineResult.ok([_candidate()], provider_used="s1/model", run_id="run-1"),
        enrichment_result=PipelineResult.ok(_enrichment(), provider_used="e1/model"),
    )


@pytest.fixture()
def client(fake_pipeline):
    app = create_app()
    app.dependency_overrides[get_pipeline] = lambda: fake_pipeline
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "healthy"
    assert body["providers"]["discovery"][0]["configured"] is True


def test_discover_success(client, fake_pipeline):
    r = client.post("/v1/discover", json={"exclusion_titles": ["Berenstain Bears"]})

    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["provider_used"] == "s1/model"
    assert body["data"][0]["variantA"] == "Black tip"
    assert body["data"][0]["category"] == "popculture"
    assert body["metadata"]["run_id"] == "run-1"
    assert body["request_id"]
    assert fake_pipeline.discover_calls == [["Berenstain Bears"]]


def test_discover_accepts_camel_case_and_empty_body(client, fake_pipeline):
    assert client.post("/v1/discover", json={"exclusionTitles": ["A"]}).status_code == 200
    assert client.post("/v1/discover", json={}).status_code == 200
    assert fake_pipeline.discover_calls == [["A"], []]


def test_discover_failure_is_http_200(client, fake_pipeline):
    fake_pipeline.discover_result = PipelineResult.fail(
        ErrorKind.ALL_PROVIDERS_EXHAUSTED, "rate_limited from c1/model: quota exceeded"
    )
    r = client.post("/v1/discover", json={"exclusion_titles": []})

    assert r.status_code == 200
    body = r.json()
    assert body["success"] is False
    assert body["error"] == "all_providers_exhausted"
    assert "quota exceeded" in body["detail"]
    assert body["data"] is None


def test_discover_rejects_wrong_type(client):
    r = client.post("/v1/discover", json={"exclusion_titles": "not a list"})
    assert r.status_code == 422


def test_enrichment_success(client, fake_pipeline):
    r = client.post(
        "/v1/enrichment",
        json={"title": "Pikachu", "question": "Tail?", "variantA": "Black tip", "variantB": "All yellow"},
    )

    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["data"]["currentState"] == "All yellow."
    assert body["data"]["error"] is None
    assert fake_pipeline.enrichment_calls == [("Pikachu", "Tail?", "Black tip", "All yellow")]


def test_enrichment_invalid_input_is_http_200(client, fake_pipeline):
    fake_pipeline.enrichment_result = PipelineResult.fail(ErrorKind.INVALID_INPUT, "both variants are required")
    r = client.post("/v1/enrichment", json={"title": "Pikachu", "variant_a": "", "variant_b": "x"})

    assert r.status_code == 200
    assert r.json()["error"] == "invalid_input"


def test_enrichment_requires_variants(client):
    r = client.post("/v1/enrichment", json={"title": "Pikachu"})
    assert r.status_code == 422


def test_routes_pass_a_cancel_event(client, fake_pipeline):
    client.post("/v1/discover", json={})
    client.post("/v1/enrichment", json={"title": "Pikachu", "variantA": "a", "variantB": "b"})

    assert len(fake_pipeline.cancel_events) == 2
    for event in fake_pipeline.cancel_events:
        assert isinstance(event, asyncio.Event)
        assert not event.is_set()


class FakeRequest:
    def __init__(self, disconnect_after):
        self.polls = 0
        self.disconnect_after = disconnect_after
        self.url = SimpleNamespace(path="/v1/discover")

    async def is_disconnected(self):
        self.polls += 1
        return self.polls >= self.disconnect_after


def test_disconnect_sets_cancel_event():
    request = FakeRequest(disconnect_after=3)
    cancel_event = asyncio.Event()

    asyncio.run(watch_disconnect(request, cancel_event, poll_interval=0))

    assert cancel_event.is_set()
    assert request.polls == 3


def test_cancel_on_disconnect_reaches_a_running_pipeline_call():
    async def scenario():
        async with cancel_on_disconnect(FakeRequest(disconnect_after=2), poll_interval=0) as cancel_event:
            await asyncio.wait_for(cancel_event.wait(), timeout=1.0)
            return cancel_event.is_set()

    assert asyncio.run(scenario()) is True


def test_connected_client_leaves_run_alone():
    async def scenario():
        async with cancel_on_disconnect(FakeRequest(disconnect_after=10**6), poll_interval=0) as cancel_event:
            await asyncio.sleep(0.01)
            return cancel_event.is_set()

    assert asyncio.run(scenario()) is False
