"""Unit tests for Google Vision client and annotation filtering."""

import json

import httpx
import pytest

from scanlyf.domain.meal.detection.models import DetectionSource
from scanlyf.domain.shared.errors import AuthenticationError
from scanlyf.infrastructure.vision.google_vision_client import (
    GoogleVisionClient,
    extract_food_items,
)

ANNOTATION = {
    "labelAnnotations": [
        {"description": "Food", "score": 0.98},
        {"description": "Indian cuisine", "score": 0.93},
        {"description": "Masala dosa", "score": 0.88},
        {"description": "Tableware", "score": 0.85},
        {"description": "Chutney", "score": 0.71},
    ],
    "webDetection": {
        "bestGuessLabels": [{"label": "dosa"}],
        "webEntities": [
            {"description": "Sambar", "score": 0.64},
            {"description": "Masala dosa", "score": 0.9},
            {"description": "Idli", "score": 0.3},
            {"description": "Restaurant", "score": 0.8},
        ],
    },
}


def test_extract_food_items_filters_and_sorts() -> None:
    detections = extract_food_items(ANNOTATION)

    assert [(d.name, d.confidence) for d in detections] == [
        ("dosa", 0.9),
        ("Masala dosa", 0.88),
        ("Chutney", 0.71),
        ("Sambar", 0.64),
    ]
    assert detections[-1].source == DetectionSource.WEB_ENTITY


def test_extract_from_empty_annotation() -> None:
    assert extract_food_items({}) == []


def test_missing_key_is_rejected() -> None:
    with pytest.raises(AuthenticationError):
        GoogleVisionClient(api_key="")


@pytest.mark.asyncio
async def test_detect_posts_annotate_request() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"responses": [ANNOTATION]})

    client = GoogleVisionClient(
        api_key="test-key", client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
    )

    detections = await client.detect(b"jpeg-bytes")

    assert detections[0].name == "dosa"
    body = json.loads(seen[0].content)
    assert body["requests"][0]["image"]["content"] == "anBlZy1ieXRlcw=="
    assert {f["type"] for f in body["requests"][0]["features"]} == {
        "LABEL_DETECTION",
        "WEB_DETECTION",
    }
    assert seen[0].url.params["key"] == "test-key"


@pytest.mark.asyncio
async def test_annotate_error_yields_nothing() -> None:
    transport = httpx.MockTransport(
        lambda r: httpx.Response(200, json={"responses": [{"error": {"code": 3}}]})
    )
    client = GoogleVisionClient(api_key="k", client=httpx.AsyncClient(transport=transport))

    assert await client.detect(b"x") == []


@pytest.mark.asyncio
async def test_http_errors_are_raised() -> None:
    transport = httpx.MockTransport(lambda r: httpx.Response(403))
    client = GoogleVisionClient(api_key="k", client=httpx.AsyncClient(transport=transport))

    with pytest.raises(httpx.HTTPStatusError):
        await client.detect(b"x")
