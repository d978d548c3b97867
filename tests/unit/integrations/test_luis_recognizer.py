"""
Unit tests for the LUIS prediction client.
"""

import asyncio
import json
from unittest.mock import MagicMock

import httpx
import pytest

from nlp_with_luis.integrations.luis import (
    LuisApplication,
    LuisPredictionOptions,
    LuisRecognizer,
    LuisRecognizerError,
)

ENDPOINT = "https://westus.api.cognitive.microsoft.com"

VERBOSE_RESPONSE = {
    "query": "add event tomorrow",
    "topScoringIntent": {"intent": "Calendar.Add", "score": 0.91},
    "intents": [
        {"intent": "Calendar.Add", "score": 0.91},
        {"intent": "Calendar.Find", "score": 0.05},
        {"intent": "None", "score": 0.02},
    ],
    "entities": [
        {"entity": "tomorrow", "type": "builtin.datetimeV2.date", "startIndex": 10, "endIndex": 17},
    ],
}


def make_recognizer(handler, options=None):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    application = LuisApplication("app-id", "endpoint-key", ENDPOINT)
    return LuisRecognizer(application, prediction_options=options, http_client=client)


class TestLuisApplication:

    @pytest.mark.parametrize("args", [
        ("", "key", ENDPOINT),
        ("app", "", ENDPOINT),
        ("app", "key", ""),
    ])
    def test_requires_all_fields(self, args):
        with pytest.raises(ValueError):
            LuisApplication(*args)

    def test_strips_trailing_slash(self):
        assert LuisApplication("app", "key", ENDPOINT + "/").endpoint == ENDPOINT


class TestLuisRecognizer:

    async def test_request_shape(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json=VERBOSE_RESPONSE)

        recognizer = make_recognizer(handler, LuisPredictionOptions(timezone_offset=-300, staging=True))
        await recognizer.recognize_text("add event tomorrow")

        (request,) = requests
        assert request.method == "GET"
        assert str(request.url).startswith(f"{ENDPOINT}/luis/v2.0/apps/app-id?")
        assert request.headers["Ocp-Apim-Subscription-Key"] == "endpoint-key"
        params = request.url.params
        assert params["q"] == "add event tomorrow"
        assert params["verbose"] == "true"
        assert params["staging"] == "true"
        assert params["timezoneOffset"] == "-300.0"
        assert "bing-spell-check-subscription-key" not in params

    async def test_maps_intents_and_entities(self):
        recognizer = make_recognizer(lambda request: httpx.Response(200, json=VERBOSE_RESPONSE))

        result = await recognizer.recognize_text("add event tomorrow")

        assert result.text == "add event tomorrow"
        assert set(result.intents) == {"Calendar.Add", "Calendar.Find", "None"}
        top = result.get_top_scoring_intent()
        assert top.intent == "Calendar.Add"
        assert top.score == 0.91
        assert result.entities == {"builtin.datetimeV2.date": ["tomorrow"]}
        assert result.properties["luisResult"] == VERBOSE_RESPONSE

    async def test_top_scoring_intent_only(self):
        payload = {"query": "hi", "topScoringIntent": {"intent": "None", "score": 0.7}, "entities": []}
        recognizer = make_recognizer(lambda request: httpx.Response(200, json=payload))

        result = await recognizer.recognize_text("hi")

        assert list(result.intents) == ["None"]
        assert result.get_top_scoring_intent().intent == "None"

    async def test_whole_number_score_kept_as_sent(self):
        payload = {"query": "add event", "intents": [{"intent": "Calendar.Add", "score": 1}], "entities": []}
        recognizer = make_recognizer(lambda request: httpx.Response(200, json=payload))

        result = await recognizer.recognize_text("add event")

        top = result.get_top_scoring_intent()
        assert top.score == 1
        assert f"Score: {top.score}" == "Score: 1"

    async def test_recognize_uses_activity_text(self):
        seen = []

        def handler(request):
            seen.append(request.url.params["q"])
            return httpx.Response(200, json=VERBOSE_RESPONSE)

        turn_context = MagicMock()
        turn_context.activity.text = "  add event tomorrow "

        await make_recognizer(handler).recognize(turn_context)

        assert seen == ["add event tomorrow"]

    async def test_empty_text_skips_request(self):
        def handler(request):
            raise AssertionError("LUIS should not be called")

        result = await make_recognizer(handler).recognize_text("   ")

        top = result.get_top_scoring_intent()
        assert top.intent == ""
        assert top.score == 1.0

    async def test_http_error_status(self):
        recognizer = make_recognizer(lambda request: httpx.Response(401, text="Access denied"))

        with pytest.raises(LuisRecognizerError) as excinfo:
            await recognizer.recognize_text("add event")

        assert excinfo.value.status_code == 401

    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(LuisRecognizerError) as excinfo:
            await make_recognizer(handler).recognize_text("add event")

        assert excinfo.value.status_code is None

    async def test_non_json_response(self):
        recognizer = make_recognizer(lambda request: httpx.Response(200, text="<html>oops</html>"))

        with pytest.raises(LuisRecognizerError):
            await recognizer.recognize_text("add event")

    async def test_unexpected_payload(self):
        payload = {"intents": [{"score": 0.5}]}
        recognizer = make_recognizer(lambda request: httpx.Response(200, content=json.dumps(payload)))

        with pytest.raises(LuisRecognizerError):
            await recognizer.recognize_text("add event")

    async def test_cancellation_propagates(self):
        started = asyncio.Event()

        async def handler(request):
            started.set()
            await asyncio.Event().wait()

        task = asyncio.ensure_future(make_recognizer(handler).recognize_text("add event"))
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
