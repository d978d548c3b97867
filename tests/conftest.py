"""
Pytest configuration and fixtures.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from botbuilder.core import IntentScore, RecognizerResult
from botbuilder.schema import Activity, ChannelAccount, ConversationAccount

from nlp_with_luis.services.bot_services import BotServices


@pytest.fixture
def bot_file_data():
    """Contents of a minimal .bot file."""
    return {
        "name": "nlp-with-luis",
        "description": "",
        "services": [
            {
                "type": "endpoint",
                "name": "development",
                "endpoint": "http://localhost:3978/api/messages",
                "appId": "",
                "appPassword": "",
                "id": "1",
            },
            {
                "type": "luis",
                "name": "BCJTest",
                "appId": "luis-app-id",
                "version": "0.1",
                "authoringKey": "authoring-key",
                "subscriptionKey": "",
                "region": "westus",
                "id": "2",
            },
        ],
        "padlock": "",
        "version": "2.0",
    }


@pytest.fixture
def write_bot_file(tmp_path):
    """Write a .bot file into a temporary directory and return its path."""
    def _write(data, name="test.bot"):
        path = tmp_path / name
        path.write_text(data if isinstance(data, str) else json.dumps(data), encoding="utf-8")
        return path
    return _write


def _recognizer_result(intents):
    return RecognizerResult(
        text="",
        intents={name: IntentScore(score=score) for name, score in intents.items()},
        entities={},
    )


@pytest.fixture
def mock_luis_recognizer():
    """Mock LUIS recognizer."""
    mock = AsyncMock()
    mock.recognize = AsyncMock(return_value=_recognizer_result({}))
    return mock


@pytest.fixture
def bot_services(mock_luis_recognizer):
    """Registry holding the mock recognizer under the key the bot needs."""
    return BotServices({"BCJTest": mock_luis_recognizer})


@pytest.fixture
def make_turn_context():
    """Mock turn context carrying an inbound activity and recording replies."""
    def _make(activity_type, text=None):
        context = MagicMock()
        context.activity = Activity(
            type=activity_type,
            text=text,
            channel_id="emulator",
            service_url="http://localhost:3978",
            from_property=ChannelAccount(id="user1", name="User"),
            recipient=ChannelAccount(id="bot", name="Bot"),
            conversation=ConversationAccount(id="conversation1"),
        )
        context.send_activity = AsyncMock()
        return context
    return _make


def _sent_texts(context):
    texts = []
    for call in context.send_activity.await_args_list:
        reply = call.args[0]
        texts.append(reply if isinstance(reply, str) else reply.text)
    return texts


@pytest.fixture
def make_recognizer_result():
    """Build a RecognizerResult from a {intent: score} dict."""
    return _recognizer_result


@pytest.fixture
def sent_texts():
    """Texts of every reply sent through a mock turn context."""
    return _sent_texts
