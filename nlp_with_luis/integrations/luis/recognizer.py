"""
Async client for the LUIS v2 prediction endpoint.
"""

from typing import Any, Dict, List, Optional, Union

import httpx
import structlog
from botbuilder.core import IntentScore, Recognizer, RecognizerResult, TurnContext
from pydantic import BaseModel, Field, ValidationError

logger = structlog.get_logger(__name__)


class LuisRecognizerError(Exception):
    """The prediction call failed or returned something that is not a LUIS result."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class LuisApplication:
    """Identifies a published LUIS application."""

    def __init__(self, application_id: str, endpoint_key: str, endpoint: str):
        if not application_id:
            raise ValueError("application_id is required")
        if not endpoint_key:
            raise ValueError("endpoint_key is required")
        if not endpoint:
            raise ValueError("endpoint is required")

        self.application_id = application_id
        self.endpoint_key = endpoint_key
        self.endpoint = endpoint.rstrip("/")


class LuisPredictionOptions(BaseModel):
    """Query options sent with every prediction request."""
    include_all_intents: bool = True
    timezone_offset: Optional[float] = None
    staging: bool = False
    spell_check: bool = False
    bing_spell_check_subscription_key: Optional[str] = None
    log: bool = True
    timeout: float = 10.0


class _LuisIntent(BaseModel):
    intent: str
    # Whole-number scores stay ints so replies echo what LUIS sent
    score: Optional[Union[int, float]] = None


class _LuisEntity(BaseModel):
    entity: str = ""
    type: str
    start_index: Optional[int] = Field(default=None, alias="startIndex")
    end_index: Optional[int] = Field(default=None, alias="endIndex")
    score: Optional[float] = None


class _LuisResponse(BaseModel):
    query: str = ""
    altered_query: Optional[str] = Field(default=None, alias="alteredQuery")
    top_scoring_intent: Optional[_LuisIntent] = Field(default=None, alias="topScoringIntent")
    intents: Optional[List[_LuisIntent]] = None
    entities: List[_LuisEntity] = Field(default_factory=list)


class LuisRecognizer(Recognizer):
    """
    Recognizes intents in user text with a LUIS application.

    One instance is created per application at startup and shared by all
    turns; it holds no per-turn state.
    """

    def __init__(
        self,
        application: LuisApplication,
        prediction_options: Optional[LuisPredictionOptions] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.application = application
        self.options = prediction_options or LuisPredictionOptions()
        self._http_client = http_client

    @property
    def prediction_url(self) -> str:
        return f"{self.application.endpoint}/luis/v2.0/apps/{self.application.application_id}"

    async def recognize(self, turn_context: TurnContext) -> RecognizerResult:
        if turn_context is None:
            raise TypeError("LuisRecognizer.recognize(): turn_context cannot be None")

        return await self.recognize_text(turn_context.activity.text or "")

    async def recognize_text(self, utterance: str) -> RecognizerResult:
        """
        Run a prediction for ``utterance``.

        Raises:
            LuisRecognizerError: the request failed or the response was not understood.
        """
        if not utterance or not utterance.strip():
            return RecognizerResult(
                text=utterance,
                intents={"": IntentScore(score=1.0)},
                entities={},
            )

        payload = await self._predict(utterance.strip())
        result = self._to_recognizer_result(utterance, payload)

        top = result.get_top_scoring_intent()
        logger.info("LUIS prediction", app_id=self.application.application_id,
                    top_intent=top.intent, score=top.score)
        return result

    def _query_params(self, utterance: str) -> Dict[str, str]:
        params = {
            "q": utterance,
            "verbose": str(self.options.include_all_intents).lower(),
            "staging": str(self.options.staging).lower(),
            "spellCheck": str(self.options.spell_check).lower(),
            "log": str(self.options.log).lower(),
        }
        if self.options.timezone_offset is not None:
            params["timezoneOffset"] = str(self.options.timezone_offset)
        if self.options.bing_spell_check_subscription_key:
            params["bing-spell-check-subscription-key"] = self.options.bing_spell_check_subscription_key
        return params

    async def _predict(self, utterance: str) -> Dict[str, Any]:
        headers = {"Ocp-Apim-Subscription-Key": self.application.endpoint_key}
        params = self._query_params(utterance)

        try:
            if self._http_client is not None:
                response = await self._http_client.get(
                    self.prediction_url, params=params, headers=headers, timeout=self.options.timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self.options.timeout) as client:
                    response = await client.get(self.prediction_url, params=params, headers=headers)
        except httpx.HTTPError as e:
            raise LuisRecognizerError(f"LUIS request failed: {e}") from e

        if response.status_code >= 400:
            raise LuisRecognizerError(
                f"LUIS returned HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise LuisRecognizerError("LUIS returned a response that is not JSON",
                                      status_code=response.status_code) from e

    @staticmethod
    def _to_recognizer_result(utterance: str, payload: Dict[str, Any]) -> RecognizerResult:
        try:
            luis_result = _LuisResponse.model_validate(payload)
        except ValidationError as e:
            raise LuisRecognizerError(f"LUIS returned an unexpected payload: {e}") from e

        scored = luis_result.intents
        if not scored and luis_result.top_scoring_intent is not None:
            scored = [luis_result.top_scoring_intent]

        intents = {
            item.intent: IntentScore(score=item.score if item.score is not None else 0.0)
            for item in scored or []
        }

        entities: Dict[str, List[str]] = {}
        for entity in luis_result.entities:
            entities.setdefault(entity.type, []).append(entity.entity)

        result = RecognizerResult(
            text=utterance,
            altered_text=luis_result.altered_query,
            intents=intents,
            entities=entities,
        )
        result.properties = {"luisResult": payload}
        return result
