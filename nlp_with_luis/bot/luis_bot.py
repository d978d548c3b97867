"""
Turn handler that reports the top LUIS intent for every message.
"""

from botbuilder.core import ActivityHandler, MessageFactory, TurnContext
from botbuilder.schema import ActivityTypes
import structlog

from ..integrations.luis import LuisRecognizerError
from ..services.bot_services import BotServices

logger = structlog.get_logger(__name__)

HELP_MESSAGE = (
    "No LUIS intents were found.\n"
    "This sample is about identifying two user intents:\n"
    "'Calendar.Add'\n"
    "'Calendar.Find'\n"
    "Try typing 'Add Event' or 'Show me tomorrow'."
)

GREETING_MESSAGE = "HELLO!"

RECOGNIZER_ERROR_MESSAGE = (
    "Sorry, I couldn't reach the language understanding service. Please try again in a moment."
)


class NlpWithLuisBot(ActivityHandler):
    """
    Sends message text to LUIS and replies with the top scoring intent.

    A new instance handles each turn; the only shared state is the
    :class:`BotServices` registry passed in.
    """

    LUIS_KEY = "BCJTest"

    def __init__(self, services: BotServices, luis_key: str = LUIS_KEY):
        if services is None:
            raise TypeError("NlpWithLuisBot(): services cannot be None")
        if luis_key not in services.luis_services:
            raise ValueError(
                f"Invalid configuration. The .bot file has no LUIS service named '{luis_key}'."
            )

        self.services = services
        self.luis_key = luis_key

    async def on_turn(self, turn_context: TurnContext):
        activity_type = turn_context.activity.type if turn_context and turn_context.activity else None

        if activity_type in (ActivityTypes.message, ActivityTypes.conversation_update):
            await super().on_turn(turn_context)
        else:
            logger.info("Unhandled activity type", activity_type=activity_type)
            await turn_context.send_activity(f"{activity_type} event detected")

    async def on_message_activity(self, turn_context: TurnContext):
        recognizer = self.services.luis_services[self.luis_key]

        try:
            recognizer_result = await recognizer.recognize(turn_context)
        except LuisRecognizerError as e:
            logger.error("LUIS recognition failed", error=str(e), status_code=e.status_code)
            await turn_context.send_activity(MessageFactory.text(RECOGNIZER_ERROR_MESSAGE))
            return

        top_intent = recognizer_result.get_top_scoring_intent() if recognizer_result else None

        if top_intent and top_intent.intent and top_intent.intent != "None":
            logger.info("Top scoring intent", intent=top_intent.intent, score=top_intent.score)
            await turn_context.send_activity(
                MessageFactory.text(
                    f"==>LUIS Top Scoring Intent: {top_intent.intent}, Score: {top_intent.score}"
                )
            )
        else:
            await turn_context.send_activity(MessageFactory.text(HELP_MESSAGE))

    async def on_conversation_update_activity(self, turn_context: TurnContext):
        await turn_context.send_activity(GREETING_MESSAGE)
