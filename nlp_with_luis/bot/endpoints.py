"""
Bot Framework messaging endpoint.
"""

from botbuilder.core import BotFrameworkAdapter, BotFrameworkAdapterSettings, TurnContext
from botbuilder.schema import Activity
from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse
import structlog

from .luis_bot import NlpWithLuisBot

logger = structlog.get_logger(__name__)
router = APIRouter()


async def on_turn_error(context: TurnContext, error: Exception):
    """Last-chance handler for errors the bot did not deal with itself."""
    logger.error("Unhandled error during turn",
                 error=str(error),
                 error_type=type(error).__name__,
                 activity_type=context.activity.type if context.activity else None,
                 exc_info=error)
    try:
        await context.send_activity("Sorry, it looks like something went wrong.")
    except Exception as send_error:
        logger.error("Failed to send error message", error=str(send_error))


def create_adapter(app_id: str, app_password: str) -> BotFrameworkAdapter:
    """Adapter authenticating inbound calls with the endpoint's app registration."""
    adapter = BotFrameworkAdapter(BotFrameworkAdapterSettings(app_id=app_id, app_password=app_password))
    adapter.on_turn_error = on_turn_error
    return adapter


@router.post("/api/messages")
async def messages_endpoint(request: Request):
    """Deserialize one activity and run a turn for it."""
    if "application/json" not in request.headers.get("Content-Type", ""):
        return Response(status_code=415, content="Content-Type must be application/json")

    try:
        body = await request.json()
    except ValueError as e:
        logger.warning("Rejected malformed activity body", error=str(e))
        return Response(status_code=400, content="Request body must be a JSON activity")

    activity = Activity().deserialize(body)
    auth_header = request.headers.get("Authorization", "")

    state = request.app.state
    bot = NlpWithLuisBot(state.bot_services, state.luis_key)

    logger.info("Incoming activity",
                activity_type=activity.type,
                channel_id=activity.channel_id,
                conversation_id=activity.conversation.id if activity.conversation else None)

    try:
        invoke_response = await state.adapter.process_activity(activity, auth_header, bot.on_turn)
    except PermissionError as e:
        logger.warning("Rejected unauthenticated request", error=str(e))
        return Response(status_code=401)

    if invoke_response:
        return JSONResponse(content=invoke_response.body, status_code=invoke_response.status)
    return Response(status_code=200)
