import logging
from aiogram import BaseMiddleware
from aiogram.types import CallbackQuery, Message
logger = logging.getLogger(__name__)

GENERIC_ERROR = "❌ An unexpected error occurred. Please try again."

class ErrorLogger(BaseMiddleware):
    async def __call__(self, handler, event, data):
        try:
            return await handler(event, data)
        except Exception as exc:      # noqa: BLE001
            logger.exception("Unhandled error: %s", exc)
            await _notify(event)
            raise


async def _notify(event) -> None:
    target = event.message if isinstance(event, CallbackQuery) else event
    if not isinstance(target, Message):
        return
    try:
        await target.answer(GENERIC_ERROR)
    except Exception as exc:      # noqa: BLE001
        logger.warning("Could not report error to user: %s", exc)
