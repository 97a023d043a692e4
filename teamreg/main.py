"""
Team registration service entry point.

Starts the submission endpoint (aiohttp) and, when BOT_TOKEN is set, the
registration wizard bot (aiogram polling) in one event loop, with graceful
shutdown on SIGTERM / SIGINT.
"""
import asyncio
import logging
import signal
import sys

import aiohttp
from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.exceptions import TelegramBadRequest
from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.types import ErrorEvent
from aiohttp import web

from teamreg.api import create_app
from teamreg.config import settings
from teamreg.middlewares import ApiClientMiddleware
from teamreg.services.api_client import RegistrationApiClient

# ── Handlers ──────────────────────────────────────────────────────────────────
from teamreg.handlers.common import router as common_router
from teamreg.handlers.registration import router as registration_router
from teamreg.handlers.fallback import router as fallback_router

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stdout,
    )


def build_dispatcher(api_client: RegistrationApiClient) -> Dispatcher:
    dp = Dispatcher(storage=MemoryStorage())

    # ── Global error handler: ensures callbacks are always answered ──────────
    @dp.errors()
    async def handle_error(event: ErrorEvent) -> None:
        logger.exception("Unhandled error: %s", event.exception)
        update = event.update
        if update.callback_query:
            try:
                await update.callback_query.answer(
                    "⚠️ Something went wrong. Please try again.", show_alert=True
                )
            except TelegramBadRequest:
                pass  # query already answered or expired

    dp.update.middleware(ApiClientMiddleware(api_client))

    # ── Routers: order matters for handler priority ───────────────────────────
    dp.include_router(common_router)
    dp.include_router(registration_router)

    # !! Must be last: catches any callback not handled above !!
    dp.include_router(fallback_router)

    return dp


def watch_polling(polling: asyncio.Task, shutdown_event: asyncio.Event) -> None:
    """Stop the whole service if bot polling ends on its own (e.g. bad token)."""

    def _done(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Bot polling stopped: %r", exc, exc_info=exc)
        else:
            logger.warning("Bot polling exited")
        shutdown_event.set()

    polling.add_done_callback(_done)


async def start_api() -> web.AppRunner:
    runner = web.AppRunner(create_app())
    await runner.setup()
    site = web.TCPSite(runner, settings.API_HOST, settings.API_PORT)
    await site.start()
    logger.info("Submission endpoint listening on %s:%s", settings.API_HOST, settings.API_PORT)
    return runner


async def main() -> None:
    logger.info("Starting team registration service…")
    runner = await start_api()

    # ── Graceful shutdown on SIGTERM (Docker / PaaS) ──────────────────────────
    loop = asyncio.get_running_loop()
    shutdown_event = asyncio.Event()

    def _handle_signal():
        logger.info("Received shutdown signal, stopping…")
        shutdown_event.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, _handle_signal)
        except NotImplementedError:
            # Windows does not support add_signal_handler
            pass

    bot = None
    polling = None
    session = aiohttp.ClientSession()
    try:
        if settings.bot_enabled:
            api_client = RegistrationApiClient(
                settings.REGISTRATION_API_URL,
                session,
                timeout=settings.API_TIMEOUT_SECONDS,
            )
            bot = Bot(
                token=settings.BOT_TOKEN,
                default=DefaultBotProperties(parse_mode=ParseMode.HTML),
            )
            dp = build_dispatcher(api_client)
            polling = asyncio.create_task(
                dp.start_polling(
                    bot,
                    allowed_updates=dp.resolve_used_update_types(),
                    handle_signals=False,
                )
            )
            watch_polling(polling, shutdown_event)
            logger.info("Bot is running. Press Ctrl+C to stop.")
        else:
            logger.warning("BOT_TOKEN is not set, running the submission endpoint only.")

        await shutdown_event.wait()
    finally:
        logger.info("Shutting down…")
        if polling is not None and not polling.done():
            polling.cancel()
            try:
                await polling
            except asyncio.CancelledError:
                pass
        if bot is not None:
            await bot.session.close()
        await session.close()
        await runner.cleanup()
        logger.info("Shutdown complete.")


def run() -> None:
    setup_logging()
    asyncio.run(main())


if __name__ == "__main__":
    run()
