"""
Registration API middleware.
Injects the shared RegistrationApiClient into every handler's data dict
under key "api_client".
"""
from typing import Any, Awaitable, Callable, Dict

from aiogram import BaseMiddleware
from aiogram.types import TelegramObject

from teamreg.services.api_client import RegistrationApiClient


class ApiClientMiddleware(BaseMiddleware):
    def __init__(self, client: RegistrationApiClient) -> None:
        self._client = client

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        data["api_client"] = self._client
        return await handler(event, data)
