"""
Centralized CallbackData factories.
Telegram limits callback_data to 64 bytes, so all prefixes are kept short.
"""
from aiogram.filters.callback_data import CallbackData


class MainMenuCb(CallbackData, prefix="mm"):
    action: str           # main | register


class WizardCb(CallbackData, prefix="wz"):
    action: str           # edit | edit_member | add | remove | next | back | submit
    field: str = ""       # wire field name (teamName, …) or member field (name | email)
    idx: int = 0          # member slot (0-based)


class TrackCb(CallbackData, prefix="trk"):
    idx: int              # position in the problem-track catalog
