"""
Common handlers: /start, main menu routing.
"""
import logging

from aiogram import F, Router, html
from aiogram.enums import ParseMode
from aiogram.filters import CommandStart
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message

from teamreg.keyboards import MainMenuCb, main_menu

logger = logging.getLogger(__name__)
router = Router(name="common")

MENU_TEXT = "🚀 <b>Hackathon registration</b>\n\nRegister your team of 2–3 people:"


# ── /start ────────────────────────────────────────────────────────────────────

@router.message(CommandStart())
async def cmd_start(message: Message, state: FSMContext) -> None:
    await state.clear()
    name = message.from_user.first_name if message.from_user else "there"
    text = (
        f"👋 Welcome, {html.quote(name)}!\n\n"
        f"This bot registers your team for the event.\n"
        f"You will need the team name, the leader's contact details,\n"
        f"a problem track and the names and emails of 1–2 teammates.\n\n"
        f"Choose an action:"
    )
    await message.answer(text, parse_mode=ParseMode.HTML, reply_markup=main_menu())


# ── Main menu callback ────────────────────────────────────────────────────────

@router.callback_query(MainMenuCb.filter(F.action == "main"))
async def cq_main_menu(callback: CallbackQuery, state: FSMContext) -> None:
    # Leaving the wizard discards the draft
    await state.clear()
    await callback.message.edit_text(MENU_TEXT, parse_mode=ParseMode.HTML, reply_markup=main_menu())
    await callback.answer()
