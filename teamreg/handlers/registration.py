"""
Team registration wizard: chat handlers.

Flow:
  "Register team" → team info → problem track → members → review → submit ✅

Every step is one message card with inline buttons.  Field values are typed
as plain text while the FSM sits in ``enter_value``.  The WizardController is
kept in FSM data under ``wizard`` and rebuilt on every update.
"""
import logging
from typing import List, Set, Tuple

from aiogram import F, Router, html
from aiogram.enums import ParseMode
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import StateFilter
from aiogram.fsm.context import FSMContext
from aiogram.fsm.storage.base import StorageKey
from aiogram.types import CallbackQuery, InlineKeyboardMarkup, Message

from teamreg.config import settings
from teamreg.keyboards import (
    MainMenuCb, TrackCb, WizardCb,
    team_info_kb, problem_track_kb, members_kb, review_kb, cancel_input_kb, back_to_main,
)
from teamreg.keyboards.registration_kb import TEAM_INFO_BUTTONS
from teamreg.services.api_client import RegistrationApiClient
from teamreg.services.wizard_service import (
    MAX_MEMBERS, MEMBERS, MIN_MEMBERS, PROBLEM_TRACK, STEP_TITLES, TEAM_INFO,
    WizardController,
)
from teamreg.states import STEP_STATES, RegistrationStates

logger = logging.getLogger(__name__)
router = Router(name="registration")

WIZARD_KEY  = "wizard"
PENDING_KEY = "pending"

ALERT_LIMIT = 200  # Telegram cap on callback alert text

# Chats whose registration is currently being sent
_in_flight: Set[StorageKey] = set()

FIELD_LABELS = dict(TEAM_INFO_BUTTONS)
MEMBER_LABELS = {"name": "name", "email": "email"}


# ── Rendering ─────────────────────────────────────────────────────────────────

def _value(text: str) -> str:
    return html.quote(text) if text.strip() else "—"


def _error(wizard: WizardController, key: str) -> str:
    msg = wizard.errors.get(key)
    return f"\n   ⚠️ <i>{html.quote(msg)}</i>" if msg else ""


def render_step(wizard: WizardController, tracks: List[str]) -> Tuple[str, InlineKeyboardMarkup]:
    """Text + keyboard for the wizard's current step."""
    step = wizard.current_step
    title, description = STEP_TITLES[step]
    f = wizard.form
    header = (
        f"📝 <b>Team registration</b> · step {step + 1}/{len(STEP_TITLES)}\n"
        f"<b>{title}</b> — {description}\n\n"
    )

    if step == TEAM_INFO:
        body = (
            f"🏷 Team name: {_value(f.team_name)}{_error(wizard, 'teamName')}\n"
            f"👤 Leader: {_value(f.team_leader_name)}{_error(wizard, 'teamLeaderName')}\n"
            f"✉️ Email: {_value(f.team_leader_email)}{_error(wizard, 'teamLeaderEmail')}\n"
            f"📞 Phone: {_value(f.team_leader_phone)}{_error(wizard, 'teamLeaderPhone')}"
        )
        return header + body, team_info_kb()

    if step == PROBLEM_TRACK:
        if tracks:
            body = f"🎯 Selected: {_value(f.problem_track)}{_error(wizard, 'problemTrack')}"
        else:
            body = "⚠️ No problem tracks are configured yet."
        return header + body, problem_track_kb(tracks, f.problem_track)

    if step == MEMBERS:
        lines = [f"👑 1. {_value(f.team_leader_name)} (leader)"]
        for i, m in enumerate(f.members):
            lines.append(f"👤 {i + 2}. {_value(m['name'])} · {_value(m['email'])}")
        body = "\n".join(lines) + _error(wizard, "members")
        kb = members_kb(
            f.members,
            can_add=len(f.members) < MAX_MEMBERS,
            can_remove=len(f.members) > MIN_MEMBERS,
        )
        return header + body, kb

    payload = wizard.build_payload()
    member_lines = "\n".join(
        f"   • {html.quote(m['name'])} ({html.quote(m['email'])})" for m in payload["members"]
    )
    body = (
        f"🏷 Team: <b>{_value(f.team_name)}</b>\n"
        f"👤 Leader: {_value(f.team_leader_name)}\n"
        f"✉️ {_value(f.team_leader_email)} · 📞 {_value(f.team_leader_phone)}\n"
        f"🎯 Track: {_value(f.problem_track)}\n"
        f"👥 Team size: {payload['teamSize']}\n"
        f"{member_lines}"
    )
    return header + body, review_kb()


# ── Helpers ───────────────────────────────────────────────────────────────────

async def _load(state: FSMContext) -> WizardController:
    data = await state.get_data()
    return WizardController.from_dict(data.get(WIZARD_KEY))


async def _save(state: FSMContext, wizard: WizardController) -> None:
    await state.update_data({WIZARD_KEY: wizard.to_dict()})


async def _show(callback: CallbackQuery, wizard: WizardController) -> None:
    text, kb = render_step(wizard, settings.problem_tracks_list)
    try:
        await callback.message.edit_text(text, parse_mode=ParseMode.HTML, reply_markup=kb)
    except TelegramBadRequest as exc:
        # "message is not modified" when a button changes nothing visible
        logger.debug("Card not updated: %s", exc)


async def _persist_and_show(callback: CallbackQuery, state: FSMContext, wizard: WizardController) -> None:
    await state.set_state(STEP_STATES[wizard.current_step])
    await _save(state, wizard)
    await _show(callback, wizard)


# ── Entry: "Register team" button ─────────────────────────────────────────────

@router.callback_query(MainMenuCb.filter(F.action == "register"))
async def cq_start_registration(callback: CallbackQuery, state: FSMContext) -> None:
    await state.clear()
    wizard = WizardController()
    await _persist_and_show(callback, state, wizard)
    await callback.answer()


# ── Field input ───────────────────────────────────────────────────────────────

@router.callback_query(WizardCb.filter(F.action == "edit"), StateFilter(RegistrationStates.team_info))
async def cq_edit_field(callback: CallbackQuery, callback_data: WizardCb, state: FSMContext) -> None:
    label = FIELD_LABELS.get(callback_data.field)
    if label is None:
        await callback.answer()
        return

    await state.update_data({PENDING_KEY: {"field": callback_data.field}})
    await state.set_state(RegistrationStates.enter_value)
    await callback.message.edit_text(
        f"✏️ Send the <b>{label}</b>:",
        parse_mode=ParseMode.HTML,
        reply_markup=cancel_input_kb(),
    )
    await callback.answer()


@router.callback_query(WizardCb.filter(F.action == "edit_member"), StateFilter(RegistrationStates.members))
async def cq_edit_member(callback: CallbackQuery, callback_data: WizardCb, state: FSMContext) -> None:
    wizard = await _load(state)
    if callback_data.field not in MEMBER_LABELS or callback_data.idx >= len(wizard.form.members):
        await callback.answer()
        return

    await state.update_data(
        {PENDING_KEY: {"member": callback_data.idx, "field": callback_data.field}}
    )
    await state.set_state(RegistrationStates.enter_value)
    await callback.message.edit_text(
        f"✏️ Send the {MEMBER_LABELS[callback_data.field]} of member #{callback_data.idx + 2}:",
        parse_mode=ParseMode.HTML,
        reply_markup=cancel_input_kb(),
    )
    await callback.answer()


@router.message(RegistrationStates.enter_value)
async def msg_field_value(message: Message, state: FSMContext) -> None:
    value = message.text.strip() if message.text else ""
    if not value:
        await message.answer("⚠️ Please send the value as text:", reply_markup=cancel_input_kb())
        return

    data    = await state.get_data()
    pending = data.get(PENDING_KEY) or {}
    wizard  = WizardController.from_dict(data.get(WIZARD_KEY))

    if "member" in pending:
        index = pending["member"]
        if index < len(wizard.form.members):
            wizard.set_member_field(index, pending["field"], value)
        wizard.errors.pop("members", None)
    elif pending.get("field"):
        wizard.set_field(pending["field"], value)
        wizard.errors.pop(pending["field"], None)

    await state.update_data({PENDING_KEY: None})
    await state.set_state(STEP_STATES[wizard.current_step])
    await _save(state, wizard)

    text, kb = render_step(wizard, settings.problem_tracks_list)
    await message.answer(text, parse_mode=ParseMode.HTML, reply_markup=kb)


# ── Step 1: problem track ─────────────────────────────────────────────────────

@router.callback_query(TrackCb.filter(), StateFilter(RegistrationStates.problem_track))
async def cq_track_selected(callback: CallbackQuery, callback_data: TrackCb, state: FSMContext) -> None:
    tracks = settings.problem_tracks_list
    if not 0 <= callback_data.idx < len(tracks):
        await callback.answer("Track not found.", show_alert=True)
        return

    wizard = await _load(state)
    wizard.set_field("problemTrack", tracks[callback_data.idx])
    wizard.errors.pop("problemTrack", None)
    await _persist_and_show(callback, state, wizard)
    await callback.answer()


# ── Step 2: members ───────────────────────────────────────────────────────────

@router.callback_query(WizardCb.filter(F.action == "add"), StateFilter(RegistrationStates.members))
async def cq_add_member(callback: CallbackQuery, state: FSMContext) -> None:
    wizard = await _load(state)
    if not wizard.add_member():
        await callback.answer(f"A team has at most {MAX_MEMBERS + 1} people.", show_alert=True)
        return
    await _persist_and_show(callback, state, wizard)
    await callback.answer()


@router.callback_query(WizardCb.filter(F.action == "remove"), StateFilter(RegistrationStates.members))
async def cq_remove_member(callback: CallbackQuery, callback_data: WizardCb, state: FSMContext) -> None:
    wizard = await _load(state)
    if not wizard.remove_member(callback_data.idx):
        await callback.answer(f"A team needs at least {MIN_MEMBERS + 1} people.", show_alert=True)
        return
    await _persist_and_show(callback, state, wizard)
    await callback.answer()


# ── Navigation ────────────────────────────────────────────────────────────────

@router.callback_query(WizardCb.filter(F.action == "next"), StateFilter(*STEP_STATES))
async def cq_next(callback: CallbackQuery, state: FSMContext) -> None:
    wizard = await _load(state)
    moved  = wizard.advance()
    await _persist_and_show(callback, state, wizard)
    if moved:
        await callback.answer()
    else:
        await callback.answer("⚠️ Please fix the highlighted fields.")


@router.callback_query(WizardCb.filter(F.action == "back"), StateFilter(*STEP_STATES))
async def cq_back(callback: CallbackQuery, state: FSMContext) -> None:
    wizard = await _load(state)
    wizard.retreat()
    await _persist_and_show(callback, state, wizard)
    await callback.answer()


# ── Step 3: submit ────────────────────────────────────────────────────────────

@router.callback_query(WizardCb.filter(F.action == "submit"), StateFilter(RegistrationStates.review))
async def cq_submit(
    callback: CallbackQuery,
    state: FSMContext,
    api_client: RegistrationApiClient,
) -> None:
    # Checked and claimed with no await in between: concurrent taps of one
    # chat run as separate tasks and must not both reach the endpoint.
    if state.key in _in_flight:
        await callback.answer("⏳ Registration is already being sent…")
        return
    _in_flight.add(state.key)

    try:
        wizard = await _load(state)
        wizard.is_submitting = True
        await _save(state, wizard)
        try:
            outcome = await wizard.submit(api_client)
        finally:
            wizard.is_submitting = False
            await _save(state, wizard)
    finally:
        _in_flight.discard(state.key)

    if not outcome.success:
        alert = f"Registration failed: {outcome.message}"
        await callback.answer(alert[:ALERT_LIMIT], show_alert=True)
        return

    await state.clear()
    await callback.message.edit_text(
        f"🎉 <b>Registration complete!</b>\n\n"
        f"🏷 {html.quote(wizard.form.team_name)}\n"
        f"🆔 Team ID: <code>{html.quote(outcome.team_id or '')}</code>\n\n"
        f"{html.quote(outcome.message)}",
        parse_mode=ParseMode.HTML,
        reply_markup=back_to_main(),
    )
    await callback.answer("✅ Registered!")
