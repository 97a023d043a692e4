"""
Keyboards for the team registration wizard.
"""
from typing import Dict, List

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup
from aiogram.utils.keyboard import InlineKeyboardBuilder

from teamreg.keyboards.callbacks import MainMenuCb, TrackCb, WizardCb

TEAM_INFO_BUTTONS = (
    ("teamName",        "🏷 Team name"),
    ("teamLeaderName",  "👤 Leader name"),
    ("teamLeaderEmail", "✉️ Leader email"),
    ("teamLeaderPhone", "📞 Leader phone"),
)


def _cancel_row(builder: InlineKeyboardBuilder) -> None:
    builder.row(InlineKeyboardButton(text="❌ Cancel", callback_data=MainMenuCb(action="main").pack()))


def _nav_row(builder: InlineKeyboardBuilder, back: bool = True, forward: str = "next") -> None:
    buttons = []
    if back:
        buttons.append(InlineKeyboardButton(text="◀️ Back", callback_data=WizardCb(action="back").pack()))
    label = "✅ Submit" if forward == "submit" else "Next ▶️"
    buttons.append(InlineKeyboardButton(text=label, callback_data=WizardCb(action=forward).pack()))
    builder.row(*buttons)


def team_info_kb() -> InlineKeyboardMarkup:
    """Step 0: one button per leader/team field."""
    builder = InlineKeyboardBuilder()
    for field, label in TEAM_INFO_BUTTONS:
        builder.button(text=label, callback_data=WizardCb(action="edit", field=field).pack())
    builder.adjust(2)
    _nav_row(builder, back=False)
    _cancel_row(builder)
    return builder.as_markup()


def problem_track_kb(tracks: List[str], selected: str = "") -> InlineKeyboardMarkup:
    """Step 1: the challenge catalog, current choice ticked."""
    builder = InlineKeyboardBuilder()
    for i, track in enumerate(tracks):
        mark = "✅ " if track == selected else ""
        builder.row(InlineKeyboardButton(text=f"{mark}{track}", callback_data=TrackCb(idx=i).pack()))
    _nav_row(builder)
    _cancel_row(builder)
    return builder.as_markup()


def members_kb(members: List[Dict[str, str]], can_add: bool, can_remove: bool) -> InlineKeyboardMarkup:
    """Step 2: edit / remove each member slot, add another one."""
    builder = InlineKeyboardBuilder()
    for i, _ in enumerate(members):
        n = i + 2  # leader is member 1
        row = [
            InlineKeyboardButton(
                text=f"👤 Name #{n}",
                callback_data=WizardCb(action="edit_member", field="name", idx=i).pack(),
            ),
            InlineKeyboardButton(
                text=f"✉️ Email #{n}",
                callback_data=WizardCb(action="edit_member", field="email", idx=i).pack(),
            ),
        ]
        if can_remove:
            row.append(
                InlineKeyboardButton(text="➖", callback_data=WizardCb(action="remove", idx=i).pack())
            )
        builder.row(*row)
    if can_add:
        builder.row(InlineKeyboardButton(text="➕ Add member", callback_data=WizardCb(action="add").pack()))
    _nav_row(builder)
    _cancel_row(builder)
    return builder.as_markup()


def review_kb() -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    _nav_row(builder, forward="submit")
    _cancel_row(builder)
    return builder.as_markup()


def cancel_input_kb() -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    _cancel_row(builder)
    return builder.as_markup()
