from teamreg.keyboards.callbacks import MainMenuCb, WizardCb, TrackCb
from teamreg.keyboards.main_menu import main_menu, back_to_main
from teamreg.keyboards.registration_kb import (
    team_info_kb,
    problem_track_kb,
    members_kb,
    review_kb,
    cancel_input_kb,
)

__all__ = [
    # callbacks
    "MainMenuCb", "WizardCb", "TrackCb",
    # main menu
    "main_menu", "back_to_main",
    # registration
    "team_info_kb", "problem_track_kb", "members_kb", "review_kb", "cancel_input_kb",
]
