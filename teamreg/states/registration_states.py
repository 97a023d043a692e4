from aiogram.fsm.state import State, StatesGroup


class RegistrationStates(StatesGroup):
    """FSM for the team registration wizard."""
    team_info     = State()   # Step 0: team name + leader contact
    problem_track = State()   # Step 1: pick a challenge
    members       = State()   # Step 2: additional members
    review        = State()   # Step 3: read-only summary → submit
    enter_value   = State()   # Text input for the field picked on the card


STEP_STATES = (
    RegistrationStates.team_info,
    RegistrationStates.problem_track,
    RegistrationStates.members,
    RegistrationStates.review,
)
