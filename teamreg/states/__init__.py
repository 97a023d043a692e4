from teamreg.states.registration_states import RegistrationStates, STEP_STATES

__all__ = ["RegistrationStates", "STEP_STATES"]
