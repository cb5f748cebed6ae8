"""
Typed failures raised by the regimen core.

User-input errors are expected and shown inline next to the offending control.
DataIntegrityViolation means the record store holds overlapping revisions,
which only a bug upstream can produce; callers report it separately.
"""


class RegimenError(Exception):
    """Base class for every failure the core reports to its caller."""

    code = "regimen_error"
    user_message = "Something went wrong."
    is_integrity_fault = False

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail or self.user_message)
        self.detail = detail or self.user_message


class UserInputError(RegimenError):
    """Malformed input; surface it next to the control that produced it."""


class InvalidDate(UserInputError):
    code = "invalid_date"
    user_message = "Choose a date that is not in the future."


class InvalidName(UserInputError):
    code = "invalid_name"
    user_message = "Enter a medication name."


class InvalidAmount(UserInputError):
    code = "invalid_amount"
    user_message = "Enter a dose amount greater than zero."


class InvalidTimestamp(UserInputError):
    code = "invalid_timestamp"
    user_message = "Dose time cannot be in the future."


class InvalidInput(UserInputError):
    """A value the domain models rejected outright."""

    code = "invalid_input"
    user_message = "Check the values you entered."


class PreconditionError(RegimenError):
    """The medication is not in a state that allows the operation."""


class NotDiuretic(PreconditionError):
    code = "not_diuretic"
    user_message = "Doses can only be logged for diuretic medications."


class MedicationInactive(PreconditionError):
    code = "medication_inactive"
    user_message = "This medication has been discontinued."


class MedicationAlreadyActive(PreconditionError):
    code = "medication_already_active"
    user_message = "This medication is already active."


class NotFound(RegimenError):
    code = "not_found"
    user_message = "Could not complete the action."


class DataIntegrityViolation(RegimenError):
    code = "data_integrity_violation"
    user_message = "Medication history is inconsistent. Please report this problem."
    is_integrity_fault = True

    def __init__(self, detail: str = "", medication_id: str | None = None) -> None:
        super().__init__(detail)
        self.medication_id = medication_id
