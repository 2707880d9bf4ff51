"""
Profile submission state machine.

    DRAFT --submit--> SUBMITTED --retract--> DRAFT

Every transition first checks the deadline, so an expired deadline wins
over any other failing precondition. Resubmitting a submitted profile is
accepted and only renews ``submitted_at``. Values may only change in DRAFT.
"""
from typing import List

from abiboard.core.exceptions import IncompleteSubmissionError, InvalidProfileStateError
from abiboard.models.profile import Profile, ProfileStatus
from abiboard.services.deadline import SubmissionWindow

ALREADY_SUBMITTED_MESSAGE = (
    "Der Steckbrief wurde bereits abgegeben. Ziehe die Abgabe zurück, um ihn zu bearbeiten."
)
NOT_SUBMITTED_MESSAGE = "Der Steckbrief wurde noch nicht abgegeben."


def ensure_editable(profile: Profile, window: SubmissionWindow) -> None:
    """Precondition of every draft save"""
    window.ensure_open()
    if not profile.is_editable:
        raise InvalidProfileStateError(ALREADY_SUBMITTED_MESSAGE, profile.status.value)


def submit(profile: Profile, window: SubmissionWindow, missing: List[str]) -> None:
    """Move to SUBMITTED; ``missing`` is the result of the required-field check"""
    window.ensure_open()
    if missing:
        raise IncompleteSubmissionError(missing)

    profile.status = ProfileStatus.SUBMITTED
    profile.submitted_at = window.now


def retract(profile: Profile, window: SubmissionWindow) -> None:
    """Move back to DRAFT so the student can edit again"""
    window.ensure_open()
    if profile.status != ProfileStatus.SUBMITTED:
        raise InvalidProfileStateError(NOT_SUBMITTED_MESSAGE, profile.status.value)

    profile.status = ProfileStatus.DRAFT
    profile.submitted_at = None
