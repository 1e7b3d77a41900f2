"""
Eligibility Validator

Stateless rule evaluation for registrations, de-registrations, removals and
status changes. Every rule receives explicit snapshots (entities, statuses,
live counts) and never touches the database, so evaluation is deterministic
and side-effect free.

Rules, in evaluation order:
1. Document validity
2. Participant and team active
3. Edition registration uniqueness (overwrite, not error)
4. Event team consistency
5. Event capacity
6. Lifecycle gating for removal
7. Participant deletion gating
8. Team deactivation / deletion gating
"""
import re
from typing import Optional, Iterable, Mapping

from scorekeeper.errors import (
    InvalidDocumentError,
    InactiveEntityError,
    TeamMismatchError,
    CapacityExceededError,
    LifecycleViolationError,
    UnremovableEntityError,
    DuplicateRegistrationError,
)
from scorekeeper.orm.edition import Status

DOCUMENT_LENGTH = 11

_MASK_CHARACTERS = re.compile(r"[.\-\s]")


# ================= RULE 1: DOCUMENT VALIDITY =================

def normalize_document(document: Optional[str]) -> str:
    """Strip the usual mask characters ("123.456.789-09" -> "12345678909")."""
    if document is None:
        return ""
    return _MASK_CHARACTERS.sub("", document)


def _check_digit(digits: str) -> int:
    weight = len(digits) + 1
    total = sum(int(d) * (weight - i) for i, d in enumerate(digits))
    remainder = total % 11
    return 0 if remainder < 2 else 11 - remainder


def is_valid_document(document: Optional[str]) -> bool:
    """
    Checksum rule for the national document id.

    Eleven digits, not all equal, with the last two digits being the
    mod-11 check digits of the preceding nine and ten digits.
    """
    digits = normalize_document(document)
    if len(digits) != DOCUMENT_LENGTH or not digits.isdigit():
        return False
    if len(set(digits)) == 1:
        return False
    first = _check_digit(digits[:9])
    second = _check_digit(digits[:9] + str(first))
    return digits[9:] == f"{first}{second}"


def validate_document(document: Optional[str]) -> str:
    """Return the normalized document or raise InvalidDocumentError."""
    if not is_valid_document(document):
        raise InvalidDocumentError(document)
    return normalize_document(document)


# ================= RULE 2: ACTIVE STATUS =================

def validate_participant_and_team_active(participant, team) -> None:
    if not participant.is_active:
        raise InactiveEntityError("participant", participant.id)
    if not team.is_active:
        raise InactiveEntityError("team", team.id)


# ================= RULE 3: EDITION UNIQUENESS =================

def find_registration_to_replace(edition_registrations: Iterable, edition_id: int):
    """
    Registering again for the same edition replaces the prior registration.
    Returns the registration the caller must delete first, or None.
    """
    for registration in edition_registrations:
        if registration.edition_id == edition_id:
            return registration
    return None


# ================= RULES 4-5: EVENT ENROLLMENT =================

def validate_team_for_event(participant_id: int, edition_registrations: Iterable, team_id: int, event) -> None:
    """The participant must already play for team_id in the event's edition."""
    for registration in edition_registrations:
        if registration.edition_id == event.edition_id and registration.team_id == team_id:
            return
    raise TeamMismatchError(participant_id, team_id, event.id)


def validate_not_already_in_event(participant_id: int, event_id: int, enrolled_participant_ids) -> None:
    if participant_id in enrolled_participant_ids:
        raise DuplicateRegistrationError(participant_id, event_id)


def validate_event_capacity(team_id: int, event, registered_count: int) -> None:
    """
    registered_count is the live count of EventRegistrations for (team, event)
    supplied by the caller. No maximum configured means no limit.
    """
    capacity = event.max_participants_per_team
    if capacity is None:
        return
    if registered_count >= capacity:
        raise CapacityExceededError(team_id, event.id, capacity)


# ================= RULE 6: REMOVAL LIFECYCLE =================

def validate_edition_registration_removal(registration, edition_status: Status, edition_event_registrations: Iterable) -> None:
    """
    edition_event_registrations are the participant's event registrations for
    events of the registration's edition.
    """
    if edition_status != Status.SCHEDULED:
        raise LifecycleViolationError(
            f"Edition registration {registration.id} cannot be removed: edition is {edition_status.value}",
            details={"registration_id": registration.id, "edition_status": edition_status.value}
        )
    dependents = [er.id for er in edition_event_registrations if er.team_id == registration.team_id]
    if dependents:
        raise LifecycleViolationError(
            f"Edition registration {registration.id} cannot be removed while "
            f"{len(dependents)} event registration(s) depend on it",
            details={"registration_id": registration.id, "dependent_registration_ids": dependents}
        )


def validate_event_registration_removal(registration, event_status: Status) -> None:
    if event_status != Status.SCHEDULED:
        raise LifecycleViolationError(
            f"Event registration {registration.id} cannot be removed: event is {event_status.value}",
            details={"registration_id": registration.id, "event_status": event_status.value}
        )


# ================= RULE 7: PARTICIPANT DELETION =================

def validate_participant_removal(participant, edition_registrations: list, edition_statuses: Mapping[int, Status]) -> None:
    if len(edition_registrations) >= 2:
        raise UnremovableEntityError(
            "participant", participant.id,
            f"registered in {len(edition_registrations)} editions"
        )
    if edition_registrations:
        status = edition_statuses[edition_registrations[0].edition_id]
        if status != Status.SCHEDULED:
            raise UnremovableEntityError(
                "participant", participant.id,
                f"registered in an edition that is {status.value}"
            )


def validate_participant_deactivation(participant, edition_registrations: Iterable, edition_statuses: Mapping[int, Status]) -> None:
    for registration in edition_registrations:
        if edition_statuses.get(registration.edition_id) == Status.IN_PROGRESS:
            raise UnremovableEntityError(
                "participant", participant.id,
                f"registered in edition {registration.edition_id}, which is in progress"
            )


# ================= RULE 8: TEAM DEACTIVATION / DELETION =================

def validate_team_deactivation(team, team_scores: Iterable, edition_statuses: Mapping[int, Status]) -> None:
    for score in team_scores:
        if edition_statuses.get(score.edition_id) == Status.IN_PROGRESS:
            raise UnremovableEntityError(
                "team", team.id,
                f"holds scores in edition {score.edition_id}, which is in progress"
            )


def validate_team_removal(team, score_count: int, registration_count: int) -> None:
    """A team is deletable only while nothing references it."""
    if score_count > 0:
        raise UnremovableEntityError("team", team.id, f"holds {score_count} score record(s)")
    if registration_count > 0:
        raise UnremovableEntityError("team", team.id, f"is referenced by {registration_count} registration(s)")
