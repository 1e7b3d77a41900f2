"""
Unit tests for the eligibility rules.

The validator is pure, so plain namespaces stand in for ORM rows.
"""
from types import SimpleNamespace as Row

import pytest

from scorekeeper.errors import (
    CapacityExceededError,
    DuplicateRegistrationError,
    InactiveEntityError,
    InvalidDocumentError,
    LifecycleViolationError,
    TeamMismatchError,
    UnremovableEntityError,
)
from scorekeeper.orm import Status
from scorekeeper.services import eligibility_validator as rules
from scorekeeper.tests.factories import build_cpf


class TestDocumentValidity:
    """Rule 1: national document checksum."""

    @pytest.mark.parametrize("document", ["52998224725", "11144477735", "12345678909", "529.982.247-25"])
    def test_valid_documents(self, document):
        assert rules.is_valid_document(document) is True

    @pytest.mark.parametrize("document", ["52998224726", "11111111111", "123", "", None, "5299822472a"])
    def test_invalid_documents(self, document):
        assert rules.is_valid_document(document) is False

    def test_generated_check_digits_are_accepted(self):
        assert rules.is_valid_document(build_cpf("100000001"))

    def test_validate_returns_normalized_digits(self):
        assert rules.validate_document("529.982.247-25") == "52998224725"

    def test_validate_raises_with_rule_context(self):
        with pytest.raises(InvalidDocumentError) as exc_info:
            rules.validate_document("52998224726")
        assert exc_info.value.status_code == 422
        assert exc_info.value.details["rule"] == "document_validity"
        assert exc_info.value.details["document"] == "52998224726"


class TestActiveStatus:
    """Rule 2: both participant and team must be active."""

    def test_both_active_passes(self):
        rules.validate_participant_and_team_active(Row(id=1, is_active=True), Row(id=2, is_active=True))

    def test_inactive_participant_is_named(self):
        with pytest.raises(InactiveEntityError) as exc_info:
            rules.validate_participant_and_team_active(Row(id=1, is_active=False), Row(id=2, is_active=True))
        assert exc_info.value.entity == "participant"

    def test_inactive_team_is_named(self):
        with pytest.raises(InactiveEntityError) as exc_info:
            rules.validate_participant_and_team_active(Row(id=1, is_active=True), Row(id=2, is_active=False))
        assert exc_info.value.entity == "team"
        assert exc_info.value.details["id"] == 2


class TestEditionUniqueness:
    """Rule 3: a second registration in the same edition replaces the first."""

    def test_finds_registration_for_same_edition(self):
        existing = Row(id=7, edition_id=3, team_id=1)
        other = Row(id=8, edition_id=4, team_id=1)
        assert rules.find_registration_to_replace([other, existing], 3) is existing

    def test_nothing_to_replace(self):
        assert rules.find_registration_to_replace([Row(id=8, edition_id=4, team_id=1)], 3) is None


class TestEventEnrollment:
    """Rules 4 and 5."""

    def test_team_consistency_passes(self):
        event = Row(id=10, edition_id=3)
        rules.validate_team_for_event(1, [Row(edition_id=3, team_id=5)], 5, event)

    def test_team_in_other_edition_does_not_count(self):
        event = Row(id=10, edition_id=3)
        with pytest.raises(TeamMismatchError):
            rules.validate_team_for_event(1, [Row(edition_id=2, team_id=5)], 5, event)

    def test_other_team_in_same_edition_is_mismatch(self):
        event = Row(id=10, edition_id=3)
        with pytest.raises(TeamMismatchError) as exc_info:
            rules.validate_team_for_event(1, [Row(edition_id=3, team_id=6)], 5, event)
        assert exc_info.value.details == {
            "rule": "event_team_consistency", "participant_id": 1, "team_id": 5, "event_id": 10
        }

    def test_capacity_below_limit(self):
        rules.validate_event_capacity(5, Row(id=10, max_participants_per_team=2), 1)

    def test_capacity_reached(self):
        with pytest.raises(CapacityExceededError) as exc_info:
            rules.validate_event_capacity(5, Row(id=10, max_participants_per_team=2), 2)
        assert exc_info.value.details["capacity"] == 2

    def test_no_capacity_means_unlimited(self):
        rules.validate_event_capacity(5, Row(id=10, max_participants_per_team=None), 10_000)

    def test_already_enrolled_is_duplicate(self):
        with pytest.raises(DuplicateRegistrationError) as exc_info:
            rules.validate_not_already_in_event(1, 10, {1, 2})
        assert exc_info.value.status_code == 409


class TestRemovalLifecycle:
    """Rule 6: removals only while SCHEDULED and without dependents."""

    def test_edition_registration_removable_when_scheduled(self):
        registration = Row(id=1, team_id=5, edition_id=3)
        rules.validate_edition_registration_removal(registration, Status.SCHEDULED, [])

    @pytest.mark.parametrize("status", [Status.IN_PROGRESS, Status.ENDED, Status.CANCELED])
    def test_edition_registration_locked_outside_scheduled(self, status):
        registration = Row(id=1, team_id=5, edition_id=3)
        with pytest.raises(LifecycleViolationError):
            rules.validate_edition_registration_removal(registration, status, [])

    def test_edition_registration_with_dependent_event_registration(self):
        registration = Row(id=1, team_id=5, edition_id=3)
        dependent = Row(id=9, team_id=5)
        with pytest.raises(LifecycleViolationError) as exc_info:
            rules.validate_edition_registration_removal(registration, Status.SCHEDULED, [dependent])
        assert exc_info.value.details["dependent_registration_ids"] == [9]

    def test_enrollment_under_other_team_is_not_a_dependent(self):
        registration = Row(id=1, team_id=5, edition_id=3)
        unrelated = Row(id=9, team_id=6)
        rules.validate_edition_registration_removal(registration, Status.SCHEDULED, [unrelated])

    def test_event_registration_removal(self):
        rules.validate_event_registration_removal(Row(id=1), Status.SCHEDULED)
        with pytest.raises(LifecycleViolationError):
            rules.validate_event_registration_removal(Row(id=1), Status.IN_PROGRESS)


class TestParticipantRemoval:
    """Rule 7 plus the deactivation check."""

    def test_no_registrations_is_removable(self):
        rules.validate_participant_removal(Row(id=1), [], {})

    def test_single_scheduled_registration_is_removable(self):
        rules.validate_participant_removal(Row(id=1), [Row(edition_id=3)], {3: Status.SCHEDULED})

    def test_two_registrations_block_removal(self):
        with pytest.raises(UnremovableEntityError):
            rules.validate_participant_removal(
                Row(id=1), [Row(edition_id=3), Row(edition_id=4)],
                {3: Status.SCHEDULED, 4: Status.SCHEDULED}
            )

    def test_single_ended_registration_blocks_removal(self):
        with pytest.raises(UnremovableEntityError):
            rules.validate_participant_removal(Row(id=1), [Row(edition_id=3)], {3: Status.ENDED})

    def test_deactivation_blocked_in_progress(self):
        with pytest.raises(UnremovableEntityError):
            rules.validate_participant_deactivation(Row(id=1), [Row(edition_id=3)], {3: Status.IN_PROGRESS})
        rules.validate_participant_deactivation(Row(id=1), [Row(edition_id=3)], {3: Status.ENDED})


class TestTeamRemoval:
    """Rule 8."""

    def test_deactivation_blocked_by_in_progress_score(self):
        with pytest.raises(UnremovableEntityError) as exc_info:
            rules.validate_team_deactivation(Row(id=5), [Row(edition_id=3)], {3: Status.IN_PROGRESS})
        assert exc_info.value.details["entity"] == "team"

    def test_deactivation_allowed_with_finished_scores(self):
        rules.validate_team_deactivation(Row(id=5), [Row(edition_id=3)], {3: Status.ENDED})

    def test_deletion_requires_no_scores(self):
        rules.validate_team_removal(Row(id=5), 0, 0)
        with pytest.raises(UnremovableEntityError):
            rules.validate_team_removal(Row(id=5), 1, 0)

    def test_deletion_requires_no_registrations(self):
        with pytest.raises(UnremovableEntityError) as exc_info:
            rules.validate_team_removal(Row(id=5), 0, 2)
        assert exc_info.value.details["entity"] == "team"
