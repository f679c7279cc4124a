"""
Transition rules for each lock state, exercised directly through accept_code().
"""

import pytest

from passcodelock.errors import InvalidCodeLengthError, PasscodeLockError
from passcodelock.states import (
    MISMATCH_DESCRIPTION,
    MISMATCH_TITLE,
    ChangePasscode,
    ConfirmPasscode,
    EnterPasscode,
    LockMode,
    OutcomeKind,
    RemovePasscode,
    SetPasscode,
    accept_biometrics,
    accept_code,
    initial_state,
)


@pytest.mark.parametrize("mode, expected", [
    (LockMode.ENTER_PASSCODE, EnterPasscode()),
    (LockMode.SET_PASSCODE, SetPasscode()),
    (LockMode.CHANGE_PASSCODE, ChangePasscode()),
    (LockMode.REMOVE_PASSCODE, RemovePasscode()),
    ("set_passcode", SetPasscode()),
])
def test_initial_state_for_each_mode(mode, expected):
    assert initial_state(mode) == expected


def test_set_state_equality_ignores_texts():
    retry = SetPasscode(title=MISMATCH_TITLE, description=MISMATCH_DESCRIPTION)

    assert retry == SetPasscode()
    assert retry.title != SetPasscode().title


def test_unknown_mode_is_rejected():
    with pytest.raises(ValueError):
        initial_state("unlock_everything")


def test_state_flags():
    assert EnterPasscode().is_cancellable is False
    assert EnterPasscode(allow_cancellation=True).is_cancellable is True
    assert EnterPasscode().is_touch_id_allowed is True
    assert RemovePasscode().is_touch_id_allowed is True
    for state in (SetPasscode(), ConfirmPasscode("1234"), ChangePasscode()):
        assert state.is_cancellable is True
        assert state.is_touch_id_allowed is False


def test_enter_correct_code_succeeds_and_resets_attempts(repo, make_config):
    repo.increment_failed_attempts()
    outcome = accept_code(EnterPasscode(), "1234", make_config())

    assert outcome.kind is OutcomeKind.SUCCEED
    assert outcome.code is None
    assert repo.failed_attempts == 0


def test_enter_wrong_code_fails_and_counts(repo, make_config):
    outcome = accept_code(EnterPasscode(), "1235", make_config())

    assert outcome.kind is OutcomeKind.FAIL
    assert outcome.next_state is None
    assert outcome.lockout is False
    assert repo.failed_attempts == 1
    assert repo.get_passcode() == "1234"


def test_lockout_flag_only_at_threshold_crossing(repo, make_config):
    config = make_config(allowed_retries=3)

    flags = [accept_code(EnterPasscode(), "0000", config).lockout for _ in range(5)]

    assert flags == [False, False, True, False, False]
    assert repo.failed_attempts == 5


def test_zero_retries_locks_out_on_first_failure(make_config):
    assert accept_code(EnterPasscode(), "0000", make_config(allowed_retries=0)).lockout is True


def test_unlimited_retries_never_lock_out(make_config):
    config = make_config(allowed_retries=None)

    assert not any(accept_code(EnterPasscode(), "0000", config).lockout for _ in range(20))


def test_enter_without_stored_code_fails_without_counting(empty_repo, make_config):
    outcome = accept_code(EnterPasscode(), "1234", make_config(repository=empty_repo))

    assert outcome.kind is OutcomeKind.FAIL
    assert empty_repo.failed_attempts == 0


def test_set_moves_to_confirm_with_pending_code(empty_repo, make_config):
    outcome = accept_code(SetPasscode(), "4321", make_config(repository=empty_repo))

    assert outcome.kind is OutcomeKind.TRANSITION
    assert outcome.next_state == ConfirmPasscode(pending_code="4321")
    assert empty_repo.get_passcode() is None


def test_confirm_match_stores_code(empty_repo, make_config):
    outcome = accept_code(ConfirmPasscode("4321"), "4321", make_config(repository=empty_repo))

    assert outcome.kind is OutcomeKind.SUCCEED
    assert outcome.code == "4321"
    assert empty_repo.get_passcode() == "4321"


def test_confirm_mismatch_returns_to_set_without_writing(empty_repo, make_config):
    outcome = accept_code(ConfirmPasscode("4321"), "1111", make_config(repository=empty_repo))

    assert outcome.kind is OutcomeKind.FAIL
    assert isinstance(outcome.next_state, SetPasscode)
    assert outcome.next_state.title == MISMATCH_TITLE
    assert outcome.next_state.description == MISMATCH_DESCRIPTION
    assert empty_repo.get_passcode() is None
    assert empty_repo.failed_attempts == 0


def test_change_with_correct_old_code_moves_to_set(repo, make_config):
    outcome = accept_code(ChangePasscode(), "1234", make_config())

    assert outcome.kind is OutcomeKind.TRANSITION
    assert outcome.next_state == SetPasscode()
    assert repo.get_passcode() == "1234"


def test_change_with_wrong_old_code_counts_attempt(repo, make_config):
    outcome = accept_code(ChangePasscode(), "9999", make_config())

    assert outcome.kind is OutcomeKind.FAIL
    assert outcome.next_state is None
    assert repo.failed_attempts == 1


def test_remove_with_correct_code_deletes_passcode(repo, make_config):
    outcome = accept_code(RemovePasscode(), "1234", make_config())

    assert outcome.kind is OutcomeKind.SUCCEED
    assert repo.has_passcode() is False


def test_remove_with_wrong_code_keeps_passcode(repo, make_config):
    outcome = accept_code(RemovePasscode(), "4444", make_config())

    assert outcome.kind is OutcomeKind.FAIL
    assert repo.get_passcode() == "1234"


def test_wrong_length_code_is_an_invariant_violation(make_config):
    with pytest.raises(InvalidCodeLengthError):
        accept_code(EnterPasscode(), "123", make_config())


def test_biometric_success_paths(repo, make_config):
    config = make_config()
    repo.increment_failed_attempts()

    assert accept_biometrics(EnterPasscode(), config).kind is OutcomeKind.SUCCEED
    assert repo.failed_attempts == 1
    assert repo.has_passcode()

    assert accept_biometrics(RemovePasscode(), config).kind is OutcomeKind.SUCCEED
    assert repo.has_passcode() is False

    with pytest.raises(PasscodeLockError):
        accept_biometrics(SetPasscode(), config)
