import pytest

from timer_cli.exceptions import StoreUnavailable
from timer_cli.services.alert.popup import cancel_requested
from timer_cli.services.alert.sound import LINUX_DEFAULT_SOUND, MAC_DEFAULT_SOUND, default_sound_path


def test_cancel_check_passes_through_answer():
    assert cancel_requested(lambda: True) is True
    assert cancel_requested(lambda: False) is False


def test_failed_cancel_check_keeps_alert_open():
    calls = []

    def flaky():
        calls.append(1)
        if len(calls) == 1:
            raise StoreUnavailable("database is locked")
        return True

    assert cancel_requested(flaky) is False
    assert cancel_requested(flaky) is True


def test_unexpected_errors_still_propagate():
    def broken():
        raise RuntimeError("bug")

    with pytest.raises(RuntimeError):
        cancel_requested(broken)


def test_default_sound_is_a_posix_path():
    assert default_sound_path() in (LINUX_DEFAULT_SOUND, MAC_DEFAULT_SOUND)
