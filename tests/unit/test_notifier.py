import subprocess
from unittest.mock import patch
from vbe.infrastructure.notifier import DesktopNotifier

def test_notify_on_macos():
    with patch("subprocess.run") as mock_run:
        mock_run.return_value.returncode = 0
        assert DesktopNotifier(system="Darwin").notify_user("Done", 'Encoded "clip.mp4"') is True

    cmd = mock_run.call_args[0][0]
    assert cmd[:2] == ["osascript", "-e"]
    assert 'with title "Done"' in cmd[2]
    assert '\\"clip.mp4\\"' in cmd[2]

def test_notify_unsupported_platform():
    with patch("subprocess.run") as mock_run:
        assert DesktopNotifier(system="Linux").notify_user("Done", "ok") is False
    mock_run.assert_not_called()

def test_notify_failure():
    with patch("subprocess.run", side_effect=subprocess.TimeoutExpired("osascript", 5)):
        assert DesktopNotifier(system="Darwin").notify_user("Done", "ok") is False

    with patch("subprocess.run") as mock_run:
        mock_run.return_value.returncode = 1
        mock_run.return_value.stderr = "not allowed"
        assert DesktopNotifier(system="Darwin").notify_user("Done", "ok") is False
