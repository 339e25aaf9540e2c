import logging
import platform
import subprocess
from typing import Optional


def _escape_applescript(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


class DesktopNotifier:
    """Fire-and-forget desktop notifications (macOS Notification Center)."""

    def __init__(self, system: Optional[str] = None):
        self.system = system or platform.system()
        self.logger = logging.getLogger(__name__)

    def notify_user(self, title: str, message: str) -> bool:
        """Shows a notification. Returns False when it could not be delivered."""
        if self.system != "Darwin":
            self.logger.debug(f"Notifications unsupported on {self.system}: {title}")
            return False

        script = f'display notification "{_escape_applescript(message)}" with title "{_escape_applescript(title)}"'
        try:
            result = subprocess.run(["osascript", "-e", script], capture_output=True, text=True, timeout=5)
        except (OSError, subprocess.SubprocessError) as e:
            self.logger.warning(f"Notification failed: {e}")
            return False
        if result.returncode != 0:
            self.logger.warning(f"Notification failed: {result.stderr.strip()}")
            return False
        return True
