"""
System notification module for SlouchGuard.
Native OS notifications and the alert sound; the audio layer keeps its own
playback cooldown on top of the engine's alert guard.
"""

import logging
import platform
import shutil
import subprocess
import time
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# Players tried in order on Linux
_LINUX_PLAYERS = ("paplay", "aplay", "ffplay")


class SystemNotifier:
    def __init__(self, min_sound_interval_sec: float = 3.0):
        self.system = platform.system()
        self.min_sound_interval_sec = min_sound_interval_sec
        self._last_sound_at: Optional[float] = None
        self._player: Optional[subprocess.Popen] = None
        self._check_requirements()

    def _check_requirements(self):
        """Check if system has required notification tools"""
        self.has_osascript = self.system == "Darwin" and shutil.which('osascript') is not None
        self.has_notify_send = self.system == "Linux" and shutil.which('notify-send') is not None
        self.linux_player = None
        if self.system == "Linux":
            self.linux_player = next((p for p in _LINUX_PLAYERS if shutil.which(p)), None)

    def notify(self, title: str, message: str, urgency: str = "normal") -> bool:
        """
        Send system notification
        Args:
            title: Notification title
            message: Notification message
            urgency: Priority level ("low", "normal", "critical")
        Returns:
            bool: True if notification was sent successfully
        """
        try:
            if self.system == "Darwin" and self.has_osascript:
                script = f'display notification "{_applescript_escape(message)}" with title "{_applescript_escape(title)}"'
                subprocess.run(['osascript', '-e', script], check=True)
                return True

            if self.system == "Linux" and self.has_notify_send:
                subprocess.run(['notify-send', f"--urgency={urgency}", title, message], check=True)
                return True

        except subprocess.SubprocessError as e:
            logger.debug("Notification failed: %s", e)
            return False

        return False  # Unsupported platform

    def play_sound(self, sound_path: Optional[str], now: Optional[float] = None) -> bool:
        """Play a short alert sound without blocking.

        Parameters
        ----------
        sound_path: Path to an audio file accessible locally. If None or the
                    file is missing, nothing is played.
        now: Timestamp in seconds (defaults to time.monotonic()).

        Returns True if playback was started.
        """
        if not sound_path:
            return False
        now = time.monotonic() if now is None else now
        if self._last_sound_at is not None and now - self._last_sound_at < self.min_sound_interval_sec:
            return False
        if self._player_busy():
            logger.debug("Previous alert sound still playing")
            return False

        p = Path(sound_path)
        if not p.exists():
            logger.debug("Alert sound file not found: %s", sound_path)
            return False

        if self.system == 'Darwin':
            cmd = ['afplay', str(p)]
        elif self.linux_player == 'ffplay':
            cmd = ['ffplay', '-nodisp', '-autoexit', '-loglevel', 'quiet', str(p)]
        elif self.linux_player:
            cmd = [self.linux_player, str(p)]
        else:
            logger.debug("Sound playback not available on this platform")
            return False

        try:
            self._player = subprocess.Popen(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        except OSError as e:
            logger.error("Failed to play sound: %s", e)
            return False
        self._last_sound_at = now
        return True

    def _player_busy(self) -> bool:
        """Reap a finished player process; True while one is still running"""
        if self._player is None:
            return False
        if self._player.poll() is None:
            return True
        self._player = None
        return False


def _applescript_escape(text: str) -> str:
    return text.replace('\\', '\\\\').replace('"', '\\"')
