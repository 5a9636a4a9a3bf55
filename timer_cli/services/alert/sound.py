"""Looping alarm sound through a system audio player"""
import logging
import os
import platform
import shutil
import subprocess
import threading
from typing import List, Optional

logger = logging.getLogger(__name__)

IS_MAC = platform.system() == "Darwin"

LINUX_DEFAULT_SOUND = "/usr/share/sounds/freedesktop/stereo/alarm-clock-elapsed.oga"
MAC_DEFAULT_SOUND = "/System/Library/Sounds/Glass.aiff"


def default_sound_path() -> Optional[str]:
    if IS_MAC:
        return MAC_DEFAULT_SOUND
    return LINUX_DEFAULT_SOUND


def player_command(path: str) -> Optional[List[str]]:
    """First installed player able to play ``path``, as an argv list"""
    if IS_MAC:
        candidates = [["afplay", path]]
    else:
        # Common Linux audio players in order of likelihood
        candidates = [
            ["paplay", path],
            ["mpv", "--no-terminal", "--no-video", path],
            ["ffplay", "-nodisp", "-autoexit", "-loglevel", "quiet", path],
            ["cvlc", "--play-and-exit", "--no-video", "-q", path],
            ["aplay", "-q", path],  # ALSA (wav only)
        ]
    for cmd in candidates:
        if shutil.which(cmd[0]):
            return cmd
    return None


class SoundLoop:
    """
    Replays a sound file until stopped.

    Each repetition is a short-lived player subprocess started from a
    background thread; ``stop`` terminates the one currently playing.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path or default_sound_path()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._current: Optional[subprocess.Popen] = None
        self._lock = threading.Lock()

    def start(self) -> bool:
        """
        Begin playback.

        Returns:
            False if nothing can be played on this machine
        """
        if not self.path or not os.path.exists(self.path):
            logger.warning(f"Alarm sound not found: {self.path}")
            return False
        cmd = player_command(self.path)
        if cmd is None:
            logger.warning("No audio player found (tried paplay, mpv, ffplay, cvlc, aplay, afplay)")
            return False

        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, args=(cmd,), daemon=True)
        self._thread.start()
        return True

    def _loop(self, cmd: List[str]) -> None:
        while not self._stop.is_set():
            try:
                with self._lock:
                    if self._stop.is_set():
                        break
                    self._current = subprocess.Popen(
                        cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
                returncode = self._current.wait()
            except OSError as e:
                logger.warning(f"Audio player failed to start: {e}")
                break
            if returncode != 0 and not self._stop.is_set():
                logger.warning(f"Audio player {cmd[0]} exited with code {returncode}")
                break

    def stop(self) -> None:
        self._stop.set()
        with self._lock:
            if self._current is not None and self._current.poll() is None:
                self._current.terminate()
        if self._thread is not None:
            self._thread.join(timeout=2)
            self._thread = None
        self._current = None
