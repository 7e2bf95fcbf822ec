"""Audio cue playback through ``pygame.mixer``."""

from __future__ import annotations

import logging
import os

import pygame

_logger = logging.getLogger(__name__)

#: Poll step while waiting for a cue to finish, in milliseconds.
_BUSY_WAIT_MS = 100


class PygameNotifier:
    """Play MP3/WAV cues, blocking until each one finishes.

    The mixer is initialised on first use so that constructing the notifier
    never touches the audio device. Playback problems (missing file, codec,
    no output device) are logged and swallowed: a cue that cannot play must
    not stop the monitor.
    """

    def __init__(self, *, block: bool = True) -> None:
        self._block = block
        self._ready = False

    def _ensure_mixer(self) -> bool:
        if self._ready:
            return True
        try:
            pygame.mixer.init()
        except pygame.error as exc:
            _logger.error("Audio output unavailable: %s", exc)
            return False
        self._ready = True
        return True

    def play(self, path: str) -> None:
        if not path:
            _logger.warning("Audio file not specified")
            return
        if not os.path.isfile(path):
            _logger.error("Audio file not found: %s", path)
            return
        if not self._ensure_mixer():
            return

        try:
            pygame.mixer.music.load(path)
            pygame.mixer.music.play()
        except pygame.error as exc:
            _logger.error("Cannot play audio file %s: %s", path, exc)
            return

        _logger.debug("Playing %s", path)
        if not self._block:
            return
        while pygame.mixer.music.get_busy():
            pygame.time.wait(_BUSY_WAIT_MS)

    def close(self) -> None:
        if self._ready:
            pygame.mixer.quit()
            self._ready = False
