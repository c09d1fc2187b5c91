from __future__ import annotations

import importlib
import io
import logging
import subprocess
import sys
import wave
from dataclasses import dataclass
from typing import Protocol

from ..errors import ErrorCategory

log = logging.getLogger(__name__)

_SAMPLE_DTYPES = {1: "uint8", 2: "int16", 4: "int32"}


class Announcer(Protocol):
    def announce(self, text: str) -> None:  # noqa: D401
        """Speak ``text`` aloud."""


class NullAnnouncer:
    """Announcer that stays silent."""

    def announce(self, text: str) -> None:
        return None


@dataclass
class SpeechConfig:
    timeout_s: float = 15.0
    device_id: int | None = None
    platform: str = sys.platform


class SystemAnnouncer:
    """Speak through the platform's speech synthesizer.

    Linux uses ``espeak --stdout`` and plays the returned WAV with
    ``sounddevice``; macOS uses ``say``; Windows uses PowerShell's
    ``System.Speech``. Speech is best effort: any failure is logged and
    swallowed so a missing synthesizer never interrupts the session.
    """

    def __init__(self, cfg: SpeechConfig | None = None) -> None:
        self.cfg = cfg or SpeechConfig()

    def announce(self, text: str) -> None:
        if not text.strip():
            return
        try:
            if self.cfg.platform.startswith("linux"):
                self._play_wav(self._synthesize_espeak(text))
            elif self.cfg.platform == "darwin":
                self._run(["say", text])
            elif self.cfg.platform.startswith("win"):
                self._run(["PowerShell", "-Command", _powershell_script(text)])
            else:
                log.debug("speech_unsupported", extra={"event_type": "speech_unsupported"})
        except (OSError, EOFError, subprocess.SubprocessError, wave.Error) as exc:
            log.warning(
                "speech_failed",
                extra={
                    "event_type": "speech_failed",
                    "error_category": ErrorCategory.SPEECH.value,
                    "error": str(exc),
                },
            )

    def _run(self, argv: list[str]) -> subprocess.CompletedProcess[bytes]:
        return subprocess.run(
            argv,
            check=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            timeout=self.cfg.timeout_s,
        )

    def _synthesize_espeak(self, text: str) -> bytes:
        return self._run(["espeak", "--stdout", text]).stdout

    def _play_wav(self, data: bytes) -> None:
        with wave.open(io.BytesIO(data), "rb") as wav:
            channels = wav.getnchannels()
            width = wav.getsampwidth()
            rate = wav.getframerate()
            frames = wav.readframes(wav.getnframes())
        dtype = _SAMPLE_DTYPES.get(width)
        if dtype is None:
            raise wave.Error(f"unsupported sample width {width}")

        sd = importlib.import_module("sounddevice")
        try:
            with sd.RawOutputStream(
                samplerate=rate,
                channels=channels,
                dtype=dtype,
                device=self.cfg.device_id,
            ) as stream:
                stream.write(frames)
        except sd.PortAudioError as exc:
            raise OSError(str(exc)) from exc


def _powershell_script(text: str) -> str:
    escaped = text.replace("'", "''")
    return (
        "Add-Type -AssemblyName System.Speech; "
        "(New-Object System.Speech.Synthesis.SpeechSynthesizer)"
        f".Speak('{escaped}');"
    )


def build_announcer(enabled: bool, timeout_s: float = 15.0) -> Announcer:
    if not enabled:
        return NullAnnouncer()
    return SystemAnnouncer(SpeechConfig(timeout_s=timeout_s))
