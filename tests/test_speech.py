import io
import logging
import subprocess
import sys
import types
import wave
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from knowledge_assistant.audio import speech
from knowledge_assistant.audio.speech import (
    NullAnnouncer,
    SpeechConfig,
    SystemAnnouncer,
    build_announcer,
)


def _wav_bytes(frames: bytes, rate: int = 22_050) -> bytes:
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(rate)
        wav.writeframes(frames)
    return buf.getvalue()


class DummyStream:
    instances: list["DummyStream"] = []

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.written: list[bytes] = []
        DummyStream.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return None

    def write(self, data: bytes) -> None:
        self.written.append(data)


def _fake_sounddevice():
    return types.SimpleNamespace(RawOutputStream=DummyStream, PortAudioError=RuntimeError)


def test_build_announcer_respects_setting():
    assert isinstance(build_announcer(False), NullAnnouncer)
    assert isinstance(build_announcer(True), SystemAnnouncer)


def test_linux_plays_espeak_output(monkeypatch):
    DummyStream.instances.clear()
    frames = b"\x01\x00\x02\x00"
    calls: list[list[str]] = []

    def fake_run(argv, **kwargs):
        calls.append(argv)
        return subprocess.CompletedProcess(argv, 0, stdout=_wav_bytes(frames))

    monkeypatch.setattr(speech.subprocess, "run", fake_run)
    monkeypatch.setitem(sys.modules, "sounddevice", _fake_sounddevice())

    SystemAnnouncer(SpeechConfig(platform="linux")).announce("Paris")

    assert calls == [["espeak", "--stdout", "Paris"]]
    stream = DummyStream.instances[-1]
    assert stream.kwargs["samplerate"] == 22_050
    assert stream.kwargs["dtype"] == "int16"
    assert stream.written == [frames]


def test_macos_uses_say(monkeypatch):
    calls: list[list[str]] = []
    monkeypatch.setattr(
        speech.subprocess,
        "run",
        lambda argv, **kw: calls.append(argv) or subprocess.CompletedProcess(argv, 0),
    )
    SystemAnnouncer(SpeechConfig(platform="darwin")).announce("hello")
    assert calls == [["say", "hello"]]


def test_windows_escapes_quotes(monkeypatch):
    calls: list[list[str]] = []
    monkeypatch.setattr(
        speech.subprocess,
        "run",
        lambda argv, **kw: calls.append(argv) or subprocess.CompletedProcess(argv, 0),
    )
    SystemAnnouncer(SpeechConfig(platform="win32")).announce("it's")
    assert calls[0][0] == "PowerShell"
    assert "Speak('it''s')" in calls[0][2]


def test_missing_synthesizer_is_logged_not_raised(monkeypatch, caplog):
    def missing(argv, **kwargs):
        raise FileNotFoundError(argv[0])

    monkeypatch.setattr(speech.subprocess, "run", missing)
    with caplog.at_level(logging.WARNING):
        SystemAnnouncer(SpeechConfig(platform="linux")).announce("Paris")
    assert any(r.getMessage() == "speech_failed" for r in caplog.records)


def test_blank_text_is_not_spoken(monkeypatch):
    def fail(*args, **kwargs):  # pragma: no cover - must not be called
        raise AssertionError("should not run")

    monkeypatch.setattr(speech.subprocess, "run", fail)
    SystemAnnouncer(SpeechConfig(platform="linux")).announce("   ")
