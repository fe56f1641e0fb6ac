"""
Sound effects.

Every effect is synthesized once with numpy at start-up and handed to
pygame's mixer, which plays it on its own channel without blocking the
game loop.
"""

import contextlib
import logging
import os

os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")

import numpy as np
import pygame

from .config import AUDIO_ENV, SAMPLE_RATE
from .errors import AudioUnavailableError
from .game import Trigger

logger = logging.getLogger(__name__)

AUDIO_OFF_VALUES = frozenset({"0", "off", "false", "no"})


def audio_wanted(environ=None):
    environ = os.environ if environ is None else environ
    return environ.get(AUDIO_ENV, "").strip().lower() not in AUDIO_OFF_VALUES


def _time(duration, sample_rate):
    return np.arange(int(sample_rate * duration)) / sample_rate


def _xerp(start, end, t):
    """Exponential interpolation, `t` in [0, 1]."""
    return start * (end / start) ** np.clip(t, 0.0, 1.0)


def _phase(freq, sample_rate):
    """Oscillator phase for a time-varying frequency."""
    return 2 * np.pi * np.cumsum(freq) / sample_rate


def flap_wave(sample_rate=SAMPLE_RATE):
    """Short rising chirp."""
    duration = 0.12
    t = _time(duration, sample_rate)
    freq = np.where(t < 0.08, _xerp(400.0, 800.0, t / 0.08), 800.0)
    return np.sin(_phase(freq, sample_rate)) * _xerp(0.15, 0.001, t / duration)


def score_wave(sample_rate=SAMPLE_RATE):
    """Two-note ding."""
    notes = (520.0, 680.0)
    note_gap, note_len = 0.1, 0.15
    total = note_gap * (len(notes) - 1) + note_len
    wave = np.zeros(int(sample_rate * total))
    t = _time(note_len, sample_rate)
    tone_env = _xerp(0.12, 0.001, t / note_len)
    for i, freq in enumerate(notes):
        start = int(note_gap * i * sample_rate)
        tone = np.sin(2 * np.pi * freq * t) * tone_env
        end = min(start + len(tone), len(wave))
        wave[start:end] += tone[: end - start]
    return wave


def death_wave(sample_rate=SAMPLE_RATE):
    """Falling sawtooth that fades out."""
    duration = 0.5
    t = _time(duration, sample_rate)
    freq = 400.0 + (80.0 - 400.0) * np.clip(t / 0.4, 0.0, 1.0)
    cycles = np.cumsum(freq) / sample_rate
    saw = 2.0 * (cycles % 1.0) - 1.0
    return saw * (0.15 * (1.0 - np.clip(t / duration, 0.0, 1.0)))


def whoosh_wave(sample_rate=SAMPLE_RATE, seed=0):
    """Band-limited noise burst for a pipe sliding in."""
    duration = 0.08
    t = _time(duration, sample_rate)
    noise = np.random.default_rng(seed).uniform(-1.0, 1.0, len(t))
    # Crude band-pass around 1.2 kHz: low-pass, then subtract a slower low-pass
    narrow = max(1, sample_rate // 2400)
    wide = max(narrow + 1, sample_rate // 600)
    low = np.convolve(noise, np.ones(narrow) / narrow, mode="same")
    band = low - np.convolve(low, np.ones(wide) / wide, mode="same")
    return band * _xerp(0.3, 0.001, t / duration)


WAVES = {
    Trigger.FLAP: flap_wave,
    Trigger.SCORE: score_wave,
    Trigger.DEATH: death_wave,
    Trigger.WHOOSH: whoosh_wave,
}


def to_pcm(wave, channels=2):
    """Float wave in [-1, 1] to interleaved signed 16-bit frames."""
    pcm = np.clip(wave * 32767, -32767, 32767).astype(np.int16)
    if channels == 1:
        return pcm
    return np.ascontiguousarray(np.column_stack([pcm] * channels))


class Synth:
    """Owns the pygame mixer and the pre-rendered effects."""

    def __init__(self, sample_rate=SAMPLE_RATE):
        pygame.mixer.init(frequency=sample_rate, size=-16, channels=2, buffer=512)
        try:
            pygame.mixer.set_num_channels(16)
            frequency, _, channels = pygame.mixer.get_init()
            self.sounds = {
                trigger: pygame.mixer.Sound(to_pcm(make(frequency), channels))
                for trigger, make in WAVES.items()
            }
        except Exception:
            pygame.mixer.quit()
            raise
        logger.info("mixer ready at %d Hz, %d channels", frequency, channels)

    def play(self, trigger):
        self.sounds[trigger].play()

    def close(self):
        pygame.mixer.quit()


class AudioSink:
    """
    Fire-and-forget trigger player.

    Audio is best-effort: the first playback failure mutes the sink for
    the rest of the session and the game goes on.
    """

    def __init__(self, player=None):
        self.player = player

    @property
    def enabled(self):
        return self.player is not None

    def emit(self, triggers):
        if self.player is None:
            return
        for trigger in triggers:
            try:
                self.player.play(trigger)
            except pygame.error as exc:
                logger.warning("audio failed, muting for this session: %s", exc)
                self.player = None
                return


@contextlib.contextmanager
def open_audio(enabled=True):
    """Yield an `AudioSink`; a silent one when audio is turned off."""
    if not enabled:
        logger.info("audio disabled by %s", AUDIO_ENV)
        yield AudioSink()
        return

    try:
        synth = Synth()
    except pygame.error as exc:
        raise AudioUnavailableError(
            f"cannot open an audio device ({exc}); set {AUDIO_ENV}=0 to play without sound"
        ) from exc

    try:
        yield AudioSink(synth)
    finally:
        synth.close()
