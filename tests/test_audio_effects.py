"""Tests for pitch shifting and time stretching."""

import io

import numpy as np
import pytest
from pydub import AudioSegment

from conftest import sine_wav
from readaloud.tts.audio_effects import pitch_shift_wav, time_stretch
from readaloud.tts.base_engine import BaseTTSEngine


def _dominant_frequency(wav_bytes):
    segment = AudioSegment.from_wav(io.BytesIO(wav_bytes))
    samples = np.array(segment.get_array_of_samples(), dtype=np.float64)
    spectrum = np.abs(np.fft.rfft(samples * np.hanning(len(samples))))
    freqs = np.fft.rfftfreq(len(samples), 1.0 / segment.frame_rate)
    return freqs[np.argmax(spectrum)]


# --- time_stretch ---

@pytest.mark.parametrize("speed", [0.5, 0.8, 1.25, 2.0])
def test_time_stretch_length(speed):
    samples = np.sin(np.linspace(0, 400 * np.pi, 16000))
    out = time_stretch(samples, speed, 16000)
    assert len(out) == int(len(samples) / speed)


def test_time_stretch_neutral_is_identity():
    samples = np.random.default_rng(0).normal(size=4000)
    out = time_stretch(samples, 1.0, 16000)
    assert np.array_equal(out, samples)


def test_time_stretch_short_input_untouched():
    samples = np.ones(100)
    assert len(time_stretch(samples, 2.0, 16000)) == 100


# --- pitch_shift_wav ---

def test_neutral_pitch_returns_input():
    wav = sine_wav(0.2)
    assert pitch_shift_wav(wav, 1.0) is wav
    assert pitch_shift_wav(wav, 1.01) is wav


def test_pitch_shift_keeps_duration():
    wav = sine_wav(1.0, freq=220.0)
    for pitch in (0.7, 1.5):
        shifted = pitch_shift_wav(wav, pitch)
        duration = BaseTTSEngine.get_audio_duration(shifted)
        assert duration == pytest.approx(1.0, rel=0.02)


def test_pitch_shift_moves_frequency():
    wav = sine_wav(1.0, freq=220.0)
    higher = _dominant_frequency(pitch_shift_wav(wav, 1.5))
    lower = _dominant_frequency(pitch_shift_wav(wav, 0.75))
    assert higher > 280
    assert lower < 190


def test_undecodable_audio_passes_through():
    assert pitch_shift_wav(b"not a wav", 1.5) == b"not a wav"
