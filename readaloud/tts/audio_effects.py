"""
Pitch shifting and pitch-preserving time stretching for speech audio.

Pitch is shifted by resampling with pydub (which also changes the
duration) and then restoring the original duration with a phase
vocoder, so a pitch change never changes the reading speed.
"""

import io
import logging

import numpy as np
from pydub import AudioSegment

logger = logging.getLogger(__name__)

# Below this distance from 1.0 a factor is treated as a no-op
_NEUTRAL_TOLERANCE = 0.02


# ------------------------------------------------------------------
# Public API
# ------------------------------------------------------------------


def pitch_shift_wav(wav_bytes: bytes, pitch: float) -> bytes:
    """
    Shift the pitch of WAV audio by the multiplier *pitch*, keeping its duration.

    Returns the input unchanged when *pitch* is about 1.0 or the audio
    cannot be decoded.
    """
    if abs(pitch - 1.0) < _NEUTRAL_TOLERANCE:
        return wav_bytes

    try:
        segment = AudioSegment.from_wav(io.BytesIO(wav_bytes))
    except Exception as e:
        logger.warning("pitch_shift_wav: failed to decode WAV: %s", e)
        return wav_bytes

    if len(segment) == 0:
        return wav_bytes

    rate = segment.frame_rate
    # Reinterpret at a higher/lower rate, then resample back: pitch and
    # tempo both move by `pitch`
    shifted = segment._spawn(
        segment.raw_data,
        overrides={"frame_rate": int(round(rate * pitch))},
    ).set_frame_rate(rate)

    samples = np.array(shifted.get_array_of_samples(), dtype=np.float64)
    channels = shifted.channels
    if channels > 1:
        samples = samples.reshape(-1, channels)
        restored = [time_stretch(samples[:, ch], 1.0 / pitch, rate) for ch in range(channels)]
        length = min(len(c) for c in restored)
        samples = np.column_stack([c[:length] for c in restored]).ravel()
    else:
        samples = time_stretch(samples, 1.0 / pitch, rate)

    limit = float(2 ** (8 * shifted.sample_width - 1))
    dtype = {1: np.int8, 2: np.int16, 4: np.int32}.get(shifted.sample_width, np.int16)
    pcm = np.clip(samples, -limit, limit - 1).astype(dtype)

    out = AudioSegment(
        data=pcm.tobytes(),
        sample_width=shifted.sample_width,
        frame_rate=rate,
        channels=channels,
    )
    buf = io.BytesIO()
    out.export(buf, format="wav")
    return buf.getvalue()


def time_stretch(samples: np.ndarray, speed_factor: float, sample_rate: int) -> np.ndarray:
    """
    Pitch-preserving time stretch of mono samples.

    Args:
        samples:      Mono audio samples.
        speed_factor: Speed multiplier (>1 = shorter/faster), clamped to [0.25, 4.0].
        sample_rate:  Sample rate in Hz (used to pick the FFT size).

    Returns:
        Float64 samples of length ``len(samples) / speed_factor``.
    """
    samples = np.asarray(samples, dtype=np.float64)
    speed_factor = float(np.clip(speed_factor, 0.25, 4.0))
    if abs(speed_factor - 1.0) < _NEUTRAL_TOLERANCE or len(samples) < 256:
        return samples

    # Speech benefits from moderate window sizes
    if sample_rate >= 32000:
        n_fft = 2048
    elif sample_rate >= 16000:
        n_fft = 1024
    else:
        n_fft = 512
    hop = n_fft // 4
    window = np.hanning(n_fft)

    # --- STFT (frames × bins), padded so the tail survives ---
    padded = np.concatenate([samples, np.zeros(n_fft + hop)])
    n_frames = (len(padded) - n_fft) // hop + 1
    frame_idx = np.arange(n_fft)[None, :] + hop * np.arange(n_frames)[:, None]
    spectra = np.fft.rfft(padded[frame_idx] * window, axis=1)

    # --- Resample the magnitude/phase trajectory ---
    steps = np.arange(0, n_frames - 1, speed_factor)
    i0 = steps.astype(int)
    i1 = np.minimum(i0 + 1, n_frames - 1)
    frac = (steps - i0)[:, None]
    magnitude = (1.0 - frac) * np.abs(spectra[i0]) + frac * np.abs(spectra[i1])

    # Expected phase advance per hop, plus the wrapped deviation
    omega = 2.0 * np.pi * hop * np.arange(spectra.shape[1]) / n_fft
    deviation = np.angle(spectra[i1]) - np.angle(spectra[i0]) - omega
    deviation -= 2.0 * np.pi * np.round(deviation / (2.0 * np.pi))
    advance = omega + deviation

    phase = np.angle(spectra[0]) + np.vstack(
        [np.zeros((1, spectra.shape[1])), np.cumsum(advance[1:], axis=0)]
    )

    # --- ISTFT (overlap-add) ---
    frames = np.fft.irfft(magnitude * np.exp(1j * phase), n=n_fft, axis=1) * window
    n_out = len(steps)
    out_idx = np.arange(n_fft)[None, :] + hop * np.arange(n_out)[:, None]
    out_len = n_fft + (n_out - 1) * hop

    output = np.zeros(out_len)
    norm = np.zeros(out_len)
    np.add.at(output, out_idx, frames)
    np.add.at(norm, out_idx, np.broadcast_to(window * window, frames.shape))
    output /= np.maximum(norm, 1e-8)

    return output[: int(len(samples) / speed_factor)]
