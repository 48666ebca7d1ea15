"""Pytest configuration and fixtures for StreamScribe tests."""

import pytest
import tempfile
import logging
import wave
from pathlib import Path
import numpy as np

from streamscribe.config.settings import RecognizerSettings


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without network access")
    config.addinivalue_line("markers", "integration: tests against an in-process WebSocket server")


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def settings():
    """Recognizer settings with a fast, deterministic reconnect policy."""
    return RecognizerSettings(
        api_key="sk-test-key",
        url="wss://dashscope.example/api-ws/v1/inference",
        connect_timeout=2.0,
        heartbeat=None,
        reconnect_delay=0.0,
    )


@pytest.fixture
def sample_audio_chunk():
    """Generate 100 ms of 16-bit, 8 kHz audio (sine wave)."""
    sample_rate = 8000
    samples = 800
    t = np.linspace(0, samples / sample_rate, samples, False)
    wave_data = np.sin(2 * np.pi * 440 * t)
    audio_data = (wave_data * 32767 * 0.5).astype(np.int16)
    return audio_data.tobytes()


@pytest.fixture
def audio_test_data():
    """Generate various audio test data patterns."""
    def generate_audio(pattern="sine", duration_seconds=1.0, sample_rate=8000, channels=1):
        """Generate interleaved 16-bit audio for testing.

        Args:
            pattern: Type of audio pattern ('sine', 'noise', 'silence')
            duration_seconds: Duration of audio
            sample_rate: Sample rate in Hz
            channels: Number of interleaved channels

        Returns:
            bytes: Audio data as bytes
        """
        samples = int(duration_seconds * sample_rate)

        if pattern == "sine":
            t = np.linspace(0, duration_seconds, samples, False)
            wave_data = np.sin(2 * np.pi * 440 * t)
        elif pattern == "noise":
            wave_data = np.random.uniform(-1, 1, samples)
        elif pattern == "silence":
            wave_data = np.zeros(samples)
        else:
            raise ValueError(f"Unknown pattern: {pattern}")

        audio_data = (wave_data * 32767 * 0.5).astype(np.int16)
        if channels > 1:
            audio_data = np.repeat(audio_data, channels)
        return audio_data.tobytes()

    return generate_audio


@pytest.fixture
def write_wav(temp_data_dir, audio_test_data):
    """Write a WAV file and return its path."""
    def _write(name="test_audio.wav", duration_seconds=1.0, sample_rate=8000,
               channels=1, sample_width=2, pattern="sine"):
        file_path = Path(temp_data_dir) / name
        if sample_width == 2:
            frames = audio_test_data(pattern, duration_seconds, sample_rate, channels)
        else:
            frames = b'\x80' * int(duration_seconds * sample_rate) * channels * sample_width
        with wave.open(str(file_path), 'wb') as wf:
            wf.setnchannels(channels)
            wf.setsampwidth(sample_width)
            wf.setframerate(sample_rate)
            wf.writeframes(frames)
        return str(file_path)

    return _write


@pytest.fixture
def sample_audio_file(write_wav):
    """Create a one second 8 kHz mono WAV file."""
    return write_wav()
