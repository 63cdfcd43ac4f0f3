"""
Piper voice model manager.

Downloads, caches, and locates Piper TTS voice models.
Voice files are stored under ~/.local/share/PageVoice/voices/.
"""

import logging
import urllib.request
from pathlib import Path
from typing import Dict, List, Optional

from tqdm import tqdm

logger = logging.getLogger(__name__)

# Base URL for Piper voice downloads
_PIPER_VOICES_BASE = "https://huggingface.co/rhasspy/piper-voices/resolve/main"

# Default voice directory
_DEFAULT_VOICE_DIR = Path.home() / ".local" / "share" / "PageVoice" / "voices"

# Known voices: voice_name → download path components
KNOWN_VOICES: Dict[str, Dict[str, str]] = {
    "ru_RU-irina-medium": {"lang": "ru", "code": "ru_RU", "name": "irina", "quality": "medium"},
    "ru_RU-denis-medium": {"lang": "ru", "code": "ru_RU", "name": "denis", "quality": "medium"},
    "pl_PL-gosia-medium": {"lang": "pl", "code": "pl_PL", "name": "gosia", "quality": "medium"},
    "cs_CZ-jirka-medium": {"lang": "cs", "code": "cs_CZ", "name": "jirka", "quality": "medium"},
    "sk_SK-lili-medium": {"lang": "sk", "code": "sk_SK", "name": "lili", "quality": "medium"},
    "sr_RS-serbski_institut-medium": {
        "lang": "sr",
        "code": "sr_RS",
        "name": "serbski_institut",
        "quality": "medium",
    },
    "en_US-lessac-medium": {"lang": "en", "code": "en_US", "name": "lessac", "quality": "medium"},
    "en_US-amy-medium": {"lang": "en", "code": "en_US", "name": "amy", "quality": "medium"},
    "en_GB-alan-medium": {"lang": "en", "code": "en_GB", "name": "alan", "quality": "medium"},
}


def piper_language_tag(voice_name: str) -> str:
    """Language tag for a Piper voice name (``"ru_RU-irina-medium"`` → ``"ru-RU"``)."""
    info = KNOWN_VOICES.get(voice_name)
    code = info["code"] if info else voice_name.split("-", 1)[0]
    return code.replace("_", "-")


class ModelManager:
    """
    Manages Piper TTS voice model downloads and caching.

    Usage::

        mgr = ModelManager()
        path = mgr.ensure_voice_available("ru_RU-irina-medium")
    """

    def __init__(self, voice_dir: Optional[Path] = None, show_progress: bool = True):
        self.voice_dir = Path(voice_dir) if voice_dir else _DEFAULT_VOICE_DIR
        self.show_progress = show_progress
        self.voice_dir.mkdir(parents=True, exist_ok=True)

    def get_voice_path(self, voice_name: str) -> Path:
        """
        Get the expected local path for a voice model ``.onnx`` file.
        Does not check whether the file exists.
        """
        return self.voice_dir / voice_name / f"{voice_name}.onnx"

    def is_voice_available(self, voice_name: str) -> bool:
        """Check if a voice model and its config are already downloaded."""
        onnx = self.get_voice_path(voice_name)
        return onnx.exists() and onnx.with_suffix(".onnx.json").exists()

    def ensure_voice_available(self, voice_name: str) -> Path:
        """
        Download the voice model if not already cached.

        Returns:
            Path to the ``.onnx`` model file.

        Raises:
            ValueError: If the voice name is not recognised.
            RuntimeError: If the download fails.
        """
        if self.is_voice_available(voice_name):
            return self.get_voice_path(voice_name)

        if voice_name not in KNOWN_VOICES:
            raise ValueError(
                f"Unknown voice '{voice_name}'. Available: {list(KNOWN_VOICES.keys())}"
            )

        info = KNOWN_VOICES[voice_name]
        voice_subdir = self.voice_dir / voice_name
        voice_subdir.mkdir(parents=True, exist_ok=True)

        # Pattern: {base}/{lang}/{code}/{name}/{quality}/{voice_name}.onnx
        base_url = (
            f"{_PIPER_VOICES_BASE}/"
            f"{info['lang']}/{info['code']}/{info['name']}/{info['quality']}"
        )
        onnx_path = voice_subdir / f"{voice_name}.onnx"
        config_path = voice_subdir / f"{voice_name}.onnx.json"

        logger.info("Downloading voice model: %s", voice_name)
        self._download(f"{base_url}/{voice_name}.onnx", onnx_path, label="model")
        self._download(f"{base_url}/{voice_name}.onnx.json", config_path, label="config")

        logger.info("Voice ready: %s", onnx_path)
        return onnx_path

    def list_available_voices(self) -> List[str]:
        """Return names of locally cached voice models."""
        if not self.voice_dir.exists():
            return []
        return [
            d.name
            for d in sorted(self.voice_dir.iterdir())
            if d.is_dir() and (d / f"{d.name}.onnx").exists()
        ]

    def list_known_voices(self) -> List[str]:
        """Return names of all known downloadable voices."""
        return list(KNOWN_VOICES.keys())

    def _download(self, url: str, dest: Path, label: str = "file") -> None:
        """Download a file with a progress bar, removing partial output on failure."""
        logger.info("  Fetching %s: %s", label, url)
        bar = tqdm(
            desc=f"  {label}",
            unit="B",
            unit_scale=True,
            unit_divisor=1024,
            leave=False,
            disable=not self.show_progress,
        )

        def _progress(block_num, block_size, total_size):
            if total_size > 0:
                bar.total = total_size
            bar.update(block_num * block_size - bar.n)

        try:
            urllib.request.urlretrieve(url, str(dest), reporthook=_progress)
        except Exception as e:
            if dest.exists():
                dest.unlink()
            raise RuntimeError(f"Failed to download {label} from {url}: {e}") from e
        finally:
            bar.close()

    def __repr__(self) -> str:
        cached = len(self.list_available_voices())
        return f"ModelManager(dir='{self.voice_dir}', cached={cached})"
