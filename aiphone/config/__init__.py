"""YAML configuration loader for ai-phone."""

import copy
import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)


TTS_QUANTIZATIONS = ("fp32", "fp16", "q8", "q4", "q4f16")

DEFAULTS: Dict[str, Any] = {
    "audio": {
        "sample_rate": 16000,
        "chunk_size": 1024,
        "channels": 1,
        "cues": {
            "start": "sounds/mic_start.wav",
            "stop": "sounds/mic_stop.wav",
        },
    },
    "vad": {
        "threshold": 0.045,
        "threshold_start": None,  # Defaults to threshold
        "silence_duration_seconds": 1.0,
        "max_duration_seconds": 15.0,
        "window_size": 5,
    },
    "recording": {
        "path": "recordings/recording.wav",
        "flush_delay_seconds": 0.25,
    },
    "transcription": {
        "language": "en-US",
        "credentials_path": None,
        "use_enhanced_model": True,
        "enable_automatic_punctuation": True,
    },
    "dialogue": {
        "enabled": True,
        "use_context": True,
        "api_url": "https://api.anthropic.com/v1/messages",
        "model": "claude-3-opus-20240229",
        "api_key_env": "CLAUDE_API_KEY",
        "max_tokens": 1024,
        "timeout_seconds": 30.0,
        "prompt_path": "prompt.txt",
    },
    "synthesis": {
        "model": "onnx-community/Kokoro-82M-v1.0-ONNX",
        "quantization": "q4",
        "model_dir": "models",
        "voices_file": "voices-v1.0.bin",
        "voice": "bf_emma",
        "speed": 1.0,
        "cache_dir": ".tts_cache",
        "skip_model_init": False,
        "init_timeout_seconds": 30.0,
    },
    "call_api": {
        "base_url": None,  # Falls back to $API_BASE_URL
        "timeout_seconds": 5.0,
    },
    "call": {
        "greeting": "Hello! How can I help you today?",
        "max_consecutive_device_errors": 3,
    },
    "logging": {
        "level": "INFO",
        "file_path": "data/logs/ai_phone.log",
        "console_output": True,
        "console_level": "INFO",
    },
}

# Keys holding filesystem paths, resolved relative to the config file
PATH_KEYS = (
    "audio.cues.start",
    "audio.cues.stop",
    "recording.path",
    "dialogue.prompt_path",
    "synthesis.model_dir",
    "synthesis.cache_dir",
    "transcription.credentials_path",
    "logging.file_path",
)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class AiPhoneConfig:
    """ai-phone configuration: built-in defaults overlaid with an optional YAML file."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, only the built-in
                        defaults are used.
        """
        self.config_file = Path(config_path) if config_path else None

        if self.config_file is not None and not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        if self.config_file is None:
            logger.info("No configuration file given, using defaults")
            return copy.deepcopy(DEFAULTS)

        logger.info(f"Loading configuration from: {self.config_file}")
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}") from e

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ValueError("Configuration file must contain a mapping")

        # Resolve relative paths against the file, then fill in defaults
        self._resolve_paths(loaded)
        config = _deep_merge(DEFAULTS, loaded)
        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        for key_path in PATH_KEYS:
            *parents, leaf = key_path.split('.')
            section = config
            for key in parents:
                section = section.get(key) if isinstance(section, dict) else None
            if not isinstance(section, dict) or not section.get(leaf):
                continue
            path = section[leaf]
            if not os.path.isabs(path):
                section[leaf] = str(config_dir / path)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'vad.threshold').

        Args:
            key_path: Dot-separated key path
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Args:
            key_path: Dot-separated path to config value (e.g., 'vad.threshold')
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config

        # Navigate to the parent dictionary
        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        # Set the final value
        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_call_api_base_url(self) -> Optional[str]:
        """Get call API base URL, falling back to $API_BASE_URL."""
        return self.get('call_api.base_url') or os.environ.get('API_BASE_URL')

    def get_dialogue_api_key(self) -> Optional[str]:
        """Get dialogue API key from the configured environment variable.

        The placeholder value shipped in example env files counts as unset.
        """
        env_name = self.get('dialogue.api_key_env', 'CLAUDE_API_KEY')
        api_key = os.environ.get(env_name)
        if not api_key or api_key == 'your_api_key_here':
            return None
        return api_key

    def get_threshold_start(self) -> float:
        start = self.get('vad.threshold_start')
        return self.get('vad.threshold') if start is None else start
