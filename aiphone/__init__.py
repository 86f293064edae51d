"""ai-phone: voice call loop with VAD-driven turn taking."""

__version__ = "0.1.0"
