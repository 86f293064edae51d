"""System prompt loading."""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = """You are a helpful AI assistant.
Respond to the user's message in a concise and helpful manner.
Your response will be spoken aloud, so keep it brief and clear."""


def load_system_prompt(path: str) -> str:
    """Read the system prompt, falling back to the built-in one."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        logger.warning(f"Could not read {path}, using default system prompt: {e}")
        return DEFAULT_SYSTEM_PROMPT
    if not text.strip():
        logger.warning(f"{path} is empty, using default system prompt")
        return DEFAULT_SYSTEM_PROMPT
    logger.info(f"System prompt loaded from {path}")
    return text
