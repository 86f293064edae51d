"""Model warm-up before the first call."""

import asyncio
import logging
from typing import Iterable, Optional

from .bundle import ServiceBundle
from ..errors import AiPhoneError
from ..synthesis import COMMON_PHRASES

logger = logging.getLogger(__name__)


async def _initialize(name: str, initialize, timeout_seconds: float) -> bool:
    loop = asyncio.get_running_loop()
    logger.info(f"Initializing {name} model...")
    try:
        await asyncio.wait_for(loop.run_in_executor(None, initialize), timeout_seconds)
    except asyncio.TimeoutError:
        logger.warning(f"{name} model initialization timed out after {timeout_seconds}s")
        return False
    except AiPhoneError as e:
        logger.error(f"Error initializing {name} model: {e}")
        return False
    logger.info(f"{name} model initialized")
    return True


async def warm_up(services: ServiceBundle, timeout_seconds: float = 30.0,
                  phrases: Iterable[str] = COMMON_PHRASES, voice: Optional[str] = None) -> dict:
    """Load the speech models and fill the synthesis cache with common phrases.

    Failures are logged and never stop startup; the models load lazily on
    first use instead.

    Returns:
        Mapping of model name to whether it initialized in time
    """
    results = {
        "synthesis": await _initialize("Speech synthesis", services.synthesizer.initialize, timeout_seconds),
        "transcription": await _initialize("Transcription", services.transcriber.initialize, timeout_seconds),
    }

    if results["synthesis"]:
        loop = asyncio.get_running_loop()
        logger.info("Preloading common phrases...")
        await loop.run_in_executor(None, services.synthesizer.preload, list(phrases), voice)
    return results
