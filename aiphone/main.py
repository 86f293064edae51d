"""Main application entry point for ai-phone."""

import sys
import signal
import asyncio
import argparse
import logging
import math
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from . import __version__
from .config import AiPhoneConfig, TTS_QUANTIZATIONS
from .errors import FatalCallError
from .services import CallSession, CallSettings, warm_up

logger = logging.getLogger(__name__)


class Application:
    """Builds the services, warms the models up and runs one call."""

    def __init__(self, config: AiPhoneConfig, services_factory=None):
        self.config = config
        self.services_factory = services_factory
        self.services = None
        self.session: Optional[CallSession] = None
        self._call_task: Optional[asyncio.Task] = None
        self._interrupted = False

    def _build_services(self):
        if self.services_factory is not None:
            return self.services_factory(self.config)
        from .services.factory import build_services
        return build_services(self.config)

    def interrupt(self) -> None:
        """Cancel the running call once; repeated signals are ignored."""
        if self._interrupted:
            logger.info("Shutdown already in progress")
            return
        self._interrupted = True
        logger.info("Received interrupt signal, ending call...")
        if self._call_task is not None:
            self._call_task.cancel()

    def _install_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> List[int]:
        installed = []
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, self.interrupt)
                installed.append(signum)
            except (NotImplementedError, RuntimeError):
                # Platforms without loop signal support fall back to KeyboardInterrupt
                pass
        return installed

    async def run(self) -> int:
        """Run the application.

        Returns:
            Process exit code
        """
        loop = asyncio.get_running_loop()
        self.services = self._build_services()
        installed = self._install_signal_handlers(loop)
        try:
            if self.config.get('synthesis.skip_model_init'):
                logger.info("Skipping model initialization")
            else:
                await warm_up(self.services, self.config.get('synthesis.init_timeout_seconds'),
                              voice=self.config.get('synthesis.voice'))

            self.session = CallSession(self.services, CallSettings.from_config(self.config))
            logger.info("=== Starting main recording loop ===")
            self._call_task = asyncio.create_task(self.session.run())
            try:
                await self._call_task
            except asyncio.CancelledError:
                if not self._interrupted:
                    raise
                logger.info("Call ended by user")
            except FatalCallError as e:
                logger.error(f"Fatal error: {e}")
                return 1
            except Exception as e:
                logger.exception(f"Application error: {e}")
                return 1
            return 0
        finally:
            for signum in installed:
                loop.remove_signal_handler(signum)
            self.services.close()


def setup_logging(config: AiPhoneConfig, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/ai_phone.log')
    console_output = config.get('logging.console_output', True)
    console_level = config.get('logging.console_level', 'INFO')

    # Create logs directory if it doesn't exist
    Path(log_file_path).parent.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    ))
    handlers.append(file_handler)

    # Console handler - only if enabled in config
    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(min(getattr(logging, console_level.upper()), getattr(logging, level.upper())))
        console_handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s'))
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info("ai-phone starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="ai-phone - voice call loop with speech recognition and synthesis",
        epilog="Press Ctrl+C at any time to end the call",
    )
    parser.add_argument("--config", type=str,
                        help="Path to configuration YAML file (default: built-in settings)")
    parser.add_argument("--threshold", type=str,
                        help="Silence threshold, 0.0 (most sensitive) to 1.0 (default: 0.045)")
    parser.add_argument("--silence", type=str,
                        help="Silence in seconds that ends a recording (default: 1)")
    parser.add_argument("--max-duration", type=str,
                        help="Maximum recording duration in seconds (default: 15)")
    parser.add_argument("--no-timeout", action="store_true",
                        help="Disable the maximum recording duration")
    parser.add_argument("--debug", dest="debug", action="store_true", default=None,
                        help="Enable debug logging")
    parser.add_argument("--no-debug", dest="debug", action="store_false", default=None,
                        help="Disable debug logging")
    parser.add_argument("--use-dialogue", "--use-claude", dest="use_dialogue", action="store_true", default=None,
                        help="Send transcriptions to the dialogue API")
    parser.add_argument("--no-dialogue", "--no-claude", dest="use_dialogue", action="store_false", default=None,
                        help="Speak transcriptions back without the dialogue API")
    parser.add_argument("--use-context", dest="use_context", action="store_true", default=None,
                        help="Keep the whole conversation as context")
    parser.add_argument("--no-context", dest="use_context", action="store_false", default=None,
                        help="Send only the greeting and the latest message")
    parser.add_argument("--tts-model", type=str, help="Speech synthesis model")
    parser.add_argument("--tts-quantization", type=str,
                        help=f"Model quantization: {', '.join(TTS_QUANTIZATIONS)}")
    parser.add_argument("--skip-model-init", action="store_true",
                        help="Skip model warm-up for faster startup")
    parser.add_argument("--version", action="version", version=f"ai-phone v{__version__}")
    return parser


def parse_args(argv: Optional[List[str]] = None):
    """Parse command line arguments, collecting unknown ones instead of failing.

    Returns:
        Tuple of (namespace, unknown arguments)
    """
    return build_parser().parse_known_args(argv)


def _parse_float(name: str, raw: str, minimum: float, maximum: Optional[float], inclusive_min: bool,
                 ignored: List[str]) -> Optional[float]:
    try:
        value = float(raw)
    except ValueError:
        ignored.append(f"{name} {raw!r} is not a number")
        return None
    if not math.isfinite(value):
        ignored.append(f"{name} {raw!r} is not a finite number")
        return None
    too_low = value < minimum if inclusive_min else value <= minimum
    if too_low or (maximum is not None and value > maximum):
        ignored.append(f"{name} {raw!r} is out of range")
        return None
    return value


def apply_cli_overrides(config: AiPhoneConfig, args: argparse.Namespace) -> List[str]:
    """Copy valid command line values onto the configuration.

    Invalid values leave the configured value in place.

    Returns:
        Messages describing the ignored values
    """
    ignored: List[str] = []

    if args.threshold is not None:
        value = _parse_float("--threshold", args.threshold, 0.0, 1.0, True, ignored)
        if value is not None:
            config.set('vad.threshold', value)
    if args.silence is not None:
        value = _parse_float("--silence", args.silence, 0.0, None, False, ignored)
        if value is not None:
            config.set('vad.silence_duration_seconds', value)
    if args.max_duration is not None:
        value = _parse_float("--max-duration", args.max_duration, 0.0, None, False, ignored)
        if value is not None:
            config.set('vad.max_duration_seconds', value)
    if args.no_timeout:
        config.set('vad.max_duration_seconds', 0.0)

    if args.debug is not None:
        config.set('logging.level', 'DEBUG' if args.debug else 'INFO')
    if args.use_dialogue is not None:
        config.set('dialogue.enabled', args.use_dialogue)
    if args.use_context is not None:
        config.set('dialogue.use_context', args.use_context)

    if args.tts_model:
        config.set('synthesis.model', args.tts_model)
    if args.tts_quantization is not None:
        if args.tts_quantization in TTS_QUANTIZATIONS:
            config.set('synthesis.quantization', args.tts_quantization)
        else:
            ignored.append(f"--tts-quantization {args.tts_quantization!r} is not one of "
                           f"{', '.join(TTS_QUANTIZATIONS)}")
    if args.skip_model_init:
        config.set('synthesis.skip_model_init', True)

    return ignored


def settings_table(config: AiPhoneConfig) -> Table:
    """Startup settings summary."""
    max_duration = config.get('vad.max_duration_seconds')

    def enabled(flag) -> str:
        return "Enabled" if flag else "Disabled"

    table = Table(title="ai-phone settings", show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("Threshold", f"{config.get('vad.threshold')} (0.0 = most sensitive, 1.0 = least sensitive)")
    table.add_row("Silence Duration", f"{config.get('vad.silence_duration_seconds')} seconds")
    table.add_row("Maximum Recording Duration", f"{max_duration} seconds" if max_duration > 0 else "Disabled")
    table.add_row("Debug Mode", enabled(config.get('logging.level', '').upper() == 'DEBUG'))
    table.add_row("Dialogue API", enabled(config.get('dialogue.enabled')))
    table.add_row("Conversation Context", enabled(config.get('dialogue.use_context')))
    table.add_row("TTS Model", config.get('synthesis.model'))
    table.add_row("TTS Quantization", config.get('synthesis.quantization'))
    table.add_row("Skip Model Init", enabled(config.get('synthesis.skip_model_init')))
    table.add_row("Call API", config.get_call_api_base_url() or "Not configured")
    return table


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for ai-phone."""
    args, unknown = parse_args(argv)

    try:
        config = AiPhoneConfig(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"❌ Configuration error: {e}")
        sys.exit(1)

    ignored = apply_cli_overrides(config, args)
    setup_logging(config, config.get('logging.level', 'INFO'))
    for arg in unknown:
        logger.warning(f"Ignoring unrecognized argument: {arg}")
    for message in ignored:
        logger.warning(f"Ignoring {message}, using configured value")

    Console().print(settings_table(config))

    app = Application(config)
    try:
        exit_code = asyncio.run(app.run())
    except KeyboardInterrupt:
        exit_code = 0

    if exit_code:
        sys.exit(exit_code)
    print("\n👋 Goodbye!")


if __name__ == "__main__":
    main()
