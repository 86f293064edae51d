"""Unit tests for the command line and the application runner."""

import pytest
import asyncio
import os

from rich.console import Console

from aiphone.config import AiPhoneConfig
from aiphone.main import Application, apply_cli_overrides, main, parse_args, settings_table
from tests.helpers import FakeTracker, ScriptedFrameSource, level_frames


def overrides(*argv):
    config = AiPhoneConfig()
    args, unknown = parse_args(list(argv))
    ignored = apply_cli_overrides(config, args)
    return config, ignored, unknown


@pytest.fixture
def app_config(temp_data_dir):
    config = AiPhoneConfig()
    config.set('recording.path', os.path.join(temp_data_dir, "recording.wav"))
    config.set('recording.flush_delay_seconds', 0.0)
    config.set('audio.cues.start', None)
    config.set('audio.cues.stop', None)
    config.set('synthesis.skip_model_init', True)
    return config


@pytest.mark.unit
class TestCommandLine:

    def test_defaults_leave_config_untouched(self):
        config, ignored, unknown = overrides()

        assert ignored == []
        assert unknown == []
        assert config.get('vad.threshold') == 0.045
        assert config.get('dialogue.enabled') is True

    def test_recording_options(self):
        config, ignored, _ = overrides("--threshold", "0.1", "--silence", "2", "--max-duration", "30")

        assert ignored == []
        assert config.get('vad.threshold') == 0.1
        assert config.get('vad.silence_duration_seconds') == 2.0
        assert config.get('vad.max_duration_seconds') == 30.0

    @pytest.mark.parametrize("argv", [
        ("--threshold", "loud"),
        ("--threshold", "1.5"),
        ("--threshold", "-0.1"),
        ("--threshold", "nan"),
        ("--threshold", "inf"),
        ("--silence", "inf"),
        ("--max-duration", "nan"),
        ("--silence", "0"),
        ("--max-duration", "-5"),
    ])
    def test_invalid_values_fall_back_to_config(self, argv):
        config, ignored, _ = overrides(*argv)

        assert len(ignored) == 1
        assert config.get('vad.threshold') == 0.045
        assert config.get('vad.silence_duration_seconds') == 1.0
        assert config.get('vad.max_duration_seconds') == 15.0

    def test_threshold_bounds_are_inclusive(self):
        config, ignored, _ = overrides("--threshold", "0")

        assert ignored == []
        assert config.get('vad.threshold') == 0.0

    def test_no_timeout(self):
        config, _, _ = overrides("--no-timeout")

        assert config.get('vad.max_duration_seconds') == 0.0

    @pytest.mark.parametrize("flag,expected", [
        ("--no-dialogue", False), ("--no-claude", False),
        ("--use-dialogue", True), ("--use-claude", True),
    ])
    def test_dialogue_aliases(self, flag, expected):
        config, _, _ = overrides(flag)

        assert config.get('dialogue.enabled') is expected

    def test_context_and_debug(self):
        config, _, _ = overrides("--no-context", "--debug")

        assert config.get('dialogue.use_context') is False
        assert config.get('logging.level') == 'DEBUG'

    def test_tts_options(self):
        config, ignored, _ = overrides("--tts-model", "models/custom.onnx", "--tts-quantization", "fp16",
                                       "--skip-model-init")

        assert ignored == []
        assert config.get('synthesis.model') == "models/custom.onnx"
        assert config.get('synthesis.quantization') == "fp16"
        assert config.get('synthesis.skip_model_init') is True

    def test_unknown_quantization_ignored(self):
        config, ignored, _ = overrides("--tts-quantization", "int2")

        assert config.get('synthesis.quantization') == "q4"
        assert "int2" in ignored[0]

    def test_unknown_arguments_collected(self):
        _, _, unknown = overrides("--speaker", "left")

        assert unknown == ["--speaker", "left"]

    def test_settings_table(self):
        config, _, _ = overrides("--no-timeout", "--no-dialogue")
        console = Console(record=True, width=200)

        console.print(settings_table(config))
        text = console.export_text()

        assert "Maximum Recording Duration" in text
        assert "Dialogue API" in text
        assert "Disabled" in text

    def test_missing_config_file_exits(self, temp_data_dir):
        with pytest.raises(SystemExit) as exc_info:
            main(["--config", os.path.join(temp_data_dir, "missing.yaml")])

        assert exc_info.value.code == 1


@pytest.mark.unit
class TestApplication:

    def test_runs_one_call_and_releases_services(self, app_config, make_services):
        services = make_services(sources=[ScriptedFrameSource(level_frames([0.9] * 30 + [0.01] * 30))])
        app = Application(app_config, services_factory=lambda config: services)

        exit_code = asyncio.run(app.run())

        assert exit_code == 0
        assert app.session.turns_completed == 2
        assert services.player.closed
        assert services.synthesizer.preloaded == []

    def test_warm_up_runs_unless_skipped(self, app_config, make_services):
        app_config.set('synthesis.skip_model_init', False)
        services = make_services()
        app = Application(app_config, services_factory=lambda config: services)

        assert asyncio.run(app.run()) == 0
        assert len(services.synthesizer.preloaded) > 0

    def test_fatal_device_errors_exit_nonzero(self, app_config, make_services):
        services = make_services(sources=[ScriptedFrameSource([], fail_open=True) for _ in range(3)])
        app = Application(app_config, services_factory=lambda config: services)

        assert asyncio.run(app.run()) == 1
        assert services.player.closed

    def test_interrupt_ends_call_cleanly(self, app_config, make_services):
        app_config.set('vad.max_duration_seconds', 0.0)
        tracker = FakeTracker()
        stalled = ScriptedFrameSource(level_frames([0.9] * 2), stall=True)
        services = make_services(sources=[stalled], tracker=tracker)
        app = Application(app_config, services_factory=lambda config: services)

        async def scenario():
            run = asyncio.create_task(app.run())
            while not stalled.opened:
                await asyncio.sleep(0.01)
            app.interrupt()
            app.interrupt()
            return await run

        assert asyncio.run(scenario()) == 0
        assert stalled.closed
        assert tracker.statuses[-1] == "completed"
        assert services.player.closed
