"""Tests for the mobility_stream command-line entry point."""

import asyncio
import logging
from unittest.mock import patch

import pytest

from core.errors.exceptions import ConfigurationError, PublishError
from mobility_stream.__main__ import build_config, main, main_async, parse_args, run_workers
from mobility_stream.common.signals import ShutdownCoordinator


class TestParseArgs:
    def test_defaults(self):
        args = parse_args([])

        assert args.worker == "all"
        assert args.metrics_port == 8000
        assert args.health_port == 8080
        assert args.max_events is None
        assert args.disable_generation is False

    def test_generator_overrides(self):
        args = parse_args(
            ["--worker", "event-generator", "--max-events", "50", "--interval-ms", "100"]
        )

        assert args.worker == "event-generator"
        assert args.max_events == 50
        assert args.interval_ms == 100

    def test_unknown_worker_rejected(self):
        with pytest.raises(SystemExit):
            parse_args(["--worker", "image-uploader"])


class TestBuildConfig:
    def test_cli_overrides_generator(self, monkeypatch):
        monkeypatch.setenv("KAFKA_BOOTSTRAP_SERVERS", "broker:9092")
        args = parse_args(["--max-events", "5", "--interval-ms", "10", "--disable-generation"])

        config = build_config(args)

        assert config.kafka.bootstrap_servers == "broker:9092"
        assert config.generator.max_events == 5
        assert config.generator.interval_ms == 10
        assert config.generator.enabled is False

    def test_invalid_override_rejected(self, monkeypatch):
        monkeypatch.setenv("KAFKA_BOOTSTRAP_SERVERS", "broker:9092")
        args = parse_args(["--max-events", "-1"])

        with pytest.raises(ConfigurationError):
            build_config(args)


class TestMain:
    def test_configuration_error_exits_fatal(self, monkeypatch):
        monkeypatch.setenv("KAFKA_BOOTSTRAP_SERVERS", "broker:9092")
        args = ["--max-events", "-1", "--log-to-stdout", "--metrics-port", "0"]

        with patch("mobility_stream.__main__.load_dotenv"), patch(
            "mobility_stream.__main__._setup_logging"
        ) as setup, patch("mobility_stream.__main__.asyncio.run") as run:
            assert main(args) == 1

        setup.assert_called_once()
        run.assert_not_called()


class TestRunWorkers:
    @pytest.mark.asyncio
    async def test_failing_worker_shuts_down_others(self):
        stopped = []

        async def fake_run(name, config, shutdown_event, health_port=None):
            if name == "event-generator":
                raise ConnectionError("no brokers")
            await shutdown_event.wait()
            stopped.append(name)

        coordinator = ShutdownCoordinator(asyncio.Event())
        args = parse_args(["--health-port", "-1"])

        with patch("mobility_stream.__main__.run_worker_from_registry", side_effect=fake_run):
            with pytest.raises(ConnectionError):
                await run_workers(args, object(), coordinator)

        assert coordinator.shutdown_event.is_set()
        assert stopped == ["analytics-processor"]

    @pytest.mark.asyncio
    async def test_single_worker(self):
        calls = []

        async def fake_run(name, config, shutdown_event, health_port=None):
            calls.append((name, health_port))

        coordinator = ShutdownCoordinator(asyncio.Event())
        args = parse_args(["--worker", "analytics-processor", "--health-port", "0"])

        with patch("mobility_stream.__main__.run_worker_from_registry", side_effect=fake_run):
            await run_workers(args, object(), coordinator)

        assert calls == [("analytics-processor", 0)]


class TestMainAsync:
    @pytest.fixture(autouse=True)
    def no_signal_handlers(self):
        with patch("mobility_stream.__main__.setup_shutdown_signal_handlers"), patch(
            "mobility_stream.__main__.remove_shutdown_signal_handlers"
        ):
            yield

    @pytest.mark.asyncio
    async def test_fatal_pipeline_error_logs_its_fields(self, caplog):
        error = PublishError(
            "Failed to send message to mobility-events",
            topic="mobility-events",
            vehicle_id="VH-3",
        )

        with patch("mobility_stream.__main__.run_workers", side_effect=error):
            with caplog.at_level(logging.ERROR, logger="mobility_stream.__main__"):
                assert await main_async(parse_args([]), object()) == 1

        record = next(r for r in caplog.records if r.getMessage() == "Fatal error")
        assert record.topic == "mobility-events"
        assert record.vehicle_id == "VH-3"
        assert record.error_category == "transient"

    @pytest.mark.asyncio
    async def test_fatal_error_is_classified(self, caplog):
        with patch(
            "mobility_stream.__main__.run_workers", side_effect=ConnectionRefusedError("refused")
        ):
            with caplog.at_level(logging.ERROR, logger="mobility_stream.__main__"):
                assert await main_async(parse_args([]), object()) == 1

        record = next(r for r in caplog.records if r.getMessage() == "Fatal error")
        assert record.error_category == "transient"
