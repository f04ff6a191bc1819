"""
Tests for the click command-line interface.
"""

import asyncio
import logging
from unittest.mock import AsyncMock, patch

import click
import pytest
from aioresponses import aioresponses
from click.testing import CliRunner
from helpers import API_URL, archive_url, endpoint

from outscraper_aio import __version__
from outscraper_aio.cli import EXIT_INTERRUPTED, cli, interrupt_handler, run_client_call
from outscraper_aio.client.poller import ArchivePoller
from outscraper_aio.config import Config

pytestmark = [pytest.mark.unit, pytest.mark.usefixtures("restore_logging")]


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def no_sleep():
    with patch.object(ArchivePoller, "_sleep", new=AsyncMock(return_value=False)) as sleep:
        yield sleep


def test_version(runner):
    result = runner.invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_missing_api_key(runner):
    result = runner.invoke(cli, ["history"])

    assert result.exit_code == 1
    assert "api_key must have a value" in result.output


def test_history(runner):
    with aioresponses() as m:
        m.get(f"{API_URL}/requests", payload=[{"id": "req-1", "status": "Success"}])

        result = runner.invoke(cli, ["--api-key", "k", "history"])

    assert result.exit_code == 0, result.output
    assert "req-1" in result.output


def test_api_key_from_environment(runner, monkeypatch):
    monkeypatch.setenv("OUTSCRAPER_API_KEY", "env-key")
    with aioresponses() as m:
        m.get(f"{API_URL}/requests", payload=[])

        result = runner.invoke(cli, ["history"])

        ((calls),) = m.requests.values()

    assert result.exit_code == 0, result.output
    assert calls[0].kwargs["headers"]["X-API-KEY"] == "env-key"


def test_api_error_exits_non_zero(runner):
    with aioresponses() as m:
        m.get(endpoint("google-search-v3"), payload={"error": True, "errorMessage": "bad query"})

        result = runner.invoke(cli, ["--api-key", "k", "google-search", "bitcoin"])

    assert result.exit_code == 1
    assert "Error: bad query" in result.output


def test_maps_search_async(runner):
    with aioresponses() as m:
        m.get(endpoint("maps/search-v2"), payload={"id": "job-9", "status": "Pending"})

        result = runner.invoke(cli, ["--api-key", "k", "maps-search", "cafe", "bar", "--limit", "5", "--async"])

        ((_, url),) = m.requests.keys()

    assert result.exit_code == 0, result.output
    assert "job-9" in result.output
    assert url.query.getall("query") == ["bar", "cafe"]
    assert url.query["async"] == "1"
    assert url.query["organizationsPerQueryLimit"] == "5"


def test_archive_wait(runner, no_sleep):
    with aioresponses() as m:
        m.get(archive_url("abc"), payload={"id": "abc", "status": "Pending"})
        m.get(archive_url("abc"), payload={"id": "abc", "status": "Success", "data": ["done"]})

        result = runner.invoke(cli, ["--api-key", "k", "archive", "abc", "--wait"])

    assert result.exit_code == 0, result.output
    assert "done" in result.output
    assert no_sleep.await_count == 2


def test_archive_without_wait(runner, no_sleep):
    with aioresponses() as m:
        m.get(archive_url("abc"), payload={"id": "abc", "status": "Pending"})

        result = runner.invoke(cli, ["--api-key", "k", "archive", "abc"])

    assert result.exit_code == 0, result.output
    assert "Pending" in result.output
    no_sleep.assert_not_awaited()


def test_trustpilot_reviews(runner, no_sleep):
    with aioresponses() as m:
        m.get(endpoint("trustpilot/reviews"), payload={"id": "tpr"})
        m.get(archive_url("tpr"), payload={"id": "tpr", "status": "Success", "data": [["great"]]})

        result = runner.invoke(
            cli, ["--api-key", "k", "trustpilot-reviews", "outscraper.com", "--limit", "3", "--sort", "recency"]
        )

    assert result.exit_code == 0, result.output
    assert "great" in result.output


def test_timeout_exits_non_zero(runner, tmp_path, no_sleep):
    config_path = tmp_path / "custom.yaml"
    config_path.write_text("polling:\n  poll_interval: 5\n  max_wait: 5\n", encoding="utf-8")

    with aioresponses() as m:
        m.get(endpoint("trustpilot"), payload={"id": "slow"})
        m.get(archive_url("slow"), payload={"id": "slow", "status": "Pending"}, repeat=True)

        result = runner.invoke(cli, ["--config", str(config_path), "--api-key", "k", "trustpilot", "outscraper.com"])

    assert result.exit_code == 1
    assert "Timeout exceeded" in result.output
    assert no_sleep.await_count == 1


def test_config_file_discovered_in_working_directory(runner, tmp_path):
    (tmp_path / "outscraper.yaml").write_text("api_key: file-key\n", encoding="utf-8")

    with aioresponses() as m:
        m.get(endpoint("phones-enricher"), payload={"data": [{"carrier": "AT&T"}]})

        result = runner.invoke(cli, ["phones", "+1 281 236 8208"])

        ((calls),) = m.requests.values()

    assert result.exit_code == 0, result.output
    assert "AT&T" in result.output
    assert calls[0].kwargs["headers"]["X-API-KEY"] == "file-key"


def test_invalid_environment_settings_exit_non_zero(runner, monkeypatch):
    monkeypatch.setenv("OUTSCRAPER_POLLING__MAX_WAIT", "1")

    result = runner.invoke(cli, ["--api-key", "k", "history"])

    assert result.exit_code == 1
    assert "Error: Invalid configuration" in result.output


def test_invalid_config_file_exits_non_zero(runner, tmp_path):
    config_path = tmp_path / "custom.yaml"
    config_path.write_text("polling: [unclosed\n", encoding="utf-8")

    result = runner.invoke(cli, ["--config", str(config_path), "--api-key", "k", "history"])

    assert result.exit_code == 1
    assert "Error: Invalid configuration file" in result.output


def test_log_level_from_config_file(runner, tmp_path):
    (tmp_path / "outscraper.yaml").write_text("monitoring:\n  log_level: DEBUG\n", encoding="utf-8")

    with aioresponses() as m:
        m.get(f"{API_URL}/requests", payload=[])

        result = runner.invoke(cli, ["--api-key", "k", "history"])

    assert result.exit_code == 0, result.output
    assert logging.getLogger().level == logging.DEBUG


def test_log_level_option_overrides_config_file(runner, tmp_path):
    (tmp_path / "outscraper.yaml").write_text("monitoring:\n  log_level: DEBUG\n", encoding="utf-8")

    with aioresponses() as m:
        m.get(f"{API_URL}/requests", payload=[])

        result = runner.invoke(cli, ["--log-level", "ERROR", "--api-key", "k", "history"])

    assert result.exit_code == 0, result.output
    assert logging.getLogger().level == logging.ERROR


class TestInterruptHandling:
    async def test_plain_request_is_cancelled_on_first_interrupt(self):
        task = asyncio.create_task(asyncio.sleep(10))
        cancel_event = asyncio.Event()

        interrupt_handler(task, cancel_event, polled=False)()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert not cancel_event.is_set()

    async def test_polled_request_sets_event_then_cancels(self):
        task = asyncio.create_task(asyncio.sleep(10))
        cancel_event = asyncio.Event()
        on_interrupt = interrupt_handler(task, cancel_event, polled=True)

        on_interrupt()
        await asyncio.sleep(0)

        assert cancel_event.is_set()
        assert not task.done()

        on_interrupt()

        with pytest.raises(asyncio.CancelledError):
            await task

    def test_cancelled_command_exits_with_interrupt_status(self):
        ctx = click.Context(cli, obj={"api_key": "k", "config": Config()})

        async def call(client, cancel_event):
            asyncio.current_task().cancel()
            await asyncio.sleep(10)

        with pytest.raises(SystemExit) as exc_info:
            run_client_call(ctx, call)

        assert exc_info.value.code == EXIT_INTERRUPTED
