"""Tests for the `tpulse` CLI."""

import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from click.testing import CliRunner

from threatpulse.cli.main import cli
from threatpulse.schemas.pipeline import PipelineRunSummary, RunStage


@pytest.fixture
def runner():
    return CliRunner()


def test_pipeline_run_local_success(runner):
    summary = PipelineRunSummary(success=True, stage=RunStage.DONE, fetched=3, inserted=2)
    run_once = AsyncMock(return_value=summary)
    site = uuid.uuid4()

    with (
        patch("threatpulse.pipeline.orchestrator.run_once", new=run_once),
        patch("threatpulse.core.database.close_engine", new=AsyncMock()) as close_engine,
    ):
        result = runner.invoke(cli, ["pipeline", "run", "--local", "--site", str(site)])

    assert result.exit_code == 0, result.output
    assert "Run complete" in result.output
    run_once.assert_awaited_once_with(site_ids=[site])
    close_engine.assert_awaited_once()


def test_pipeline_run_local_failure_exits_nonzero(runner):
    summary = PipelineRunSummary(
        success=False, stage=RunStage.FETCH_FAILED, error="Feed error 503: Service Unavailable"
    )

    with (
        patch("threatpulse.pipeline.orchestrator.run_once", new=AsyncMock(return_value=summary)),
        patch("threatpulse.core.database.close_engine", new=AsyncMock()),
    ):
        result = runner.invoke(cli, ["pipeline", "run", "--local"])

    assert result.exit_code == 1
    assert "Run failed" in result.output


def test_pipeline_run_local_rejects_bad_site(runner):
    result = runner.invoke(cli, ["pipeline", "run", "--local", "--site", "not-a-uuid"])
    assert result.exit_code == 2
    assert "--site" in result.output


def test_pipeline_run_remote_posts_to_api(runner):
    body = PipelineRunSummary(success=True, stage=RunStage.DONE).model_dump(mode="json")
    response = MagicMock(status_code=200)
    response.json.return_value = body

    with patch("httpx.post", return_value=response) as post:
        result = runner.invoke(cli, ["--api-url", "http://api.test/", "pipeline", "run"])

    assert result.exit_code == 0, result.output
    assert post.call_args.args[0] == "http://api.test/api/v1/pipeline/run"


def test_pipeline_run_remote_unreachable(runner):
    with patch("httpx.post", side_effect=httpx.ConnectError("refused")):
        result = runner.invoke(cli, ["pipeline", "run"])

    assert result.exit_code == 1
    assert "Cannot connect" in result.output
