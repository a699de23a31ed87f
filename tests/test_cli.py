"""Tests for the command line entry point."""
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from youtube_insights import cli
from youtube_insights.models import PipelineMode
from youtube_insights.utils.error_handling import InvalidVideoIdError


@pytest.fixture
def engine():
    with patch('youtube_insights.cli.InsightsEngine') as mock_engine, \
            patch('youtube_insights.cli.configure_logging'):
        yield mock_engine.return_value


class TestCli:
    """Test cases for the CLI."""

    def test_prints_output_path(self, engine, capsys):
        engine.run = AsyncMock(return_value={"output_path": Path("out/video.html")})

        exit_code = cli.main(["dQw4w9WgXcQ", "--mode", "content"])

        assert exit_code == 0
        engine.run.assert_awaited_once_with("dQw4w9WgXcQ", PipelineMode.CONTENT)
        assert "video.html" in capsys.readouterr().out

    def test_failure_exit_code(self, engine):
        engine.run = AsyncMock(side_effect=InvalidVideoIdError("bad"))

        assert cli.main(["bad"]) == 1

    def test_rejects_unknown_mode(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["dQw4w9WgXcQ", "--mode", "summary"])
