"""
Command line interface tests using click's CliRunner.

Network access is replaced by patching the fetch helpers of FeedFetcher
and ContentExtractor.
"""

import json
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from autoblogger.ingestion.content_extractor import ContentExtractor
from autoblogger.processing.feed_fetcher import FeedFetcher
import main
from main import cli

FEED = b"""<?xml version="1.0"?>
<rss version="2.0"><channel><title>Source</title>
<item><title>Hello world</title><link>https://source.example/hello</link><guid>hello-1</guid></item>
</channel></rss>"""

PAGE = b"<html><body><article><p>An article body worth publishing.</p></article></body></html>"


@pytest.fixture
def cli_runner(monkeypatch):
    monkeypatch.setattr(main.console, "width", 200)
    return CliRunner()


@pytest.fixture
def campaign_file(tmp_path):
    path = tmp_path / "campaign.json"
    path.write_text(
        json.dumps({"feedURL": "https://source.example/feed.xml", "postStatus": "publish", "minWords": "3"}),
        encoding="utf-8",
    )
    return path


class TestCli:

    def test_help(self, cli_runner):
        result = cli_runner.invoke(cli, [])
        assert result.exit_code == 0
        assert "run-all" in result.output

    def test_check_config(self, cli_runner):
        result = cli_runner.invoke(cli, ["check-config"])

        assert result.exit_code == 0
        assert "Configuration loaded" in result.output
        assert "none configured" in result.output

    def test_init_db(self, cli_runner, test_settings):
        result = cli_runner.invoke(cli, ["init-db"])

        assert result.exit_code == 0
        assert "Database initialized" in result.output

    def test_init_db_reports_unusable_database_path(self, cli_runner, test_settings, tmp_path):
        test_settings.database.path = str(tmp_path)

        result = cli_runner.invoke(cli, ["init-db"])

        assert result.exit_code == 1
        assert "Campaign store operation failed" in result.output

    def test_add_and_list_campaign(self, cli_runner, campaign_file):
        added = cli_runner.invoke(cli, ["add-campaign", "news", str(campaign_file)])
        listed = cli_runner.invoke(cli, ["list-campaigns"])

        assert added.exit_code == 0
        assert "news" in listed.output
        assert "never" in listed.output

    def test_add_campaign_with_invalid_config(self, cli_runner, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"feedURL": "ftp://nope"}), encoding="utf-8")

        result = cli_runner.invoke(cli, ["add-campaign", "bad", str(path)])

        assert result.exit_code == 1
        assert "Invalid campaign configuration" in result.output

    def test_run_publishes_to_output_file(self, cli_runner, campaign_file, test_settings):
        cli_runner.invoke(cli, ["add-campaign", "news", str(campaign_file)])

        with patch.object(FeedFetcher, "_download", AsyncMock(return_value=FEED)), \
                patch.object(ContentExtractor, "_fetch_page", AsyncMock(return_value=PAGE)):
            first = cli_runner.invoke(cli, ["run", "news"])
            second = cli_runner.invoke(cli, ["run", "news", "--force"])

        assert first.exit_code == 0
        assert "1 published" in first.output
        assert "0 new" in second.output

        with open(test_settings.publishing.output_path, encoding="utf-8") as handle:
            records = [json.loads(line) for line in handle]
        posts = [r for r in records if r["type"] == "post"]
        assert len(posts) == 1
        assert posts[0]["title"] == "Hello world"
        assert posts[0]["status"] == "publish"
        assert posts[0]["body"] == "<p>An article body worth publishing.</p>"

    def test_run_unknown_campaign(self, cli_runner):
        cli_runner.invoke(cli, ["init-db"])
        result = cli_runner.invoke(cli, ["run", "ghost"])

        assert result.exit_code == 1

    def test_fetch_command(self, cli_runner):
        with patch.object(FeedFetcher, "_download", AsyncMock(return_value=FEED)):
            result = cli_runner.invoke(cli, ["fetch", "https://source.example/feed.xml"])

        assert result.exit_code == 0
        assert "hello-1" in result.output

    def test_extract_command(self, cli_runner):
        with patch.object(ContentExtractor, "_fetch_page", AsyncMock(return_value=PAGE)):
            result = cli_runner.invoke(cli, ["extract", "https://source.example/hello"])

        assert result.exit_code == 0
        assert "An article body worth publishing." in result.output
