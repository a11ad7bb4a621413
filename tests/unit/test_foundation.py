"""
Foundation Tests for Autoblogger
================================

Configuration, exceptions, logging and the JSON-lines publish target.
"""

import asyncio
import json
import logging

import pytest

from autoblogger.config.settings import AutobloggerSettings, PublishingSettings, load_settings
from autoblogger.database.models import PostStatus, PublishRequest
from autoblogger.publishing.target import JsonlPublishTarget
from autoblogger.utils.exceptions import (
    ConfigurationError,
    ErrorCode,
    FeedUnavailableError,
    PublishError,
    ValidationError,
    get_user_friendly_message,
)
from autoblogger.utils.logging import (
    PerformanceLogger,
    StructuredFormatter,
    get_logger_for_component,
)
from autoblogger.utils.validators import URLValidator


class TestSettings:

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("AUTOBLOGGER_LIMITS__FEED_TIMEOUT", "12")
        monkeypatch.setenv("AUTOBLOGGER_AI__GROQ_API_KEY", "gsk-env")
        monkeypatch.setenv("AUTOBLOGGER_PUBLISHING__SITE_URL", "https://env.example")
        monkeypatch.chdir(tmp_path)

        settings = AutobloggerSettings()

        assert settings.limits.feed_timeout == 12
        assert settings.ai.get_api_key("groq") == "gsk-env"
        assert settings.ai.get_model("gemini") == "gemini-1.5-flash"
        assert settings.publishing.site_host == "env.example"

    def test_invalid_site_url(self):
        with pytest.raises(ValueError):
            PublishingSettings(site_url="myblog")

    def test_load_settings_wraps_errors(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("AUTOBLOGGER_LIMITS__FEED_TIMEOUT", "not-a-number")

        with pytest.raises(ConfigurationError) as exc_info:
            load_settings()

        assert exc_info.value.error_code == ErrorCode.CONFIG_INVALID

    def test_unparseable_nested_setting(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("AUTOBLOGGER_LOGGING", "{not json")

        with pytest.raises(ConfigurationError) as exc_info:
            load_settings()

        assert exc_info.value.error_code == ErrorCode.CONFIG_PARSE_ERROR

    def test_debug_forces_debug_level(self, test_settings):
        settings = test_settings.model_copy(update={"debug": True})
        assert settings.get_effective_log_level() == "DEBUG"


class TestExceptions:

    def test_error_serialization(self):
        error = FeedUnavailableError("HTTP 404 fetching feed", feed_url="https://x.example/feed",
                                     error_code=ErrorCode.FEED_HTTP_STATUS)

        data = error.to_dict()

        assert str(error) == "[F005] HTTP 404 fetching feed"
        assert data["error_type"] == "FeedUnavailableError"
        assert data["context"] == {"feed_url": "https://x.example/feed"}
        assert data["recoverable"] is True

    def test_user_friendly_message(self):
        assert get_user_friendly_message(ConfigurationError("bad value")) == "Configuration error: bad value"
        assert "unexpected" in get_user_friendly_message(RuntimeError("boom"))

    def test_url_helpers(self):
        assert URLValidator.host_of("https://WWW.Example.com:8080/x") == "www.example.com"
        assert URLValidator.host_of("/relative") == ""
        assert URLValidator.is_http_url(" https://x.example ")
        assert not URLValidator.is_http_url("mailto:a@b.c")

    @pytest.mark.parametrize("url", ["ftp://x.example/feed", "https:///feed.xml"])
    def test_invalid_feed_url_code(self, url):
        with pytest.raises(ValidationError) as exc_info:
            URLValidator.validate_feed_url(url)

        assert exc_info.value.error_code == ErrorCode.FEED_INVALID_URL


class TestLogging:

    def test_component_context_is_attached(self, caplog):
        logger = get_logger_for_component("feed_fetcher", campaign_id="news", item_key="k1")

        with caplog.at_level(logging.INFO, logger="autoblogger"):
            logger.info("hello", extra={"attempt": 2})

        record = caplog.records[-1]
        assert record.name == "autoblogger.feed_fetcher"
        assert record.component == "feed_fetcher"
        assert record.campaign_id == "news"
        assert record.attempt == 2

    def test_structured_formatter_outputs_json(self):
        record = logging.LogRecord("autoblogger.test", logging.WARNING, __file__, 10, "value %s", ("x",), None)
        record.campaign_id = "news"

        data = json.loads(StructuredFormatter().format(record))

        assert data["message"] == "value x"
        assert data["level"] == "WARNING"
        assert data["extra"] == {"campaign_id": "news"}

    def test_performance_logger(self, caplog):
        logger = get_logger_for_component("runner")

        with caplog.at_level(logging.INFO, logger="autoblogger"):
            with PerformanceLogger(logger, "unit of work", campaign_id="news") as perf:
                pass

        assert perf.duration is not None
        assert caplog.records[-1].getMessage().startswith("Completed unit of work")
        assert caplog.records[-1].success is True


class TestJsonlPublishTarget:

    @pytest.mark.asyncio
    async def test_post_and_metadata_records(self, tmp_path):
        target = JsonlPublishTarget(str(tmp_path / "out" / "posts.jsonl"))
        request = PublishRequest(
            title="Title", body="<p>b</p>", status=PostStatus.PUBLISH,
            source_url="https://source.example/a", source_key="k", campaign_id="news",
        )

        post_id = await target.publish(request)
        await target.attach_metadata(post_id, request.back_reference())

        lines = (tmp_path / "out" / "posts.jsonl").read_text(encoding="utf-8").splitlines()
        post, metadata = (json.loads(line) for line in lines)
        assert post["type"] == "post" and post["post_id"] == post_id
        assert post["status"] == "publish"
        assert metadata == {"type": "metadata", "post_id": post_id, "metadata": request.back_reference()}

    @pytest.mark.asyncio
    async def test_unwritable_output_raises_publish_error(self, tmp_path):
        target = JsonlPublishTarget(str(tmp_path / "posts.jsonl"))
        target.output_path = tmp_path

        request = PublishRequest(title="t", body="b", source_url="https://s.example/a", source_key="k", campaign_id="c")
        with pytest.raises(PublishError):
            await target.publish(request)

    @pytest.mark.asyncio
    async def test_concurrent_publishes_write_whole_lines(self, tmp_path):
        target = JsonlPublishTarget(str(tmp_path / "posts.jsonl"))
        requests = [
            PublishRequest(title=f"t{i}", body="<p>" + "x" * 5000 + "</p>",
                           source_url=f"https://s.example/{i}", source_key=f"k{i}", campaign_id="c")
            for i in range(20)
        ]

        post_ids = await asyncio.gather(*(target.publish(request) for request in requests))

        lines = (tmp_path / "posts.jsonl").read_text(encoding="utf-8").splitlines()
        assert len(lines) == 20
        assert {json.loads(line)["post_id"] for line in lines} == set(post_ids)
