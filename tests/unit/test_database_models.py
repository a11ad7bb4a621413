"""
Unit tests for Autoblogger data models.
"""

from datetime import datetime, timezone, timedelta

import pytest
from pydantic import ValidationError

from autoblogger.database.models import (
    DEFAULT_PROMPT_TEMPLATE,
    Campaign,
    ExtractionMethod,
    PostStatus,
    ProcessingOutcome,
    PublishRequest,
    RejectionReason,
    RewriteProviderType,
    ScheduleInterval,
)

FEED_URL = "https://source.example/feed.xml"


class TestCampaignFromConfig:

    def test_defaults(self):
        campaign = Campaign.from_config("c1", {"feedURL": FEED_URL})

        assert campaign.max_items == 2000
        assert campaign.check_latest_only is False
        assert campaign.extraction.method == ExtractionMethod.AUTO
        assert campaign.rewrite.enabled is False
        assert campaign.rewrite.prompt_template == DEFAULT_PROMPT_TEMPLATE
        assert campaign.publish.status == PostStatus.DRAFT
        assert campaign.schedule_interval == ScheduleInterval.HOURLY
        assert campaign.active is True

    def test_full_configuration(self):
        campaign = Campaign.from_config(
            "c1",
            {
                "feedURL": f"  {FEED_URL} ",
                "maxItems": "25",
                "checkLatestOnly": "1",
                "extractionMethod": "css",
                "cssSelector": " .entry , #main ",
                "removeByClass": "ad, share,, ad",
                "removeById": ["comments", " footer "],
                "stripLinks": "",
                "addNofollow": "on",
                "minWords": "",
                "maxWords": "900",
                "requiredKeywords": "python",
                "rewriteEnabled": True,
                "promptTemplate": "",
                "provider": "GPT-4",
                "downloadImages": "1",
                "setFeaturedImage": "0",
                "authorID": "3",
                "postStatus": "pending",
                "unknownOption": "ignored",
            },
        )

        assert campaign.feed_url == FEED_URL
        assert campaign.max_items == 25
        assert campaign.check_latest_only is True
        assert campaign.extraction.method == ExtractionMethod.CSS
        assert campaign.extraction.selector == ".entry , #main"
        assert campaign.filters.remove_by_class == ["ad", "share"]
        assert campaign.filters.remove_by_id == ["comments", "footer"]
        assert campaign.filters.strip_links is False
        assert campaign.filters.add_nofollow is True
        assert campaign.filters.min_words == 0
        assert campaign.filters.max_words == 900
        assert campaign.filters.required_keywords == ["python"]
        assert campaign.rewrite.prompt_template == DEFAULT_PROMPT_TEMPLATE
        assert campaign.rewrite.provider == RewriteProviderType.OPENAI
        assert campaign.images.download is True
        assert campaign.images.set_featured is False
        assert campaign.publish.author_id == 3
        assert campaign.publish.status == PostStatus.PENDING

    @pytest.mark.parametrize("url", ["", "ftp://source.example/feed", "not a url", "https://"])
    def test_invalid_feed_url(self, url):
        with pytest.raises(ValidationError):
            Campaign.from_config("c1", {"feedURL": url})

    def test_unknown_provider_rejected(self):
        with pytest.raises(ValidationError):
            Campaign.from_config("c1", {"feedURL": FEED_URL, "provider": "claude"})

    def test_max_items_must_be_positive(self):
        with pytest.raises(ValidationError):
            Campaign.from_config("c1", {"feedURL": FEED_URL, "maxItems": 0})

    def test_config_json_excludes_run_state(self):
        campaign = Campaign(id="c1", feed_url=FEED_URL, imported_keys=["k"], last_run_at=datetime.now(timezone.utc))

        dumped = campaign.config_json()

        assert "imported_keys" not in dumped
        assert "last_run_at" not in dumped


class TestSchedule:

    @pytest.mark.parametrize(
        "interval, seconds",
        [("thirty_min", 1800), ("hourly", 3600), ("twice_daily", 43200), ("daily", 86400)],
    )
    def test_interval_seconds(self, interval, seconds):
        assert ScheduleInterval(interval).seconds == seconds

    def test_never_run_campaign_is_due(self):
        assert Campaign(id="c1", feed_url=FEED_URL).is_due(datetime.now(timezone.utc))

    def test_due_exactly_at_interval(self):
        now = datetime(2024, 9, 10, 12, 0, tzinfo=timezone.utc)
        campaign = Campaign(id="c1", feed_url=FEED_URL, last_run_at=now - timedelta(hours=1))

        assert campaign.is_due(now)
        assert not campaign.is_due(now - timedelta(seconds=1))

    def test_naive_last_run_treated_as_utc(self):
        campaign = Campaign(id="c1", feed_url=FEED_URL, last_run_at=datetime(2024, 9, 10, 12, 0))
        assert campaign.last_run_at.tzinfo == timezone.utc


class TestPipelineModels:

    def test_processing_outcome(self):
        accepted = ProcessingOutcome.accept("<p>x</p>", "asset-1")
        rejected = ProcessingOutcome.reject(RejectionReason.TOO_LONG)

        assert accepted.is_accepted and accepted.featured_image_ref == "asset-1"
        assert not rejected.is_accepted and rejected.final_markup is None

    def test_publish_request_back_reference(self):
        request = PublishRequest(
            title="t", body="<p>b</p>", source_url="https://source.example/a", source_key="k", campaign_id="c1"
        )
        assert request.back_reference() == {
            "source_url": "https://source.example/a",
            "source_key": "k",
            "campaign_id": "c1",
        }
