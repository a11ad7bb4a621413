"""
Autoblogger Data Models
=======================

Pydantic models for campaigns, feed items and the per-item processing
results that flow between pipeline stages.
"""

from datetime import datetime, timezone, timedelta
from enum import Enum
from typing import List, Optional, Dict, Any, Mapping

from pydantic import BaseModel, Field, field_validator

from ..utils.validators import URLValidator


class ExtractionMethod(str, Enum):
    """Article body extraction strategies."""
    AUTO = "auto"
    CSS = "css"


class RewriteProviderType(str, Enum):
    """Supported rewrite providers."""
    OPENAI = "openai"
    GEMINI = "gemini"
    GROQ = "groq"


PROVIDER_ALIASES = {
    "gpt4": RewriteProviderType.OPENAI,
    "gpt-4": RewriteProviderType.OPENAI,
    "chatgpt": RewriteProviderType.OPENAI,
}


class PostStatus(str, Enum):
    """Status given to published posts."""
    PUBLISH = "publish"
    DRAFT = "draft"
    PENDING = "pending"


class ScheduleInterval(str, Enum):
    """Minimum spacing between two runs of a campaign."""
    THIRTY_MIN = "thirty_min"
    HOURLY = "hourly"
    TWICE_DAILY = "twice_daily"
    DAILY = "daily"

    @property
    def seconds(self) -> int:
        return _INTERVAL_SECONDS[self]

    @property
    def delta(self) -> timedelta:
        return timedelta(seconds=self.seconds)


_INTERVAL_SECONDS = {
    ScheduleInterval.THIRTY_MIN: 30 * 60,
    ScheduleInterval.HOURLY: 60 * 60,
    ScheduleInterval.TWICE_DAILY: 12 * 60 * 60,
    ScheduleInterval.DAILY: 24 * 60 * 60,
}


class RejectionReason(str, Enum):
    """Why the filter stage refused an item."""
    EMPTY_CONTENT = "EmptyContent"
    TOO_SHORT = "TooShort"
    TOO_LONG = "TooLong"
    MISSING_REQUIRED_KEYWORD = "MissingRequiredKeyword"
    BANNED_KEYWORD_PRESENT = "BannedKeywordPresent"


def _split_terms(value: Any) -> List[str]:
    """Accept a comma-separated string or an iterable; strip, drop empties, dedupe."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    cleaned: List[str] = []
    for term in value:
        term = str(term).strip()
        if term and term not in cleaned:
            cleaned.append(term)
    return cleaned


class ExtractionConfig(BaseModel):
    method: ExtractionMethod = Field(default=ExtractionMethod.AUTO)
    selector: str = Field(default="", description="Comma-separated tag, .class or #id selectors")

    @field_validator("selector", mode="before")
    @classmethod
    def normalize_selector(cls, v):
        return (v or "").strip()


class FilterConfig(BaseModel):
    """Sanitize and filter options applied to every extracted article."""
    remove_by_class: List[str] = Field(default_factory=list)
    remove_by_id: List[str] = Field(default_factory=list)
    strip_links: bool = False
    add_nofollow: bool = False
    strip_images: bool = False
    min_words: int = Field(default=0, ge=0)
    max_words: int = Field(default=0, ge=0)
    required_keywords: List[str] = Field(default_factory=list)
    banned_keywords: List[str] = Field(default_factory=list)

    @field_validator(
        "remove_by_class",
        "remove_by_id",
        "required_keywords",
        "banned_keywords",
        mode="before",
    )
    @classmethod
    def split_terms(cls, v):
        return _split_terms(v)

    @field_validator("min_words", "max_words", mode="before")
    @classmethod
    def blank_is_zero(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return 0
        return v


DEFAULT_PROMPT_TEMPLATE = "Rewrite this content: {content}"


class RewriteConfig(BaseModel):
    enabled: bool = False
    prompt_template: str = Field(default=DEFAULT_PROMPT_TEMPLATE)
    provider: RewriteProviderType = Field(default=RewriteProviderType.OPENAI)

    @field_validator("provider", mode="before")
    @classmethod
    def resolve_alias(cls, v):
        if isinstance(v, str):
            key = v.strip().lower()
            return PROVIDER_ALIASES.get(key, key)
        return v

    @field_validator("prompt_template", mode="before")
    @classmethod
    def default_when_blank(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return DEFAULT_PROMPT_TEMPLATE
        return v


class ImageConfig(BaseModel):
    download: bool = False
    set_featured: bool = False


class PublishConfig(BaseModel):
    author_id: Optional[int] = None
    category_id: Optional[int] = None
    status: PostStatus = Field(default=PostStatus.DRAFT)

    @field_validator("author_id", "category_id", mode="before")
    @classmethod
    def blank_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


# Flat configuration surface -> (section, field)
_CONFIG_KEYS: Dict[str, tuple] = {
    "feedURL": (None, "feed_url"),
    "maxItems": (None, "max_items"),
    "checkLatestOnly": (None, "check_latest_only"),
    "scheduleInterval": (None, "schedule_interval"),
    "active": (None, "active"),
    "extractionMethod": ("extraction", "method"),
    "cssSelector": ("extraction", "selector"),
    "removeByClass": ("filters", "remove_by_class"),
    "removeById": ("filters", "remove_by_id"),
    "stripLinks": ("filters", "strip_links"),
    "addNofollow": ("filters", "add_nofollow"),
    "stripImages": ("filters", "strip_images"),
    "minWords": ("filters", "min_words"),
    "maxWords": ("filters", "max_words"),
    "requiredKeywords": ("filters", "required_keywords"),
    "bannedKeywords": ("filters", "banned_keywords"),
    "rewriteEnabled": ("rewrite", "enabled"),
    "promptTemplate": ("rewrite", "prompt_template"),
    "provider": ("rewrite", "provider"),
    "downloadImages": ("images", "download"),
    "setFeaturedImage": ("images", "set_featured"),
    "authorID": ("publish", "author_id"),
    "categoryID": ("publish", "category_id"),
    "postStatus": ("publish", "status"),
}

_BOOL_FIELDS = {
    "check_latest_only", "active", "strip_links", "add_nofollow", "strip_images",
    "enabled", "download", "set_featured",
}


class Campaign(BaseModel):
    """A configured feed-to-site ingestion job."""
    id: str = Field(..., min_length=1, description="Campaign identifier")
    name: Optional[str] = Field(default=None, description="Display name")
    feed_url: str = Field(..., min_length=1, description="RSS/Atom feed URL")
    max_items: int = Field(default=2000, gt=0, description="Items considered per run")
    check_latest_only: bool = Field(default=False, description="Only consider items published since the last run")
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    filters: FilterConfig = Field(default_factory=FilterConfig)
    rewrite: RewriteConfig = Field(default_factory=RewriteConfig)
    images: ImageConfig = Field(default_factory=ImageConfig)
    publish: PublishConfig = Field(default_factory=PublishConfig)
    schedule_interval: ScheduleInterval = Field(default=ScheduleInterval.HOURLY)
    active: bool = Field(default=True)
    last_run_at: Optional[datetime] = Field(default=None)
    imported_keys: List[str] = Field(default_factory=list, description="Append-only dedup keys")

    @field_validator("feed_url")
    @classmethod
    def validate_feed_url(cls, v):
        return URLValidator.validate_feed_url(v)

    @field_validator("max_items", mode="before")
    @classmethod
    def blank_max_items(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return 2000
        return v

    @field_validator("last_run_at")
    @classmethod
    def ensure_aware(cls, v):
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def is_due(self, now: datetime) -> bool:
        """True when the throttle interval has elapsed since the last run."""
        if self.last_run_at is None:
            return True
        return now - self.last_run_at >= self.schedule_interval.delta

    @classmethod
    def from_config(cls, campaign_id: str, config: Mapping[str, Any], **extra) -> "Campaign":
        """Build a campaign from the flat camelCase configuration surface.

        Unknown keys are ignored. Checkbox-style values ("", "0", "1", "on")
        are accepted for boolean options.
        """
        data: Dict[str, Any] = {"id": campaign_id, **extra}
        for key, value in config.items():
            if key not in _CONFIG_KEYS:
                continue
            section, field = _CONFIG_KEYS[key]
            if field in _BOOL_FIELDS and isinstance(value, str) and not value.strip():
                value = False
            if section is None:
                data[field] = value
            else:
                data.setdefault(section, {})[field] = value
        return cls.model_validate(data)

    def config_json(self) -> str:
        """Serialize configuration without run state, for storage."""
        return self.model_dump_json(exclude={"last_run_at", "imported_keys"})

    def __str__(self) -> str:
        return f"Campaign({self.id}:{self.feed_url})"


class FeedItem(BaseModel):
    """One entry of a fetched feed."""
    key: str = Field(..., min_length=1, description="Dedup key: guid or md5 of the link")
    link: str = Field(..., min_length=1)
    title: str = Field(default="")
    published_at: Optional[datetime] = None
    description: Optional[str] = None

    def __str__(self) -> str:
        return f"FeedItem({self.title[:50]})"


class ExtractedDocument(BaseModel):
    """Raw article markup for one item and where it came from."""
    markup: str
    source_url: str
    from_description: bool = False


class ProcessingOutcome(BaseModel):
    """Result of running one item through filter, rewrite and image stages."""
    final_markup: Optional[str] = None
    featured_image_ref: Optional[str] = None
    rejection: Optional[RejectionReason] = None

    @property
    def is_accepted(self) -> bool:
        return self.rejection is None

    @classmethod
    def accept(cls, final_markup: str, featured_image_ref: Optional[str] = None) -> "ProcessingOutcome":
        return cls(final_markup=final_markup, featured_image_ref=featured_image_ref)

    @classmethod
    def reject(cls, reason: RejectionReason) -> "ProcessingOutcome":
        return cls(rejection=reason)


class PublishRequest(BaseModel):
    """Everything the publishing target needs to create a post."""
    title: str
    body: str
    status: PostStatus = PostStatus.DRAFT
    author_id: Optional[int] = None
    category_id: Optional[int] = None
    featured_asset_ref: Optional[str] = None
    source_url: str
    source_key: str
    campaign_id: str

    def back_reference(self) -> Dict[str, str]:
        """Metadata linking the published post to its source."""
        return {
            "source_url": self.source_url,
            "source_key": self.source_key,
            "campaign_id": self.campaign_id,
        }
