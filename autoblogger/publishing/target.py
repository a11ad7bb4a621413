"""
Publishing Targets
==================

Interface to the content store receiving finished articles, plus a
JSON-lines file target for local use.
"""

import json
import asyncio
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

from ..config.settings import get_settings
from ..database.models import PublishRequest
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import PublishError, ErrorCode


class PublishTarget(ABC):
    """External content store."""

    @abstractmethod
    async def publish(self, request: PublishRequest) -> str:
        """Create a post and return its identifier.

        Raises:
            PublishError: If the content store rejects the post
        """

    @abstractmethod
    async def attach_metadata(self, post_id: str, metadata: Dict[str, str]) -> None:
        """Attach back-reference metadata to an existing post.

        Raises:
            PublishError: If the post cannot be updated
        """


class JsonlPublishTarget(PublishTarget):
    """Appends each post as one JSON object per line.

    Metadata updates are appended as separate ``metadata`` records keyed by
    the post id, so the file is never rewritten. Writes run in a worker
    thread and are serialized by a lock, so each record lands as one line.
    """

    def __init__(self, output_path: Optional[str] = None):
        self.output_path = Path(output_path or get_settings().publishing.output_path)
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self.logger = get_logger_for_component("publish_target")

    def _append(self, record: Dict) -> None:
        line = json.dumps(record, ensure_ascii=False, default=str)
        with self._lock:
            with self.output_path.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")

    async def publish(self, request: PublishRequest) -> str:
        post_id = uuid.uuid4().hex
        record = {
            "type": "post",
            "post_id": post_id,
            "created_at": datetime.now(timezone.utc).isoformat(),
            **request.model_dump(mode="json"),
        }
        try:
            await asyncio.to_thread(self._append, record)
        except OSError as e:
            raise PublishError(
                f"Failed to write post: {e}", source_url=request.source_url
            ) from e

        self.logger.info(
            f"Published post {post_id}: {request.title[:60]}",
            extra={"campaign_id": request.campaign_id},
        )
        return post_id

    async def attach_metadata(self, post_id: str, metadata: Dict[str, str]) -> None:
        record = {"type": "metadata", "post_id": post_id, "metadata": metadata}
        try:
            await asyncio.to_thread(self._append, record)
        except OSError as e:
            raise PublishError(
                f"Failed to write metadata for {post_id}: {e}",
                error_code=ErrorCode.PUBLISH_METADATA_FAILED,
            ) from e
