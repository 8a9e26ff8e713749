"""
Bluesky Feed Parser

Turns a Bluesky feed dump into ``Post`` objects:

    {"feed": [{"thread": {"post": {"record": {"createdAt": ..., "text": ...}},
                          "replies": [{"post": {"record": {...}}}, ...]}}]}

Posts get sequential ids in reading order, starting at 0. Threads with a
missing or malformed post are skipped; a malformed reply fails the parse.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from entities import Post

logger = logging.getLogger(__name__)


class FeedParseError(Exception):
    """Raised when a feed document cannot be parsed"""
    pass


class Record(BaseModel):
    model_config = ConfigDict(extra="ignore")

    created_at: str = Field(alias="createdAt")
    text: str = ""


class PostView(BaseModel):
    model_config = ConfigDict(extra="ignore")

    record: Record


class ReplyView(BaseModel):
    model_config = ConfigDict(extra="ignore")

    post: PostView


class Thread(BaseModel):
    model_config = ConfigDict(extra="ignore")

    post: PostView
    replies: List[Any] = Field(default_factory=list)


class FeedParser:
    """Parses feed documents, numbering posts across every call."""

    def __init__(self, first_id: int = 0):
        self._next_id = first_id

    def parse_file(self, path: Union[str, Path]) -> List[Post]:
        """Parse a feed file"""
        try:
            document = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise FeedParseError(f"Cannot read feed file {path}: {e}") from e
        return self.parse_document(document)

    def parse_document(self, document: Any) -> List[Post]:
        """
        Parse a decoded feed document.

        Args:
            document: Decoded JSON with a top-level ``feed`` array

        Returns:
            One ``Post`` per valid thread, replies attached

        Raises:
            FeedParseError: If the document has no feed array or a reply is malformed
        """
        if not isinstance(document, dict):
            raise FeedParseError("Root JSON element is not an object")
        feed = document.get("feed")
        if not isinstance(feed, list):
            raise FeedParseError('JSON does not contain array named "feed"')

        threads = []
        for index, item in enumerate(feed):
            thread = self._thread(item)
            if thread is None:
                logger.debug(f"Skipping feed item {index}: no valid thread")
                continue

            post = self._post(thread.post)
            for reply in thread.replies:
                post.add_reply(self._reply(reply))
            threads.append(post)

        logger.info(f"Parsed {len(threads)} threads from {len(feed)} feed items")
        return threads

    def _thread(self, item: Any) -> Optional[Thread]:
        if not isinstance(item, dict) or not isinstance(item.get("thread"), dict):
            return None
        try:
            return Thread.model_validate(item["thread"])
        except ValidationError:
            return None

    def _reply(self, reply: Dict[str, Any]) -> Post:
        try:
            view = ReplyView.model_validate(reply)
        except ValidationError as e:
            raise FeedParseError(f"Invalid reply: {e}") from e
        return self._post(view.post)

    def _post(self, view: PostView) -> Post:
        post = Post(self._next_id, view.record.created_at, view.record.text)
        self._next_id += 1
        return post


__all__ = ["FeedParser", "FeedParseError"]
