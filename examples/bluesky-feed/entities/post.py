"""
Post Entity - Bluesky Post with Replies

A feed post persisted as one hash per post. Replies are stored as the
comma-joined ids of the reply posts and load lazily.
"""

from datetime import datetime, timezone

from hashmodel import persistable, PersistableId, PersistableField, PersistableListField

EPOCH = datetime.fromtimestamp(0, timezone.utc).isoformat()


@persistable
class Post:
    """A Bluesky post and its replies"""

    _post_id = PersistableId(int)
    _date_time = PersistableField()
    _post_content = PersistableField()
    _replies = PersistableListField("Post", lazy=True)

    def __init__(self, post_id=None, date_time: str = EPOCH, post_text: str = ""):
        self._post_id = post_id
        self._date_time = date_time
        self._post_content = post_text
        self._replies = []

    @property
    def post_id(self):
        return self._post_id

    def get_date_time(self) -> str:
        return self._date_time

    def get_post_text(self) -> str:
        return self._post_content

    def set_post_text(self, post_text: str) -> None:
        self._post_content = post_text

    def get_replies(self):
        return self._replies

    def add_reply(self, post: 'Post') -> None:
        self._replies.append(post)

    def __repr__(self) -> str:
        return f"Post(post_id={self._post_id!r})"
