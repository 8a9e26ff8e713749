"""
Bluesky Feed - HashModel Example

Parses a feed dump, saves every thread with its replies, then loads the
first thread back and prints it. Replies come back as deferred posts that
read from the store only when their text is first used.

Usage:
    python main.py [feed.json]

Uses the store chosen by HASHMODEL_STORE / HASHMODEL_REDIS_URL (memory by
default).
"""

import os
import sys
from pathlib import Path

HERE = Path(__file__).resolve().parent
sys.path.insert(0, str(HERE))
sys.path.insert(0, str(HERE.parent.parent / "src"))

from hashmodel import HashModelConfig, configure_logging, open_session, is_hydrated

from entities import Post
from feed_parser import FeedParser


def main(feed_path: str) -> None:
    config = HashModelConfig.from_environment()
    configure_logging(config)

    threads = FeedParser().parse_file(feed_path)
    print(f"📥 Parsed {len(threads)} threads from {feed_path}")

    with open_session(config) as session:
        for post in threads:
            session.register(post)
        session.persist_all()
        print(f"💾 Saved {len(threads)} threads")

        if not threads:
            return

        loaded = session.load(Post(threads[0].post_id))
        print(f"\n📝 Post {loaded.post_id} ({loaded.get_date_time()})")
        print(f"   {loaded.get_post_text()}")

        for reply in loaded.get_replies():
            print(f"   ↳ reply {reply.post_id} loaded: {is_hydrated(reply)}")
            print(f"     {reply.get_post_text()}")
            print(f"     loaded: {is_hydrated(reply)}")


if __name__ == "__main__":
    main(sys.argv[1] if len(sys.argv) > 1 else os.fspath(HERE / "sample_feed.json"))
