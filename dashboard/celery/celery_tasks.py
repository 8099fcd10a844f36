from typing import List, Optional

from celery.utils.log import get_task_logger

from dashboard.celery.celery_app import celery_app
from dashboard.config import settings
from dashboard.exceptions import error_chain
from dashboard.repository import Repository, create_repository
from dashboard.schemas import Feed, FeedItem

logger = get_task_logger(__name__)

_repository: Optional[Repository] = None


def get_repository() -> Repository:
    """Repository of the worker process, built on first use"""
    global _repository
    if _repository is None:
        _repository = create_repository(settings)
    return _repository


@celery_app.task(bind=True, max_retries=0)
def store_feed(self, feed_data: dict, items_data: List[dict]):
    """
    Replace a feed and its items with a freshly fetched version.

    Failures are logged only; the next read of the feed triggers another
    refresh once it is due.
    """
    feed = Feed.model_validate(feed_data)
    items = [FeedItem.model_validate(item) for item in items_data]

    logger.info(f"[FEED-STORE] Storing feed {feed.id} with {len(items)} items")
    try:
        get_repository().store_feed(feed, items)
    except Exception as e:
        logger.error(f"[FEED-STORE] Storage of feed {feed.id} failed: {error_chain(e)}")
        return {"status": "failed", "feed_id": feed.id}

    return {"status": "stored", "feed_id": feed.id, "items": len(items)}
