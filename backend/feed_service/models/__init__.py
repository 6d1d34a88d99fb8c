from feed_service.models.cache_row import CacheRow
from feed_service.models.feed_item import FeedItem
from feed_service.models.preference import Preference
from feed_service.models.profile import Profile

__all__ = [
    "CacheRow",
    "FeedItem",
    "Preference",
    "Profile",
]
