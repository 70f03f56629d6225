# apps/catalog/cache.py
import logging
import time

from django.conf import settings
from django.core.cache import caches

logger = logging.getLogger(__name__)

# Global tag carried by every catalog entry
CACHE_TAG = "catalog"


class TaggedCache:
    """
    Key/value store where every entry is filed under a set of tags.

    Each tag owns a version counter kept in the same backend. Entry keys embed
    the versions of their tags, so clearing a tag is a single INCR: every entry
    built with the old version simply stops being addressable.
    Entries never expire, they live until cleared or overwritten.

    Bulk clear by tag is a maintenance operation, the event handlers only
    clear exact keys. Orphaned entries are not deleted: they stay in the
    backend until its own eviction policy (e.g. Redis allkeys-lru) drops them.
    Versions are seeded from the clock, so a counter that was evicted and
    created again never revives entries cleared before.
    """

    def __init__(self, backend=None, prefix=CACHE_TAG):
        self.backend = backend if backend is not None else caches["default"]
        self.prefix = prefix

    @classmethod
    def from_settings(cls):
        alias = getattr(settings, "CATALOG_CACHE_ALIAS", "default")
        prefix = getattr(settings, "CATALOG_CACHE_PREFIX", CACHE_TAG)
        return cls(caches[alias], prefix=prefix)

    def get(self, tags, key):
        return self.backend.get(self._entry_key(tags, key))

    def set_forever(self, tags, key, value):
        self.backend.set(self._entry_key(tags, key), value, timeout=None)

    def clear(self, tags, key=None):
        """
        Drop the entry at (tags, key).
        Without a key, every entry filed under any of the tags is invalidated.
        """
        if key is None:
            for tag in self._normalize(tags):
                self._bump_tag(tag)
            return

        self.backend.delete(self._entry_key(tags, key))

    def _normalize(self, tags):
        if isinstance(tags, str):
            tags = [tags]
        return sorted({str(tag) for tag in tags if tag})

    def _tag_key(self, tag):
        return f"{self.prefix}:tag:{tag}"

    def _tag_version(self, tag):
        tag_key = self._tag_key(tag)
        version = self.backend.get(tag_key)
        if version is None:
            # add() keeps a concurrent first writer's version
            seed = time.time_ns()
            self.backend.add(tag_key, seed, timeout=None)
            version = self.backend.get(tag_key, seed)
        return version

    def _bump_tag(self, tag):
        tag_key = self._tag_key(tag)
        try:
            self.backend.incr(tag_key)
        except ValueError:
            # Counter missing (never used or evicted): start from a fresh clock value
            self.backend.set(tag_key, time.time_ns(), timeout=None)
        logger.debug(f"Cache tag bumped: {tag}")

    def _entry_key(self, tags, key):
        versions = ",".join(f"{tag}@{self._tag_version(tag)}" for tag in self._normalize(tags))
        return f"{self.prefix}:{versions}:{key}"
