# apps/catalog/lists.py
"""
Incremental maintenance of cached id lists.

A list that is not cached yet is never patched: the provider callback is
invoked instead, and since it reads live rows the result already includes
(or excludes) the id in question.
"""
import logging

logger = logging.getLogger(__name__)


def add_id(cache, tags, key, item_id, repopulate):
    """
    Append item_id to the list at (tags, key) unless it is already there.
    Returns True when the cached list was rewritten.
    """
    id_list = cache.get(tags, key)
    if id_list is None:
        repopulate()
        return False

    if item_id in id_list:
        return False

    id_list = list(id_list)
    id_list.append(item_id)
    cache.set_forever(tags, key, id_list)

    logger.debug(f"Added {item_id} to cached list {key}")
    return True


def remove_id(cache, tags, key, item_id, repopulate):
    """
    Remove a single occurrence of item_id from the list at (tags, key).
    Returns True when the cached list was rewritten.
    """
    id_list = cache.get(tags, key)
    if id_list is None:
        repopulate()
        return False

    id_list = list(id_list)
    try:
        id_list.remove(item_id)
    except ValueError:
        return False

    cache.set_forever(tags, key, id_list)

    logger.debug(f"Removed {item_id} from cached list {key}")
    return True
