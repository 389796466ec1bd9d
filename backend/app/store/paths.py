"""Path helpers for the hierarchical document store.

A path alternates collection and document segments::

    accounts/{localId}
    accounts/{localId}/children/{childId}
    accounts/{localId}/achievements/{achievementId}
    accounts/{localId}/notifications/{notificationId}
    accounts/{localId}/stories/{storyId}
"""

import re
from typing import Optional

ACCOUNTS = "accounts"
CHILDREN = "children"
ACHIEVEMENTS = "achievements"
NOTIFICATIONS = "notifications"
STORIES = "stories"

STORY_TEMPLATE = "accounts/{accountId}/stories/{storyId}"
ACHIEVEMENT_TEMPLATE = "accounts/{accountId}/achievements/{achievementId}"


def is_valid_segment(segment: str) -> bool:
    return bool(segment) and "/" not in segment


def _check_segment(segment: str) -> str:
    if not is_valid_segment(segment):
        raise ValueError(f"Invalid path segment: {segment!r}")
    return segment


def join_path(*segments: str) -> str:
    """Join path segments, rejecting empty segments and embedded slashes."""
    return "/".join(_check_segment(s) for s in segments)


def document_path(collection: str, doc_id: str) -> str:
    """
    Path of document ``doc_id`` inside an already-joined ``collection`` path.

    Raises:
        ValueError: If ``collection`` does not address a collection or ``doc_id`` is not a segment
    """
    segments = collection.split("/")
    if len(segments) % 2 != 1:
        raise ValueError(f"Not a collection path: {collection!r}")
    return join_path(*segments, doc_id)


def split_path(path: str) -> tuple[str, str]:
    """
    Split a document path into ``(collection_path, doc_id)``.

    Raises:
        ValueError: If the path does not address a document (odd segment count)
    """
    segments = path.split("/")
    if len(segments) % 2 != 0:
        raise ValueError(f"Not a document path: {path!r}")
    for segment in segments:
        _check_segment(segment)
    return "/".join(segments[:-1]), segments[-1]


def account_path(local_id: str) -> str:
    return join_path(ACCOUNTS, local_id)


def account_collection(local_id: str, name: str) -> str:
    """Path of a collection owned by an account, e.g. ``accounts/vk:42/stories``."""
    return join_path(ACCOUNTS, local_id, name)


def match_path(template: str, path: str) -> Optional[dict[str, str]]:
    """
    Match a document path against a template with ``{name}`` wildcards.

    Each wildcard matches exactly one segment.

    Returns:
        Mapping of wildcard names to segments, or None when the path does not match
    """
    pattern = "^" + re.sub(r"\\\{(\w+)\\\}", r"(?P<\1>[^/]+)", re.escape(template)) + "$"
    match = re.match(pattern, path)
    return match.groupdict() if match else None
