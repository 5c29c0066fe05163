"""Derive per-counterpart conversation summaries from a user's messages."""
import logging
from typing import Callable, Dict, Iterable, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

UNKNOWN_USERNAME = "Unknown"


def conversation_id(user_a: str, user_b: str) -> str:
    return "#".join(sorted([user_a, user_b]))


def newest_first(messages: Iterable[dict]) -> List[dict]:
    # message_key embeds the message id, so equal timestamps still sort consistently
    return sorted(
        messages,
        key=lambda m: (m["created_at"], m.get("message_key", "")),
        reverse=True,
    )


def counterpart_of(user_id: str, message: dict) -> str:
    return message["recipient"] if message["sender"] == user_id else message["sender"]


def derive_conversations(
    user_id: str,
    messages: Iterable[dict],
    resolve_username: Callable[[str], Optional[str]],
) -> List[Dict[str, str]]:
    """
    Build one entry per distinct counterpart, most recently active first.

    Messages are re-sorted newest first before the scan: the first message
    seen for a counterpart is taken as its latest. A counterpart whose name
    can't be resolved is labelled "Unknown" instead of failing the batch.
    """
    seen = set()
    conversations = []
    for message in newest_first(messages):
        counterpart = counterpart_of(user_id, message)
        if counterpart in seen:
            continue
        seen.add(counterpart)

        conversations.append({
            "userId": counterpart,
            "username": _safe_username(resolve_username, counterpart),
            "lastMessage": message["text"],
            "updatedAt": message["created_at"],
        })

    return conversations


def _safe_username(resolve_username, user_id):
    try:
        username = resolve_username(user_id)
    except (ClientError, BotoCoreError) as e:
        logger.warning("Could not resolve username for %s: %s", user_id, e)
        return UNKNOWN_USERNAME
    return username or UNKNOWN_USERNAME
