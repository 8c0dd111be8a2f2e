"""MQTT topic filter matching."""

from __future__ import annotations

MULTI_LEVEL_WILDCARD = "#"
SINGLE_LEVEL_WILDCARD = "+"
LEVEL_SEPARATOR = "/"


def topic_matches(topic: str, pattern: str) -> bool:
    """Check if a published topic matches a subscription pattern.

    Supports:
    - + for single level wildcard (e.g., "system/+/status" matches "system/stt/status")
    - # for multi-level wildcard (e.g., "events/#" matches "events/user/login")

    Levels are compared case-sensitively and empty levels are significant.
    Patterns are not validated: a ``#`` anywhere in the pattern matches
    everything from its position on.

    Args:
        topic: Actual topic from message
        pattern: Topic pattern from subscription (may contain wildcards)

    Returns:
        True if topic matches pattern, False otherwise
    """
    if topic == pattern:
        return True

    topic_levels = topic.split(LEVEL_SEPARATOR)
    pattern_levels = pattern.split(LEVEL_SEPARATOR)

    for index, level in enumerate(topic_levels):
        if index >= len(pattern_levels):
            return False
        expected = pattern_levels[index]
        if expected == MULTI_LEVEL_WILDCARD:
            return True
        if expected != SINGLE_LEVEL_WILDCARD and expected != level:
            return False

    # A longer pattern only matched if its remaining levels were consumed.
    return len(topic_levels) == len(pattern_levels)


__all__ = ["topic_matches", "MULTI_LEVEL_WILDCARD", "SINGLE_LEVEL_WILDCARD"]
