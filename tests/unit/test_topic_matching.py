"""Unit tests for topic_matches()."""

import pytest

from mqtt_connection.domain.topics import topic_matches


class TestExactTopics:
    @pytest.mark.parametrize(
        "topic,pattern,expected",
        [
            ("a/b/c", "a/b/c", True),
            ("a/b/c", "a/b/d", False),
            ("a/b", "a/b/c", False),
            ("a/b/c", "a/b", False),
            ("A/b", "a/b", False),
            ("", "", True),
            ("a//b", "a//b", True),
            ("a//b", "a/b", False),
        ],
    )
    def test_without_wildcards_is_string_equality(self, topic, pattern, expected):
        assert topic_matches(topic, pattern) is expected
        assert topic_matches(topic, pattern) is (topic == pattern)


class TestSingleLevelWildcard:
    def test_plus_matches_one_level(self):
        assert topic_matches("a/b/c", "a/+/c") is True

    def test_plus_does_not_rescue_other_levels(self):
        assert topic_matches("a/b/c", "a/+/d") is False

    def test_plus_matches_exactly_one_level(self):
        assert topic_matches("a/b/x/c", "a/+/c") is False
        assert topic_matches("a/c", "a/+/c") is False

    def test_plus_matches_empty_level(self):
        assert topic_matches("a//c", "a/+/c") is True

    def test_trailing_plus(self):
        assert topic_matches("system/health/stt", "system/health/+") is True
        assert topic_matches("system/health", "system/health/+") is False


class TestMultiLevelWildcard:
    def test_hash_matches_remaining_levels(self):
        assert topic_matches("a/b/c", "a/#") is True
        assert topic_matches("a/b", "a/#") is True

    def test_hash_alone_matches_everything(self):
        assert topic_matches("a", "#") is True
        assert topic_matches("a/b/c", "#") is True

    def test_parent_level_not_matched(self):
        assert topic_matches("a", "a/#") is False
        assert topic_matches("x/y", "x/y/#") is False

    def test_combined_with_plus(self):
        assert topic_matches("home/kitchen/sensor/temp", "home/+/sensor/#") is True
        assert topic_matches("home/kitchen/light/on", "home/+/sensor/#") is False

    def test_malformed_hash_is_permissive(self):
        # Not validated: '#' matches from its position on.
        assert topic_matches("x/y", "#/a") is True
        assert topic_matches("a/x/y", "a/#/b") is True
