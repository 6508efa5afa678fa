"""
Tests for signal_scanner.py - Tag and keyword detection.
"""

import pytest

from conftest import assistant, user
from models import ReasoningEffort, ThinkingMode
from signal_scanner import SignalScanner, find_enhancement_target, normalize_keywords


@pytest.fixture
def scanner():
    return SignalScanner()


class TestUltrathink:
    """Tests for ultrathink detection."""

    @pytest.mark.parametrize("text", ["ultrathink, solve this", "Please ULTRATHINK.", "(UltraThink)"])
    def test_detected_as_whole_word(self, scanner, text):
        signals = scanner.scan([user(text)])
        assert signals.ultrathink_detected is True
        assert signals.ultrathink_index == 0

    @pytest.mark.parametrize("text", ["ultrathinking about it", "superultrathink"])
    def test_not_detected_inside_words(self, scanner, text):
        assert scanner.scan([user(text)]).ultrathink_detected is False

    def test_sticky_across_messages(self, scanner):
        """
        Given: Ultrathink in an early message only
        When: The conversation is scanned
        Then: It stays detected and the first index is kept
        """
        signals = scanner.scan([user("ultrathink"), assistant("ok"), user("next")])
        assert signals.ultrathink_detected is True
        assert signals.ultrathink_index == 0

    def test_assistant_messages_are_ignored(self, scanner):
        assert scanner.scan([assistant("ultrathink")]).ultrathink_detected is False


class TestTags:
    """Tests for thinking and effort tags."""

    def test_first_match_within_message(self, scanner):
        signals = scanner.scan([user("<Thinking:On> then <Thinking:Off>")])
        assert signals.thinking_tag == ThinkingMode.ON

    def test_last_message_wins(self, scanner):
        """
        Given: Different tags in two user messages
        When: The conversation is scanned
        Then: The later message decides
        """
        signals = scanner.scan([
            user("<Thinking:Off> <Effort:Low>"),
            assistant("..."),
            user("<Thinking:On> <Effort:High>"),
        ])
        assert signals.thinking_tag == ThinkingMode.ON
        assert signals.effort_tag == ReasoningEffort.HIGH
        assert signals.thinking_tag_index == 2
        assert signals.effort_tag_text == "<Effort:High>"

    def test_message_without_tag_keeps_earlier_tag(self, scanner):
        signals = scanner.scan([user("<Effort:medium> one"), user("two")])
        assert signals.effort_tag == ReasoningEffort.MEDIUM
        assert signals.effort_tag_index == 0

    def test_case_insensitive(self, scanner):
        signals = scanner.scan([user("<thinking:OFF> <EFFORT:low>")])
        assert signals.thinking_tag == ThinkingMode.OFF
        assert signals.effort_tag == ReasoningEffort.LOW
        assert signals.has_tags is True

    def test_tags_in_block_content(self, scanner):
        signals = scanner.scan([user([{"type": "text", "text": "<Effort:High> go"}])])
        assert signals.effort_tag == ReasoningEffort.HIGH


class TestSystemReminders:
    def test_reminders_are_skipped(self, scanner, reminder_message):
        """
        Given: A system reminder containing tags, ultrathink and keywords
        When: The conversation is scanned
        Then: None of them count and the reminder index is recorded
        """
        reminder = user("<system-reminder> ultrathink <Thinking:On> count </system-reminder>")
        signals = scanner.scan([reminder, user("hi")])

        assert signals.ultrathink_detected is False
        assert signals.thinking_tag is None
        assert signals.keywords_detected is False
        assert signals.skipped_reminders == (0,)


class TestKeywords:
    """Tests for keyword detection."""

    def test_plain_substring_match(self, scanner):
        """
        Given: "count" hidden inside "account"
        When: The message is scanned
        Then: It matches (keywords are plain substrings)
        """
        assert scanner.scan([user("Open my account")]).keywords_detected is True

    def test_stops_at_first_hit(self, scanner):
        signals = scanner.scan([user("hello"), user("How many?"), user("calculate")])
        assert signals.keywords_detected is True
        assert signals.keyword_index == 1

    def test_no_keywords(self, scanner):
        assert scanner.scan([user("hello there")]).keywords_detected is False

    def test_custom_keywords_are_lowercased(self):
        scanner = SignalScanner(["Refactor", "  ", ""])
        assert scanner.keywords == ["refactor"]
        assert scanner.scan([user("REFACTOR this")]).keywords_detected is True
        assert scanner.scan([user("How many?")]).keywords_detected is False

    def test_empty_keyword_list_never_matches(self):
        assert SignalScanner([]).scan([user("anything")]).keywords_detected is False

    def test_matching_keywords(self, scanner):
        assert "calculate" in scanner.matching_keywords("Calculate the total of costs")

    def test_normalize_drops_non_strings(self):
        assert normalize_keywords(["A", None, 3, "b "]) == ["a", "b"]


class TestMalformedInput:
    @pytest.mark.parametrize("messages", [None, "text", {"role": "user"}, 5])
    def test_non_list_messages(self, scanner, messages):
        signals = scanner.scan(messages)
        assert signals.ultrathink_detected is False
        assert signals.thinking_tag is None
        assert signals.effort_tag is None
        assert signals.keywords_detected is False

    def test_malformed_entries_are_skipped(self, scanner):
        signals = scanner.scan([None, "x", {"role": "user", "content": 3}, user("ultrathink")])
        assert signals.ultrathink_detected is True
        assert signals.ultrathink_index == 3


class TestFindEnhancementTarget:
    def test_last_user_message(self, reminder_message):
        messages = [user("first"), assistant("a"), user("second"), reminder_message, assistant("b")]
        assert find_enhancement_target(messages) == 2

    def test_no_candidate(self, reminder_message):
        assert find_enhancement_target([assistant("a"), reminder_message]) is None
        assert find_enhancement_target(None) is None
