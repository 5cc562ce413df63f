"""Tests for the command classifier."""

import pytest

from intake.commands import (
    CONFIRMING_ORDER,
    DUP_CHECK_ORDER,
    GATHERING_ORDER,
    CommandIntent,
    classify,
    looks_command_like,
    matches,
    strip_filler,
)


class TestClassify:
    """Tests for classify()."""

    @pytest.mark.parametrize(
        "text,intent",
        [
            ("yes", CommandIntent.CONFIRM),
            ("Looks good!", CommandIntent.CONFIRM),
            ("cancel", CommandIntent.CANCEL),
            ("never mind", CommandIntent.CANCEL),
            ("start over", CommandIntent.RESET),
            ("continue", CommandIntent.CONTINUE),
            ("skip", CommandIntent.SKIP),
            ("that's all", CommandIntent.DONE),
            ("I don't know", CommandIntent.IDK),
            ("discuss", CommandIntent.DISCUSS),
            ("hello?", CommandIntent.NUDGE),
            ("submit as is", CommandIntent.SUBMIT_AS_IS),
        ],
    )
    def test_direct_matches(self, text, intent):
        """Test that plain command phrases map to their intent."""
        assert classify(text, (intent,)) is intent

    def test_free_text_is_not_a_command(self):
        """Test that real content yields no intent."""
        assert classify("We need a one-pager for the spring open house") is None

    def test_filler_is_stripped_once(self):
        """Test that leading filler does not hide a command."""
        assert classify("let's start over", GATHERING_ORDER) is CommandIntent.RESET
        assert classify("please cancel", GATHERING_ORDER) is CommandIntent.CANCEL
        assert classify("I'd like to start fresh", DUP_CHECK_ORDER) is CommandIntent.START_FRESH

    def test_strip_filler(self):
        """Test that stacked filler words are all removed."""
        assert strip_filler("okay so let's continue.") == "continue"

    def test_order_decides_between_intents(self):
        """Test that the caller's order picks the winner."""
        # "submit as is" is also a whole-message confirm
        assert classify("submit as is", CONFIRMING_ORDER) is CommandIntent.CONFIRM
        assert (
            classify("submit as is", (CommandIntent.SUBMIT_AS_IS, CommandIntent.CONFIRM))
            is CommandIntent.SUBMIT_AS_IS
        )

    @pytest.mark.parametrize(
        "text",
        [
            "Correct the due date to June 30",
            "ok but change the audience to channel partners",
            "yes but add a banner",
            "never mind the budget, the date is June 30",
        ],
    )
    def test_sentences_are_not_confirm_or_cancel(self, text):
        """Test that confirm and cancel need the whole message."""
        assert classify(text, CONFIRMING_ORDER) is None

    @pytest.mark.parametrize(
        "text", ["yes", "Yes please!", "ok, looks good", "that's correct", "submit it", "lgtm"]
    )
    def test_whole_message_confirms(self, text):
        assert classify(text, CONFIRMING_ORDER) is CommandIntent.CONFIRM

    def test_intents_outside_order_are_ignored(self):
        """Test that only the requested intents can match."""
        assert classify("yes", GATHERING_ORDER) is None

    def test_long_greeting_is_not_a_nudge(self):
        """Test that a greeting followed by content is not a nudge."""
        assert classify("hi", (CommandIntent.NUDGE,)) is CommandIntent.NUDGE
        assert classify("hi team, we need a banner for the site", (CommandIntent.NUDGE,)) is None

    def test_dup_check_replies(self):
        """Test the two answers to the duplicate-session question."""
        assert classify("continue there", DUP_CHECK_ORDER) is CommandIntent.CONTINUE_THERE
        assert classify("the other one", DUP_CHECK_ORDER) is CommandIntent.CONTINUE_THERE
        assert classify("start fresh here", DUP_CHECK_ORDER) is CommandIntent.START_FRESH
        assert classify("hmm", DUP_CHECK_ORDER) is None

    def test_matches_single_intent(self):
        """Test matches() helper."""
        assert matches("Skip.", CommandIntent.SKIP)
        assert not matches("skip the intro section please", CommandIntent.SKIP)

    def test_empty_text(self):
        """Test that empty input has no intent."""
        assert classify("   ") is None


class TestLooksCommandLike:
    """Tests for looks_command_like()."""

    def test_short_command(self):
        """Test that short commands are flagged."""
        assert looks_command_like("yes")
        assert looks_command_like("ok sounds good")

    def test_long_text_never_flagged(self):
        """Test the four-word limit."""
        assert not looks_command_like("yes and also add a banner for the homepage")

    def test_content_not_flagged(self):
        """Test that short content is kept."""
        assert not looks_command_like("Product Marketing")
        assert not looks_command_like("March 1")
