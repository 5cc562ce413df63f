"""Tests for intake data models."""

import pytest

from intake.models import (
    Classification,
    FollowUpQuestion,
    InboundMessage,
    Session,
    SessionStatus,
    SideChannel,
)
from intake.models.side_channel import KEY_EXISTING_ASSETS, KEY_PRE_SUBFLOW_STEP
from intake.models.steps import (
    POST_SUB_AWAITING_INFO,
    dup_check_step,
    is_subflow_step,
    parse_dup_check,
)


class TestSessionFields:
    """Tests for field handling on Session."""

    def test_new_session_misses_all_required(self):
        """Test that a fresh session asks for the department first."""
        session = Session(user_id="U1", thread_id="T1")
        assert session.next_missing_field() == "requester_department"
        assert not session.is_complete()

    def test_merge_does_not_overwrite(self):
        """Test that populated fields are kept in gathering mode."""
        session = Session(user_id="U1", thread_id="T1")
        session.set_field("target", "homeowners")

        applied = session.merge_fields({"target": "agents", "due_date": "Friday"})

        assert applied == ["due_date"]
        assert session.fields["target"] == "homeowners"

    def test_merge_overwrites_in_correction_mode(self):
        """Test that correction mode replaces differing values."""
        session = Session(user_id="U1", thread_id="T1")
        session.set_field("target", "homeowners")

        applied = session.merge_fields({"target": "agents"}, overwrite=True)

        assert applied == ["target"]
        assert session.fields["target"] == "agents"

    def test_merge_same_value_is_not_a_change(self):
        """Test that re-stating a value reports nothing changed."""
        session = Session(user_id="U1", thread_id="T1")
        session.set_field("target", "homeowners")
        assert session.merge_fields({"target": "homeowners"}, overwrite=True) == []

    def test_merge_ignores_unknown_and_empty(self):
        """Test that unknown keys and blank values are skipped."""
        session = Session(user_id="U1", thread_id="T1")
        assert session.merge_fields({"budget": "10k", "target": "  ", "deliverables": []}) == []

    def test_list_fields_normalized(self):
        """Test that a single deliverable string becomes a list."""
        session = Session(user_id="U1", thread_id="T1")
        session.set_field("deliverables", "One-pager")
        assert session.fields["deliverables"] == ["One-pager"]

    def test_unknown_field_rejected(self):
        """Test that set_field only accepts known keys."""
        with pytest.raises(KeyError):
            Session(user_id="U1", thread_id="T1").set_field("budget", "10k")

    def test_reset_keeps_identity(self, make_session):
        """Test that starting over keeps requester name and department."""
        session = make_session(classification=Classification.FULL, follow_up_index=2)
        session.reset()

        assert session.fields["requester_name"] == "Dana Smith"
        assert session.fields["requester_department"] == "Marketing"
        assert session.fields["target"] is None
        assert session.follow_up_index is None
        assert session.classification == Classification.UNDETERMINED


class TestSessionStatus:
    """Tests for status helpers."""

    def test_terminal_statuses(self):
        """Test which statuses end a session."""
        session = Session(user_id="U1", thread_id="T1")
        for status in (SessionStatus.COMPLETE, SessionStatus.CANCELLED, SessionStatus.WITHDRAWN):
            session.status = status
            assert session.is_terminal()
        session.status = SessionStatus.PENDING_APPROVAL
        assert not session.is_terminal()

    def test_complete_accepts_input_only_in_post_submission_step(self):
        """Test that a completed request takes input for an open sub-flow."""
        session = Session(user_id="U1", thread_id="T1", status=SessionStatus.COMPLETE)
        assert not session.accepts_input()
        session.current_step = POST_SUB_AWAITING_INFO
        assert session.accepts_input()

    def test_follow_up_answered_by_extra_or_field(self):
        """Test that a question counts as answered from either source."""
        session = Session(user_id="U1", thread_id="T1")
        assert not session.is_follow_up_answered(FollowUpQuestion("tone", "What tone?"))

        session.side_channel.set_extra("tone", "playful")
        session.set_field("constraints", "no stock photos")

        assert session.is_follow_up_answered(FollowUpQuestion("tone", "What tone?"))
        assert session.is_follow_up_answered(FollowUpQuestion("constraints", "Any limits?"))


class TestSideChannel:
    """Tests for the side channel encoding."""

    def test_protocol_keys_are_prefixed(self):
        """Test that protocol state is written under reserved keys."""
        channel = SideChannel(pre_subflow_step="due_date")
        channel.set_extra("tone", "playful")

        data = channel.to_dict()

        assert data[KEY_PRE_SUBFLOW_STEP] == "due_date"
        assert data["tone"] == "playful"
        assert all(k.startswith("__") or k == "tone" for k in data)

    def test_reserved_extra_key_rejected(self):
        """Test that domain data cannot use the protocol prefix."""
        with pytest.raises(ValueError):
            SideChannel().set_extra("__pre_draft_step", "x")

    def test_unknown_protocol_keys_preserved(self):
        """Test that keys from a newer version survive a load/save."""
        channel = SideChannel.from_dict({"__future_flag": "1", "tone": "dry"})
        assert channel.to_dict() == {"__future_flag": "1", "tone": "dry"}
        assert channel.get_extra("__future_flag") is None

    def test_assets_encoded_as_json(self):
        """Test that the asset list decodes back to records."""
        channel = SideChannel.from_dict(
            {KEY_EXISTING_ASSETS: '[{"link": "https://x.example", "status": "Ready"}]'}
        )
        assert channel.existing_assets[0].link == "https://x.example"
        assert channel.existing_assets[0].status == "Ready"

    def test_flag_discussion_dedups(self):
        """Test that a field is flagged only once."""
        channel = SideChannel()
        channel.flag_discussion("due_date", "Due date")
        channel.flag_discussion("due_date", "Due date")
        assert len(channel.needs_discussion) == 1


class TestSteps:
    """Tests for step markers."""

    def test_dup_check_marker(self):
        """Test encoding of the other session id."""
        step = dup_check_step(42)
        assert step == "dup_check:42"
        assert parse_dup_check(step) == 42
        assert parse_dup_check("dup_check:abc") is None
        assert parse_dup_check("target") is None

    def test_field_keys_are_not_subflows(self):
        """Test that plain field steps are not sub-flow markers."""
        assert not is_subflow_step("target")
        assert not is_subflow_step(None)
        assert is_subflow_step("draft:awaiting_link")


class TestInboundMessage:
    """Tests for InboundMessage."""

    def test_thread_root(self):
        """Test that a message starting its own thread is the root."""
        assert InboundMessage("m1", "U1", "m1", "hi").is_thread_root
        assert not InboundMessage("m2", "U1", "m1", "hi").is_thread_root
