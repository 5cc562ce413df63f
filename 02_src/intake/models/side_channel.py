"""Session side channel: protocol bookkeeping plus open domain keys."""

import json
from dataclasses import dataclass, field

PROTOCOL_PREFIX = "__"

# Protocol key names as they appear in the persisted map
KEY_PRE_SUBFLOW_STEP = "__pre_draft_step"
KEY_DRAFT_ASKED = "__draft_asked"
KEY_CURRENT_DRAFT_LINK = "__current_draft_link"
KEY_EXISTING_ASSETS = "__existing_assets"
KEY_NEEDS_DISCUSSION = "__needs_discussion"
KEY_DUP_EXISTING_CHANNEL = "__dup_existing_channel"
KEY_DUP_EXISTING_THREAD = "__dup_existing_thread"

_KNOWN_KEYS = {
    KEY_PRE_SUBFLOW_STEP,
    KEY_DRAFT_ASKED,
    KEY_CURRENT_DRAFT_LINK,
    KEY_EXISTING_ASSETS,
    KEY_NEEDS_DISCUSSION,
    KEY_DUP_EXISTING_CHANNEL,
    KEY_DUP_EXISTING_THREAD,
}

DRAFT_LINK_KEY = "draft_link"
DRAFT_LINK_LATER = "_will share later_"


@dataclass
class ExistingAsset:
    """A draft or asset the requester already has."""

    link: str
    status: str  # "Ready" or "In progress, expected <date>"


@dataclass
class DiscussionFlag:
    """A field the requester asked to discuss with the team."""

    field: str
    label: str


@dataclass
class SideChannel:
    """
    Per-session scratch data.

    Known protocol entries are typed attributes. Everything else lives in
    ``extras`` (follow-up answers, ``draft_link``, related-item hints). On
    disk this is a flat ``dict[str, str]`` where protocol keys carry the
    ``__`` prefix and domain keys never do.
    """

    pre_subflow_step: str | None = None
    draft_asked: bool = False
    current_draft_link: str | None = None
    existing_assets: list[ExistingAsset] = field(default_factory=list)
    needs_discussion: list[DiscussionFlag] = field(default_factory=list)
    dup_existing_channel: str | None = None
    dup_existing_thread: str | None = None
    extras: dict[str, str] = field(default_factory=dict)
    # Protocol keys written by a newer version, preserved as-is
    unknown_protocol: dict[str, str] = field(default_factory=dict)

    def set_extra(self, key: str, value: str) -> None:
        """Store a domain value. Protocol-prefixed keys are rejected."""
        if key.startswith(PROTOCOL_PREFIX):
            raise ValueError(f"Side-channel key {key!r} is reserved for protocol use")
        self.extras[key] = value

    def get_extra(self, key: str) -> str | None:
        return self.extras.get(key)

    def has_extra(self, key: str) -> bool:
        return bool(self.extras.get(key))

    def flag_discussion(self, field_key: str, label: str) -> None:
        if not any(flag.field == field_key for flag in self.needs_discussion):
            self.needs_discussion.append(DiscussionFlag(field=field_key, label=label))

    def clear_dup_check(self) -> None:
        self.dup_existing_channel = None
        self.dup_existing_thread = None

    def to_dict(self) -> dict[str, str]:
        """Encode to the flat persisted shape."""
        data: dict[str, str] = dict(self.extras)
        data.update(self.unknown_protocol)
        if self.pre_subflow_step is not None:
            data[KEY_PRE_SUBFLOW_STEP] = self.pre_subflow_step
        if self.draft_asked:
            data[KEY_DRAFT_ASKED] = "true"
        if self.current_draft_link is not None:
            data[KEY_CURRENT_DRAFT_LINK] = self.current_draft_link
        if self.existing_assets:
            data[KEY_EXISTING_ASSETS] = json.dumps(
                [{"link": a.link, "status": a.status} for a in self.existing_assets]
            )
        if self.needs_discussion:
            data[KEY_NEEDS_DISCUSSION] = json.dumps(
                [{"field": f.field, "label": f.label} for f in self.needs_discussion]
            )
        if self.dup_existing_channel is not None:
            data[KEY_DUP_EXISTING_CHANNEL] = self.dup_existing_channel
        if self.dup_existing_thread is not None:
            data[KEY_DUP_EXISTING_THREAD] = self.dup_existing_thread
        return data

    @classmethod
    def from_dict(cls, data: dict[str, str] | None) -> "SideChannel":
        """Decode from the flat persisted shape."""
        channel = cls()
        if not data:
            return channel

        for key, value in data.items():
            if not key.startswith(PROTOCOL_PREFIX):
                channel.extras[key] = value
            elif key not in _KNOWN_KEYS:
                channel.unknown_protocol[key] = value

        channel.pre_subflow_step = data.get(KEY_PRE_SUBFLOW_STEP)
        channel.draft_asked = data.get(KEY_DRAFT_ASKED) == "true"
        channel.current_draft_link = data.get(KEY_CURRENT_DRAFT_LINK)
        channel.dup_existing_channel = data.get(KEY_DUP_EXISTING_CHANNEL)
        channel.dup_existing_thread = data.get(KEY_DUP_EXISTING_THREAD)

        if data.get(KEY_EXISTING_ASSETS):
            channel.existing_assets = [
                ExistingAsset(link=item["link"], status=item["status"])
                for item in json.loads(data[KEY_EXISTING_ASSETS])
            ]
        if data.get(KEY_NEEDS_DISCUSSION):
            channel.needs_discussion = [
                DiscussionFlag(field=item["field"], label=item["label"])
                for item in json.loads(data[KEY_NEEDS_DISCUSSION])
            ]
        return channel
