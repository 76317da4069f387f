from __future__ import annotations

import pytest

from chat_realtime.domain.entities.conversation import Conversation
from chat_realtime.domain.value_objects.enums import ConversationKind
from chat_realtime.domain.value_objects.ids import private_conversation_id, split_private_id


def test_private_id_is_symmetric():
    assert private_conversation_id("u1", "u2") == "u1_u2"
    assert private_conversation_id("u2", "u1") == "u1_u2"


def test_private_id_rejects_separator_and_empty_ids():
    with pytest.raises(ValueError):
        private_conversation_id("a_b", "c")
    with pytest.raises(ValueError):
        private_conversation_id("", "c")


@pytest.mark.parametrize(
    ("conversation_id", "expected"),
    [
        ("u1_u2", ("u1", "u2")),
        ("u2_u1", None),
        ("room_abc_def", None),
        ("_u2", None),
        ("global", None),
    ],
)
def test_split_private_id_only_accepts_canonical_pairs(conversation_id, expected):
    assert split_private_id(conversation_id) == expected


def test_private_conversation_has_sorted_peers():
    conv = Conversation.private("u2", "u1")
    assert conv.id == "u1_u2"
    assert conv.kind == ConversationKind.PRIVATE
    assert conv.personal_targets() == ("u1", "u2")
    assert conv.is_persisted is False


def test_global_room_needs_no_storage():
    room = Conversation.global_room()
    assert room.is_global
    assert room.is_persisted
    assert room.personal_targets() == ()
