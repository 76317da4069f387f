from __future__ import annotations

from enum import StrEnum


class InboundEvent(StrEnum):
    PING = "ping"
    JOIN_CONVERSATION = "join_conversation"
    LEAVE_CONVERSATION = "leave_conversation"
    HISTORY_REQUEST = "join_history_request"
    SEND_MESSAGE = "send_message"
    TYPING_START = "typing_start"
    TYPING_END = "typing_end"
    ADD_REACTION = "add_reaction"
    MESSAGE_REACTION = "message_reaction"
    DELETE_MESSAGE = "delete_message"
    MARK_READ = "mark_read"
    MARK_DELIVERED = "mark_delivered"
    CALL_INVITE = "call_invite"
    CALL_ANSWER = "call_answer"
    CALL_ICE_CANDIDATE = "call_ice_candidate"
    CALL_REJECT = "call_reject"
    CALL_END = "call_end"


class OutboundEvent(StrEnum):
    PONG = "pong"
    ERROR = "error"
    USERS_UPDATE = "users_update"
    HISTORY = "history"
    RECEIVE_MESSAGE = "receive_message"
    MESSAGE_UPDATE = "message_update"
    MESSAGE_DELETED = "message_deleted"
    TYPING_SHOW = "typing_show"
    TYPING_HIDE = "typing_hide"
    MESSAGE_STATUS_UPDATE = "message_status_update"
    MESSAGES_READ_UPDATE = "messages_read_update"
    CALL_INCOMING = "call_incoming"
    CALL_ACCEPTED = "call_accepted"
    CALL_ICE_CANDIDATE = "call_ice_candidate"
    CALL_REJECTED = "call_rejected"
    CALL_ENDED = "call_ended"
