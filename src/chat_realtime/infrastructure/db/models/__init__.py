"""Import all models so Base.metadata knows every table."""
from chat_realtime.infrastructure.db.models.conversation import ConversationModel
from chat_realtime.infrastructure.db.models.member import MemberModel
from chat_realtime.infrastructure.db.models.message import MessageModel
from chat_realtime.infrastructure.db.models.user import UserModel

__all__ = [
    "ConversationModel",
    "MemberModel",
    "MessageModel",
    "UserModel",
]
