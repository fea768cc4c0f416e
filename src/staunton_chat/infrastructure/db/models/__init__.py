"""Import all models so Alembic can discover them via Base.metadata."""
from staunton_chat.infrastructure.db.models.conversation import ConversationModel
from staunton_chat.infrastructure.db.models.global_message import GlobalMessageModel
from staunton_chat.infrastructure.db.models.message import MessageModel
from staunton_chat.infrastructure.db.models.outbox import OutboxMessageModel
from staunton_chat.infrastructure.db.models.profile import ProfileModel

__all__ = [
    "ConversationModel",
    "GlobalMessageModel",
    "MessageModel",
    "OutboxMessageModel",
    "ProfileModel",
]
