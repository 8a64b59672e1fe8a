from app.conversation.models import AudioClip, ConversationTurn, Speaker, TurnResult
from app.conversation.processor import ConversationTurnProcessor

__all__ = ["AudioClip", "ConversationTurn", "ConversationTurnProcessor", "Speaker", "TurnResult"]
