from safespace.models.chat_request import ChatRequest, ChatRequestStatus
from safespace.models.specialist import Specialist

__all__ = ["ChatRequest", "ChatRequestStatus", "Specialist"]
