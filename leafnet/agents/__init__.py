"""Stateful flows built on the aggregation layer."""

from .dashboard import DashboardRefresher, DashboardSnapshot, build_chat_context
from .sessions import SessionStore
from .chat import ChatSessionStore, ChatExchange, ChatMessage, new_exchange
from .diagnosis import DiagnosisSession, DiagnosisSessionStore, DiagnosisView, parse_diagnosis

__all__ = [
    "DashboardRefresher",
    "DashboardSnapshot",
    "build_chat_context",
    "SessionStore",
    "ChatSessionStore",
    "ChatExchange",
    "ChatMessage",
    "new_exchange",
    "DiagnosisSession",
    "DiagnosisSessionStore",
    "DiagnosisView",
    "parse_diagnosis",
]
