"""Real-time channel broker and its WebSocket gateway"""
from .broker import ChannelBroker, Session, get_broker

__all__ = [
    "ChannelBroker",
    "Session",
    "get_broker",
]
