"""CogSocket protocol layer.

Transport-agnostic pieces of the protocol engine:
- Messages: the seven message kinds and their JSON wire form
- Codec: text frame encoding, binary "not supported" sentinel
- Correlator: request ids and pending responses
- Subscriptions: local listeners and remote event senders
- Dispatcher: routes inbound messages by kind
"""

from .codec import NOT_SUPPORTED, decode, encode
from .correlator import MAX_REQUEST_ID, PendingRequest, RequestCorrelator
from .dispatcher import MessageDispatcher
from .messages import MISSING, REQUEST_KINDS, Message, MessageKind
from .subscriptions import EventSender, SubscriptionManager

__all__ = [
    "MAX_REQUEST_ID",
    "MISSING",
    "NOT_SUPPORTED",
    "REQUEST_KINDS",
    "EventSender",
    "Message",
    "MessageDispatcher",
    "MessageKind",
    "PendingRequest",
    "RequestCorrelator",
    "SubscriptionManager",
    "decode",
    "encode",
]
