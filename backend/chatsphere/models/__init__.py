# Models package init
from chatsphere.models.user import User
from chatsphere.models.contact import Contact, ContactRequest
from chatsphere.models.message import Message

__all__ = ["User", "Contact", "ContactRequest", "Message"]
