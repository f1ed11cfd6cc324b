from models.base import Base
from models.user import User
from models.partnership import Partnership
from models.conversation import Conversation
from models.message import Message
from models.memory import PersonalCategory, PersonalMemory, SharedCategory, SharedMemory
from models.insight import InsightCategory, SharedInsight
from models.user_profile import UserProfile
from models.partner_profile import PartnerProfile
from models.job import Job
from models.event import Event

__all__ = [
    "Base",
    "User",
    "Partnership",
    "Conversation",
    "Message",
    "PersonalCategory",
    "PersonalMemory",
    "SharedCategory",
    "SharedMemory",
    "InsightCategory",
    "SharedInsight",
    "UserProfile",
    "PartnerProfile",
    "Job",
    "Event",
]
