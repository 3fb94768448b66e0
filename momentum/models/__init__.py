from .behavioral_event import BehavioralEvent
from .habit import Habit, HabitCompletion
from .activity_session import ActivitySession
from .evening_review import EveningReview
from .user_profile import UserProfile
from .adjustment_log import AdjustmentRecord

__all__ = [
    "BehavioralEvent",
    "Habit",
    "HabitCompletion",
    "ActivitySession",
    "EveningReview",
    "UserProfile",
    "AdjustmentRecord",
]
