"""
Profile Collaborator — questionnaire completeness and identity alignment.

Identity alignment is computed elsewhere and only passed through here. A user
without a declared target identity, or without a stored score, sits at the
neutral 50.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from sqlalchemy.orm import Session

from momentum.db.base import SessionLocal
from momentum.models.user_profile import UserProfile

NEUTRAL_ALIGNMENT = 50.0

REQUIRED_FIELDS = (
    "target_identity",
    "academic_goals",
    "skill_goals",
    "wake_up_time",
    "sleep_time",
    "available_hours",
)
DETAILED_FIELDS = (
    "learning_style",
    "productivity_peaks",
    "distraction_triggers",
    "motivation_factors",
    "study_environment_prefs",
)


@dataclass
class ProfileSnapshot:
    user_id: str
    completion_percentage: float = 0.0
    target_identity: Optional[str] = None
    detailed_profile: dict[str, Any] = field(default_factory=dict)
    identity_alignment: float = NEUTRAL_ALIGNMENT


def _filled(value: Any) -> bool:
    return value is not None and value != "" and value != [] and value != {}


def profile_completeness(profile: Optional[UserProfile]) -> float:
    if profile is None:
        return 0.0
    detailed = profile.detailed_profile or {}
    filled = sum(1 for f in REQUIRED_FIELDS if _filled(getattr(profile, f)))
    filled += sum(1 for f in DETAILED_FIELDS if _filled(detailed.get(f)))
    return round(filled / (len(REQUIRED_FIELDS) + len(DETAILED_FIELDS)) * 100)


class ProfileCollaborator:
    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self._session_factory = session_factory

    def get_profile(self, user_id: str) -> ProfileSnapshot:
        with self._session_factory() as db:
            profile = db.query(UserProfile).filter(UserProfile.user_id == user_id).first()

        if profile is None:
            return ProfileSnapshot(user_id=user_id)

        alignment = NEUTRAL_ALIGNMENT
        if profile.target_identity and profile.identity_alignment_score is not None:
            alignment = float(profile.identity_alignment_score)

        return ProfileSnapshot(
            user_id=user_id,
            completion_percentage=profile_completeness(profile),
            target_identity=profile.target_identity,
            detailed_profile=dict(profile.detailed_profile or {}),
            identity_alignment=alignment,
        )
