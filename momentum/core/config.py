from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "postgresql://momentum:momentum@db:5432/momentum"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Comma-separated allowed origins, or "*" to allow all.
    CORS_ORIGINS: str = "*"

    # --- Collaborator fan-out ---
    COLLABORATOR_TIMEOUT_SECONDS: float = 3.0
    COLLABORATOR_RETRY_BACKOFF_SECONDS: float = 0.1
    AGGREGATOR_MAX_WORKERS: int = 8

    # --- Habit consistency ---
    CONSISTENCY_WINDOW_DAYS: int = 30
    STACK_ANCHOR_MIN_CONSISTENCY: float = 70.0
    STACK_STREAK_TARGET_DAYS: int = 21
    STACK_MAX_SUGGESTIONS: int = 5
    STRUGGLING_HABIT_CONSISTENCY: float = 50.0
    STRONG_HABIT_CONSISTENCY: float = 70.0

    # --- Pattern recognition ---
    INSIGHT_WINDOW_DAYS: int = 30
    MIN_RELEVANT_EVENTS: int = 5
    DEFAULT_SESSION_MINUTES: int = 45
    SESSION_ROUNDING_MINUTES: int = 15
    LEARNING_STYLE_KEEP: float = 0.8
    LEARNING_STYLE_VISUAL: float = 0.6
    LEARNING_STYLE_KINESTHETIC: float = 0.4
    MOTIVATION_HIGH: float = 0.7
    MOTIVATION_MEDIUM: float = 0.4
    SKIP_PATTERN_LIMIT: int = 5
    MODIFICATION_LIMIT: int = 10
    RECENT_FOCUS_EVENTS: int = 7
    LOW_FOCUS_THRESHOLD: float = 2.0
    INSIGHT_MIN_STRENGTH: float = 0.1

    # --- Activity stats ---
    DEEP_WORK_MIN_FOCUS: int = 7
    DEEP_WORK_MIN_MINUTES: int = 25

    # --- Adaptive feedback ---
    MIN_HISTORY_DAYS: int = 7
    DECLINE_THRESHOLD: float = 0.15
    IMPACT_SCALE: float = 2.0
    ERRATIC_CV_THRESHOLD: float = 0.75
    HIGH_PERFORMANCE_CONSISTENCY: float = 85.0
    HIGH_PERFORMANCE_ALIGNMENT: float = 80.0
    FULL_CONFIDENCE_DAYS: int = 30
    MAX_SUGGESTION_CONFIDENCE: float = 0.95

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
