"""
Daily Brief Configuration
=========================
All environment variables in one place. Pydantic Settings validates
types at startup so a bad timeout or window size fails on boot, not
halfway through building someone's brief.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Loaded from environment variables or a .env file."""

    # --- Supabase ---
    supabase_url: str = "http://localhost:54321"
    supabase_service_key: str = ""  # service_role key for backend reads
    # Per-request PostgREST timeout; a slower table degrades that sub-query
    supabase_query_timeout_seconds: int = 10
    # Rows per page for unbounded reads; match PostgREST max-rows (default 1000)
    supabase_page_size: int = 1000

    # --- Anthropic / Claude API ---
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    # The brief reply is a two-field JSON fragment
    anthropic_max_tokens: int = 150

    # --- Brief engine ---
    # Number of most recent sessions loaded for rotation, targets and streaks
    brief_history_window: int = 14
    default_timezone: str = "UTC"
    default_days_per_week: int = 4
    default_calorie_goal: float = 2000
    default_protein_goal: float = 150
    default_carbs_goal: float = 200
    default_fat_goal: float = 65

    # --- Enrichment ---
    # Kill switch: if False, briefs use the deterministic text only.
    enable_ai_enrichment: bool = True
    # Hard budget for the generator call; the brief never waits longer.
    enrichment_timeout_seconds: float = 6.0
    enrichment_focus_max_chars: int = 15
    enrichment_target_max_chars: int = 50

    # --- App settings ---
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:3000"]
    # Attach the decision trace to generated responses (never in production)
    include_diagnostics: bool = True

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def diagnostics_enabled(self) -> bool:
        return self.include_diagnostics and self.environment != "production"


@lru_cache
def get_settings() -> Settings:
    return Settings()
