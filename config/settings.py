from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Storage ────────────────────────────────────────────────
    database_path: Path = Path("output/socialpub.db")

    # ── Meta Graph API ─────────────────────────────────────────
    graph_api_base: str = "https://graph.facebook.com"
    graph_api_version: str = "v21.0"
    http_timeout: float = 30.0
    meta_app_id: str = ""
    meta_app_secret: str = ""

    # ── Video containers ───────────────────────────────────────
    video_processing_mode: str = "fixed"   # fixed | poll
    video_processing_delay: float = 10.0
    video_poll_interval: float = 5.0
    video_poll_timeout: float = 300.0

    # ── Tokens ─────────────────────────────────────────────────
    token_refresh_horizon_days: int = 7

    # ── HTTP service ───────────────────────────────────────────
    service_role_key: str = ""
    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # ── Worker ─────────────────────────────────────────────────
    sweep_interval_minutes: int = 5
    token_refresh_interval_hours: int = 24

    # ── App ────────────────────────────────────────────────────
    log_level: str = "INFO"

    @property
    def graph_base_url(self) -> str:
        return f"{self.graph_api_base.rstrip('/')}/{self.graph_api_version}"

    def ensure_data_dir(self) -> None:
        """Create the database directory if it doesn't exist."""
        self.database_path.parent.mkdir(parents=True, exist_ok=True)


settings = Settings()
