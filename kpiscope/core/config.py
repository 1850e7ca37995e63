from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Remote KPI data API
    kpi_api_base_url: str = Field(default="http://localhost:8000")
    kpi_api_path: str = Field(default="/api/data")

    # App
    service_name: str = Field(default="kpiscope")
    app_env: str = Field(default="development")
    app_url: str = Field(default="http://localhost")
    log_level: str = Field(default="INFO")

    @property
    def kpi_api_url(self) -> str:
        """Full URL of the remote KPI data endpoint."""
        return self.kpi_api_base_url.rstrip("/") + "/" + self.kpi_api_path.lstrip("/")


# Singleton instance
settings = Settings()
