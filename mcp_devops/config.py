"""
Configuration settings for the DevOps deployment orchestrator.
"""
from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional


class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Application
    APP_NAME: str = Field(default="mcp-devops-server", description="Application name")
    APP_ENV: str = Field(default="production", description="Environment: development|staging|production")
    APP_VERSION: str = Field(default="1.0.0", description="Reported service version")

    # HTTP Configuration
    HTTP_PORT: int = Field(default=3000, description="Service port")
    ALLOWED_ORIGINS: str = Field(default="http://localhost:5678", description="Comma separated CORS origins")

    # Kubernetes Configuration
    K8S_CONTEXT: Optional[str] = Field(default=None, description="Kubernetes context")
    K8S_IN_CLUSTER: bool = Field(default=False, description="Running in cluster")
    MANAGED_BY: str = Field(default="mcp-devops-server", description="Value of the managed-by label")
    READINESS_TIMEOUT_SECS: float = Field(default=300, description="Rollout readiness deadline")
    READINESS_POLL_INTERVAL_SECS: float = Field(default=5, description="Rollout readiness poll interval")

    # Monitoring
    GRAFANA_URL: str = Field(default="http://grafana.monitoring.svc.cluster.local", description="Grafana base URL")

    # Auth
    MCP_SERVER_TOKEN: Optional[str] = Field(default=None, description="Static bearer token accepted in development")
    JWT_SECRET: str = Field(default="your-secret-key", description="HS256 secret for bearer JWTs")

    # Notifications
    SLACK_WEBHOOK_URL: Optional[str] = Field(default=None, description="Slack incoming webhook")
    SLACK_DEFAULT_CHANNEL: str = Field(default="#devops-alerts", description="Slack channel when none is given")
    TEAMS_WEBHOOK_URL: Optional[str] = Field(default=None, description="Teams incoming webhook")

    # Service Configuration
    REQUEST_TIMEOUT_SECS: int = Field(default=30, description="Outbound request timeout")
    LOG_LEVEL: str = Field(default="info", description="Log level: info|debug|warning")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

    @property
    def allowed_origins(self) -> list[str]:
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]


# Global settings instance
settings = Settings()
