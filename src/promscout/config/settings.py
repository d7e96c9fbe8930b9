"""
Application settings using Pydantic.

Provides environment-based configuration loading with PROMSCOUT_ prefix.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # Debug
    debug: bool = False
    log_level: str = "INFO"

    # API
    api_prefix: str = "/api/v1"
    cors_origins: list[str] = []

    # Cluster access: config id -> kubeconfig path
    kubeconfigs: dict[str, str] = {}
    kube_request_timeout: float = 30.0

    # Backend discovery
    backend_name: str = "prometheus"
    backend_label_selector: str = "app.kubernetes.io/name=prometheus"
    excluded_image_hint: str = "operator"
    default_port: int = 9090
    instance_port_hints: list[str] = ["web"]
    service_port_hints: list[str] = ["web", "prom", "http"]
    preferred_namespaces: list[str] = ["default", "monitoring", "observability", "prometheus"]
    buildinfo_path: str = "api/v1/status/buildinfo"

    # Timeouts (seconds)
    verify_timeout: float = 3.0
    discovery_timeout: float = 4.0
    discovery_timeout_day: float = 10.0
    discovery_timeout_week: float = 15.0
    availability_timeout: float = 3.0
    metrics_server_timeout: float = 0.8

    # Response cache
    cache_ttl_seconds: int = 300

    # Query defaults
    default_range: str = "15m"
    default_step: str = "15s"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "PROMSCOUT_"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
