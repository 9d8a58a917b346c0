"""Pydantic models for operator configuration and check results."""

from pathlib import Path
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Configuration Models
# ============================================================================


class PollSettings(BaseModel):
    """Readiness polling budget (interval in seconds)."""

    model_config = ConfigDict(frozen=True)

    interval: float = Field(default=2.0, ge=0)
    max_attempts: int = Field(default=60, ge=1)


class OpsConfig(BaseModel):
    """Configuration shared by every deployment and management operation.

    Constructed once at startup by ``load_ops_config()`` and never mutated.
    """

    model_config = ConfigDict(frozen=True)

    registry_dir: Path = Field(default_factory=Path.cwd)
    api_port: int = Field(default=8080, ge=1, le=65535)
    db_port: int = Field(default=5432, ge=1, le=65535)

    # Database (credentials match the registry's compose file)
    db_name: str = "mcp-registry"
    db_user: str = "mcpregistry"
    db_password: str = "mcpregistry"

    # Container names and deployment layout
    api_container: str = "registry"
    db_container: str = "postgres"
    marker_file: str = "docker-compose.yml"
    backup_dir: str = "backups"
    data_dir: str = ".db"

    # Source checkout
    repo_url: str = "https://github.com/modelcontextprotocol/registry"
    repo_branch: str = "main"

    # Timing
    poll: PollSettings = Field(default_factory=PollSettings)
    settle_delay: float = Field(default=10.0, ge=0)
    stabilize_delay: float = Field(default=5.0, ge=0)
    failure_log_tail: int = Field(default=50, ge=1)
    logs_tail: int = Field(default=100, ge=1)

    @property
    def api_base_url(self) -> str:
        return f"http://localhost:{self.api_port}"

    @property
    def compose_path(self) -> Path:
        return self.registry_dir / self.marker_file

    @property
    def backups_path(self) -> Path:
        return self.registry_dir / self.backup_dir

    @property
    def data_path(self) -> Path:
        return self.registry_dir / self.data_dir

    @property
    def database_url(self) -> str:
        """Connection URL for the published database port on localhost."""
        password = quote(self.db_password, safe="")
        return (
            f"postgresql://{self.db_user}:{password}"
            f"@localhost:{self.db_port}/{self.db_name}"
        )


# ============================================================================
# Result Models
# ============================================================================


class CheckResult(BaseModel):
    """Outcome of a single verification or health check."""

    name: str
    ok: bool
    detail: str = ""
    payload: dict | None = None  # parsed response body, when there is one


class StatusCount(BaseModel):
    """One row of the grouped server status query."""

    status: str
    count: int
