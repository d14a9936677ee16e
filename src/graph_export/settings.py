from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError
from .graph.models import ExtractionLimits, NodeSource, NodeType


class SourceConfig(BaseModel):
    """Per-label export rule.

    A node carrying `label` is exported when it has the `key` property, its
    `type` is in `types` (empty = any type) and it is adjacent to a node
    carrying one of `linked_sources` (empty = no adjacency required).
    """

    model_config = ConfigDict(frozen=True)

    label: NodeSource
    key: str = Field(min_length=1)
    types: frozenset[NodeType] = frozenset()
    linked_sources: frozenset[NodeSource] = frozenset()


def default_sources() -> list[SourceConfig]:
    return [
        SourceConfig(label=NodeSource.ANDS, key="local_id"),
        SourceConfig(label=NodeSource.DRYAD, key="doi", linked_sources=frozenset({NodeSource.CROSSREF})),
        SourceConfig(
            label=NodeSource.CERN,
            key="doi",
            linked_sources=frozenset(
                {
                    NodeSource.ANDS,
                    NodeSource.DRYAD,
                    NodeSource.CROSSREF,
                    NodeSource.ORCID,
                    NodeSource.WEB,
                    NodeSource.DLI,
                    NodeSource.DARA,
                }
            ),
        ),
        SourceConfig(label=NodeSource.ORCID, key="orcid"),
        SourceConfig(label=NodeSource.DARA, key="doi"),
    ]


class ExportSettings(BaseSettings):
    """Run configuration for the graph exporter.

    Environment variables are prefixed with GRAPH_EXPORT_.
    """

    model_config = SettingsConfigDict(env_prefix="GRAPH_EXPORT_", extra="ignore")

    # --- Core ---
    log_level: str = Field(default="INFO", description="Python logging level")

    # --- Graph DB (Neo4j) ---
    neo4j_uri: str | None = None
    neo4j_user: str = "neo4j"
    neo4j_password: SecretStr | None = None
    neo4j_database: str = "neo4j"
    neo4j_batch_size: int = Field(default=500, gt=0, description="Root enumeration page size")
    neo4j_connect_attempts: int = Field(default=3, gt=0)

    # --- Output ---
    output_folder: str | None = Field(default=None, description="Local folder sink")
    s3_bucket: str | None = None
    s3_key: str = Field(default="", description="Key prefix, usually 'folder/'; '' for bucket root")
    s3_public: bool = Field(default=False, description="Grant public-read on every object")
    s3_region: str | None = None
    s3_endpoint_url: str | None = None
    s3_access_key: str | None = None
    s3_secret_key: SecretStr | None = None

    # --- Limits (0 disables max_nodes / max_siblings; max_level 0 = root only) ---
    max_level: int = Field(default=2, ge=0)
    max_nodes: int = Field(default=100, ge=0)
    max_siblings: int = Field(default=10, ge=0)

    # --- Run ---
    test_node_id: int = Field(default=0, ge=0, description="Export only this node when non-zero")
    workers: int = Field(default=1, gt=0)
    wave_timeout_s: float | None = Field(default=None, gt=0, description="Per-root extraction deadline")

    sources: list[SourceConfig] = Field(default_factory=default_sources)

    @property
    def limits(self) -> ExtractionLimits:
        return ExtractionLimits(
            max_level=self.max_level, max_nodes=self.max_nodes, max_siblings=self.max_siblings
        )

    def validate_for_run(self) -> None:
        if not self.neo4j_uri:
            raise ConfigurationError("Neo4j URI can not be empty")
        if not self.output_folder and not self.s3_bucket:
            raise ConfigurationError("Either an output folder or an S3 bucket must be configured")
        if self.s3_key and not self.s3_bucket:
            raise ConfigurationError("S3 key prefix is set but the S3 bucket name is empty")
        if not self.sources:
            raise ConfigurationError("At least one source label must be configured")


def load_settings(env_file: str | None = None, **overrides) -> ExportSettings:
    """Build settings from the environment (and optional .env file).

    Keyword overrides take precedence, as CLI flags do.
    """

    try:
        return ExportSettings(_env_file=env_file, **overrides)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
