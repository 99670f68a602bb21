from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from .schema import CollectionSchema, load_schema


class DocumentErrorPolicy(str, Enum):
    """What a failed page does to the run."""

    ABORT = "abort"
    SKIP = "skip"


class NumericFallback(str, Enum):
    """What a non-numeric value in an integer/float field turns into."""

    FAIL = "fail"
    NULL = "null"


class NodeConfig(BaseModel):
    host: str = "localhost"
    port: int = Field(default=8108, gt=0, le=65535)
    protocol: str = Field(default="http", pattern="^https?$")
    path: str = ""

    model_config = ConfigDict(frozen=True)

    @property
    def base_url(self) -> str:
        return f"{self.protocol}://{self.host}:{self.port}{self.path}"


class ServerConfig(BaseModel):
    """Connection descriptor for the Typesense cluster."""

    nodes: List[NodeConfig] = Field(default_factory=lambda: [NodeConfig()], min_length=1)
    api_key: SecretStr
    connection_timeout_seconds: float = Field(default=10.0, gt=0)
    num_retries: int = Field(default=3, ge=0)
    retry_interval_seconds: float = Field(default=0.1, ge=0)

    model_config = ConfigDict(frozen=True)


class ReindexConfig(BaseModel):
    """Everything one reindex run consumes."""

    server: ServerConfig
    collection_schema: CollectionSchema
    root_dir: Path = Field(
        default=Path("public"),
        validation_alias=AliasChoices("root_dir", "rootDir", "public_dir", "publicDir"),
    )
    exclude: List[str] = Field(default_factory=list)

    # Override for generation naming (tests, custom naming schemes)
    generate_new_collection_name: Optional[Callable[[CollectionSchema], str]] = None

    document_error_policy: DocumentErrorPolicy = DocumentErrorPolicy.ABORT
    numeric_fallback: NumericFallback = NumericFallback.FAIL
    dry_run: bool = False

    model_config = ConfigDict(
        frozen=True,
        arbitrary_types_allowed=True,
        populate_by_name=True,
    )


class Settings(BaseSettings):
    typesense_host: str = "localhost"
    typesense_port: int = 8108
    typesense_protocol: str = "http"
    typesense_path: str = ""
    typesense_api_key: SecretStr = SecretStr("")

    connection_timeout_seconds: float = 10.0
    num_retries: int = 3

    schema_path: str = "typesense-schema.json"
    root_dir: str = "public"
    exclude: List[str] = Field(default_factory=list)

    document_error_policy: DocumentErrorPolicy = DocumentErrorPolicy.ABORT
    numeric_fallback: NumericFallback = NumericFallback.FAIL

    log_level: str = "INFO"

    # Guards the webhook trigger; webhook is disabled when unset
    admin_api_key: Optional[SecretStr] = None

    model_config = SettingsConfigDict(
        env_prefix="SITE_INDEXER_",
        env_file=".env",
        extra="ignore",
    )

    def server_config(self) -> ServerConfig:
        return ServerConfig(
            nodes=[
                NodeConfig(
                    host=self.typesense_host,
                    port=self.typesense_port,
                    protocol=self.typesense_protocol,
                    path=self.typesense_path,
                )
            ],
            api_key=self.typesense_api_key,
            connection_timeout_seconds=self.connection_timeout_seconds,
            num_retries=self.num_retries,
        )

    def to_reindex_config(self, **overrides) -> ReindexConfig:
        """
        Build a ReindexConfig from these settings, loading the schema file.

        Keyword overrides replace the matching ReindexConfig fields.
        """
        values = {
            "server": self.server_config(),
            "collection_schema": load_schema(self.schema_path),
            "root_dir": Path(self.root_dir),
            "exclude": list(self.exclude),
            "document_error_policy": self.document_error_policy,
            "numeric_fallback": self.numeric_fallback,
        }
        values.update(overrides)
        return ReindexConfig(**values)


settings = Settings()
