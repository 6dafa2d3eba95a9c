"""
DMS Submission Configuration

Environment configuration for the API, auth, TypeDB, object storage and SDES.
"""

import os
from dataclasses import dataclass
from typing import Optional


@dataclass
class APIConfig:
    """FastAPI configuration."""
    host: str = os.getenv("API_HOST", "0.0.0.0")
    port: int = int(os.getenv("API_PORT", "8222"))
    debug: bool = os.getenv("API_DEBUG", "false").lower() == "true"


@dataclass
class AuthConfig:
    """Bearer-token validation settings."""
    env: str = os.getenv("AUTH_ENV", "prod")
    jwt_secret: Optional[str] = os.getenv("AUTH_JWT_SECRET")
    jwt_issuer: Optional[str] = os.getenv("AUTH_JWT_ISSUER")
    jwt_audience: Optional[str] = os.getenv("AUTH_JWT_AUDIENCE")
    allow_insecure_headers: bool = os.getenv("AUTH_ALLOW_INSECURE_HEADERS", "false").lower() == "true"


@dataclass
class TypeDBConfig:
    """TypeDB connection configuration."""
    host: str = os.getenv("TYPEDB_HOST", "localhost")
    port: int = int(os.getenv("TYPEDB_PORT", "1729"))
    database: str = os.getenv("TYPEDB_DATABASE", "dms_submission")
    username: str = os.getenv("TYPEDB_USERNAME", "admin")
    password: str = os.getenv("TYPEDB_PASSWORD", "password")
    tls_enabled: bool = os.getenv("TYPEDB_TLS_ENABLED", "false").lower() == "true"

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass
class ObjectStoreConfig:
    """S3-compatible object storage for archived submissions."""
    bucket: str = os.getenv("OBJECT_STORE_BUCKET", "dms-submission")
    prefix: str = os.getenv("OBJECT_STORE_PREFIX", "sdes")
    endpoint_url: Optional[str] = os.getenv("OBJECT_STORE_ENDPOINT_URL")
    region: Optional[str] = os.getenv("OBJECT_STORE_REGION")


@dataclass
class SdesConfig:
    """Downstream delivery (SDES) notification endpoint."""
    base_url: str = os.getenv("SDES_BASE_URL", "http://localhost:9191/sdes-stub")
    information_type: str = os.getenv("SDES_INFORMATION_TYPE", "S18")
    recipient_or_sender: str = os.getenv("SDES_RECIPIENT_OR_SENDER", "dms-submission")
    client_id: Optional[str] = os.getenv("SDES_CLIENT_ID")
    timeout_seconds: float = float(os.getenv("SDES_TIMEOUT_SECONDS", "10"))


@dataclass
class SubmissionConfig:
    """Submission pipeline settings."""
    work_dir_root: Optional[str] = os.getenv("SUBMISSION_WORK_DIR")
    local_mode: bool = os.getenv("DMS_SUBMISSION_LOCAL_MODE", "0") == "1"
    request_timeout_seconds: float = float(os.getenv("SUBMISSION_TIMEOUT_SECONDS", "30"))


@dataclass
class Config:
    """Main configuration container."""
    api: APIConfig
    auth: AuthConfig
    typedb: TypeDBConfig
    object_store: ObjectStoreConfig
    sdes: SdesConfig
    submission: SubmissionConfig

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        return cls(
            api=APIConfig(),
            auth=AuthConfig(),
            typedb=TypeDBConfig(),
            object_store=ObjectStoreConfig(),
            sdes=SdesConfig(),
            submission=SubmissionConfig(),
        )


# Global config instance
config = Config.from_env()
