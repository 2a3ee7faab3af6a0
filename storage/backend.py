"""Backend configuration: a remote DynamoDB/S3 backend or none at all."""
import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BackendConfig:
    """Connection settings for the remote table and blob stores."""
    table_name: str
    bucket_name: str
    region_name: str = 'us-east-1'
    public_base_url: Optional[str] = None
    endpoint_url: Optional[str] = None


@dataclass(frozen=True)
class RemoteBackend:
    """Remote backend is configured and should be tried first."""
    config: BackendConfig


@dataclass(frozen=True)
class Unconfigured:
    """No remote backend; reads use the fallback dataset, writes fail."""
    reason: str = 'backend not configured'


Backend = Union[RemoteBackend, Unconfigured]


def load_backend(environ: Optional[Mapping[str, str]] = None) -> Backend:
    """
    Build the backend value from environment variables.

    Args:
        environ: Mapping to read from (defaults to os.environ)

    Returns:
        RemoteBackend when table and bucket names are both set, else Unconfigured
    """
    if environ is None:
        environ = os.environ

    table_name = environ.get('EVENTS_TABLE_NAME', '').strip()
    bucket_name = environ.get('EVENTS_BUCKET_NAME', '').strip()

    if not table_name or not bucket_name:
        missing = [
            name for name, value in (
                ('EVENTS_TABLE_NAME', table_name),
                ('EVENTS_BUCKET_NAME', bucket_name),
            )
            if not value
        ]
        logger.warning(f"Remote backend not configured, missing: {', '.join(missing)}")
        return Unconfigured(reason=f"missing {', '.join(missing)}")

    config = BackendConfig(
        table_name=table_name,
        bucket_name=bucket_name,
        region_name=environ.get('AWS_REGION', 'us-east-1'),
        public_base_url=environ.get('EVENTS_PUBLIC_BASE_URL') or None,
        endpoint_url=environ.get('AWS_ENDPOINT_URL') or None
    )
    logger.info(
        "Remote backend configured",
        extra={'table_name': table_name, 'bucket_name': bucket_name}
    )
    return RemoteBackend(config=config)
