import logging
import os
from typing import Optional, Union

import aws_cdk as cdk

logger = logging.getLogger(__name__)

# Network
DEFAULT_VPC_CIDR = "10.0.0.0/16"
DEFAULT_NAT_GATEWAYS = 1
DEFAULT_NAMESPACE_NAME = "fractal.local"

# Ports
HTTP_PORT = 80
ENGINE_RPC_PORT = 8891
ENGINE_SECONDARY_PORT = 8086
POSTGRES_PORT = 5432
DOGECOIN_RPC_PORT = 22555
DOGECOIN_P2P_PORT = 22556
DOGECOIN_ZMQ_PORT = 28000

# Database
DEFAULT_DATABASE_NAME = "fractal"
DEFAULT_DB_USERNAME = "fractal_engine"
DEFAULT_CREDENTIALS_SECRET_NAME = "FractalEngineRdsCredentials"
CREDENTIALS_EXCLUDE_CHARACTERS = '"@/\\:?#[]{}|^~;=%&+()<>'

# Containers
DEFAULT_DOGECOIN_IMAGE = "docker.io/danielwhelansb/dogecoin:v1.14.9"
DEFAULT_ENGINE_IMAGE = "ghcr.io/dogecoinfoundation/fractal-engine:v0.0.1"
DEFAULT_DOGECOIN_SERVICE_NAME = "dogecoin"
DEFAULT_CPU = 512
DEFAULT_MEMORY_MIB = 1024
DOGECOIN_DATA_DIR = "/data"


class ConfigurationError(ValueError):
    """Raised when a stack option can never produce a deployable resource."""


def validate_port(name: str, port: Union[int, float]) -> Union[int, float]:
    # Tokens (e.g. cross-stack imports) are only known at deploy time
    if cdk.Token.is_unresolved(port):
        return port
    if isinstance(port, bool) or not isinstance(port, int) or not 0 < port < 65536:
        raise ConfigurationError(f"{name} must be a TCP port between 1 and 65535, got {port!r}")
    return port


def port_string(port: Union[int, float, str]) -> str:
    """Render a port, literal or token, as a template string value."""
    if isinstance(port, str):
        return port
    return cdk.Tokenization.stringify_number(port)


def deploy_environment() -> Optional[cdk.Environment]:
    """Target account/region as resolved by the CDK CLI.

    Returns None when neither is set so stacks stay environment-agnostic.
    """
    account = os.getenv("CDK_DEFAULT_ACCOUNT")
    region = os.getenv("CDK_DEFAULT_REGION")
    if account is None and region is None:
        logger.warning("CDK_DEFAULT_ACCOUNT/CDK_DEFAULT_REGION not set, synthesizing environment-agnostic stacks")
        return None

    logger.info("Deploying to account=%s region=%s", account, region)
    return cdk.Environment(account=account, region=region)


def log_level(name: Optional[str]) -> int:
    """Numeric level for a LOG_LEVEL name, INFO when unset or unknown."""
    level = logging.getLevelName((name or "INFO").upper())
    if not isinstance(level, int):
        logger.warning("Unknown LOG_LEVEL %r, using INFO", name)
        return logging.INFO
    return level
