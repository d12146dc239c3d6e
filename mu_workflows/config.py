"""
Environment configuration.

Environments are declared in a YAML file (``mu.yml`` by default):

    environments:
      - name: dev
        vpcTarget:
          vpcId: vpc-123
          publicSubnetIds:
            - subnet-1
            - subnet-2

An environment with a ``vpcTarget`` runs in an externally managed network;
one without gets its own VPC stack.
"""

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .errors import ConfigError


# ─────────────────────────────────────────────────────────────────────────────
# CONSTANTS
# ─────────────────────────────────────────────────────────────────────────────

DEFAULT_CONFIG_FILE = "mu.yml"
DEFAULT_TIMEOUT = 3600.0
DEFAULT_POLL_INTERVAL = 5.0
DEFAULT_MAX_POLL_INTERVAL = 30.0


# ─────────────────────────────────────────────────────────────────────────────
# MODEL
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class VpcTarget:
    """Externally managed network. Subnet order maps to AZ slots 1..3."""
    vpc_id: str
    public_subnet_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class Environment:
    name: str
    vpc_target: VpcTarget | None = None

    @property
    def is_network_managed(self) -> bool:
        return self.vpc_target is None


@dataclass
class Config:
    environments: list[Environment] = field(default_factory=list)


@dataclass
class Settings:
    """Runtime knobs for talking to CloudFormation."""
    timeout: float = DEFAULT_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    max_poll_interval: float = DEFAULT_MAX_POLL_INTERVAL
    config_path: Path = Path(DEFAULT_CONFIG_FILE)


# ─────────────────────────────────────────────────────────────────────────────
# LOADING
# ─────────────────────────────────────────────────────────────────────────────

def _parse_vpc_target(raw: dict, env_name: str) -> VpcTarget:
    if not isinstance(raw, dict) or not raw.get('vpcId'):
        raise ConfigError(f"Environment '{env_name}': vpcTarget requires a vpcId")

    subnets = raw.get('publicSubnetIds') or []
    if not isinstance(subnets, list):
        raise ConfigError(f"Environment '{env_name}': publicSubnetIds must be a list")
    if not subnets:
        raise ConfigError(f"Environment '{env_name}': vpcTarget requires at least one public subnet")

    return VpcTarget(
        vpc_id=str(raw['vpcId']),
        public_subnet_ids=tuple(str(s) for s in subnets),
    )


def parse_config(data: dict) -> Config:
    """Build a Config from already-parsed YAML data."""
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a mapping")
    if 'environments' not in data:
        raise ConfigError("Configuration has no 'environments' section")

    raw_envs = data['environments'] or []
    if not isinstance(raw_envs, list):
        raise ConfigError("'environments' must be a list")

    environments = []
    for idx, raw in enumerate(raw_envs):
        if not isinstance(raw, dict) or not raw.get('name'):
            raise ConfigError(f"Environment #{idx + 1} is missing a name")

        name = str(raw['name'])
        vpc_target = None
        if raw.get('vpcTarget') is not None:
            vpc_target = _parse_vpc_target(raw['vpcTarget'], name)

        environments.append(Environment(name=name, vpc_target=vpc_target))

    return Config(environments=environments)


def loads_config(text: str) -> Config:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML: {e}") from e
    return parse_config(data)


def load_config(path: Path) -> Config:
    """Load configuration from a YAML file."""
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")
    return loads_config(path.read_text())
