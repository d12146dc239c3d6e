"""
Stack management contract.

Coordinators only ever see these protocols. The boto3 implementation lives in
``cloudformation.py``; tests drive coordinators with scripted mocks.
"""

from dataclasses import dataclass, field
from importlib.resources import files
from typing import Protocol


# ─────────────────────────────────────────────────────────────────────────────
# STACK STATUS
# ─────────────────────────────────────────────────────────────────────────────

CREATE_COMPLETE = "CREATE_COMPLETE"
UPDATE_COMPLETE = "UPDATE_COMPLETE"
DELETE_COMPLETE = "DELETE_COMPLETE"
DELETE_FAILED = "DELETE_FAILED"
ROLLBACK_COMPLETE = "ROLLBACK_COMPLETE"

UPSERT_SUCCESS_STATUSES = frozenset({CREATE_COMPLETE, UPDATE_COMPLETE})
DELETE_SUCCESS_STATUSES = frozenset({DELETE_COMPLETE})


def is_in_progress(status: str) -> bool:
    return status.endswith("_IN_PROGRESS")


@dataclass
class StackResult:
    """Snapshot of a stack once it stopped moving."""
    stack_name: str
    status: str
    outputs: dict[str, str] = field(default_factory=dict)


# ─────────────────────────────────────────────────────────────────────────────
# COLLABORATORS
# ─────────────────────────────────────────────────────────────────────────────

class StackDeployer(Protocol):
    def upsert_stack(self, stack_name: str, template_body: str,
                     parameters: dict[str, str], tags: dict[str, str]) -> None: ...

    def delete_stack(self, stack_name: str) -> None: ...

    def await_final_status(self, stack_name: str) -> StackResult: ...


class StackReader(Protocol):
    def get_stack(self, stack_name: str) -> StackResult | None: ...


class ImageCatalog(Protocol):
    def find_latest_image_id(self, pattern: str) -> str: ...


class StackManager(StackDeployer, StackReader, ImageCatalog, Protocol):
    """Everything the CLI wires into a workflow context."""


# ─────────────────────────────────────────────────────────────────────────────
# NAMING & TEMPLATES
# ─────────────────────────────────────────────────────────────────────────────

STACK_PREFIX = "mu"


def vpc_stack_name(environment_name: str) -> str:
    return f"{STACK_PREFIX}-vpc-{environment_name}"


def cluster_stack_name(environment_name: str) -> str:
    return f"{STACK_PREFIX}-cluster-{environment_name}"


def stack_tags(stack_type: str, environment_name: str) -> dict[str, str]:
    return {'type': stack_type, 'environment': environment_name}


def load_template(name: str) -> str:
    """Read a bundled CloudFormation template, e.g. ``vpc.yml``."""
    return files("mu_workflows").joinpath("templates").joinpath(name).read_text()
