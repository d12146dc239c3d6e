import io
from unittest.mock import Mock

import pytest
from rich.console import Console

from mu_workflows.stack import StackResult


def vpc_outputs(stack_name: str) -> dict[str, str]:
    keys = ("VpcId", "PublicSubnetAZ1Id", "PublicSubnetAZ2Id", "PublicSubnetAZ3Id")
    return {k: f"{stack_name}-{k}" for k in keys}


@pytest.fixture
def quiet_console():
    """Console that writes into a buffer; read it back with ``.file.getvalue()``."""
    return Console(file=io.StringIO(), width=120)


@pytest.fixture
def stack_manager():
    """Scripted stack manager: every stack succeeds, the VPC publishes its outputs."""
    manager = Mock()

    def await_final_status(stack_name):
        if stack_name.startswith("mu-vpc-"):
            return StackResult(stack_name, "CREATE_COMPLETE", vpc_outputs(stack_name))
        return StackResult(stack_name, "CREATE_COMPLETE")

    manager.await_final_status.side_effect = await_final_status
    manager.find_latest_image_id.return_value = "ami-00000"
    manager.upsert_stack.return_value = None
    manager.delete_stack.return_value = None
    return manager
