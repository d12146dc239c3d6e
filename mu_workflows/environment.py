"""
Environment workflows.

An environment is two stacks deployed in order:

  1. VPC stack      mu-vpc-{name}      (skipped when the environment names
                                         an existing VPC via vpcTarget)
  2. Cluster stack  mu-cluster-{name}  (ECS cluster in that VPC)

The VPC step writes the network ids into a parameter map that the cluster
step reads. Termination runs the same steps in reverse and never touches a
VPC it did not create.
"""

from dataclasses import dataclass, field

from rich.console import Console
from rich.table import Table

from .config import Config, Environment
from .console import console as default_console
from .errors import DeploymentFailed, ImageDiscoveryFailed
from .stack import (
    DELETE_SUCCESS_STATUSES,
    UPSERT_SUCCESS_STATUSES,
    ImageCatalog,
    StackDeployer,
    StackManager,
    StackReader,
    StackResult,
    cluster_stack_name,
    load_template,
    stack_tags,
    vpc_stack_name,
)
from .workflow import Step, StepChain, environment_finder


# ─────────────────────────────────────────────────────────────────────────────
# CONSTANTS
# ─────────────────────────────────────────────────────────────────────────────

VPC_TEMPLATE = "vpc.yml"
CLUSTER_TEMPLATE = "cluster.yml"

ECS_IMAGE_PATTERN = "amzn-ami-*-amazon-ecs-optimized"

VPC_ID_KEY = "VpcId"
SUBNET_KEYS = ("PublicSubnetAZ1Id", "PublicSubnetAZ2Id", "PublicSubnetAZ3Id")
VPC_OUTPUT_KEYS = (VPC_ID_KEY,) + SUBNET_KEYS
IMAGE_ID_KEY = "ImageId"


@dataclass
class Context:
    """What a workflow needs from the outside world."""
    config: Config
    stack_manager: StackManager
    console: Console = field(default_factory=lambda: default_console)


# ─────────────────────────────────────────────────────────────────────────────
# NETWORK STACK
# ─────────────────────────────────────────────────────────────────────────────

def network_upserter(params: dict[str, str], environment: Environment,
                     deployer: StackDeployer, console: Console = default_console) -> Step:
    """Upsert the VPC stack, or copy the unmanaged VPC ids, into ``params``."""

    def upsert():
        target = environment.vpc_target
        if target is not None:
            console.print(f"[dim]Using unmanaged VPC {target.vpc_id} for '{environment.name}'[/dim]")
            params[VPC_ID_KEY] = target.vpc_id
            for key, subnet_id in zip(SUBNET_KEYS, target.public_subnet_ids):
                params[key] = subnet_id
            return params

        stack_name = vpc_stack_name(environment.name)
        console.print(f"[cyan]→ Upserting VPC stack {stack_name}[/cyan]")
        deployer.upsert_stack(
            stack_name,
            load_template(VPC_TEMPLATE),
            dict(params),
            stack_tags('vpc', environment.name),
        )

        result = deployer.await_final_status(stack_name)
        if result.status not in UPSERT_SUCCESS_STATUSES:
            raise DeploymentFailed(stack_name, result.status)

        for key in VPC_OUTPUT_KEYS:
            if key not in result.outputs:
                raise DeploymentFailed(stack_name, result.status, f"missing output {key}")
            params[key] = result.outputs[key]

        console.print(f"[green]✓[/green] VPC stack [cyan]{stack_name}[/cyan]: {result.status}")
        return params

    return Step(f"upsert vpc {environment.name}", upsert)


def network_terminator(environment: Environment, deployer: StackDeployer,
                       console: Console = default_console) -> Step:
    def terminate():
        if not environment.is_network_managed:
            console.print(f"[dim]VPC for '{environment.name}' is unmanaged, leaving it in place[/dim]")
            return None

        stack_name = vpc_stack_name(environment.name)
        console.print(f"[cyan]→ Deleting VPC stack {stack_name}[/cyan]")
        deployer.delete_stack(stack_name)

        result = deployer.await_final_status(stack_name)
        if result.status not in DELETE_SUCCESS_STATUSES:
            raise DeploymentFailed(stack_name, result.status)

        console.print(f"[green]✓[/green] VPC stack [cyan]{stack_name}[/cyan] deleted")
        return result

    return Step(f"terminate vpc {environment.name}", terminate)


# ─────────────────────────────────────────────────────────────────────────────
# CLUSTER STACK
# ─────────────────────────────────────────────────────────────────────────────

def cluster_upserter(params: dict[str, str], environment: Environment,
                     deployer: StackDeployer, waiter: StackDeployer, images: ImageCatalog,
                     console: Console = default_console) -> Step:
    """Upsert the ECS cluster stack on top of the network ids in ``params``.

    The cluster is a leaf: ``params`` is read but not extended.
    """

    def upsert():
        image_id = images.find_latest_image_id(ECS_IMAGE_PATTERN)
        if not image_id:
            raise ImageDiscoveryFailed(ECS_IMAGE_PATTERN)
        console.print(f"[dim]Using ECS image {image_id}[/dim]")

        stack_params = dict(params)
        stack_params[IMAGE_ID_KEY] = image_id

        stack_name = cluster_stack_name(environment.name)
        console.print(f"[cyan]→ Upserting cluster stack {stack_name}[/cyan]")
        deployer.upsert_stack(
            stack_name,
            load_template(CLUSTER_TEMPLATE),
            stack_params,
            stack_tags('cluster', environment.name),
        )

        result = waiter.await_final_status(stack_name)
        if result.status not in UPSERT_SUCCESS_STATUSES:
            raise DeploymentFailed(stack_name, result.status)

        console.print(f"[green]✓[/green] Cluster stack [cyan]{stack_name}[/cyan]: {result.status}")
        return result

    return Step(f"upsert cluster {environment.name}", upsert)


def cluster_terminator(environment_name: str, deployer: StackDeployer, waiter: StackDeployer,
                       console: Console = default_console) -> Step:
    def terminate():
        stack_name = cluster_stack_name(environment_name)
        console.print(f"[cyan]→ Deleting cluster stack {stack_name}[/cyan]")
        deployer.delete_stack(stack_name)

        result = waiter.await_final_status(stack_name)
        if result.status not in DELETE_SUCCESS_STATUSES:
            raise DeploymentFailed(stack_name, result.status)

        console.print(f"[green]✓[/green] Cluster stack [cyan]{stack_name}[/cyan] deleted")
        return result

    return Step(f"terminate cluster {environment_name}", terminate)


# ─────────────────────────────────────────────────────────────────────────────
# WORKFLOWS
# ─────────────────────────────────────────────────────────────────────────────

def new_environment_upserter(ctx: Context, environment_name: str) -> Step:
    """Bring an environment up. The step returns the parameter map it built."""

    def run():
        environment = environment_finder(ctx.config, environment_name)()
        manager = ctx.stack_manager

        params: dict[str, str] = {}
        StepChain([
            network_upserter(params, environment, manager, ctx.console),
            cluster_upserter(params, environment, manager, manager, manager, ctx.console),
        ]).run()
        return params

    return Step(f"environment up {environment_name}", run)


def new_environment_terminator(ctx: Context, environment_name: str) -> Step:
    """Tear an environment down, cluster first."""

    def run():
        environment = environment_finder(ctx.config, environment_name)()
        manager = ctx.stack_manager

        steps = [cluster_terminator(environment.name, manager, manager, ctx.console)]
        if environment.is_network_managed:
            steps.append(network_terminator(environment, manager, ctx.console))
        return StepChain(steps).run()

    return Step(f"environment down {environment_name}", run)


# ─────────────────────────────────────────────────────────────────────────────
# REPORTING
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class EnvironmentView:
    environment: Environment
    vpc_stack: StackResult | None = None
    cluster_stack: StackResult | None = None

    @property
    def vpc_id(self) -> str | None:
        if self.environment.vpc_target is not None:
            return self.environment.vpc_target.vpc_id
        if self.vpc_stack is not None:
            return self.vpc_stack.outputs.get(VPC_ID_KEY)
        return None


def describe_environment(environment: Environment, reader: StackReader) -> EnvironmentView:
    vpc_stack = None
    if environment.is_network_managed:
        vpc_stack = reader.get_stack(vpc_stack_name(environment.name))
    cluster_stack = reader.get_stack(cluster_stack_name(environment.name))
    return EnvironmentView(environment, vpc_stack, cluster_stack)


def _status_cell(stack: StackResult | None) -> str:
    if stack is None:
        return "[dim]not deployed[/dim]"
    style = "green" if stack.status in UPSERT_SUCCESS_STATUSES else "yellow"
    return f"[{style}]{stack.status}[/{style}]"


def render_environment(view: EnvironmentView, console: Console):
    env = view.environment
    table = Table(title=f"Environment: {env.name}", show_header=False, border_style="cyan")
    table.add_column("Field", style="dim")
    table.add_column("Value")

    table.add_row("Network", "managed" if env.is_network_managed else "unmanaged")
    if env.is_network_managed:
        table.add_row("VPC Stack", vpc_stack_name(env.name))
        table.add_row("VPC Status", _status_cell(view.vpc_stack))
    table.add_row("VPC", view.vpc_id or "-")

    if env.vpc_target is not None:
        subnets = env.vpc_target.public_subnet_ids[:len(SUBNET_KEYS)]
        table.add_row("Subnets", ", ".join(subnets) or "-")
    elif view.vpc_stack is not None:
        subnets = [view.vpc_stack.outputs[k] for k in SUBNET_KEYS if k in view.vpc_stack.outputs]
        table.add_row("Subnets", ", ".join(subnets) or "-")

    table.add_row("Cluster Stack", cluster_stack_name(env.name))
    table.add_row("Cluster Status", _status_cell(view.cluster_stack))

    console.print(table)


def new_environment_viewer(ctx: Context, environment_name: str) -> Step:
    def run():
        environment = environment_finder(ctx.config, environment_name)()
        view = describe_environment(environment, ctx.stack_manager)
        render_environment(view, ctx.console)
        return view

    return Step(f"environment show {environment_name}", run)


def new_environment_lister(ctx: Context) -> Step:
    def run():
        table = Table(title="Environments", border_style="cyan")
        table.add_column("Name", style="cyan")
        table.add_column("Network")
        table.add_column("VPC Status")
        table.add_column("Cluster Status")

        views = []
        for environment in ctx.config.environments:
            view = describe_environment(environment, ctx.stack_manager)
            views.append(view)
            table.add_row(
                environment.name,
                "managed" if environment.is_network_managed else "unmanaged",
                _status_cell(view.vpc_stack) if environment.is_network_managed else "[dim]-[/dim]",
                _status_cell(view.cluster_stack),
            )

        ctx.console.print(table)
        return views

    return Step("environment list", run)
