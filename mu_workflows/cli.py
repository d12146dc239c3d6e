"""
mu environment commands

  mu env up NAME      create or update the VPC and cluster stacks
  mu env down NAME    delete the cluster stack, then the VPC stack it owns
  mu env show NAME    show stack status for one environment
  mu env list         show every configured environment
"""

import argparse
import sys
from pathlib import Path

import questionary
from botocore.exceptions import NoCredentialsError
from rich.panel import Panel

from .cloudformation import CloudFormationStackManager, get_aws_session
from .config import DEFAULT_CONFIG_FILE, DEFAULT_TIMEOUT, Settings, load_config
from .console import PROMPT_STYLE, console
from .environment import (
    Context,
    new_environment_lister,
    new_environment_terminator,
    new_environment_upserter,
    new_environment_viewer,
)
from .errors import ConfigError, MuError
from .stack import cluster_stack_name, vpc_stack_name
from .workflow import find_environment


# ─────────────────────────────────────────────────────────────────────────────
# SETUP
# ─────────────────────────────────────────────────────────────────────────────

def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="mu", description="Manage mu environments")
    parser.add_argument('--config', default=DEFAULT_CONFIG_FILE, help='Path to mu.yml')
    parser.add_argument('--profile', help='AWS profile to use')
    parser.add_argument('--region', help='AWS region')
    parser.add_argument('--timeout', type=float, default=DEFAULT_TIMEOUT,
                        help='Seconds to wait for each stack to settle')

    commands = parser.add_subparsers(dest='group', required=True)
    env = commands.add_parser('env', aliases=['environment'], help='Environment commands')
    env_commands = env.add_subparsers(dest='command', required=True)

    up = env_commands.add_parser('up', aliases=['upsert'], help='Create or update an environment')
    up.add_argument('name')

    down = env_commands.add_parser('down', aliases=['terminate'], help='Delete an environment')
    down.add_argument('name')
    down.add_argument('--force', action='store_true', help='Skip confirmation')

    show = env_commands.add_parser('show', help='Show one environment')
    show.add_argument('name')

    env_commands.add_parser('list', help='List environments')

    return parser.parse_args(argv)


def build_context(args: argparse.Namespace) -> Context:
    settings = Settings(timeout=args.timeout, config_path=Path(args.config))
    config = load_config(settings.config_path)

    session = get_aws_session(args.profile, args.region)
    if not session.region_name:
        raise ConfigError("No region specified. Use --region or a configured profile.")

    manager = CloudFormationStackManager(session, settings)
    return Context(config=config, stack_manager=manager)


def confirm_terminate(ctx: Context, name: str) -> bool:
    environment = find_environment(ctx.config, name)

    console.print("\n[bold red]WARNING: This will PERMANENTLY DELETE:[/bold red]")
    console.print(f"  1. Cluster stack '{cluster_stack_name(name)}'")
    if environment.is_network_managed:
        console.print(f"  2. VPC stack '{vpc_stack_name(name)}'")
    else:
        console.print(f"  [dim](Keeping unmanaged VPC {environment.vpc_target.vpc_id})[/dim]")
    console.print()

    return bool(questionary.confirm(
        f"Terminate environment '{name}'?", default=False, style=PROMPT_STYLE
    ).ask())


# ─────────────────────────────────────────────────────────────────────────────
# MAIN
# ─────────────────────────────────────────────────────────────────────────────

def main(argv: list[str] | None = None) -> int:
    args = parse_arguments(argv)

    try:
        ctx = build_context(args)

        if args.command in ('up', 'upsert'):
            console.print(Panel(f"[bold]Environment up: {args.name}[/bold]", border_style="blue"))
            new_environment_upserter(ctx, args.name)()
            console.print(Panel(f"[bold green]✅ Environment '{args.name}' is up[/bold green]",
                                border_style="green"))

        elif args.command in ('down', 'terminate'):
            if not args.force and not confirm_terminate(ctx, args.name):
                console.print("[yellow]Cancelled[/yellow]")
                return 0
            console.print(Panel(f"[bold]Environment down: {args.name}[/bold]", border_style="red"))
            new_environment_terminator(ctx, args.name)()
            console.print(f"\n[bold green]Environment '{args.name}' terminated[/bold green]")

        elif args.command == 'show':
            new_environment_viewer(ctx, args.name)()

        elif args.command == 'list':
            new_environment_lister(ctx)()

    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted. Run the command again to resume.[/yellow]")
        return 1
    except NoCredentialsError:
        console.print("[red]❌ No AWS credentials found[/red]")
        return 1
    except MuError as e:
        console.print(f"[red]❌ {e}[/red]")
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
