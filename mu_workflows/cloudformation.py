"""
CloudFormation and EC2 backed stack manager.

Implements the stack contract on boto3 clients. Waiting is a cooperative poll
of ``describe_stacks`` with exponential backoff, bounded by
``Settings.timeout`` and an optional ``threading.Event`` for cancellation.
"""

import threading
import time

import boto3
from botocore.exceptions import ClientError, ProfileNotFound
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from .config import Settings
from .console import console as default_console
from .errors import (
    ConfigError,
    DeploymentFailed,
    ImageDiscoveryFailed,
    RequestRejected,
    StackWaitTimeout,
    WorkflowCancelled,
)
from .stack import DELETE_COMPLETE, ROLLBACK_COMPLETE, StackResult, is_in_progress

NO_UPDATES_MESSAGE = "No updates are to be performed"
IMAGE_OWNER = "amazon"


# ─────────────────────────────────────────────────────────────────────────────
# AWS HELPERS
# ─────────────────────────────────────────────────────────────────────────────

def get_aws_session(profile: str | None = None, region: str | None = None) -> boto3.Session:
    try:
        return boto3.Session(profile_name=profile, region_name=region)
    except ProfileNotFound as e:
        raise ConfigError(f"AWS profile '{profile}' not found") from e


def _error_message(error: ClientError) -> str:
    return error.response.get('Error', {}).get('Message', str(error))


def _is_missing_stack(error: ClientError) -> bool:
    return (error.response.get('Error', {}).get('Code') == 'ValidationError'
            and 'does not exist' in _error_message(error))


def _to_result(stack: dict) -> StackResult:
    return StackResult(
        stack_name=stack['StackName'],
        status=stack['StackStatus'],
        outputs={o['OutputKey']: o['OutputValue'] for o in stack.get('Outputs', [])},
    )


# ─────────────────────────────────────────────────────────────────────────────
# STACK MANAGER
# ─────────────────────────────────────────────────────────────────────────────

class CloudFormationStackManager:
    """Stack deployer, stack reader and image catalog in one."""

    def __init__(self, session: boto3.Session, settings: Settings | None = None,
                 cancel_event: threading.Event | None = None,
                 console: Console = default_console):
        self.settings = settings or Settings()
        self.cancel_event = cancel_event
        self.console = console
        self.cfn = session.client('cloudformation')
        self.ec2 = session.client('ec2')

    def _describe(self, stack_name: str) -> dict | None:
        try:
            response = self.cfn.describe_stacks(StackName=stack_name)
        except ClientError as e:
            if _is_missing_stack(e):
                return None
            raise RequestRejected(stack_name, _error_message(e)) from e

        stacks = response.get('Stacks', [])
        return stacks[0] if stacks else None

    def get_stack(self, stack_name: str) -> StackResult | None:
        stack = self._describe(stack_name)
        if stack is None or stack['StackStatus'] == DELETE_COMPLETE:
            return None
        return _to_result(stack)

    def upsert_stack(self, stack_name: str, template_body: str,
                     parameters: dict[str, str], tags: dict[str, str]) -> None:
        existing = self._describe(stack_name)
        if existing is not None and is_in_progress(existing['StackStatus']):
            self.console.print(f"[yellow]{stack_name} is {existing['StackStatus']}, waiting...[/yellow]")
            self.await_final_status(stack_name)
            existing = self._describe(stack_name)

        # a stack whose first create rolled back can only be deleted
        if existing is not None and existing['StackStatus'] == ROLLBACK_COMPLETE:
            self.console.print(f"[yellow]{stack_name} is {ROLLBACK_COMPLETE}, deleting before create[/yellow]")
            self.delete_stack(stack_name)
            result = self.await_final_status(stack_name)
            if result.status != DELETE_COMPLETE:
                raise DeploymentFailed(stack_name, result.status, "could not remove rolled back stack")
            existing = None

        request = {
            'StackName': stack_name,
            'TemplateBody': template_body,
            'Parameters': [{'ParameterKey': k, 'ParameterValue': v} for k, v in parameters.items()],
            'Tags': [{'Key': k, 'Value': v} for k, v in tags.items()],
            'Capabilities': ['CAPABILITY_IAM'],
        }

        try:
            if existing is None:
                self.console.print(f"[cyan]→ cloudformation create-stack --stack-name {stack_name}[/cyan]")
                self.cfn.create_stack(**request)
            else:
                self.console.print(f"[cyan]→ cloudformation update-stack --stack-name {stack_name}[/cyan]")
                self.cfn.update_stack(**request)
        except ClientError as e:
            if NO_UPDATES_MESSAGE in _error_message(e):
                self.console.print(f"[dim]{stack_name} is already up to date[/dim]")
                return
            raise RequestRejected(stack_name, _error_message(e)) from e

    def delete_stack(self, stack_name: str) -> None:
        self.console.print(f"[cyan]→ cloudformation delete-stack --stack-name {stack_name}[/cyan]")
        try:
            self.cfn.delete_stack(StackName=stack_name)
        except ClientError as e:
            raise RequestRejected(stack_name, _error_message(e)) from e

    def await_final_status(self, stack_name: str) -> StackResult:
        """Block until the stack leaves every *_IN_PROGRESS state.

        A stack that no longer exists is reported as DELETE_COMPLETE.
        """
        deadline = time.monotonic() + self.settings.timeout
        delay = self.settings.poll_interval
        status = None

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            TimeElapsedColumn(),
            console=self.console,
            transient=True,
        ) as progress:
            task = progress.add_task(f"Waiting on {stack_name}...", total=None)

            while True:
                stack = self._describe(stack_name)
                if stack is None:
                    return StackResult(stack_name, DELETE_COMPLETE)

                status = stack['StackStatus']
                progress.update(task, description=f"{stack_name}: {status}")
                if not is_in_progress(status):
                    return _to_result(stack)

                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise StackWaitTimeout(stack_name, status, self.settings.timeout)

                self._sleep(stack_name, min(delay, remaining))
                delay = min(delay * 2, self.settings.max_poll_interval)

    def _sleep(self, stack_name: str, seconds: float):
        if self.cancel_event is None:
            time.sleep(seconds)
        elif self.cancel_event.wait(seconds):
            raise WorkflowCancelled(stack_name)

    def find_latest_image_id(self, pattern: str) -> str:
        try:
            response = self.ec2.describe_images(
                Owners=[IMAGE_OWNER],
                Filters=[
                    {'Name': 'name', 'Values': [pattern]},
                    {'Name': 'state', 'Values': ['available']},
                ],
            )
        except ClientError as e:
            raise ImageDiscoveryFailed(pattern, _error_message(e)) from e

        images = sorted(response.get('Images', []), key=lambda i: i.get('CreationDate', ''), reverse=True)
        if not images:
            raise ImageDiscoveryFailed(pattern)
        return images[0]['ImageId']
