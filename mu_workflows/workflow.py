"""Steps and the fail-fast chain that runs them."""

from typing import Any, Callable, Iterable

from .config import Config, Environment
from .errors import EnvironmentNotFound


class Step:
    """A nullary operation with its dependencies already bound."""

    def __init__(self, name: str, fn: Callable[[], Any]):
        self.name = name
        self._fn = fn

    def __call__(self) -> Any:
        return self._fn()

    def __repr__(self) -> str:
        return f"Step({self.name!r})"


class StepChain:
    """Runs steps in order and stops at the first one that raises."""

    def __init__(self, steps: Iterable[Step]):
        self.steps = list(steps)

    def run(self) -> list[Any]:
        results = []
        for step in self.steps:
            results.append(step())
        return results

    def __call__(self) -> list[Any]:
        return self.run()

    def __len__(self) -> int:
        return len(self.steps)


# ─────────────────────────────────────────────────────────────────────────────
# ENVIRONMENT LOOKUP
# ─────────────────────────────────────────────────────────────────────────────

def find_environment(config: Config, name: str) -> Environment:
    for environment in config.environments:
        if environment.name == name:
            return environment
    raise EnvironmentNotFound(name)


def environment_finder(config: Config, name: str) -> Step:
    """Deferred lookup; rescans the registry every time it is invoked."""
    return Step(f"find environment {name}", lambda: find_environment(config, name))
