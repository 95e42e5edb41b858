"""Thin Azure CLI adapter used by the bootstrap services."""

import json
from typing import Any, Callable, List

from arobootstrap.errors import CommandError


class AzureCli:
    """Builds `az` invocations and decodes their output."""

    def __init__(self, run_cmd: Callable, executable: str = "az"):
        self.run_cmd = run_cmd
        self.executable = executable

    def command(self, *args: str) -> List[str]:
        return [self.executable, *args]

    def run(self, *args: str, **kwargs):
        return self.run_cmd(self.command(*args), **kwargs)

    def json(self, *args: str, **kwargs) -> Any:
        result = self.run(*args, "--output", "json", **kwargs)
        output = (result.stdout or "").strip()
        if not output:
            return None
        try:
            return json.loads(output)
        except json.JSONDecodeError as exc:
            raise CommandError(f"Unexpected output from az {args[0]}: {exc}") from exc

    def tsv(self, *args: str, **kwargs) -> str:
        result = self.run(*args, "--output", "tsv", **kwargs)
        return (result.stdout or "").strip()
