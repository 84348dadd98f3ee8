"""Shell command abstractions for the external tools used during a release.

- helm: chart dependency vendoring, packaging and repository indexes
- helm-docs: chart README generation

Usage:
    from src.infra.shell import ShellCommands

    commands = ShellCommands(project_root=Path("."))
    commands.helm.package(chart_dir, Path("/tmp/charts"))
"""

from pathlib import Path

from .helm import HelmCommands, HelmDocsCommands
from .runner import CommandRunner
from .types import CommandResult


class ShellCommands:
    """Unified interface for all shell command operations.

    Attributes:
        runner: The underlying command runner
        helm: Helm-related commands
        helm_docs: helm-docs commands
    """

    def __init__(self, project_root: Path) -> None:
        """Initialize the shell commands executor.

        Args:
            project_root: Path to the project root directory.
                         Commands will be executed from this directory by default.
        """
        self._project_root = Path(project_root)
        self.runner = CommandRunner(self._project_root)

        self.helm = HelmCommands(self.runner)
        self.helm_docs = HelmDocsCommands(self.runner)

    @property
    def project_root(self) -> Path:
        """Get the project root path."""
        return self._project_root


__all__ = [
    "ShellCommands",
    "CommandResult",
    "CommandRunner",
    "HelmCommands",
    "HelmDocsCommands",
]
