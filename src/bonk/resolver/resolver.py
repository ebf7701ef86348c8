"""Map partial names typed by the user to a concrete project and task.

Matching rules, for projects and tasks alike:

1. An exact name wins outright.
2. Otherwise every name containing the input is a candidate. No candidate
   is an error, one is used directly, several go to the Disambiguator.

Inside a project directory the first positional token is a task name, not
a project name ("argument shift")::

    ~/work/api $ bonk run dev --port 3000    # project work/api, task dev

With two or more tokens the first one is tried as a project first and only
falls back to the shift when it matches no project at all. When it does
fall back, the second token is forwarded to the task as its first argument.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from bonk.core.exceptions import ResolutionError
from bonk.core.types import Project, Task
from bonk.discovery.scanner import ScanResult
from bonk.resolver.disambiguator import Disambiguator, default_disambiguator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resolution:
    """A resolved (project, task) pair plus arguments for the task."""

    project: Project
    task: Task
    extra_args: list[str] = field(default_factory=list)
    used_current_project: bool = False


class Resolver:
    """Resolves user input against a ScanResult.

    Attributes:
        scan: Projects known for this invocation.
        disambiguator: Used when several candidates match.

    """

    def __init__(self, scan: ScanResult, disambiguator: Disambiguator | None = None) -> None:
        self.scan = scan
        self.disambiguator = disambiguator if disambiguator is not None else default_disambiguator()

    @property
    def current_project(self) -> Project | None:
        if self.scan.project_in_cwd is None:
            return None
        return self.scan.projects.get(self.scan.project_in_cwd)

    def project_candidates(self, token: str) -> list[str]:
        return sorted(pid for pid in self.scan.projects if token in pid)

    def resolve_project(self, token: str) -> Project:
        """Resolve a (partial) project id.

        Args:
            token: Exact project id or a substring of one.

        Returns:
            The matching project.

        Raises:
            ResolutionError: If nothing matches or the choice is aborted.

        """
        if not token:
            raise ResolutionError("No project specified")

        if token in self.scan.projects:
            return self.scan.projects[token]

        candidates = self.project_candidates(token)
        if not candidates:
            raise ResolutionError(f"No project found matching: {token}")
        if len(candidates) == 1:
            return self.scan.projects[candidates[0]]

        choice = self.disambiguator.choose(
            f"Multiple projects matching {token} found. Please select one:",
            candidates,
        )
        return self._project_by_choice(choice)

    def _project_by_choice(self, choice: str) -> Project:
        project = self.scan.projects.get(choice)
        if project is None:
            raise ResolutionError(f"No project found matching: {choice}")
        return project

    def resolve_project_or_current(self, token: str | None) -> Project:
        """Resolve a project token, defaulting to the current-directory project.

        Raises:
            ResolutionError: If no token is given outside a project, or the
                token does not resolve.

        """
        if not token:
            current = self.current_project
            if current is None:
                raise ResolutionError("No project specified")
            return current
        return self.resolve_project(token)

    def resolve_task(self, project: Project, token: str | None) -> Task:
        """Resolve a (partial) task name within a project.

        Without a token the user is asked to pick from all tasks.

        Raises:
            ResolutionError: If the project has no tasks, nothing matches or
                the choice is aborted.

        """
        if not project.tasks:
            raise ResolutionError(f"No tasks found in project {project.id}")

        if not token:
            choice = self.disambiguator.choose("Please select a task:", sorted(project.tasks))
            return self._task_by_choice(project, choice)

        if token in project.tasks:
            return project.tasks[token]

        candidates = sorted(name for name in project.tasks if token in name)
        if not candidates:
            raise ResolutionError(f"No task found matching: {token}")
        if len(candidates) == 1:
            return project.tasks[candidates[0]]

        choice = self.disambiguator.choose(
            f"Multiple tasks matching {token} found. Please select one:",
            candidates,
        )
        return self._task_by_choice(project, choice)

    @staticmethod
    def _task_by_choice(project: Project, choice: str) -> Task:
        task = project.tasks.get(choice)
        if task is None:
            raise ResolutionError(f"No task found matching: {choice}")
        return task

    def resolve(self, tokens: Sequence[str]) -> Resolution:
        """Resolve positional ``[project] [task] [...args]`` tokens.

        Args:
            tokens: Positional arguments as typed by the user.

        Returns:
            Resolution with the project, task and forwarded arguments.

        Raises:
            ResolutionError: If the project or task cannot be resolved.

        """
        project_token = tokens[0] if len(tokens) > 0 else None
        task_token = tokens[1] if len(tokens) > 1 else None
        rest = list(tokens[2:])

        current = self.current_project
        shifted = False

        if current is None:
            if not project_token:
                raise ResolutionError("No project specified")
            project = self.resolve_project(project_token)
            task_name = task_token
        elif project_token and task_token and (
            project_token in self.scan.projects or self.project_candidates(project_token)
        ):
            project = self.resolve_project(project_token)
            task_name = task_token
        else:
            project = current
            task_name = project_token
            shifted = True

        task = self.resolve_task(project, task_name)

        if shifted and task_token is not None:
            rest.insert(0, task_token)

        logger.debug(
            "Resolved %r to %s/%s, args %r (current project: %s)",
            list(tokens),
            project.id,
            task.name,
            rest,
            shifted,
        )
        return Resolution(project=project, task=task, extra_args=rest, used_current_project=shifted)


__all__ = ["Resolution", "Resolver"]
