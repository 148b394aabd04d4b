# Copyright 2026 Canonical, Ltd.
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as
# published by the Free Software Foundation, either version 3 of the
# License, or (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <http://www.gnu.org/licenses/>.

"""Walk a Plan one step at a time, asking the operator before each one.

The executor only ever stops because the operator said so. A command
that fails is reported but otherwise ignored: the operator has seen its
output and can refuse the next step.
"""

from abc import ABC, abstractmethod
import enum
import logging
import re

from provisionercore.context import Context, LogReporter, Status
from provisionercore.utils import run_interactive

log = logging.getLogger("provisioner.executor")

PROMPT = "Run command: `{}` ? [Y/N] "

_CONFIRMATION = re.compile(r"(yes|y)", re.IGNORECASE)


def is_confirmation(answer):
    return _CONFIRMATION.fullmatch(answer) is not None


class ExecutionState(enum.Enum):
    RUNNING = enum.auto()
    HALTED = enum.auto()


class Environment(ABC):
    """Where confirmed operations get run."""

    @abstractmethod
    def dispatch(self, operation) -> int:
        """Run operation to completion and return its exit status."""


class ShellEnvironment(Environment):

    def dispatch(self, operation):
        return run_interactive(operation).returncode


class DryRunEnvironment(Environment):

    def __init__(self, console):
        self.console = console

    def dispatch(self, operation):
        log.info("dry-run, not running: %s", operation)
        self.console.show("(dry-run) {}".format(operation))
        return 0


class Executor:

    def __init__(self, environment, console, context=None):
        self.environment = environment
        self.console = console
        if context is None:
            context = Context.new(LogReporter(log), "provisioner")
        self.context = context
        self.state = ExecutionState.RUNNING
        self.dispatched = []

    def _halt(self, step):
        log.info("operator refused step %d, halting", step.position)
        self.state = ExecutionState.HALTED
        self.console.show(
            "Halted before step {}: {}".format(
                step.position, step.description))

    def run(self, plan):
        if self.state is ExecutionState.HALTED:
            log.debug("run called after halt, ignoring")
            return self.state
        total = len(plan)
        for step in plan:
            self.console.show(
                "[{}/{}] {}".format(step.position, total, step.description))
            answer = self.console.ask(PROMPT.format(step.operation))
            if not is_confirmation(answer):
                self._halt(step)
                return self.state
            self._dispatch(step)
        log.info("all %d steps dispatched", total)
        return self.state

    def _dispatch(self, step):
        name = "step-{}".format(step.position)
        with self.context.child(name, step.description) as context:
            self.dispatched.append(step)
            rc = self.environment.dispatch(step.operation)
            if rc != 0:
                context.description = "{} exited with status {}".format(
                    step.operation, rc)
                context.result = Status.WARN
                self.console.show(
                    "Command exited with status {}".format(rc))
