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

import enum
import logging

log = logging.getLogger("provisionercore.context")


class Status(enum.Enum):
    SUCCESS = enum.auto()
    FAIL = enum.auto()
    WARN = enum.auto()


class LogReporter:
    """Send start and finish events to the log."""

    def __init__(self, logger=None):
        if logger is None:
            logger = log
        self.logger = logger

    def report_start_event(self, name, description, level):
        self.logger.log(
            getattr(logging, level), "start: %s: %s", name, description)

    def report_finish_event(self, name, description, status, level):
        self.logger.log(
            getattr(logging, level), "finish: %s: %s: %s",
            name, status.name, description)


class Context:
    """Class to report when things start and finish.

    The expected way to use this is something like:

    with somecontext.child("operation"):
        long_running_operation()

    but you can also call .enter() and .exit() if use as a context
    manager isn't possible.

    start and finish events are reported via the report_start_event and
    report_finish_event methods on the reporter.

    You can override the message and status shown on exit by assigning
    to description and result:

    with somecontext.child("operation") as context:
        rc = long_running_operation()
        if rc != 0:
            context.description = "exited with {}".format(rc)
            context.result = Status.WARN
    """

    def __init__(self, reporter, name, description, parent, level,
                 childlevel=None):
        self.reporter = reporter
        self.name = name
        self.description = description
        self.parent = parent
        self.level = level
        if childlevel is None:
            childlevel = level
        self.childlevel = childlevel
        self.result = Status.SUCCESS

    @classmethod
    def new(cls, reporter, name):
        return Context(reporter, name, "", None, "INFO")

    def child(self, name, description="", level=None, childlevel=None):
        if level is None:
            level = self.childlevel
        return Context(
            self.reporter, name, description, self, level, childlevel)

    def _name(self):
        c = self
        names = []
        while c is not None:
            names.append(c.name)
            c = c.parent
        return '/'.join(reversed(names))

    def enter(self, description=None):
        if description is None:
            description = self.description
        self.reporter.report_start_event(self._name(), description, self.level)

    def exit(self, description=None, result=None):
        if description is None:
            description = self.description
        if result is None:
            result = self.result
        self.reporter.report_finish_event(
            self._name(), description, result, self.level)

    def __enter__(self):
        self.enter()
        return self

    def __exit__(self, exc, value, tb):
        if exc is not None:
            result = Status.FAIL
            description = str(value)
        else:
            result = None
            description = None
        self.exit(description, result)
