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

import io
import unittest
from unittest import mock

from parameterized import parameterized

from provisionercore.context import Context, Status

from provisioner.console import TerminalConsole
from provisioner.executor import (
    PROMPT,
    DryRunEnvironment,
    Environment,
    ExecutionState,
    Executor,
    ShellEnvironment,
    is_confirmation,
    )
from provisioner.plan import Plan, Step


class FakeEnvironment(Environment):
    def __init__(self, returncodes=None):
        self.operations = []
        self.returncodes = returncodes or {}

    def dispatch(self, operation):
        self.operations.append(operation)
        return self.returncodes.get(operation, 0)


class FakeConsole:
    def __init__(self, answers):
        self.answers = list(answers)
        self.prompts = []
        self.shown = []

    def show(self, text):
        self.shown.append(text)

    def ask(self, prompt):
        self.prompts.append(prompt)
        return self.answers.pop(0)


def make_plan(n=5):
    return Plan([
        Step("step {}".format(i), "cmd{}".format(i), i)
        for i in range(1, n + 1)
        ])


class TestIsConfirmation(unittest.TestCase):
    @parameterized.expand([
        ("y",), ("Y",), ("yes",), ("YES",), ("Yes",), ("yEs",),
    ])
    def test_accepted(self, answer):
        self.assertTrue(is_confirmation(answer))

    @parameterized.expand([
        ("",), ("n",), ("N",), ("no",), ("yess",), ("ye",), (" y",),
        ("y ",), ("yes please",), ("true",), ("1",),
    ])
    def test_refused(self, answer):
        self.assertFalse(is_confirmation(answer))


class TestExecutor(unittest.TestCase):
    def test_all_confirmed(self):
        env = FakeEnvironment()
        executor = Executor(env, FakeConsole(["y"] * 5))
        self.assertEqual(ExecutionState.RUNNING, executor.state)
        state = executor.run(make_plan())
        self.assertEqual(ExecutionState.RUNNING, state)
        self.assertEqual(["cmd1", "cmd2", "cmd3", "cmd4", "cmd5"],
                         env.operations)
        self.assertEqual(list(make_plan()), executor.dispatched)

    def test_refuse_third(self):
        env = FakeEnvironment()
        console = FakeConsole(["yes", "Y", "n", "y", "y"])
        executor = Executor(env, console)
        state = executor.run(make_plan())
        self.assertEqual(ExecutionState.HALTED, state)
        self.assertEqual(ExecutionState.HALTED, executor.state)
        self.assertEqual(["cmd1", "cmd2"], env.operations)
        # Nothing was asked after the refusal.
        self.assertEqual(3, len(console.prompts))
        self.assertEqual(["y", "y"], console.answers)
        self.assertIn("Halted before step 3: step 3", console.shown)

    def test_empty_answer_halts(self):
        env = FakeEnvironment()
        executor = Executor(env, FakeConsole([""]))
        self.assertEqual(ExecutionState.HALTED, executor.run(make_plan()))
        self.assertEqual([], env.operations)

    def test_halted_stays_halted(self):
        env = FakeEnvironment()
        console = FakeConsole(["n", "y", "y", "y", "y", "y"])
        executor = Executor(env, console)
        executor.run(make_plan())
        self.assertEqual(ExecutionState.HALTED, executor.run(make_plan()))
        self.assertEqual([], env.operations)
        self.assertEqual(1, len(console.prompts))

    def test_failed_operation_does_not_halt(self):
        env = FakeEnvironment({"cmd2": 1})
        console = FakeConsole(["y"] * 5)
        executor = Executor(env, console)
        self.assertEqual(ExecutionState.RUNNING, executor.run(make_plan()))
        self.assertEqual(5, len(env.operations))
        self.assertIn("Command exited with status 1", console.shown)

    def test_prompt_and_display(self):
        console = FakeConsole(["y"])
        plan = Plan([Step("Format the disk", "mkfs.btrfs -f /dev/vda2", 1)])
        Executor(FakeEnvironment(), console).run(plan)
        self.assertEqual(
            ["Run command: `mkfs.btrfs -f /dev/vda2` ? [Y/N] "],
            console.prompts)
        self.assertEqual(PROMPT.format("x"), "Run command: `x` ? [Y/N] ")
        self.assertEqual(["[1/1] Format the disk"], console.shown)

    def test_empty_plan(self):
        executor = Executor(FakeEnvironment(), FakeConsole([]))
        self.assertEqual(ExecutionState.RUNNING, executor.run(Plan()))

    def test_reports_events(self):
        reporter = mock.Mock()
        context = Context.new(reporter, "test")
        env = FakeEnvironment({"cmd2": 3})
        executor = Executor(env, FakeConsole(["y", "y", "n"]), context)
        executor.run(make_plan())
        reporter.report_start_event.assert_has_calls([
            mock.call("test/step-1", "step 1", "INFO"),
            mock.call("test/step-2", "step 2", "INFO"),
            ])
        reporter.report_finish_event.assert_has_calls([
            mock.call("test/step-1", "step 1", Status.SUCCESS, "INFO"),
            mock.call("test/step-2", "cmd2 exited with status 3",
                      Status.WARN, "INFO"),
            ])
        self.assertEqual(2, reporter.report_finish_event.call_count)

    def test_dispatch_error_propagates(self):
        env = mock.Mock(spec=Environment)
        env.dispatch.side_effect = OSError("no shell")
        executor = Executor(env, FakeConsole(["y"] * 5))
        with self.assertRaises(OSError):
            executor.run(make_plan())
        self.assertEqual(ExecutionState.RUNNING, executor.state)


class TestEnvironments(unittest.TestCase):
    @mock.patch("provisioner.executor.run_interactive")
    def test_shell(self, run_interactive):
        run_interactive.return_value.returncode = 4
        self.assertEqual(4, ShellEnvironment().dispatch("sgdisk -p /dev/vda"))
        run_interactive.assert_called_once_with("sgdisk -p /dev/vda")

    @mock.patch("provisioner.executor.run_interactive")
    def test_dry_run(self, run_interactive):
        console = FakeConsole([])
        env = DryRunEnvironment(console)
        self.assertEqual(0, env.dispatch("mkfs.btrfs -f /dev/vda2"))
        self.assertEqual(["(dry-run) mkfs.btrfs -f /dev/vda2"], console.shown)
        run_interactive.assert_not_called()

    def test_terminal_round_trip(self):
        stdout = io.StringIO()
        console = TerminalConsole(io.StringIO("yes\nno\n"), stdout)
        env = FakeEnvironment()
        executor = Executor(env, console)
        self.assertEqual(ExecutionState.HALTED, executor.run(make_plan(2)))
        self.assertEqual(["cmd1"], env.operations)
        self.assertIn("Run command: `cmd2` ? [Y/N] ", stdout.getvalue())
