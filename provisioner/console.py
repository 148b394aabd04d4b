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

import logging
import sys

import yaml

log = logging.getLogger("provisioner.console")


class AnswersError(Exception):
    pass


class TerminalConsole:
    """Line oriented operator console."""

    def __init__(self, stdin=None, stdout=None):
        self.stdin = stdin
        self.stdout = stdout

    def _in(self):
        return self.stdin if self.stdin is not None else sys.stdin

    def _out(self):
        return self.stdout if self.stdout is not None else sys.stdout

    def show(self, text):
        out = self._out()
        out.write(text + "\n")
        out.flush()

    def ask(self, prompt):
        out = self._out()
        out.write(prompt)
        out.flush()
        line = self._in().readline()
        if line == "":
            # End of input; make sure the next output starts on its own line.
            out.write("\n")
            out.flush()
            log.debug("end of input while waiting for an answer")
            return ""
        return line.rstrip("\r\n")


class AnswersConsole:
    """Replay recorded answers, then fall back to another console."""

    def __init__(self, answers, fallback):
        self.answers = list(answers)
        self.fallback = fallback

    def show(self, text):
        self.fallback.show(text)

    def ask(self, prompt):
        if not self.answers:
            return self.fallback.ask(prompt)
        answer = self.answers.pop(0)
        log.debug("answering %r from answers file", answer)
        self.fallback.show(prompt + answer)
        return answer


def _answer_to_str(value):
    # Unquoted yes/no come back from YAML as booleans.
    if value is True:
        return "yes"
    if value is False:
        return "no"
    if value is None:
        return ""
    return str(value)


def load_answers(path):
    try:
        with open(path) as fp:
            data = yaml.safe_load(fp)
    except (OSError, yaml.YAMLError) as e:
        raise AnswersError(
            "cannot read answers from {}: {}".format(path, e)) from e
    if data is None:
        return []
    if not isinstance(data, dict):
        raise AnswersError(
            "answers file {} must contain a mapping".format(path))
    confirmations = data.get("confirmations", [])
    if not isinstance(confirmations, list):
        raise AnswersError(
            "'confirmations' in {} must be a list".format(path))
    return [_answer_to_str(v) for v in confirmations]
