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
import subprocess

log = logging.getLogger("provisionercore.utils")


def run_interactive(cmd: str) -> subprocess.CompletedProcess:
    """Run a shell command line with our stdin, stdout and stderr.

    Unlike most of the commands we run, the operator needs to see (and
    sometimes answer) whatever the tool prints, so nothing is captured.
    A non-zero exit status is returned, not raised.
    """
    log.debug("run_interactive called: %s", cmd)
    try:
        cp = subprocess.run(
            cmd,
            shell=True,
            stdin=None,
            stdout=None,
            stderr=None,
        )
    except OSError as e:
        log.debug("run_interactive %s failed to start: %s", cmd, e)
        raise
    log.debug("run_interactive %s exited with code %s", cmd, cp.returncode)
    return cp
