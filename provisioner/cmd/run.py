#!/usr/bin/env python3
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

import argparse
import logging
import os
import sys

import yaml

from provisionercore.log import setup_logger

from provisioner.console import (
    AnswersConsole,
    AnswersError,
    TerminalConsole,
    load_answers,
    )
from provisioner.executor import (
    DryRunEnvironment,
    ExecutionState,
    Executor,
    ShellEnvironment,
    )
from provisioner.firmware import BootMode, detect_boot_mode
from provisioner.models.layout import DiskLayout, reference_topology
from provisioner.models.topology import TopologyError
from provisioner.plan import PlanError, build


def parse_options(argv):
    parser = argparse.ArgumentParser(
        description=('Walk through partitioning, formatting and btrfs '
                     'subvolume setup one confirmed command at a time.'),
        prog='provisioner')
    parser.add_argument('--dry-run', action='store_true',
                        dest='dry_run',
                        help='print the commands instead of running them')
    parser.add_argument('--device', default='/dev/vda',
                        help='disk to partition (default: %(default)s)')
    parser.add_argument('--efi-size', default='512M', dest='efi_size',
                        help='size of the EFI system partition '
                             '(default: %(default)s)')
    parser.add_argument('--target', default='/mnt',
                        help='where to assemble the new root '
                             '(default: %(default)s)')
    parser.add_argument('--preflight', action='store_true',
                        help='check the network and enable NTP first')
    parser.add_argument('--answers', metavar='FILE',
                        help='take confirmations from a YAML answers file')
    parser.add_argument('--show-plan', action='store_true',
                        dest='show_plan',
                        help='print the plan as YAML and exit')
    parser.add_argument('--debug', action='store_true',
                        help='also write debug logging to stderr')
    return parser.parse_args(argv)


LOGDIR = "/var/log/provisioner/"


def main(argv=None):
    if argv is None:
        argv = sys.argv[1:]
    opts = parse_options(argv)
    logdir = os.environ.get('PROVISIONER_LOGDIR')
    if logdir is None:
        logdir = ".provisioner" if opts.dry_run else LOGDIR
    files = setup_logger(
        dir=logdir, console_level=logging.DEBUG if opts.debug else None)

    logger = logging.getLogger('provisioner')
    logger.info("Starting provisioner")
    logger.info("Logging to %s and %s", files["info"], files["debug"])
    logger.info("Arguments passed: %s", argv)

    layout = DiskLayout(
        device=opts.device, efi_size=opts.efi_size, target=opts.target)
    try:
        plan = build(reference_topology(), layout, preflight=opts.preflight)
    except (TopologyError, PlanError) as e:
        logger.exception("cannot build plan")
        print("error: {}".format(e), file=sys.stderr)
        return 1

    if opts.show_plan:
        yaml.safe_dump(plan.as_dicts(), sys.stdout, sort_keys=False)
        return 0

    console = TerminalConsole()
    if opts.answers:
        try:
            answers = load_answers(opts.answers)
        except AnswersError as e:
            logger.exception("cannot load answers")
            print("error: {}".format(e), file=sys.stderr)
            return 1
        console = AnswersConsole(answers, console)

    mode = detect_boot_mode()
    logger.info("boot mode: %s", mode.value)
    if mode is BootMode.BIOS:
        console.show(
            "Warning: booted in BIOS mode, but the plan sets up an EFI "
            "system partition.")

    if opts.dry_run:
        environment = DryRunEnvironment(console)
    else:
        environment = ShellEnvironment()

    executor = Executor(environment, console)
    try:
        state = executor.run(plan)
    except KeyboardInterrupt:
        logger.info("interrupted after %d steps", len(executor.dispatched))
        print(file=sys.stderr)
        return 130

    if state is ExecutionState.HALTED:
        logger.info(
            "halted by operator after %d of %d steps",
            len(executor.dispatched), len(plan))
    else:
        logger.info("completed all %d steps", len(plan))
    # Refusing a step is a normal way to stop, not an error.
    return 0


if __name__ == '__main__':
    sys.exit(main())
