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

"""Turn a StorageTopology into the ordered list of commands to run.

The plan always has three parts: fixed infrastructure steps that
partition, format and mount the raw volume; the steps derived from the
topology; and fixed finalization steps. Nothing is ever moved from one
part to another.
"""

import logging
import posixpath
import shlex
from typing import List, Optional, Tuple

import attr

from provisioner.models.layout import DiskLayout
from provisioner.models.topology import (
    CycleError,
    StorageTopology,
    Subvolume,
    )

log = logging.getLogger("provisioner.plan")


class PlanError(Exception):
    pass


@attr.s(auto_attribs=True, frozen=True)
class Step:
    description: str
    operation: str
    position: int = 0


@attr.s(auto_attribs=True, frozen=True)
class Plan:
    steps: Tuple[Step, ...] = attr.ib(converter=tuple, default=())

    def __len__(self):
        return len(self.steps)

    def __iter__(self):
        return iter(self.steps)

    def __getitem__(self, index):
        return self.steps[index]

    def as_dicts(self):
        return [attr.asdict(step) for step in self.steps]


def _cmd(*args):
    return shlex.join(args)


def _preflight_steps():
    return [
        ("Check network connectivity",
         _cmd("ping", "-c", "3", "archlinux.org")),
        ("Enable clock synchronisation",
         _cmd("timedatectl", "set-ntp", "true")),
        ]


def _infrastructure_steps(layout):
    partitions = _cmd(
        "sgdisk",
        "--new=1:0:+{}".format(layout.efi_size), "--typecode=1:ef00",
        "--new=2:0:0", "--typecode=2:8300",
        layout.device)
    return [
        ("Erase the partition table on {}".format(layout.device),
         _cmd("sgdisk", "--zap-all", layout.device)),
        ("Create the EFI system and root partitions on {}".format(
            layout.device),
         partitions),
        ("Format {} as FAT32 for the EFI system partition".format(
            layout.efi_partition),
         _cmd("mkfs.fat", "-F", "32", layout.efi_partition)),
        ("Format {} as btrfs".format(layout.root_partition),
         _cmd("mkfs.btrfs", "-f", layout.root_partition)),
        ("Mount the raw btrfs volume at {}".format(layout.target),
         _cmd("mount", "-o", layout.mount_options,
              layout.root_partition, layout.target)),
        ]


def _subvolume_steps(topology, subvol, root, layout):
    steps = []
    create = ["btrfs", "subvolume", "create"]
    if "/" in subvol.name:
        create.append("-p")
    create.append(posixpath.join(layout.target, subvol.name))
    steps.append(
        ("Create subvolume {}".format(subvol.name), _cmd(*create)))

    children = topology.children(subvol.name)
    if children:
        # The subvolume is reachable through the raw volume mount, so its
        # children's mount points can be made before it is mounted itself.
        dirs = []
        for child in children:
            inside = posixpath.join(
                subvol.name, subvol.relative_path(child.mount_path))
            if inside in topology:
                raise PlanError(
                    "mount point for {} would be created where subvolume "
                    "{} lives".format(child.name, inside))
            dirs.append(posixpath.join(layout.target, inside))
        steps.append((
            "Create mount points for the children of {}: {}".format(
                subvol.name, ", ".join(c.mount_path for c in children)),
            _cmd("mkdir", "-p", *dirs)))

    if not subvol.is_root:
        where = _staged_path(layout, root, subvol.mount_path)
        options = "{},subvol=/{}".format(layout.mount_options, subvol.name)
        steps.append((
            "Mount subvolume {} at {}".format(subvol.name, subvol.mount_path),
            _cmd("mount", "-o", options, layout.root_partition, where)))
    return steps


def _staged_path(layout, root, mount_path):
    return posixpath.join(layout.target, root.name, mount_path.lstrip("/"))


def _finalization_steps(layout, root):
    efi_mount = posixpath.join(layout.target, layout.efi_mount.lstrip("/"))
    # Unmounting the raw volume would drop every subvolume mounted under the
    # root tree, so the tree is bind mounted over it instead. Bind mounts
    # keep the per-mount flags of the raw volume mount.
    return [
        ("Remount the root subvolume {} with its children at {}".format(
            root.name, layout.target),
         _cmd("mount", "--rbind",
              posixpath.join(layout.target, root.name), layout.target)),
        ("Mount the EFI system partition at {}".format(layout.efi_mount),
         _cmd("mount", "--mkdir", layout.efi_partition, efi_mount)),
        ]


def build(topology: StorageTopology,
          layout: Optional[DiskLayout] = None, *,
          preflight: bool = False) -> Plan:
    if layout is None:
        layout = DiskLayout()
    try:
        order: List[Subvolume] = topology.topological_order()
    except CycleError as e:
        raise PlanError(str(e)) from e
    root = topology.root()
    if root is None:
        raise PlanError("topology has no subvolume mounted at /")

    pairs = []
    if preflight:
        pairs.extend(_preflight_steps())
    pairs.extend(_infrastructure_steps(layout))
    for subvol in order:
        pairs.extend(_subvolume_steps(topology, subvol, root, layout))
    pairs.extend(_finalization_steps(layout, root))

    steps = [
        Step(description=description, operation=operation, position=i)
        for i, (description, operation) in enumerate(pairs, start=1)
        ]
    log.debug("built plan with %d steps from %d subvolumes",
              len(steps), len(order))
    return Plan(steps)
