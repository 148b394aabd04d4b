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

import attr

from provisioner.models.topology import StorageTopology


def partition_path(device, number):
    # /dev/vda -> /dev/vda2, /dev/nvme0n1 -> /dev/nvme0n1p2
    if device[-1:].isdigit():
        return "{}p{}".format(device, number)
    return "{}{}".format(device, number)


@attr.s(auto_attribs=True, frozen=True, kw_only=True)
class DiskLayout:
    device: str = "/dev/vda"
    efi_size: str = "512M"
    target: str = "/mnt"
    mount_options: str = "noatime,compress=zstd"
    efi_mount: str = "/boot/efi"

    @property
    def efi_partition(self):
        return partition_path(self.device, 1)

    @property
    def root_partition(self):
        return partition_path(self.device, 2)


def reference_topology():
    topology = StorageTopology()
    topology.declare("rootvol", "/")
    topology.declare("boot", "/boot", parent="rootvol")
    topology.declare("home", "/home", parent="rootvol")
    topology.declare("var", "/var", parent="rootvol")
    topology.declare("snapshots/rootvol", "/.snapshots", parent="rootvol")
    topology.declare("var-log", "/var/log", parent="var")
    topology.declare("var-cache", "/var/cache", parent="var")
    topology.declare("snapshots/home", "/home/.snapshots", parent="home")
    return topology
