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
import os


class BootMode(enum.Enum):
    BIOS = "bios"
    UEFI = "uefi"


def detect_boot_mode(root="/"):
    # efivars is a mounted pseudo-filesystem, so test for a directory.
    efivars = os.path.join(root, "sys/firmware/efi/efivars")
    if os.path.isdir(efivars):
        return BootMode.UEFI
    return BootMode.BIOS
