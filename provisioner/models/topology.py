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

import heapq
import logging
import posixpath
from typing import Dict, List, Optional

import attr

log = logging.getLogger("provisioner.models.topology")


class TopologyError(Exception):
    pass


class DuplicateNameError(TopologyError):
    """A subvolume with this name has already been declared."""


class InvalidParentError(TopologyError):
    """The parent is unknown, or is not the subvolume mounted closest above
    the child."""


class InvalidMountPathError(TopologyError):
    pass


class DuplicateMountPathError(TopologyError):
    pass


class UnknownSubvolumeError(TopologyError, KeyError):
    pass


class InvalidNameError(TopologyError):
    pass


class CycleError(TopologyError):
    pass


def _check_name(name):
    # Names become paths under the target and part of a subvol= option.
    parts = name.split("/")
    if (not name or name.startswith("/") or "," in name
            or any(p in ("", ".", "..") for p in parts)):
        raise InvalidNameError("invalid subvolume name {!r}".format(name))


def _is_strict_prefix(parent_path, child_path):
    if parent_path == child_path:
        return False
    if parent_path == "/":
        return True
    return child_path.startswith(parent_path + "/")


@attr.s(auto_attribs=True, frozen=True)
class Subvolume:
    name: str
    mount_path: str
    parent: Optional[str] = None

    @property
    def is_root(self):
        return self.mount_path == "/"

    def relative_path(self, path):
        """Return path as seen from inside this subvolume, without a
        leading slash."""
        return posixpath.relpath(path, self.mount_path)


class StorageTopology:
    """The subvolumes to create and where they get mounted.

    Declarations are write-once: a subvolume can be added but never
    changed or removed. A parent has to be declared before any of its
    children, and a subvolume's parent is always the one mounted closest
    above it.
    """

    def __init__(self):
        self._subvolumes: Dict[str, Subvolume] = {}
        self._children: Dict[str, List[str]] = {}
        self._mount_paths: Dict[str, str] = {}

    def __len__(self):
        return len(self._subvolumes)

    def __iter__(self):
        return iter(list(self._subvolumes.values()))

    def __contains__(self, name):
        return name in self._subvolumes

    def get(self, name) -> Subvolume:
        try:
            return self._subvolumes[name]
        except KeyError:
            raise UnknownSubvolumeError(name) from None

    def _enclosing(self, mount_path):
        """Return the subvolume mounted deepest above mount_path, if any."""
        best = None
        for subvol in self._subvolumes.values():
            if _is_strict_prefix(subvol.mount_path, mount_path):
                if best is None or _is_strict_prefix(
                        best.mount_path, subvol.mount_path):
                    best = subvol
        return best

    def declare(self, name, mount_path, parent=None) -> Subvolume:
        if name in self._subvolumes:
            raise DuplicateNameError(
                "subvolume {!r} already declared".format(name))
        _check_name(name)
        if not mount_path.startswith("/"):
            raise InvalidMountPathError(
                "mount path {!r} of {!r} is not absolute".format(
                    mount_path, name))
        mount_path = posixpath.normpath(mount_path)
        if mount_path.startswith("//"):
            mount_path = mount_path[1:]
        if mount_path in self._mount_paths:
            raise DuplicateMountPathError(
                "{!r} is already the mount path of {!r}".format(
                    mount_path, self._mount_paths[mount_path]))
        if isinstance(parent, Subvolume):
            parent = parent.name
        if parent is not None and parent not in self._subvolumes:
            raise InvalidParentError(
                "parent {!r} of {!r} is not declared".format(parent, name))
        # Anything already mounted below the new path would be hidden when
        # it gets mounted, and it cannot be a descendant of a new name.
        for other in self._subvolumes.values():
            if _is_strict_prefix(mount_path, other.mount_path):
                raise InvalidParentError(
                    "{!r} at {!r} would cover {!r} at {!r}".format(
                        name, mount_path, other.name, other.mount_path))
        enclosing = self._enclosing(mount_path)
        enclosing_name = None if enclosing is None else enclosing.name
        if parent != enclosing_name:
            if enclosing is None:
                raise InvalidParentError(
                    "{!r} is mounted at {!r}, which is not under {!r}".format(
                        name, mount_path,
                        self._subvolumes[parent].mount_path))
            raise InvalidParentError(
                "{!r} at {!r} must have parent {!r}, mounted at {!r}".format(
                    name, mount_path, enclosing.name, enclosing.mount_path))

        subvol = Subvolume(name=name, mount_path=mount_path, parent=parent)
        self._subvolumes[name] = subvol
        self._children[name] = []
        self._mount_paths[mount_path] = name
        if parent is not None:
            self._children[parent].append(name)
        log.debug("declared %s", subvol)
        return subvol

    def children(self, name) -> List[Subvolume]:
        if name not in self._children:
            raise UnknownSubvolumeError(name)
        return [self._subvolumes[c] for c in self._children[name]]

    def root(self) -> Optional[Subvolume]:
        name = self._mount_paths.get("/")
        if name is None:
            return None
        return self._subvolumes[name]

    def topological_order(self) -> List[Subvolume]:
        index = {name: i for i, name in enumerate(self._subvolumes)}
        pending = {
            name: (0 if s.parent is None else 1)
            for name, s in self._subvolumes.items()
            }
        ready = [index[name] for name, n in pending.items() if n == 0]
        heapq.heapify(ready)
        names = list(self._subvolumes)
        order = []
        while ready:
            name = names[heapq.heappop(ready)]
            order.append(self._subvolumes[name])
            for child in self._children[name]:
                pending[child] -= 1
                if pending[child] == 0:
                    heapq.heappush(ready, index[child])
        if len(order) != len(self._subvolumes):
            stuck = sorted(set(names) - {s.name for s in order})
            raise CycleError(
                "cannot order subvolumes: {}".format(", ".join(stuck)))
        return order
