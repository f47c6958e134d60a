# Copyright 2017, Andreas Ziegler <andreas.ziegler@fau.de>
#
# This file is part of libloadorder.
#
# libloadorder is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# libloadorder is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with libloadorder.  If not, see <http://www.gnu.org/licenses/>.


class LoadOrderError(Exception):
    """ Base class for all errors raised by libloadorder
    """
    pass


class MalformedInput(LoadOrderError):
    """ A set of dependency records is inconsistent. path is the record
        path the problem was found at (if any).
    """
    def __init__(self, message, path=None):
        super(MalformedInput, self).__init__(message)
        self.path = path


class CycleError(LoadOrderError):
    """ The dependency graph contains a circular chain. cycle holds the
        LibraryNodes on the chain in traversal order.
    """
    def __init__(self, cycle):
        self.cycle = tuple(cycle)
        super(CycleError, self).__init__(
            'dependency cycle: {}'.format(
                ' -> '.join(node.path for node in self.cycle + self.cycle[:1])))

    @property
    def paths(self):
        return [node.path for node in self.cycle]
