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

import collections

# One distinct shared object, identified by its resolved path
LibraryNode = collections.namedtuple('LibraryNode', ['name', 'path'])

# dependent_path requires dependency_path to be loaded first
DependencyEdge = collections.namedtuple('DependencyEdge',
                                        ['dependent_path', 'dependency_path'])

# One DT_NEEDED entry, resolved_path is None if no file could be found
Dependency = collections.namedtuple('Dependency', ['name', 'resolved_path'])

# Anomalies found while building a graph. Both are reported, not raised.
DanglingDependency = collections.namedtuple('DanglingDependency',
                                            ['dependent_path', 'missing_name'])
SelfDependency = collections.namedtuple('SelfDependency', ['path', 'name'])


class DependencyRecord(collections.namedtuple('DependencyRecord',
                                              ['path', 'name',
                                               'dependencies'])):
    """A shared object of a resolved closure and the libraries it declares.

    dependencies is a sequence of Dependency tuples (or plain
    (name, resolved_path) pairs) in DT_NEEDED order.
    """

    __slots__ = ()

    def __new__(cls, path, name, dependencies=()):
        dependencies = tuple(Dependency(*dep) for dep in dependencies)
        return super(DependencyRecord, cls).__new__(cls, path, name,
                                                    dependencies)

    def to_dict(self):
        return {'path': self.path,
                'name': self.name,
                'dependencies': [{'name': dep.name,
                                  'resolved_path': dep.resolved_path}
                                 for dep in self.dependencies]}

    @classmethod
    def from_dict(cls, content):
        return cls(content['path'], content['name'],
                   ((dep['name'], dep.get('resolved_path'))
                    for dep in content.get('dependencies', [])))


class BaseStore(object):

    def __init__(self):
        self.storage = {}

    def __setitem__(self, key, value):
        self.storage[key] = value

    def __getitem__(self, key):
        return self.storage[key]

    def __iter__(self):
        return iter(self.storage)

    def __len__(self):
        return len(self.storage)

    def __contains__(self, key):
        return key in self.storage

    def get(self, key, default=None):
        if key in self.storage:
            return self.storage[key]
        else:
            return default

    def keys(self):
        return self.storage.keys()

    def values(self):
        return self.storage.values()

    def items(self):
        return self.storage.items()

    def reset(self):
        del self.storage
        self.storage = {}
