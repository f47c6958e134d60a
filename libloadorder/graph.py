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
import logging
import os

from libloadorder.common.datatypes import DanglingDependency, \
    DependencyEdge, DependencyRecord, LibraryNode, SelfDependency
from libloadorder.common.exceptions import LoadOrderError, MalformedInput

class DependencyGraph(object):
    """Shared objects of one closure, keyed by path, and the edges from
    every dependent to the libraries it needs.
    """

    def __init__(self):
        # nodes: path -> LibraryNode
        self.nodes = collections.OrderedDict()
        # path of dependent -> ordered set (keys) of dependency paths
        self._dependencies = collections.OrderedDict()
        # path of dependency -> ordered set (keys) of dependent paths
        self._dependents = collections.OrderedDict()
        # DT_NEEDED entries without a file, as DanglingDependency tuples
        self.dangling = []
        # dropped self edges, as SelfDependency tuples
        self.self_dependencies = []

    def __len__(self):
        return len(self.nodes)

    def __contains__(self, path):
        return path in self.nodes

    def __iter__(self):
        return iter(self.nodes.values())

    @property
    def node_count(self):
        return len(self.nodes)

    @property
    def edge_count(self):
        return sum(len(deps) for deps in self._dependencies.values())

    @property
    def warnings(self):
        return list(self.dangling) + list(self.self_dependencies)

    def has_node(self, path):
        return path in self.nodes

    def get_node(self, path):
        return self.nodes.get(path)

    def add_node(self, name, path):
        if path in self.nodes:
            return self.nodes[path]
        node = LibraryNode(name, path)
        self.nodes[path] = node
        self._dependencies[path] = collections.OrderedDict()
        self._dependents[path] = collections.OrderedDict()
        return node

    def add_edge(self, dependent_path, dependency_path):
        if dependent_path == dependency_path:
            raise ValueError('self edge for {}'.format(dependent_path))
        for path in (dependent_path, dependency_path):
            if path not in self.nodes:
                raise ValueError('{} is not a node of this graph'.format(path))
        if dependency_path in self._dependencies[dependent_path]:
            return False
        self._dependencies[dependent_path][dependency_path] = None
        self._dependents[dependency_path][dependent_path] = None
        return True

    def has_edge(self, dependent_path, dependency_path):
        return dependency_path in self._dependencies.get(dependent_path, ())

    def dependencies_of(self, path):
        return sorted(self._dependencies[path])

    def dependents_of(self, path):
        return sorted(self._dependents[path])

    def edges(self):
        return [DependencyEdge(dependent, dependency)
                for dependent in sorted(self._dependencies)
                for dependency in sorted(self._dependencies[dependent])]

    def sorted_paths(self):
        return sorted(self.nodes)

    def check_invariants(self):
        for dependent, dependencies in self._dependencies.items():
            if dependent not in self.nodes:
                raise LoadOrderError('edge source {} is no node'.format(dependent))
            for dependency in dependencies:
                if dependency not in self.nodes:
                    raise LoadOrderError('edge target {} is no node'
                                         .format(dependency))
                if dependency == dependent:
                    raise LoadOrderError('self edge at {}'.format(dependent))
        for path, node in self.nodes.items():
            if node.path != path:
                raise LoadOrderError('node {} stored under {}'.format(node.path,
                                                                       path))
        return True


def _check_path(path, what, record_path=None):
    if not isinstance(path, str) or not path:
        raise MalformedInput('{} is missing'.format(what), record_path)
    if not os.path.isabs(path):
        raise MalformedInput('{} \'{}\' is no absolute path'.format(what, path),
                             record_path)


def _record_path(record):
    if isinstance(record, dict):
        path = record.get('path')
    elif isinstance(record, (tuple, list)) and record:
        path = record[0]
    else:
        path = None
    return path if isinstance(path, str) else None


def _check_record(record):
    if not isinstance(record, DependencyRecord):
        try:
            if isinstance(record, dict):
                record = DependencyRecord.from_dict(record)
            else:
                record = DependencyRecord(*record)
        except (TypeError, ValueError, KeyError, AttributeError) as err:
            raise MalformedInput('ill-formed record {!r}: {}'.format(record, err),
                                 _record_path(record))

    _check_path(record.path, 'library path')
    if not isinstance(record.name, str) or not record.name:
        raise MalformedInput('library name is missing for \'{}\''
                             .format(record.path), record.path)

    unique = collections.OrderedDict()
    for dep in record.dependencies:
        if not isinstance(dep.name, str) or not dep.name:
            raise MalformedInput('empty dependency name in \'{}\''
                                 .format(record.path), record.path)
        if dep.resolved_path is not None:
            _check_path(dep.resolved_path,
                        'path for dependency \'{}\''.format(dep.name),
                        record.path)
        elif dep.name == record.name:
            raise MalformedInput('\'{}\' declares itself ({}) as unresolved '
                                 'dependency'.format(record.path, dep.name),
                                 record.path)
        if dep.name in unique:
            if unique[dep.name] != dep.resolved_path:
                raise MalformedInput('\'{}\' resolves dependency \'{}\' to both '
                                     '{} and {}'.format(record.path, dep.name,
                                                        unique[dep.name],
                                                        dep.resolved_path),
                                     record.path)
            logging.debug('%s: duplicate dependency \'%s\'', record.path,
                          dep.name)
            continue
        unique[dep.name] = dep.resolved_path

    return record, unique


def build(records):
    """Build a DependencyGraph from DependencyRecords.

    Records may arrive in any order. Unresolved dependencies and self
    dependencies are dropped and reported through graph.dangling and
    graph.self_dependencies. Inconsistent records raise MalformedInput
    before any graph is returned.
    """
    checked = collections.OrderedDict()
    for record in records:
        record, dependencies = _check_record(record)
        if record.path in checked:
            known, known_deps = checked[record.path]
            if known.name != record.name:
                raise MalformedInput('conflicting names \'{}\' and \'{}\' for '
                                     '{}'.format(known.name, record.name,
                                                 record.path), record.path)
            if dict(known_deps) != dict(dependencies):
                raise MalformedInput('conflicting dependency lists for {}'
                                     .format(record.path), record.path)
            logging.debug('ignoring duplicate record for %s', record.path)
            continue
        checked[record.path] = (record, dependencies)

    graph = DependencyGraph()
    for record, _ in checked.values():
        graph.add_node(record.name, record.path)

    for record, dependencies in checked.values():
        for dep_name, dep_path in dependencies.items():
            if dep_path is None:
                logging.warning('%s: no file found for dependency \'%s\'',
                                record.path, dep_name)
                graph.dangling.append(DanglingDependency(record.path,
                                                         dep_name))
                continue
            if dep_path == record.path:
                logging.warning('%s: ignoring dependency \'%s\' on itself',
                                record.path, dep_name)
                graph.self_dependencies.append(SelfDependency(record.path,
                                                              dep_name))
                continue
            # Libraries without an own record keep the DT_NEEDED name
            graph.add_node(dep_name, dep_path)
            graph.add_edge(record.path, dep_path)

    logging.debug('built graph with %d nodes and %d edges', graph.node_count,
                  graph.edge_count)
    return graph
