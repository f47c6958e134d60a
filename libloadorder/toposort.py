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

from libloadorder.common.exceptions import CycleError, LoadOrderError

UNVISITED = 0
IN_PROGRESS = 1
DONE = 2


class SortResult(collections.namedtuple('SortResult', ['order', 'error'])):
    """Outcome of sort(): either a load order or the CycleError which
    prevented one. order is empty whenever error is set.
    """

    __slots__ = ()

    @property
    def ok(self):
        return self.error is None

    @property
    def paths(self):
        return [node.path for node in self.order]

    def unwrap(self):
        if self.error is not None:
            raise self.error
        return self.order


def sort(graph):
    """Order the nodes of graph so that every library comes after all of
    its dependencies.

    The traversal is a depth-first search which starts at the nodes in
    lexicographic order of their paths and visits the dependencies of a
    node in the same order. Nodes are emitted once all their
    dependencies are done (post-order), so the same graph always yields
    the same order.
    """
    state = dict.fromkeys(graph.nodes, UNVISITED)
    order = []

    for root in graph.sorted_paths():
        if state[root] != UNVISITED:
            continue
        state[root] = IN_PROGRESS
        stack = [(root, iter(graph.dependencies_of(root)))]
        while stack:
            path, pending = stack[-1]
            for dependency in pending:
                if state[dependency] == IN_PROGRESS:
                    chain = [entry[0] for entry in stack]
                    cycle = chain[chain.index(dependency):]
                    error = CycleError(graph.nodes[p] for p in cycle)
                    logging.error('%s', error)
                    return SortResult((), error)
                if state[dependency] == UNVISITED:
                    state[dependency] = IN_PROGRESS
                    stack.append((dependency,
                                  iter(graph.dependencies_of(dependency))))
                    break
            else:
                stack.pop()
                state[path] = DONE
                order.append(graph.nodes[path])

    logging.debug('sorted %d libraries', len(order))
    return SortResult(tuple(order), None)


def toposort_paths(graph):
    return [node.path for node in sort(graph).unwrap()]


def check_order(graph, order):
    """Raise LoadOrderError unless order (nodes or paths) contains every
    node of graph exactly once, dependencies first.
    """
    paths = [getattr(entry, 'path', entry) for entry in order]
    index = {}
    for idx, path in enumerate(paths):
        if path in index:
            raise LoadOrderError('{} appears more than once'.format(path))
        if path not in graph:
            raise LoadOrderError('{} is not part of the graph'.format(path))
        index[path] = idx

    missing = [path for path in graph.sorted_paths() if path not in index]
    if missing:
        raise LoadOrderError('missing from order: {}'.format(', '.join(missing)))

    for edge in graph.edges():
        if index[edge.dependency_path] >= index[edge.dependent_path]:
            raise LoadOrderError('{} is loaded before its dependency {}'
                                 .format(edge.dependent_path,
                                         edge.dependency_path))
    return True
