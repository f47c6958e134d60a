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
import json
import logging

def _lib_dict(node):
    return collections.OrderedDict([('name', node.name), ('path', node.path)])

def get_result(graph, sort_result=None, root=None):
    """Collect graph, load order and warnings into one JSON-ready dict.

    sort_result is the SortResult of the graph, if it was sorted at all.
    topo_sorted_libs stays empty if sorting failed, the cycle is listed
    under 'cycle' instead.
    """
    result = collections.OrderedDict()
    result['root'] = root
    result['vertices'] = graph.sorted_paths()
    result['edges'] = [collections.OrderedDict([('from_path', edge.dependent_path),
                                                ('to_path', edge.dependency_path)])
                       for edge in graph.edges()]
    result['library_map'] = collections.OrderedDict(
        (path, _lib_dict(graph.nodes[path])) for path in graph.sorted_paths())

    order = ()
    cycle = None
    if sort_result is not None:
        order = sort_result.order
        if sort_result.error is not None:
            cycle = sort_result.error.paths
    result['topo_sorted_libs'] = [_lib_dict(node) for node in order]
    result['cycle'] = cycle

    result['dangling'] = [collections.OrderedDict(
                              [('dependent_path', entry.dependent_path),
                               ('missing_name', entry.missing_name)])
                          for entry in graph.dangling]
    result['self_dependencies'] = [collections.OrderedDict(
                                       [('path', entry.path),
                                        ('name', entry.name)])
                                   for entry in graph.self_dependencies]
    return result

def write_json(result, output_file):
    logging.debug('Saving result to \'%s\'', output_file)
    with open(output_file, 'w') as outfd:
        json.dump(result, outfd, indent=2)
        outfd.write('\n')

def _quote(text):
    return '"{}"'.format(text.replace('\\', '\\\\').replace('"', '\\"'))

def get_dot(graph, sort_result=None):
    lines = ['digraph D {']
    position = {}
    if sort_result is not None and sort_result.ok:
        position = {node.path: idx for idx, node in enumerate(sort_result.order)}
    cycle = set()
    if sort_result is not None and not sort_result.ok:
        cycle = set(sort_result.error.paths)

    for path in graph.sorted_paths():
        node = graph.nodes[path]
        label = node.name
        if path in position:
            label = '{}: {}'.format(position[path], node.name)
        attrs = 'shape=box, label={}, tooltip={}'.format(_quote(label),
                                                          _quote(path))
        if path in cycle:
            attrs += ', color=red'
        lines.append('{} [{}]'.format(_quote(path), attrs))

    for edge in graph.edges():
        lines.append('{} -> {}'.format(_quote(edge.dependent_path),
                                       _quote(edge.dependency_path)))

    for idx, entry in enumerate(graph.dangling):
        missing = 'missing{}'.format(idx)
        lines.append('{} [shape=box, style=dashed, label={}]'
                     .format(_quote(missing), _quote(entry.missing_name)))
        lines.append('{} -> {} [style=dashed]'
                     .format(_quote(entry.dependent_path), _quote(missing)))

    lines.append('}')
    return '\n'.join(lines) + '\n'

def write_dot(graph, output_file, sort_result=None):
    logging.debug('Saving graph to \'%s\'', output_file)
    with open(output_file, 'w') as outfd:
        outfd.write(get_dot(graph, sort_result))
