#!/usr/bin/env python3
#
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

import argparse
import logging
import logging.config
import os
import sys

from libloadorder.common.exceptions import MalformedInput
from libloadorder.graph import build
from libloadorder.librarystore import LibraryStore, dump_records, load_records
from libloadorder.output import get_result, write_dot, write_json
from libloadorder.toposort import sort

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CYCLE = 2

class Runner():

    def __init__(self, argv=None):
        self.parse_arguments(argv)
        self.records = []
        self.graph = None
        self.sort_result = None
        self.result = None

    def parse_arguments(self, argv=None):
        parser = argparse.ArgumentParser(description='Compute the load order ' \
            'of a shared library and its transitive dependencies.')
        parser.add_argument('path', type=str, nargs='?',
                            help='the shared library or executable to analyze')
        parser.add_argument('-o', '--output', action='store',
                            help='JSON file to store the sorted libraries in')
        parser.add_argument('--dot', action='store',
                            help='Store the dependency graph as DOT file')
        parser.add_argument('-r', '--root', action='store', default=os.sep,
                            help='root directory to resolve libraries in')
        parser.add_argument('-L', '--library-path', action='append',
                            dest='library_paths', default=[],
                            help='additional library directory (absolute, ' \
                            'not relative to the root), may be repeated')
        parser.add_argument('--ldconfig', action='store',
                            help='file with saved output of ldconfig -p')
        parser.add_argument('-l', '--load', action='store',
                            help='JSON file with previously stored ' \
                            'dependency records, skips ELF analysis')
        parser.add_argument('-s', '--store', action='store',
                            help='Store dependency records to JSON file')
        parser.add_argument('--single', action='store_true',
                            help='Do not recursively resolve libraries')
        parser.add_argument('-v', '--verbose', action='store_true',
                            help='verbose output')
        parser.add_argument('--debug', action='store_true',
                            help=argparse.SUPPRESS)
        parser.add_argument('--log-config', action='store',
                            help='logging configuration file (INI format)')
        self.args = parser.parse_args(argv)

        self.config_error = None
        if self.args.log_config:
            try:
                logging.config.fileConfig(self.args.log_config,
                                          disable_existing_loggers=False)
                return
            except (OSError, KeyError, ValueError, RuntimeError) as err:
                self.config_error = err

        loglevel = logging.WARNING
        if self.args.verbose:
            loglevel = logging.INFO
        if self.args.debug:
            loglevel = logging.DEBUG

        logging.basicConfig(level=loglevel)
        if self.config_error:
            logging.error('could not load logging configuration '
                          '\'%s\': %s', self.args.log_config, self.config_error)

    def collect_records(self):
        if self.args.load:
            if self.args.path:
                logging.warning('ignoring %s, records are loaded from %s',
                                self.args.path, self.args.load)
            root, self.records = load_records(self.args.load)
            if not root and self.records:
                root = self.records[0].path
            return root

        path = os.path.abspath(self.args.path)
        if not os.path.isfile(path):
            raise MalformedInput('Provided shared library at {} does not exist'
                                 .format(path), path)

        store = LibraryStore(ldconfig_file=self.args.ldconfig,
                             root=self.args.root,
                             library_paths=self.args.library_paths)
        if self.args.single:
            store.resolve_libs_single_by_path(path)
        else:
            store.resolve_libs_recursive_by_path(path)
        self.records = store.get_dependency_records()
        if not self.records:
            raise MalformedInput('Could not analyze {}'.format(path), path)
        return self.records[0].path

    def process(self):
        if self.config_error:
            return EXIT_ERROR
        if not self.args.path and not self.args.load:
            logging.error('Please provide a path to analyze or records to load')
            return EXIT_ERROR

        try:
            root = self.collect_records()
            self.graph = build(self.records)
        except (MalformedInput, OSError, ValueError) as err:
            logging.error('%s', err)
            return EXIT_ERROR

        if root in self.graph:
            logging.info('%s has %d direct and %d total dependencies', root,
                         len(self.graph.dependencies_of(root)),
                         self.graph.node_count - 1)

        if self.args.store:
            dump_records(self.records, self.args.store, root)

        self.sort_result = sort(self.graph)
        self.result = get_result(self.graph, self.sort_result, root)

        if self.args.output:
            write_json(self.result, self.args.output)
        if self.args.dot:
            write_dot(self.graph, self.args.dot, self.sort_result)

        if not self.sort_result.ok:
            return EXIT_CYCLE
        return EXIT_OK

    def print_load_order(self):
        if self.sort_result is None or not self.sort_result.ok:
            return
        print('= Load order for {}'.format(self.result['root']))
        for idx, node in enumerate(self.sort_result.order):
            print('-- {}: {} => {}'.format(idx, node.name, node.path))
        for entry in self.graph.dangling:
            print('-- missing: {} needed by {}'.format(entry.missing_name,
                                                     entry.dependent_path))

if __name__ == '__main__':
    runner = Runner()
    status = runner.process()
    if not runner.args.output:
        runner.print_load_order()
    sys.exit(status)
