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

import json
import logging
import os

from elftools.common.exceptions import ELFError

from libloadorder.common.datatypes import BaseStore, DependencyRecord
from libloadorder.common.exceptions import MalformedInput
from libloadorder.library import Library
from libloadorder.ldresolve import LDResolve

class LibraryStore(BaseStore):

    def __init__(self, ldconfig_file=None, root=os.sep, library_paths=None):
        super(LibraryStore, self).__init__()
        self.resolver = LDResolve(ldconfig_file, root, library_paths)

    def _get_or_create_library(self, path):
        link_path = None

        try:
            if os.path.islink(path) or \
                    os.path.abspath(os.path.dirname(path)) != \
                    os.path.realpath(os.path.abspath(os.path.dirname(path))):
                link_path = path
                path = os.path.realpath(path)

            if path in self:
                return (self.get_from_path(path), link_path)

            return (Library(path), link_path)
        except (ELFError, OSError) as err:
            logging.error('\'%s\' => %s', path, err)
            return (None, None)

    def get_from_path(self, path):
        result = self.get(path)
        # Symlink-like behaviour with strings
        while result is not None and not isinstance(result, Library):
            result = self.get(result)
        return result

    def _add_library(self, path, library):
        self[path] = library

    def _get_compatible_libs(self, target, paths):
        retval = []
        for path in paths:
            needed, link_path = self._get_or_create_library(path)
            if not needed:
                continue

            if target.is_compatible(needed):
                retval.append((needed, link_path))
            else:
                logging.debug('skipping incompatible %s for %s',
                              needed.fullname, target.fullname)
                needed._release_elffile()

        return retval

    def _find_compatible_libs(self, target, callback, inherited_rpaths=None,
                              ld_library_paths=None):
        for needed_name in target.needed_libs:
            rpaths = self.resolver.get_paths(needed_name, target.rpaths,
                                             inherited_rpaths, target.runpaths,
                                             ld_library_paths)

            # Try to find compatible libs from ldconfig and rpath alone
            possible_libs = self._get_compatible_libs(target, rpaths)

            # If that fails, try directly probing filenames in the directories
            # ldconfig shows as containing libraries
            if not possible_libs:
                logging.debug('File system search needed for \'%s\'', needed_name)
                fs_paths = self.resolver.search_in_ldd_paths(needed_name)
                possible_libs = self._get_compatible_libs(target, fs_paths)

            if not possible_libs:
                logging.warning('%s: could not resolve \'%s\'', target.fullname,
                                needed_name)
                continue

            needed, link_path = possible_libs[0]
            for unused, _ in possible_libs[1:]:
                unused._release_elffile()

            # If path was a symlink and we are in recursive mode,
            # add link to full name to store
            if link_path and callback:
                self._add_library(link_path, needed.fullname)
            # Enter full path to library for DT_NEEDED name
            target.needed_libs[needed_name] = needed.fullname

            # If we should continue processing, do the needed one next
            if callback:
                next_rpaths = []
                if not target.runpaths:
                    if inherited_rpaths:
                        next_rpaths.extend(inherited_rpaths)
                    if target.rpaths:
                        next_rpaths.extend(target.rpaths)

                callback(needed, inherited_rpaths=next_rpaths,
                         ld_library_paths=ld_library_paths)
            else:
                needed._release_elffile()

    def _resolve_interpreter(self, library, callback, ld_library_paths):
        if not library.interpreter:
            return
        path = self.resolver.rooted(library.interpreter)
        interpreter, link_path = self._get_or_create_library(path)
        if not interpreter:
            logging.warning('%s: interpreter %s not found', library.fullname,
                            library.interpreter)
            return
        if link_path:
            self._add_library(link_path, interpreter.fullname)
        if callback:
            callback(interpreter, ld_library_paths=ld_library_paths)
        elif interpreter.fullname not in self:
            interpreter.parse(release=True)
            self._add_library(interpreter.fullname, interpreter)

    def _resolve_libs(self, library, path="", callback=None,
                      inherited_rpaths=None, ld_library_paths=None):
        if not library:
            library, link_path = self._get_or_create_library(path)
            if not library:
                # We had an error, so nothing can be processed
                return
            elif link_path:
                self._add_library(link_path, library.fullname)

        if library.fullname in self:
            # We were already here once, no need to go further
            library._release_elffile()
            return

        logging.debug('Resolving %s', library.fullname)

        # Process this library
        library.parse(release=True)

        # Add ourselves before processing imports
        self._add_library(library.fullname, library)

        # Only add LD_LIBRARY_PATH for top level calls, as $ORIGIN must be
        # resolved to the path of the analyzed binary
        if ld_library_paths is None:
            ld_library_paths = []
            if 'LD_LIBRARY_PATH' in os.environ:
                ld_library_paths = [p.replace('$ORIGIN', os.path.dirname(library.fullname))
                                    for p in os.environ['LD_LIBRARY_PATH'].split(':')
                                    if p]
            if 'EXTRA_LIBRARY_PATH' in os.environ:
                ld_library_paths.extend(p for p in
                                        os.environ['EXTRA_LIBRARY_PATH'].split(':')
                                        if p)

        # Find and resolve imports
        self._find_compatible_libs(library, callback, inherited_rpaths,
                                   ld_library_paths)
        self._resolve_interpreter(library, callback, ld_library_paths)

    def resolve_libs_single(self, library, path=""):
        self._resolve_libs(library, path)

    def resolve_libs_single_by_path(self, path):
        self.resolve_libs_single(None, path)

    def resolve_libs_recursive(self, library, path="", inherited_rpaths=None,
                               ld_library_paths=None):
        self._resolve_libs(library, path, callback=self.resolve_libs_recursive,
                           inherited_rpaths=inherited_rpaths,
                           ld_library_paths=ld_library_paths)

    def resolve_libs_recursive_by_path(self, path):
        self.resolve_libs_recursive(None, path)

    def get_library_objects(self):
        # Insertion order, so the first analyzed file comes first
        return [val for val in self.values() if isinstance(val, Library)]

    def get_dependency_records(self):
        return [DependencyRecord(lib.fullname, lib.name,
                                 lib.needed_libs.items())
                for lib in self.get_library_objects()]


def dump_records(records, output_file, root=None):
    logging.debug('Saving %d records to \'%s\'', len(records), output_file)
    output = {'root': root,
              'libraries': [record.to_dict() for record in records]}
    with open(output_file, 'w') as outfd:
        json.dump(output, outfd, indent=2)


def load_records(input_file):
    logging.debug('loading records from \'%s\'...', input_file)
    with open(input_file, 'r') as infd:
        in_dict = json.load(infd)

    if isinstance(in_dict, list):
        in_dict = {'root': None, 'libraries': in_dict}
    try:
        records = [DependencyRecord.from_dict(content)
                   for content in in_dict['libraries']]
    except (KeyError, TypeError) as err:
        raise MalformedInput('\'{}\' is no valid record file: {}'
                             .format(input_file, err))
    return in_dict.get('root'), records
