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

import glob
import logging
import os
import re

from libloadorder.common.datatypes import BaseStore

DEFAULT_PATHS = ['/lib', '/usr/lib', '/lib64', '/usr/lib64']
LD_SO_CONF = os.path.join('etc', 'ld.so.conf')

class LDResolve(BaseStore):

    def __init__(self, from_file=None, root=os.sep, library_paths=None):
        super(LDResolve, self).__init__()
        self.root = os.path.abspath(root)
        # Additional library paths are absolute, the root does not apply
        self.library_paths = [os.path.abspath(path)
                              for path in library_paths or []]
        self.conf_paths = []
        self.reload(from_file)
        self.load_ld_so_conf()

    def rooted(self, path):
        if self.root == os.sep or path.startswith(self.root + os.sep):
            return os.path.abspath(path)
        return os.path.abspath(os.path.join(self.root, path.lstrip(os.sep)))

    def _add_or_append(self, libname, fullpath):
        if libname in self:
            if fullpath not in self[libname]:
                self[libname].append(fullpath)
        else:
            self[libname] = [fullpath]

    def reload(self, from_file):
        self.reset()
        self.basepaths = set()

        if from_file:
            with open(from_file, 'r') as infd:
                lines = infd.readlines()
        elif self.root == os.sep:
            with os.popen('/sbin/ldconfig -p') as infd:
                lines = infd.readlines()
        else:
            logging.info('not using the host\'s ldconfig cache for root %s',
                         self.root)
            lines = []

        for line in lines:
            line = line.strip()
            match = re.match(r'(\S+)\s+\((.+)\)\s+=>\ (.+)$', line)
            if match:
                libname, fullpath = match.group(1), match.group(3)
                fullpath = self.rooted(fullpath)
                self._add_or_append(libname, fullpath)

                basepath = os.path.dirname(fullpath)
                if basepath not in self.basepaths:
                    self.basepaths.add(basepath)
            else:
                logging.info('ill-formed line \'%s\'', line)

        if not len(self):
            logging.warning('ldconfig info is missing!')
        else:
            logging.debug('Loaded %d entries from ldconfig', len(self))

    def _parse_conf(self, conf_file, seen):
        if conf_file in seen or not os.path.isfile(conf_file):
            return
        seen.add(conf_file)
        with open(conf_file, 'r') as infd:
            for line in infd:
                line = line.split('#', 1)[0].strip()
                if not line:
                    continue
                if line.startswith('include'):
                    pattern = line[len('include'):].strip()
                    if not os.path.isabs(pattern):
                        pattern = os.path.join(os.path.dirname(conf_file),
                                               pattern)
                    for included in sorted(glob.glob(self.rooted(pattern))):
                        self._parse_conf(included, seen)
                elif line.startswith('hwcap'):
                    continue
                else:
                    path = self.rooted(line)
                    if path not in self.conf_paths:
                        self.conf_paths.append(path)

    def load_ld_so_conf(self):
        self.conf_paths = []
        self._parse_conf(os.path.join(self.root, LD_SO_CONF), set())
        logging.debug('%d directories from ld.so.conf', len(self.conf_paths))

    def get_paths(self, libname, rpaths, inherited_rpaths, runpaths,
                  ld_library_paths=None):
        retval = []
        if os.sep in libname:
            # DT_NEEDED entries with a slash are used as-is
            fullpath = self.rooted(libname)
            if os.path.isfile(fullpath):
                retval.append(fullpath)
            else:
                logging.warning("no file for '%s'...", libname)
            return retval

        to_search = []

        if not runpaths:
            # Local rpaths first
            if rpaths:
                to_search.extend(path for path in rpaths)

            # ... then possible inherited rpaths
            if inherited_rpaths:
                to_search.extend(path for path in inherited_rpaths)

        if ld_library_paths:
            to_search.extend(path for path in ld_library_paths)

        if runpaths:
            to_search.extend(path for path in runpaths)

        to_search = [self.rooted(path) for path in to_search]
        to_search.extend(self.library_paths)

        for rpath in to_search:
            fullpath = os.path.join(rpath, libname)
            if not os.path.isfile(fullpath) or fullpath in retval:
                continue
            retval.append(fullpath)

        # ld.so.cache lookup
        ldsocache = self.get(libname, [])
        if not ldsocache:
            logging.debug("ldconfig doesn't know %s...", libname)
        retval.extend(path for path in ldsocache if path not in retval)

        # Trusted directories last
        for basepath in self.conf_paths + [self.rooted(path)
                                           for path in DEFAULT_PATHS]:
            fullpath = os.path.join(basepath, libname)
            if os.path.isfile(fullpath) and fullpath not in retval:
                retval.append(fullpath)

        if not retval:
            logging.warning("no file for '%s'...", libname)
        return retval

    def search_in_ldd_paths(self, libname):
        retval = []
        for basepath in sorted(self.basepaths):
            fullpath = os.path.join(basepath, libname)
            if os.path.isfile(fullpath):
                # Add found library to resolver database
                self._add_or_append(libname, fullpath)
                retval.append(fullpath)

        return retval
