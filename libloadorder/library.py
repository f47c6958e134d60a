# Copyright 2017-2018, Andreas Ziegler <andreas.ziegler@fau.de>
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

from elftools.common.exceptions import ELFError
from elftools.elf.dynamic import DynamicSegment
from elftools.elf.elffile import ELFFile
from elftools.elf.segments import InterpSegment

def _decode(value):
    if isinstance(value, bytes):
        return value.decode('utf-8')
    return value

class Library:

    def __init__(self, filename, parse=False):
        if not os.path.isabs(filename):
            raise ValueError("{} is no absolute path".format(filename))

        self.fullname = filename

        self.fd = open(filename, 'rb')
        try:
            self._elffile = ELFFile(self.fd)
        except ELFError:
            self.fd.close()
            raise
        self.elfheader = self._elffile.header

        # needed_libs: name from DT_NEEDED -> path of library
        self.needed_libs = collections.OrderedDict()

        self.rpaths = []
        self.runpaths = []
        self.soname = None
        # path from PT_INTERP, only set for executables and PIEs
        self.interpreter = None

        if parse:
            self.parse_dynamic()

    @property
    def name(self):
        return self.soname or os.path.basename(self.fullname)

    def _expand_origin(self, paths):
        origin = os.path.dirname(self.fullname)
        return [path.replace('$ORIGIN', origin).replace('${ORIGIN}', origin)
                for path in paths.split(':') if path]

    def parse_interpreter(self):
        for segment in self._elffile.iter_segments():
            if isinstance(segment, InterpSegment):
                self.interpreter = _decode(segment.get_interp_name())
                logging.debug('\'%s\' uses interpreter %s', self.fullname,
                              self.interpreter)
                break

    def parse_dynamic(self):
        section = self._elffile.get_section_by_name('.dynamic')
        if not section:
            # Try to get segment if no section was found
            for segment in self._elffile.iter_segments():
                if isinstance(segment, DynamicSegment):
                    section = segment
                    break

        self.parse_interpreter()

        if not section:
            logging.debug('\'%s\' has no dynamic section', self.fullname)
            return

        for tag in section.iter_tags():
            if tag.entry.d_tag == 'DT_NEEDED':
                self.needed_libs[_decode(tag.needed)] = None
            elif tag.entry.d_tag == 'DT_RPATH':
                self.rpaths = self._expand_origin(_decode(tag.rpath))
            elif tag.entry.d_tag == 'DT_RUNPATH':
                self.runpaths = self._expand_origin(_decode(tag.runpath))
            elif tag.entry.d_tag == 'DT_SONAME':
                self.soname = _decode(tag.soname)

    def parse(self, release=True):
        self.parse_dynamic()
        if release:
            self._release_elffile()

    def _release_elffile(self):
        if not hasattr(self, 'fd'):
            return
        del self._elffile
        self.fd.close()
        del self.fd

    def is_compatible(self, other):
        hdr = self.elfheader
        o_hdr = other.elfheader
        return hdr['e_ident']['EI_CLASS'] == o_hdr['e_ident']['EI_CLASS'] and \
            hdr['e_machine'] == o_hdr['e_machine']

    def summary(self):
        return '{}: {} needed libs, {} rpaths, {} runpaths, interpreter {}' \
                   .format(self.fullname, len(self.needed_libs),
                           len(self.rpaths), len(self.runpaths),
                           self.interpreter)

    def __str__(self):
        return self.summary()
