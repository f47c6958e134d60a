#!/usr/bin/env python3

import sys

from libloadorder.graph import build
from libloadorder.librarystore import load_records
from libloadorder.output import write_dot
from libloadorder.toposort import sort

_, records = load_records(sys.argv[1])
graph = build(records)

write_dot(graph, sys.argv[1] + '_dependencies.dot', sort(graph))
