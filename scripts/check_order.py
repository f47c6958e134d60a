#!/usr/bin/env python3

# Check a stored load order (result JSON from main.py -o) against the
# dependency records it was computed from (main.py -s).

import json
import sys

from libloadorder.common.exceptions import LoadOrderError
from libloadorder.graph import build
from libloadorder.librarystore import load_records
from libloadorder.toposort import check_order

_, records = load_records(sys.argv[1])
graph = build(records)

with open(sys.argv[2], 'r') as infd:
    result = json.load(infd)

order = [lib['path'] for lib in result['topo_sorted_libs']]
try:
    check_order(graph, order)
except LoadOrderError as err:
    print('{}: {}'.format(sys.argv[2], err))
    sys.exit(1)

print('{}: {} libraries in valid order'.format(sys.argv[2], len(order)))
