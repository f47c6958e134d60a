import unittest

from libloadorder.common.datatypes import DanglingDependency, \
    DependencyEdge, DependencyRecord, LibraryNode, SelfDependency
from libloadorder.common.exceptions import LoadOrderError, MalformedInput
from libloadorder.graph import DependencyGraph, build

LIBDIR = '/usr/lib/x86_64-linux-gnu/'
ROOT    = '/opt/app/libroot.so'
LIBFOO  = LIBDIR + 'libfoo.so.1'
LIBBAR  = LIBDIR + 'libbar.so.2'
LIBC    = LIBDIR + 'libc.so.6'
LD_SO   = '/lib64/ld-linux-x86-64.so.2'

def closure_records():
    return [
        DependencyRecord(ROOT, 'libroot.so', [('libfoo.so.1', LIBFOO),
                                              ('libc.so.6', LIBC)]),
        DependencyRecord(LIBFOO, 'libfoo.so.1', [('libbar.so.2', LIBBAR),
                                                 ('libc.so.6', LIBC)]),
        DependencyRecord(LIBBAR, 'libbar.so.2', [('libc.so.6', LIBC)]),
        DependencyRecord(LIBC, 'libc.so.6', [('ld-linux-x86-64.so.2', LD_SO)]),
        DependencyRecord(LD_SO, 'ld-linux-x86-64.so.2', []),
    ]

class TestGraph(unittest.TestCase):

    def test_0_build_closure(self):
        graph = build(closure_records())

        self.assertEqual(graph.node_count, 5)
        self.assertEqual(graph.edge_count, 6)
        self.assertTrue(graph.has_edge(ROOT, LIBFOO))
        self.assertTrue(graph.has_edge(LIBC, LD_SO))
        self.assertFalse(graph.has_edge(LIBC, ROOT))
        self.assertEqual(graph.dependencies_of(LIBFOO), [LIBBAR, LIBC])
        self.assertEqual(graph.dependents_of(LIBC), [ROOT, LIBBAR, LIBFOO])
        self.assertEqual(graph.get_node(LIBC), LibraryNode('libc.so.6', LIBC))
        self.assertEqual(graph.dangling, [])
        self.assertEqual(graph.self_dependencies, [])
        self.assertTrue(graph.check_invariants())

    def test_0_empty(self):
        graph = build([])
        self.assertEqual(len(graph), 0)
        self.assertEqual(graph.edges(), [])

    def test_1_records_in_any_order(self):
        records = closure_records()
        graph = build(reversed(records))
        self.assertEqual(graph.edges(), build(records).edges())
        self.assertEqual(graph.sorted_paths(), build(records).sorted_paths())

    def test_1_dependency_without_record(self):
        # Only the root was analyzed, its dependencies keep their
        # DT_NEEDED names
        graph = build([closure_records()[0]])

        self.assertEqual(graph.node_count, 3)
        self.assertEqual(graph.get_node(LIBFOO).name, 'libfoo.so.1')
        self.assertEqual(graph.dependencies_of(LIBFOO), [])

    def test_1_record_name_wins(self):
        # libc.so.6 is a symlink to the real file, the record for the
        # file itself carries the name to use
        real_libc = LIBDIR + 'libc-2.23.so'
        records = [DependencyRecord(ROOT, 'libroot.so',
                                    [('libc.so.6', real_libc)]),
                   DependencyRecord(real_libc, 'libc-2.23.so', [])]
        graph = build(records)
        self.assertEqual(graph.get_node(real_libc).name, 'libc-2.23.so')

    def test_1_same_name_different_paths(self):
        other_libc = '/opt/app/lib/libc.so.6'
        records = [DependencyRecord(ROOT, 'libroot.so',
                                    [('libc.so.6', other_libc)]),
                   DependencyRecord(LIBFOO, 'libfoo.so.1',
                                    [('libc.so.6', LIBC)])]
        graph = build(records)
        self.assertIn(other_libc, graph)
        self.assertIn(LIBC, graph)
        self.assertEqual(graph.node_count, 4)

    def test_2_dangling_dependency(self):
        records = [DependencyRecord(ROOT, 'libroot.so',
                                    [('libfoo.so', None), ('libc.so.6', LIBC)]),
                   DependencyRecord(LIBC, 'libc.so.6', [])]
        with self.assertLogs(level='WARNING'):
            graph = build(records)

        self.assertEqual(graph.node_count, 2)
        self.assertNotIn('libfoo.so', [node.name for node in graph])
        self.assertEqual(graph.dangling,
                         [DanglingDependency(ROOT, 'libfoo.so')])
        self.assertEqual(graph.edges(), [DependencyEdge(ROOT, LIBC)])

    def test_2_self_dependency(self):
        records = [DependencyRecord(LIBFOO, 'libfoo.so.1',
                                    [('libfoo.so.1', LIBFOO),
                                     ('libc.so.6', LIBC)])]
        with self.assertLogs(level='WARNING'):
            graph = build(records)

        self.assertFalse(graph.has_edge(LIBFOO, LIBFOO))
        self.assertEqual(graph.self_dependencies,
                         [SelfDependency(LIBFOO, 'libfoo.so.1')])
        self.assertEqual(graph.warnings,
                         [SelfDependency(LIBFOO, 'libfoo.so.1')])
        self.assertTrue(graph.check_invariants())

    def test_2_duplicate_edges(self):
        records = [DependencyRecord(ROOT, 'libroot.so',
                                    [('libc.so.6', LIBC), ('libc.so.6', LIBC),
                                     ('libc-alias.so', LIBC)])]
        graph = build(records)
        self.assertEqual(graph.edge_count, 1)

    def test_2_duplicate_records(self):
        records = closure_records() + closure_records()[1:3]
        graph = build(records)
        self.assertEqual(graph.node_count, 5)
        self.assertEqual(graph.edge_count, 6)

    def test_3_conflicting_names(self):
        records = [DependencyRecord(LIBC, 'libc.so.6', []),
                   DependencyRecord(LIBC, 'libc-2.23.so', [])]
        with self.assertRaises(MalformedInput) as ctx:
            build(records)
        self.assertEqual(ctx.exception.path, LIBC)

    def test_3_conflicting_dependencies(self):
        records = [DependencyRecord(LIBFOO, 'libfoo.so.1', [('libc.so.6', LIBC)]),
                   DependencyRecord(LIBFOO, 'libfoo.so.1', [])]
        self.assertRaises(MalformedInput, build, records)

    def test_3_conflicting_resolution(self):
        records = [DependencyRecord(LIBFOO, 'libfoo.so.1',
                                    [('libc.so.6', LIBC),
                                     ('libc.so.6', None)])]
        self.assertRaises(MalformedInput, build, records)

    def test_3_unresolved_self(self):
        records = [DependencyRecord(LIBFOO, 'libfoo.so.1',
                                    [('libfoo.so.1', None)])]
        self.assertRaises(MalformedInput, build, records)

    def test_3_invalid_paths(self):
        self.assertRaises(MalformedInput, build,
                          [DependencyRecord('libfoo.so.1', 'libfoo.so.1', [])])
        self.assertRaises(MalformedInput, build,
                          [DependencyRecord('', 'libfoo.so.1', [])])
        self.assertRaises(MalformedInput, build,
                          [DependencyRecord(LIBFOO, '', [])])
        self.assertRaises(MalformedInput, build,
                          [DependencyRecord(LIBFOO, 'libfoo.so.1',
                                            [('libc.so.6', 'libc.so.6')])])
        self.assertRaises(MalformedInput, build,
                          [DependencyRecord(LIBFOO, 'libfoo.so.1',
                                            [('', LIBC)])])

    def test_3_bad_shapes(self):
        # Too few fields, dependency without a resolution, no dependency list
        self.assertRaises(MalformedInput, build, [(LIBFOO,)])
        self.assertRaises(MalformedInput, build,
                          [(LIBFOO, 'libfoo.so.1', [('libc.so.6',)])])
        with self.assertRaises(MalformedInput) as ctx:
            build([(LIBFOO, 'libfoo.so.1', None)])
        self.assertEqual(ctx.exception.path, LIBFOO)
        self.assertRaises(MalformedInput, build,
                          [{'path': LIBFOO, 'name': 'libfoo.so.1',
                            'dependencies': None}])
        self.assertRaises(MalformedInput, build, [{'name': 'libfoo.so.1'}])

    def test_3_dict_records(self):
        graph = build([{'path': ROOT, 'name': 'libroot.so',
                        'dependencies': [{'name': 'libc.so.6',
                                          'resolved_path': LIBC}]},
                       {'path': LIBC, 'name': 'libc.so.6', 'dependencies': []}])
        self.assertEqual(graph.node_count, 2)
        self.assertEqual(graph.edges(), [DependencyEdge(ROOT, LIBC)])
        self.assertEqual(graph.get_node(ROOT).name, 'libroot.so')

    def test_3_failure_after_valid_records(self):
        # Building is all or nothing, the error is only found at the end
        records = closure_records() + [DependencyRecord(LIBC, 'libc.so', [])]
        self.assertRaises(MalformedInput, build, records)

    def test_4_plain_tuples(self):
        graph = build([(ROOT, 'libroot.so', [('libc.so.6', LIBC)])])
        self.assertEqual(graph.edges(), [DependencyEdge(ROOT, LIBC)])

    def test_4_add_edge_checks(self):
        graph = DependencyGraph()
        graph.add_node('libc.so.6', LIBC)
        self.assertRaises(ValueError, graph.add_edge, LIBC, LIBC)
        self.assertRaises(ValueError, graph.add_edge, LIBFOO, LIBC)
        graph.add_node('libfoo.so.1', LIBFOO)
        self.assertTrue(graph.add_edge(LIBFOO, LIBC))
        self.assertFalse(graph.add_edge(LIBFOO, LIBC))
        # Adding a known path again keeps the first node
        self.assertEqual(graph.add_node('other', LIBC).name, 'libc.so.6')

    def test_4_check_invariants(self):
        graph = build(closure_records())
        graph._dependencies[ROOT]['/nonexistent/libx.so'] = None
        self.assertRaises(LoadOrderError, graph.check_invariants)

    def test_5_idempotent(self):
        first = build(closure_records())
        second = build(closure_records())
        self.assertEqual(first.sorted_paths(), second.sorted_paths())
        self.assertEqual(first.edges(), second.edges())
        self.assertEqual(list(first), list(second))


if __name__ == '__main__':
    unittest.main()
