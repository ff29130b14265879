"""
Unit tests for relationship graph construction.
"""

import io

import pytest

from pedpeel.core.graph import (
    EdgeType,
    InheritanceModel,
    PedigreeError,
    RelationshipGraph,
    TransitionType,
    VertexType,
    add_libraries,
    add_phantom_parents,
    create_families,
    create_peeling_ops,
    inheritance_model,
    number_nodes,
    parse_pedigree,
    prune_for_model,
    simplify_pedigree,
    update_edge_lengths,
)
from pedpeel.core.peeling import PeelOp
from pedpeel.io import Member, Pedigree, ReadGroups


def build(pedigree, read_groups, model=InheritanceModel.AUTOSOMAL, **rates):
    graph = RelationshipGraph()
    ok = graph.construct(pedigree, read_groups, model, **rates)
    return graph, ok


class TestInheritanceModel:
    """Test inheritance model names and aliases."""

    def test_aliases(self):
        assert InheritanceModel.MATERNAL is InheritanceModel.MITOCHONDRIA
        assert InheritanceModel.MATERNAL.value == 1

    @pytest.mark.parametrize("name,expected", [
        ("autosomal", InheritanceModel.AUTOSOMAL),
        ("Mitochondrial", InheritanceModel.MITOCHONDRIA),
        ("maternal", InheritanceModel.MATERNAL),
        ("paternal", InheritanceModel.PATERNAL),
        ("X-linked", InheritanceModel.X_LINKED),
        ("y_linked", InheritanceModel.Y_LINKED),
        ("WLINKED", InheritanceModel.W_LINKED),
        ("z-linked", InheritanceModel.Z_LINKED),
        ("nonsense", InheritanceModel.UNKNOWN),
    ])
    def test_parse(self, name, expected):
        assert inheritance_model(name) is expected


class TestTrioConstruction:
    """Test the compiled graph of an autosomal trio."""

    def test_bands_and_labels(self, trio_graph):
        assert trio_graph.labels == ["GL/dad", "GL/mom", "GL/child", "LB/LB1", "LB/LB2", "LB/LB3"]
        assert trio_graph.founder_nodes == (0, 2)
        assert trio_graph.germline_nodes == (0, 3)
        assert trio_graph.somatic_nodes == (3, 3)
        assert trio_graph.library_nodes == (3, 6)
        assert trio_graph.ploidies == [2] * 6

    def test_transitions(self, trio_graph):
        child = trio_graph.transitions[2]
        assert child.type is TransitionType.GERMLINE
        assert child.is_trio
        assert (child.parent1, child.parent2) == (0, 1)
        assert child.length1 == pytest.approx(1e-8)
        lib = trio_graph.transitions[5]
        assert lib.type is TransitionType.LIBRARY
        assert lib.parent1 == 2
        assert lib.length1 == 0.0

    def test_peeling_program(self, trio_graph):
        assert trio_graph.peeling_ops == [PeelOp.UP, PeelOp.UP, PeelOp.TO_CHILD, PeelOp.UP]
        assert trio_graph.roots == [2]
        assert [f.pivot for f in trio_graph.family_members] == [0, 1, 2, 2]
        assert all(f.fast for f in trio_graph.family_members if f.pivot in f.parents)
        assert trio_graph.reset_nodes == []

    def test_families(self, trio_graph):
        assert sorted(trio_graph.families) == [((0,), (3,)), ((0, 1), (2,)), ((1,), (4,)), ((2,), (5,))]

    def test_keep_library_index(self, trio_graph, trio_read_groups):
        assert trio_graph.keep_library_index == [0, 1, 2]
        assert trio_read_groups.names == ["LB1", "LB2", "LB3"]

    def test_workspace_layout(self, trio_graph):
        work = trio_graph.create_workspace()
        assert work.num_nodes == 6
        assert work.library_nodes == (3, 6)
        assert all(len(a) == 10 for a in work.lower)

    def test_print_machine_and_table(self, trio_graph):
        out = io.StringIO()
        trio_graph.print_machine(out)
        text = out.getvalue()
        assert "to_child" in text
        assert "roots\tGL/child" in text

        out = io.StringIO()
        trio_graph.print_table(out)
        lines = out.getvalue().strip().split("\n")
        assert len(lines) == 7
        assert lines[3].startswith("2\tGL/child\tgermline\tGL/dad\tGL/mom")

    def test_print_states(self, trio_graph):
        work = trio_graph.create_workspace()
        out = io.StringIO()
        trio_graph.print_states(work, out)
        assert out.getvalue().count("\n") == 12


class TestLibraries:
    """Test attaching and pruning libraries."""

    def test_unknown_sample_is_pruned(self, trio_pedigree):
        read_groups = ReadGroups.from_records([
            {"name": "LB1", "sample": "dad"},
            {"name": "LB9", "sample": "nobody"},
            {"name": "LB2", "sample": "mom"},
            {"name": "LB3", "sample": "child"},
        ])
        graph, ok = build(trio_pedigree, read_groups, mu=1e-8)
        assert ok
        assert graph.keep_library_index == [0, 2, 3]
        assert read_groups.names == ["LB1", "LB2", "LB3"]
        assert graph.num_nodes == 6

    def test_unsequenced_leaf_is_dropped(self, trio_pedigree):
        read_groups = ReadGroups.from_records([
            {"name": "LB1", "sample": "dad"},
            {"name": "LB2", "sample": "mom"},
        ])
        graph, ok = build(trio_pedigree, read_groups, mu=1e-8)
        assert ok
        assert "GL/child" not in graph.labels
        assert graph.roots == [0, 1]

    def test_unsequenced_connector_is_kept(self):
        """A grandparent without data still links two sequenced relatives."""
        pedigree = Pedigree([
            Member("gdad", sex="male"),
            Member("gmom", sex="female"),
            Member("dad", dad="gdad", mom="gmom", sex="male"),
            Member("mom", sex="female"),
            Member("kid", dad="dad", mom="mom", sex="female"),
        ])
        read_groups = ReadGroups.from_records([
            {"name": "L1", "sample": "gdad"},
            {"name": "L2", "sample": "kid"},
        ])
        graph, ok = build(pedigree, read_groups, mu=1e-8)
        assert ok
        assert "GL/dad" in graph.labels
        assert "GL/gmom" in graph.labels
        assert "LB/L1" in graph.labels and "LB/L2" in graph.labels

    def test_no_libraries_fails(self, trio_pedigree):
        graph, ok = build(trio_pedigree, ReadGroups([]), mu=1e-8)
        assert not ok
        assert "library" in graph.error
        with pytest.raises(RuntimeError):
            graph.create_workspace()


class TestInvalidPedigrees:
    """Test construction failures."""

    def test_missing_parent(self, trio_read_groups):
        pedigree = Pedigree([Member("child", dad="ghost")])
        graph, ok = build(pedigree, trio_read_groups)
        assert not ok
        assert "ghost" in graph.error

    def test_cycle(self):
        pedigree = Pedigree([
            Member("a", dad="b", sex="male"),
            Member("b", dad="a", sex="male"),
        ])
        read_groups = ReadGroups.from_records([
            {"name": "L1", "sample": "a"},
            {"name": "L2", "sample": "b"},
        ])
        graph, ok = build(pedigree, read_groups)
        assert not ok
        assert "cycle" in graph.error

    def test_inbreeding_loop(self):
        pedigree = Pedigree([
            Member("d", sex="male"),
            Member("m", sex="female"),
            Member("c1", dad="d", mom="m", sex="male"),
            Member("c2", dad="d", mom="m", sex="female"),
            Member("g", dad="c1", mom="c2", sex="female"),
        ])
        read_groups = ReadGroups.from_records(
            [{"name": f"L{i}", "sample": s} for i, s in enumerate(["d", "m", "c1", "c2", "g"])]
        )
        graph, ok = build(pedigree, read_groups)
        assert not ok
        assert "loop" in graph.error

    def test_parent_sex_mismatch(self, trio_read_groups):
        pedigree = Pedigree([
            Member("dad", sex="female"),
            Member("mom", sex="female"),
            Member("child", dad="dad", mom="mom"),
        ])
        graph, ok = build(pedigree, trio_read_groups)
        assert not ok
        assert "father" in graph.error

    def test_duplicate_sample(self):
        pedigree = Pedigree([Member("a", samples="x"), Member("b", samples="x")])
        graph, ok = build(pedigree, ReadGroups.from_records([{"name": "L", "sample": "x"}]))
        assert not ok
        assert "Duplicate sample" in graph.error

    def test_negative_rate(self, trio_pedigree, trio_read_groups):
        graph, ok = build(trio_pedigree, trio_read_groups, mu=-1.0)
        assert not ok
        assert "mu" in graph.error

    def test_unknown_model(self, trio_pedigree, trio_read_groups):
        graph, ok = build(trio_pedigree, trio_read_groups, InheritanceModel.UNKNOWN)
        assert not ok

    def test_failure_leaves_read_groups_untouched(self, trio_pedigree):
        read_groups = ReadGroups.from_records([
            {"name": "LB1", "sample": "dad"},
            {"name": "LB9", "sample": "nobody"},
        ])
        graph, ok = build(trio_pedigree, read_groups, InheritanceModel.UNKNOWN)
        assert not ok
        assert read_groups.names == ["LB1", "LB9"]


class TestInheritanceModels:
    """Test model-specific pruning and ploidy."""

    def test_x_linked_son_is_haploid(self, trio_pedigree, trio_read_groups):
        graph, ok = build(trio_pedigree, trio_read_groups, InheritanceModel.X_LINKED, mu=1e-8)
        assert ok
        child = graph.labels.index("GL/child")
        assert graph.ploidies[graph.labels.index("GL/dad")] == 1
        assert graph.ploidies[graph.labels.index("GL/mom")] == 2
        assert graph.ploidies[child] == 1
        assert not graph.transitions[child].is_trio
        assert graph.transitions[child].parent1 == graph.labels.index("GL/mom")
        assert graph.reset_nodes == [graph.labels.index("GL/mom")]

    def test_x_linked_daughter_keeps_both_parents(self, trio_records, trio_read_groups):
        trio_records[2]["sex"] = "female"
        graph, ok = build(Pedigree.from_records(trio_records), trio_read_groups,
                          InheritanceModel.X_LINKED, mu=1e-8)
        assert ok
        child = graph.labels.index("GL/child")
        assert graph.ploidies[child] == 2
        assert graph.transitions[child].is_trio

    def test_sex_linked_needs_sexes(self, trio_records, trio_read_groups):
        trio_records[2]["sex"] = None
        graph, ok = build(Pedigree.from_records(trio_records), trio_read_groups,
                          InheritanceModel.X_LINKED)
        assert not ok
        assert "child" in graph.error

    def test_y_linked_drops_females(self, trio_pedigree, trio_read_groups):
        graph, ok = build(trio_pedigree, trio_read_groups, InheritanceModel.Y_LINKED, mu=1e-8)
        assert ok
        assert "GL/mom" not in graph.labels
        assert graph.keep_library_index == [0, 2]
        assert trio_read_groups.names == ["LB1", "LB3"]
        assert set(graph.ploidies) == {1}

    def test_maternal_ignores_father(self, trio_pedigree, trio_read_groups):
        graph, ok = build(trio_pedigree, trio_read_groups, InheritanceModel.MATERNAL, mu=1e-8)
        assert ok
        child = graph.transitions[graph.labels.index("GL/child")]
        assert child.parents == (graph.labels.index("GL/mom"),)
        assert set(graph.ploidies) == {1}
        # the father only explains his own library
        assert len(graph.roots) == 2

    def test_paternal_ignores_mother(self, trio_pedigree, trio_read_groups):
        graph, ok = build(trio_pedigree, trio_read_groups, InheritanceModel.PATERNAL, mu=1e-8)
        assert ok
        child = graph.transitions[graph.labels.index("GL/child")]
        assert child.parents == (graph.labels.index("GL/dad"),)

    def test_w_linked_drops_males(self, trio_records, trio_read_groups):
        trio_records[2]["sex"] = "female"
        graph, ok = build(Pedigree.from_records(trio_records), trio_read_groups,
                          InheritanceModel.W_LINKED, mu=1e-8)
        assert ok
        assert "GL/dad" not in graph.labels
        child = graph.transitions[graph.labels.index("GL/child")]
        assert child.parents == (graph.labels.index("GL/mom"),)

    def test_z_linked_daughter_from_father(self, trio_records, trio_read_groups):
        trio_records[2]["sex"] = "female"
        graph, ok = build(Pedigree.from_records(trio_records), trio_read_groups,
                          InheritanceModel.Z_LINKED, mu=1e-8)
        assert ok
        child = graph.labels.index("GL/child")
        assert graph.ploidies[child] == 1
        assert graph.transitions[child].parents == (graph.labels.index("GL/dad"),)


class TestPipelineSteps:
    """Test individual construction steps."""

    def test_parse_pedigree(self, trio_pedigree):
        graph = parse_pedigree(trio_pedigree)
        labels = sorted(v.label for v in graph.vertices.values())
        assert labels == ["GL/child", "GL/dad", "GL/mom", "SM/child", "SM/dad", "SM/mom"]
        germline = [e for e in graph.edges if e.kind is EdgeType.GERMLINE]
        assert len(germline) == 2
        assert {e.slot for e in germline} == {0, 1}

    def test_phantom_parent(self):
        pedigree = Pedigree([Member("mom", sex="female"), Member("kid", mom="mom")])
        graph = parse_pedigree(pedigree)
        graph = prune_for_model(graph, InheritanceModel.AUTOSOMAL)
        graph = add_phantom_parents(graph, InheritanceModel.AUTOSOMAL)
        labels = {v.label for v in graph.vertices.values()}
        assert "GL/kid/dad" in labels

    def test_phantom_parent_in_graph(self):
        pedigree = Pedigree([Member("mom", sex="female"), Member("kid", mom="mom")])
        read_groups = ReadGroups.from_records([
            {"name": "L1", "sample": "mom"},
            {"name": "L2", "sample": "kid"},
        ])
        graph, ok = build(pedigree, read_groups, mu=1e-8)
        assert ok
        assert graph.labels[:2] == ["GL/mom", "GL/kid/dad"]
        assert graph.transitions[graph.labels.index("GL/kid")].is_trio

    def test_simplify_collapses_chains(self):
        pedigree = Pedigree([Member("a", samples="(blood,skin)soma;")])
        read_groups = ReadGroups.from_records([{"name": "L1", "sample": "blood"}])
        graph = parse_pedigree(pedigree)
        graph = prune_for_model(graph, InheritanceModel.AUTOSOMAL)
        graph, missing = add_libraries(graph, read_groups)
        assert missing == []
        graph = update_edge_lengths(graph, 1e-8, 1e-3, 1e-4)
        graph = simplify_pedigree(graph)
        assert graph.of_kind(VertexType.SOMATIC) == []
        (edge,) = graph.edges
        assert edge.kind is EdgeType.LIBRARY
        assert edge.length == pytest.approx(2 * 1e-3 + 1e-4)

    def test_simplify_keeps_branching_tissue(self):
        pedigree = Pedigree([Member("a", samples="(blood,skin)soma;")])
        read_groups = ReadGroups.from_records([
            {"name": "L1", "sample": "blood"},
            {"name": "L2", "sample": "skin"},
        ])
        graph, ok = build(pedigree, read_groups, mu=1e-8, mu_somatic=1e-3, mu_library=1e-4)
        assert ok
        assert graph.labels == ["GL/a", "SM/soma", "LB/L1", "LB/L2"]
        assert graph.somatic_nodes == (1, 2)
        assert graph.transitions[2].length1 == pytest.approx(1e-3 + 1e-4)

    def test_zero_length_somatic_edges_merge(self):
        pedigree = Pedigree([Member("a", samples="(blood,skin)soma;")])
        read_groups = ReadGroups.from_records([
            {"name": "L1", "sample": "blood"},
            {"name": "L2", "sample": "skin"},
        ])
        graph, ok = build(pedigree, read_groups, mu=1e-8, mu_somatic=0.0, mu_library=1e-4)
        assert ok
        assert graph.labels == ["GL/a", "LB/L1", "LB/L2"]

    def test_number_nodes_follows_library_order(self, trio_pedigree, trio_read_groups):
        graph = parse_pedigree(trio_pedigree)
        graph = prune_for_model(graph, InheritanceModel.AUTOSOMAL)
        graph, _ = add_libraries(graph, trio_read_groups)
        graph = simplify_pedigree(update_edge_lengths(graph, 1e-8, 0.0, 0.0))
        layout = number_nodes(graph, ["LB3", "LB1", "LB2"])
        assert layout.labels[3:] == ("LB/LB3", "LB/LB1", "LB/LB2")

    def test_families_and_ops(self, trio_graph):
        families = create_families(trio_graph.transitions)
        ops, members, roots = create_peeling_ops(families)
        assert ops == trio_graph.peeling_ops
        assert roots == trio_graph.roots

    def test_loop_raises(self):
        families = [((0, 1), (2, 3)), ((2, 3), (4,))]
        with pytest.raises(PedigreeError):
            create_peeling_ops(families)
