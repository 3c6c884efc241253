"""Tests for the dependency / critical-path engine."""
import pytest

from forge_server.graph import (
    DependencyGraph,
    MemoryNodeSource,
    SqlNodeSource,
    build_dependency_graph,
    get_blocked_tasks,
    get_critical_path,
    get_would_unblock,
    is_satisfied,
    would_create_cycle,
)
from forge_server.nodes import (
    ComponentNode,
    DecisionNode,
    NoteNode,
    SubsystemNode,
    TaskNode,
)


def task(node_id: str, status: str = "pending", depends_on=()) -> TaskNode:
    return TaskNode(id=node_id, title=node_id, status=status, depends_on=list(depends_on))


def ids(nodes) -> list[str]:
    return [n.id for n in nodes]


# ── Graph builder ───────────────────────────────────────────────────


def test_build_graph_only_tasks_are_vertices():
    """Non-task nodes never become vertices but can be edge sources."""
    nodes = [
        DecisionNode(id="d1"),
        task("t1", depends_on=["d1"]),
        task("t2", depends_on=["t1", "ghost"]),
        NoteNode(id="n1"),
    ]
    graph = build_dependency_graph(nodes)

    assert graph.nodes == {"t1", "t2"}
    assert graph.edges == {"d1": {"t1"}, "t1": {"t2"}, "ghost": {"t2"}}


def test_build_graph_empty():
    graph = build_dependency_graph([])
    assert graph == DependencyGraph()


def test_build_graph_accepts_mapping():
    nodes = {"t1": task("t1"), "t2": task("t2", depends_on=["t1"])}
    graph = build_dependency_graph(nodes)
    assert graph.dependents_of("t1") == {"t2"}
    assert graph.dependents_of("t2") == set()


def test_build_graph_returns_fresh_value():
    nodes = [task("t1"), task("t2", depends_on=["t1"])]
    first = build_dependency_graph(nodes)
    first.edges["t1"].add("mutated")
    second = build_dependency_graph(nodes)
    assert second.edges["t1"] == {"t2"}


# ── Cycle detector ──────────────────────────────────────────────────


def test_self_dependency_is_cycle():
    graph = build_dependency_graph([task("t1")])
    assert would_create_cycle(graph, "t1", "t1") is True
    # Also for ids that are not in the graph at all
    assert would_create_cycle(graph, "missing", "missing") is True


def test_cycle_scenario_chain():
    """T1 -> T2 -> T3: T1 depending on T3 closes a loop, T2 on T4 does not."""
    nodes = [
        task("T1"),
        task("T2", depends_on=["T1"]),
        task("T3", depends_on=["T2"]),
        task("T4"),
    ]
    graph = build_dependency_graph(nodes)

    assert would_create_cycle(graph, "T3", "T1") is True
    assert would_create_cycle(graph, "T4", "T2") is False


def test_reachable_implies_cycle():
    """If Y is reachable from X, X depending on Y must be rejected."""
    nodes = [
        task("a"),
        task("b", depends_on=["a"]),
        task("c", depends_on=["b"]),
        task("d", depends_on=["a", "c"]),
    ]
    graph = build_dependency_graph(nodes)
    for x, y in [("a", "b"), ("a", "c"), ("a", "d"), ("b", "d"), ("c", "d")]:
        # y reachable from x, so x depending on y would close a cycle
        assert would_create_cycle(graph, y, x) is True
        # the reverse direction is just a redundant edge
        assert would_create_cycle(graph, x, y) is False


def test_cycle_through_diamond_with_shared_descendants():
    """Visited set keeps the search linear on diamonds."""
    nodes = [task("root")]
    layer = []
    for i in range(50):
        nodes.append(task(f"m{i}", depends_on=["root"]))
        layer.append(f"m{i}")
    nodes.append(task("sink", depends_on=layer))
    graph = build_dependency_graph(nodes)

    assert would_create_cycle(graph, "sink", "root") is True
    assert would_create_cycle(graph, "root", "sink") is False


def test_long_chain_has_no_recursion_limit():
    """A chain far deeper than the recursion limit is still searched."""
    n = 5000
    nodes = [task("t0")] + [task(f"t{i}", depends_on=[f"t{i - 1}"]) for i in range(1, n)]
    graph = build_dependency_graph(nodes)
    assert would_create_cycle(graph, f"t{n - 1}", "t0") is True


def test_cycle_through_non_task_dependency():
    """Edges out of a decision are followed like any other."""
    nodes = [DecisionNode(id="d1"), task("t1", depends_on=["d1"])]
    graph = build_dependency_graph(nodes)
    assert would_create_cycle(graph, "t1", "d1") is True


# ── Satisfaction rule ───────────────────────────────────────────────


@pytest.mark.parametrize(
    "node, expected",
    [
        (None, True),
        (task("t", "complete"), True),
        (task("t", "in_progress"), False),
        (task("t", "blocked"), False),
        (DecisionNode(id="d", status="selected"), True),
        (DecisionNode(id="d", status="pending"), False),
        (DecisionNode(id="d", status="superseded"), False),
        (ComponentNode(id="c", status="pending"), True),
        (NoteNode(id="n"), True),
        (SubsystemNode(id="s", status="planning"), True),
    ],
)
def test_is_satisfied(node, expected):
    assert is_satisfied(node) is expected


# ── Blocked tasks ───────────────────────────────────────────────────


def test_blocked_tasks_basic():
    nodes = [
        task("t1"),
        task("t2", depends_on=["t1"]),
        task("t3", "complete"),
        task("t4", depends_on=["t3"]),
    ]
    assert ids(get_blocked_tasks(nodes)) == ["t2"]


def test_blocked_tasks_never_include_complete_task():
    nodes = [task("t1"), task("t2", "complete", depends_on=["t1"])]
    assert get_blocked_tasks(nodes) == []


def test_blocked_tasks_dangling_and_non_task_dependencies_are_satisfied():
    nodes = [
        ComponentNode(id="c1", status="pending"),
        NoteNode(id="n1"),
        task("t1", depends_on=["c1", "n1", "deleted-node"]),
    ]
    assert get_blocked_tasks(nodes) == []


def test_blocked_tasks_preserve_collection_order():
    nodes = [
        task("z", depends_on=["blocker"]),
        task("blocker"),
        task("a", depends_on=["blocker"]),
    ]
    assert ids(get_blocked_tasks(nodes)) == ["z", "a"]


def test_decision_scenario():
    """A pending decision blocks its dependent; selecting it unblocks."""
    pending = [DecisionNode(id="D"), task("T", depends_on=["D"])]
    assert ids(get_blocked_tasks(pending)) == ["T"]
    assert ids(get_would_unblock(pending, "D")) == ["T"]

    selected = [DecisionNode(id="D", status="selected", selected="opt-a"), task("T", depends_on=["D"])]
    assert get_blocked_tasks(selected) == []


# ── Critical path ───────────────────────────────────────────────────


def test_critical_path_empty():
    assert get_critical_path([]) == []
    assert get_critical_path([task("t1", "complete")]) == []
    assert get_critical_path([NoteNode(id="n1")]) == []


def test_critical_path_single_task():
    assert ids(get_critical_path([task("solo")])) == ["solo"]


def test_critical_path_chain_with_independent_task():
    """T1 -> T2 -> T3 plus independent T4."""
    nodes = [
        task("T1"),
        task("T2", depends_on=["T1"]),
        task("T3", depends_on=["T2"]),
        task("T4"),
    ]
    assert ids(get_critical_path(nodes)) == ["T1", "T2", "T3"]


def test_critical_path_skips_completed_tasks():
    """T1 complete, T2 -> T3: the path starts at T2."""
    nodes = [
        task("T1", "complete"),
        task("T2", depends_on=["T1"]),
        task("T3", depends_on=["T2"]),
    ]
    path = get_critical_path(nodes)
    assert ids(path) == ["T2", "T3"]
    assert all(t.status != "complete" for t in path)


def test_critical_path_prefers_longest_branch():
    nodes = [
        task("a"),
        task("b", depends_on=["a"]),
        task("x"),
        task("y", depends_on=["x"]),
        task("z", depends_on=["y", "b"]),
        task("w", depends_on=["z"]),
    ]
    # a->b->z->w and x->y->z->w tie at 4; z's predecessor is the first to
    # reach length 3 in Kahn order.
    path = ids(get_critical_path(nodes))
    assert len(path) == 4
    assert path[-2:] == ["z", "w"]


def test_critical_path_tie_break_is_collection_order():
    nodes = [
        task("p1"),
        task("p2", depends_on=["p1"]),
        task("q1"),
        task("q2", depends_on=["q1"]),
    ]
    assert ids(get_critical_path(nodes)) == ["p1", "p2"]
    reordered = [nodes[2], nodes[3], nodes[0], nodes[1]]
    assert ids(get_critical_path(reordered)) == ["q1", "q2"]


def test_critical_path_ignores_non_task_and_missing_dependencies():
    nodes = [
        DecisionNode(id="d1"),
        task("t1", depends_on=["d1", "ghost"]),
        task("t2", depends_on=["t1"]),
    ]
    assert ids(get_critical_path(nodes)) == ["t1", "t2"]


def test_critical_path_with_stored_cycle_returns_reachable_part():
    """Tasks on a stored cycle are never reached; the rest still counts."""
    nodes = [
        task("c1", depends_on=["c2"]),
        task("c2", depends_on=["c1"]),
        task("free"),
    ]
    assert ids(get_critical_path(nodes)) == ["free"]


def test_critical_path_all_cyclic_is_empty():
    nodes = [task("c1", depends_on=["c2"]), task("c2", depends_on=["c1"])]
    assert get_critical_path(nodes) == []


# ── Unblock predictor ───────────────────────────────────────────────


def test_would_unblock_last_prerequisite():
    """T3 depends on [T1, T2] with T2 complete: completing T1 unblocks T3."""
    nodes = [
        task("T1"),
        task("T2", "complete"),
        task("T3", depends_on=["T1", "T2"]),
    ]
    assert ids(get_would_unblock(nodes, "T1")) == ["T3"]


def test_would_unblock_requires_every_other_dependency_met():
    nodes = [
        task("T1"),
        task("T2"),
        task("T3", depends_on=["T1", "T2"]),
    ]
    assert get_would_unblock(nodes, "T1") == []


def test_would_unblock_ignores_complete_and_unrelated_tasks():
    nodes = [
        task("T1"),
        task("done", "complete", depends_on=["T1"]),
        task("other"),
        task("T2", depends_on=["T1", "ghost"]),
    ]
    assert ids(get_would_unblock(nodes, "T1")) == ["T2"]


def test_would_unblock_unknown_id():
    assert get_would_unblock([task("T1")], "nope") == []


# ── Node sources ────────────────────────────────────────────────────


def test_memory_source_dedupes_and_indexes_dependents():
    source = MemoryNodeSource(
        [
            task("a"),
            task("b", depends_on=["a", "a"]),
            task("c", depends_on=["a"]),
        ]
    )
    assert source.list_dependencies("b") == ["a"]
    assert source.list_dependents("a") == ["b", "c"]
    assert source.list_dependencies("missing") == []
    assert source.get_node("missing") is None
    assert len(source) == 3


def test_sql_source_answers_like_memory_source():
    """Same nodes and edges, either source, same answers."""
    nodes = [
        task("t1"),
        task("t2", depends_on=["t1"]),
        task("t3", depends_on=["t2", "t1"]),
        DecisionNode(id="d1"),
        task("t4", depends_on=["d1"]),
    ]
    memory = MemoryNodeSource(nodes)
    sql = SqlNodeSource(
        nodes,
        [("t2", "t1"), ("t3", "t2"), ("t3", "t1"), ("t4", "d1")],
    )

    assert ids(get_blocked_tasks(memory)) == ids(get_blocked_tasks(sql))
    assert ids(get_critical_path(memory)) == ids(get_critical_path(sql))
    assert ids(get_would_unblock(memory, "t1")) == ids(get_would_unblock(sql, "t1"))
    assert build_dependency_graph(memory) == build_dependency_graph(sql)
    for node in nodes:
        assert memory.list_dependents(node.id) == sql.list_dependents(node.id)


def test_queries_do_not_mutate_input():
    nodes = {"t1": task("t1"), "t2": task("t2", depends_on=["t1"])}
    before = {k: v.model_dump() for k, v in nodes.items()}
    get_blocked_tasks(nodes)
    get_critical_path(nodes)
    get_would_unblock(nodes, "t1")
    build_dependency_graph(nodes)
    assert {k: v.model_dump() for k, v in nodes.items()} == before
