from linkgraph.graph import GraphAssembler, GraphEdge, GraphNode


def test_add_node_is_idempotent_first_writer_wins():
    g = GraphAssembler()
    assert g.add_node(GraphNode("https://a.com/", "A", "https://a.com/favicon.ico"))
    assert not g.add_node(GraphNode("https://a.com/", "Other title", None))
    snap = g.snapshot()
    assert len(snap.nodes) == 1
    assert snap.nodes[0].title == "A"
    assert snap.nodes[0].favicon == "https://a.com/favicon.ico"


def test_duplicate_edges_collapse():
    g = GraphAssembler()
    g.add_node(GraphNode("https://a.com/", "A"))
    g.add_node(GraphNode("https://b.com/", "B"))
    g.add_edge(GraphEdge("https://a.com/", "https://b.com/"))
    g.add_edge(GraphEdge("https://a.com/", "https://b.com/"))
    g.add_edge(GraphEdge("https://b.com/", "https://a.com/"))
    assert g.snapshot().edge_pairs() == {
        ("https://a.com/", "https://b.com/"),
        ("https://b.com/", "https://a.com/"),
    }
    assert len(g.snapshot().edges) == 2


def test_snapshot_drops_dangling_edges():
    g = GraphAssembler()
    g.add_node(GraphNode("https://a.com/", "A"))
    g.add_edge(GraphEdge("https://a.com/", "https://missing.com/"))
    g.add_edge(GraphEdge("https://ghost.com/", "https://a.com/"))
    snap = g.snapshot()
    assert snap.edges == []
    assert snap.node_ids() == {"https://a.com/"}
