import pytest

from fakes import FakeExecutor
from org_graph.services.graph import (
    create_transfer_relationships_queries,
    get_node_relationship_names,
    transfer_relationships,
)

SOURCE = "10c547d2-6383-41e1-9430-2f543321587f"
TARGET = "3977bc1c-1026-45f0-b7db-d91ff25770fb"


def test_discovery_of_node_without_relationships_is_empty():
    outgoing, incoming = get_node_relationship_names(FakeExecutor(), SOURCE)
    assert outgoing == set()
    assert incoming == set()


def test_discovery_splits_by_direction_and_dedupes():
    ex = FakeExecutor(
        outgoing={SOURCE: ["MENTIONS", "MENTIONS", "SUB_ORGANISATION_OF"]},
        incoming={SOURCE: ["ABOUT"]},
    )
    outgoing, incoming = get_node_relationship_names(ex, SOURCE)
    assert outgoing == {"MENTIONS", "SUB_ORGANISATION_OF"}
    assert incoming == {"ABOUT"}
    # Two reads, uuid bound as a parameter
    assert len(ex.reads) == 2
    assert all(params == {"uuid": SOURCE} for _q, params in ex.reads)
    assert all(SOURCE not in q for q, _p in ex.reads)


def test_discovery_error_propagates():
    class Boom(FakeExecutor):
        def execute_read(self, query, parameters=None):
            raise ConnectionError("unreachable")

    with pytest.raises(ConnectionError):
        get_node_relationship_names(Boom(), SOURCE)


def test_empty_source_builds_empty_batch():
    assert create_transfer_relationships_queries(FakeExecutor(), SOURCE, TARGET) == []


def test_batch_has_one_statement_per_type_and_direction():
    ex = FakeExecutor(
        outgoing={SOURCE: ["TEST_RELATIONSHIP_2", "B_REL", "TEST_RELATIONSHIP_2"]},
        incoming={SOURCE: ["TEST_RELATIONSHIP_1"]},
    )
    batch = create_transfer_relationships_queries(ex, SOURCE, TARGET)
    assert len(batch) == 3

    # Outgoing first (sorted), then incoming
    assert "-[oldRel:B_REL]->(p)" in batch[0].query
    assert "-[oldRel:TEST_RELATIONSHIP_2]->(p)" in batch[1].query
    assert "<-[oldRel:TEST_RELATIONSHIP_1]-(p)" in batch[2].query
    assert "CREATE (newNode)<-[newRel:TEST_RELATIONSHIP_1]-(farNode)" in batch[2].query

    for stmt in batch:
        assert stmt.parameters == {"source_uuid": SOURCE, "target_uuid": TARGET}
        assert SOURCE not in stmt.query and TARGET not in stmt.query
        # Copy and delete happen in the same statement
        assert "SET newRel = properties(oldRel)" in stmt.query
        assert stmt.query.rstrip().endswith("DELETE oldRel")

    # Building performs no mutation
    assert ex.batches == []


def test_unusual_type_names_are_quoted():
    ex = FakeExecutor(outgoing={SOURCE: ["has-part", "we`ird"]})
    batch = create_transfer_relationships_queries(ex, SOURCE, TARGET)
    queries = " ".join(s.query for s in batch)
    assert "[oldRel:`has-part`]" in queries
    assert "[oldRel:`we``ird`]" in queries


def test_trailing_newline_type_name_is_quoted():
    ex = FakeExecutor(outgoing={SOURCE: ["FOO\n"]})
    (stmt,) = create_transfer_relationships_queries(ex, SOURCE, TARGET)
    assert "[oldRel:`FOO\n`]" in stmt.query
    assert "[newRel:`FOO\n`]" in stmt.query


def test_self_loop_is_repointed_at_target():
    ex = FakeExecutor(outgoing={SOURCE: ["SAME_AS"]}, incoming={SOURCE: ["SAME_AS"]})
    batch = create_transfer_relationships_queries(ex, SOURCE, TARGET)
    assert len(batch) == 2
    for stmt in batch:
        assert "CASE WHEN p = oldNode THEN newNode ELSE p END AS farNode" in stmt.query
    assert "CREATE (newNode)-[newRel:SAME_AS]->(farNode)" in batch[0].query
    assert "CREATE (newNode)<-[newRel:SAME_AS]-(farNode)" in batch[1].query


def test_same_source_and_target_rejected():
    ex = FakeExecutor(outgoing={SOURCE: ["MENTIONS"]})
    with pytest.raises(ValueError):
        create_transfer_relationships_queries(ex, SOURCE, SOURCE)
    assert ex.reads == []


def test_discovery_failure_yields_no_batch():
    class Boom(FakeExecutor):
        def execute_read(self, query, parameters=None):
            raise RuntimeError("malformed query")

    ex = Boom()
    with pytest.raises(RuntimeError, match="malformed"):
        transfer_relationships(ex, SOURCE, TARGET)
    assert ex.batches == []


def test_transfer_executes_single_batch():
    ex = FakeExecutor(outgoing={SOURCE: ["MENTIONS"]}, incoming={SOURCE: ["ABOUT"]})
    n = transfer_relationships(ex, SOURCE, TARGET)
    assert n == 2
    assert len(ex.batches) == 1
    queries = [q for q, _p in ex.batches[0]]
    assert "MENTIONS" in queries[0]
    assert "ABOUT" in queries[1]


def test_second_transfer_is_a_no_op():
    ex = FakeExecutor()
    assert transfer_relationships(ex, SOURCE, TARGET) == 0
    assert ex.batches == []
