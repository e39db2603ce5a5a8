"""Move every relationship of one node onto another.

Relationship types are open-ended, so they are discovered from the live graph
before the rewrite statements are generated. The statements only *describe*
the mutation; nothing is written until the caller executes the batch.
"""
import logging
import re
from typing import List, Set, Tuple

from org_graph.db.neo4j_connector import GraphExecutor
from org_graph.models.organisation import CypherStatement

logger = logging.getLogger(__name__)

NODE_LABEL = "Thing"

_PLAIN_TYPE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def _rel_type_token(name: str) -> str:
    """Render a relationship type for inlining into Cypher.

    Types cannot be bound as parameters, so anything that is not a plain
    identifier is backtick-quoted with embedded backticks doubled.
    """
    if _PLAIN_TYPE.fullmatch(name):
        return name
    return "`" + name.replace("`", "``") + "`"


def _type_names(rows) -> Set[str]:
    return {r["name"] for r in rows or [] if r.get("name")}


def get_node_relationship_names(executor: GraphExecutor, uuid: str) -> Tuple[Set[str], Set[str]]:
    """Return (outgoing, incoming) distinct relationship type names of a node.

    A missing node, or one without relationships, yields two empty sets.
    """
    outgoing = _type_names(
        executor.execute_read(
            f"MATCH (n:{NODE_LABEL} {{uuid: $uuid}})-[r]->() RETURN DISTINCT type(r) AS name",
            {"uuid": uuid},
        )
    )
    incoming = _type_names(
        executor.execute_read(
            f"MATCH (n:{NODE_LABEL} {{uuid: $uuid}})<-[r]-() RETURN DISTINCT type(r) AS name",
            {"uuid": uuid},
        )
    )
    logger.debug("Relationship types of %s: outgoing=%s incoming=%s", uuid, sorted(outgoing), sorted(incoming))
    return outgoing, incoming


def _transfer_statement(rel_type: str, outgoing: bool, source_uuid: str, target_uuid: str) -> CypherStatement:
    token = _rel_type_token(rel_type)
    if outgoing:
        match_old = f"MATCH (oldNode:{NODE_LABEL} {{uuid: $source_uuid}})-[oldRel:{token}]->(p) "
        create_new = f"CREATE (newNode)-[newRel:{token}]->(farNode) "
    else:
        match_old = f"MATCH (oldNode:{NODE_LABEL} {{uuid: $source_uuid}})<-[oldRel:{token}]-(p) "
        create_new = f"CREATE (newNode)<-[newRel:{token}]-(farNode) "
    # A self-loop on the source becomes a self-loop on the target.
    query = (
        match_old
        + f"MATCH (newNode:{NODE_LABEL} {{uuid: $target_uuid}}) "
        + "WITH oldRel, newNode, CASE WHEN p = oldNode THEN newNode ELSE p END AS farNode "
        + create_new
        + "SET newRel = properties(oldRel) "
        + "DELETE oldRel"
    )
    return CypherStatement(query=query, parameters={"source_uuid": source_uuid, "target_uuid": target_uuid})


def create_transfer_relationships_queries(
    executor: GraphExecutor, source_uuid: str, target_uuid: str
) -> List[CypherStatement]:
    """Build the batch that moves all relationships from source_uuid to target_uuid.

    One statement per (direction, type). Each statement creates the copy and
    deletes the original in the same query, so relationships are never left
    on neither node. Run the result with executor.execute_batch for an
    all-or-nothing transfer. Discovery errors propagate unchanged.
    """
    if not source_uuid or not target_uuid:
        raise ValueError("source and target uuids are required")
    if source_uuid == target_uuid:
        raise ValueError(f"Cannot transfer relationships of {source_uuid} onto itself")

    outgoing, incoming = get_node_relationship_names(executor, source_uuid)

    statements = [_transfer_statement(t, True, source_uuid, target_uuid) for t in sorted(outgoing)]
    statements += [_transfer_statement(t, False, source_uuid, target_uuid) for t in sorted(incoming)]

    logger.info("Built %d transfer statements from %s to %s", len(statements), source_uuid, target_uuid)
    return statements


def transfer_relationships(executor: GraphExecutor, source_uuid: str, target_uuid: str) -> int:
    """Build and atomically execute a transfer. Returns the statement count."""
    statements = create_transfer_relationships_queries(executor, source_uuid, target_uuid)
    if statements:
        executor.execute_batch([s.as_tuple() for s in statements])
    return len(statements)
