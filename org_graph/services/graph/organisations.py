import logging
from typing import Any, Dict, List, Optional

from org_graph.db.neo4j_connector import GraphExecutor
from org_graph.models.organisation import CypherStatement, Organisation
from .relationship_transfer import create_transfer_relationships_queries

logger = logging.getLogger(__name__)

# Extra labels per organisation type; fixed set, safe to inline.
TYPE_LABELS = {
    "Organisation": "",
    "Company": ":Company",
    "PublicCompany": ":Company:PublicCompany",
}

# Links owned by the organisation record itself (rewritten on every write).
OWNED_LINKS = "SUB_ORGANISATION_OF|HAS_CLASSIFICATION"


def initialise_constraints(executor: GraphExecutor) -> None:
    """Ensure a node uuid uniquely names one Thing."""
    executor.execute_batch([
        ("CREATE CONSTRAINT thing_uuid IF NOT EXISTS FOR (n:Thing) REQUIRE n.uuid IS UNIQUE", {}),
    ])


def _write_statements(org: Organisation) -> List[CypherStatement]:
    params = {"uuid": org.uuid}
    statements = [
        CypherStatement(
            query=(
                "MERGE (n:Thing {uuid: $uuid}) "
                "SET n = $props "
                "REMOVE n:Company:PublicCompany "
                f"SET n:Concept:Organisation{TYPE_LABELS[org.type]}"
            ),
            parameters={"uuid": org.uuid, "props": org.node_properties()},
        ),
        CypherStatement(
            query=(
                "MATCH (n:Thing {uuid: $uuid}) "
                f"OPTIONAL MATCH (n)-[r:{OWNED_LINKS}]->() "
                "DELETE r"
            ),
            parameters=params,
        ),
        CypherStatement(
            query=(
                "MATCH (n:Thing {uuid: $uuid}) "
                "OPTIONAL MATCH (n)<-[:IDENTIFIES]-(i:Identifier) "
                "DETACH DELETE i"
            ),
            parameters=params,
        ),
    ]
    if org.parent_organisation:
        statements.append(CypherStatement(
            query=(
                "MATCH (n:Thing {uuid: $uuid}) "
                "MERGE (p:Thing {uuid: $parent}) "
                "MERGE (n)-[:SUB_ORGANISATION_OF]->(p)"
            ),
            parameters={"uuid": org.uuid, "parent": org.parent_organisation},
        ))
    if org.industry_classification:
        statements.append(CypherStatement(
            query=(
                "MATCH (n:Thing {uuid: $uuid}) "
                "MERGE (c:Thing {uuid: $classification}) "
                "MERGE (n)-[:HAS_CLASSIFICATION]->(c)"
            ),
            parameters={"uuid": org.uuid, "classification": org.industry_classification},
        ))
    if org.identifiers:
        statements.append(CypherStatement(
            query=(
                "MATCH (n:Thing {uuid: $uuid}) "
                "UNWIND $identifiers AS ident "
                "CREATE (i:Identifier {authority: ident.authority, value: ident.identifier_value})-[:IDENTIFIES]->(n)"
            ),
            parameters={"uuid": org.uuid, "identifiers": [i.model_dump() for i in org.identifiers]},
        ))
    return statements


def write_organisation(executor: GraphExecutor, org: Organisation) -> Dict[str, Any]:
    """Create or replace an organisation node and the links it owns, atomically."""
    statements = _write_statements(org)
    executor.execute_batch([s.as_tuple() for s in statements])
    return {"uuid": org.uuid, "type": org.type}


def _type_from_labels(labels: List[str]) -> str:
    if "PublicCompany" in labels:
        return "PublicCompany"
    if "Company" in labels:
        return "Company"
    return "Organisation"


def read_organisation(executor: GraphExecutor, uuid: str) -> Optional[Organisation]:
    """Fetch a single organisation by uuid. Returns None if not found."""
    rows = executor.execute_read(
        (
            "MATCH (n:Thing:Organisation {uuid: $uuid}) "
            "OPTIONAL MATCH (n)-[:SUB_ORGANISATION_OF]->(p:Thing) "
            "OPTIONAL MATCH (n)-[:HAS_CLASSIFICATION]->(c:Thing) "
            "OPTIONAL MATCH (i:Identifier)-[:IDENTIFIES]->(n) "
            "RETURN n AS node, labels(n) AS labels, p.uuid AS parent, c.uuid AS classification, "
            "collect(DISTINCT {authority: i.authority, identifier_value: i.value}) AS identifiers"
        ),
        {"uuid": uuid},
    )
    if not rows:
        return None
    row = rows[0]
    props = dict(row.get("node") or {})
    props["uuid"] = uuid
    return Organisation.from_node_properties(
        props,
        type=_type_from_labels(row.get("labels") or []),
        parent_organisation=row.get("parent"),
        industry_classification=row.get("classification"),
        # collect() over an unmatched OPTIONAL MATCH yields maps of nulls
        identifiers=[i for i in row.get("identifiers") or [] if i.get("authority")],
    )


def _delete_statements(uuid: str) -> List[CypherStatement]:
    params = {"uuid": uuid}
    return [
        CypherStatement(
            query=(
                "MATCH (n:Thing {uuid: $uuid}) "
                "OPTIONAL MATCH (n)<-[:IDENTIFIES]-(i:Identifier) "
                "DETACH DELETE i"
            ),
            parameters=params,
        ),
        CypherStatement(
            query=(
                "MATCH (n:Thing {uuid: $uuid}) "
                f"OPTIONAL MATCH (n)-[r:{OWNED_LINKS}]->() "
                "DELETE r"
            ),
            parameters=params,
        ),
        # Other writers may still point at this uuid: keep a bare Thing for them.
        CypherStatement(
            query=(
                "MATCH (n:Thing {uuid: $uuid}) "
                "REMOVE n:Concept:Organisation:Company:PublicCompany "
                "SET n = {uuid: $uuid}"
            ),
            parameters=params,
        ),
        CypherStatement(
            query="MATCH (n:Thing {uuid: $uuid}) WHERE NOT (n)--() DELETE n",
            parameters=params,
        ),
    ]


def delete_organisation(executor: GraphExecutor, uuid: str) -> bool:
    """Delete an organisation. Returns False when no such organisation exists."""
    found = executor.execute_read(
        "MATCH (n:Thing:Organisation {uuid: $uuid}) RETURN n.uuid AS uuid", {"uuid": uuid}
    )
    if not found:
        return False
    executor.execute_batch([s.as_tuple() for s in _delete_statements(uuid)])
    return True


def count_organisations(executor: GraphExecutor) -> int:
    rows = executor.execute_read("MATCH (n:Organisation) RETURN count(n) AS cnt")
    return int((rows[0].get("cnt") if rows else 0) or 0)


def merge_organisations(executor: GraphExecutor, source_uuid: str, target_uuid: str) -> Dict[str, Any]:
    """Fold source_uuid into target_uuid.

    Every relationship of the source (including its identifiers and owned
    links) is moved onto the target and the emptied source node is removed,
    all in one transaction.
    """
    for uuid in (source_uuid, target_uuid):
        if read_organisation(executor, uuid) is None:
            raise ValueError(f"Organisation not found: {uuid}")

    statements = create_transfer_relationships_queries(executor, source_uuid, target_uuid)
    statements.append(CypherStatement(
        query="MATCH (n:Thing {uuid: $uuid}) WHERE NOT (n)--() DELETE n",
        parameters={"uuid": source_uuid},
    ))
    executor.execute_batch([s.as_tuple() for s in statements])
    logger.info("Merged organisation %s into %s (%d statements)", source_uuid, target_uuid, len(statements))
    return {"source": source_uuid, "target": target_uuid, "statements": len(statements)}
