"""Graph domain service package.

All functions are importable at package level.
"""
from .relationship_transfer import (
    get_node_relationship_names,
    create_transfer_relationships_queries,
    transfer_relationships,
)
from .organisations import (
    initialise_constraints,
    write_organisation,
    read_organisation,
    delete_organisation,
    count_organisations,
    merge_organisations,
)

__all__ = [
    # relationship transfer
    'get_node_relationship_names','create_transfer_relationships_queries','transfer_relationships',
    # organisations
    'initialise_constraints','write_organisation','read_organisation','delete_organisation',
    'count_organisations','merge_organisations',
]
