"""
Graph Module for Hybrid Search
Read-only access to the product relationship graph in Memgraph
"""

from .relationship_store import RelationshipStore, ProductSignals

__all__ = ["RelationshipStore", "ProductSignals"]
