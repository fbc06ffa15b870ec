"""novelflow.graph

Flow graph reconstruction (FlowData → instruction groups).
"""

from .builder import FlowOffsetError, InstructionGroup, build_graph, graph_to_json

__all__ = [
    "FlowOffsetError",
    "InstructionGroup",
    "build_graph",
    "graph_to_json",
]
