"""Tree substrate consumed by the solver."""

from hand_abstraction.solver.arena import Arena, Node, NodeId, StructureError

__all__ = ["Arena", "Node", "NodeId", "StructureError"]
