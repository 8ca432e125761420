from .cascade_node import CascadeNode
from .cascade_chain import CascadeChain

__all__ = [
    'CascadeNode',
    'CascadeChain',
]
