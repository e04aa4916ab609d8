"""
Remote control plane access.

``NetworkingAPI`` is the capability the managers consume; ``VpcLatticeAPI``
implements it over a boto3 ``vpc-lattice`` client.
"""

from .base import NetworkingAPI
from .vpclattice import VpcLatticeAPI

__all__ = [
    "NetworkingAPI",
    "VpcLatticeAPI",
]
