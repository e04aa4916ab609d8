"""
lattice_sync - reconciliation engine for VPC Lattice service networking.

Given a desired-state ``Stack`` of service networks, services, listeners,
rules, target groups, targets and policies, the ``StackDeployer`` converges
the remote control plane onto it while only touching resources this
controller instance owns.
"""

from .cache import ReconciliationCache
from .cloud import NetworkingAPI, VpcLatticeAPI
from .config import ControllerSettings, get_config, reset_config, set_config
from .deployer import StackDeployer
from .errors import (
    ConfigurationError,
    ConflictError,
    FatalError,
    InvalidError,
    LatticeSyncError,
    NotFoundError,
    RetryError,
    SynthesisError,
    UnsupportedKindError,
)
from .model import Stack

__version__ = "0.1.0"

__all__ = [
    "ControllerSettings",
    "get_config",
    "set_config",
    "reset_config",
    "NetworkingAPI",
    "VpcLatticeAPI",
    "ReconciliationCache",
    "Stack",
    "StackDeployer",
    "LatticeSyncError",
    "NotFoundError",
    "ConflictError",
    "InvalidError",
    "RetryError",
    "SynthesisError",
    "FatalError",
    "ConfigurationError",
    "UnsupportedKindError",
]
