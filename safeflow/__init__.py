"""Proposal, signing and local simulation of Safe multisig transactions."""

from .client import Client, Instance
from .core.errors import (
    SafeflowError,
    ConfigurationError,
    ShapeError,
    SigningError,
    SimulationRejected,
    ProposalRejected,
    VerificationFailed,
)

__version__ = "0.1.0"

__all__ = [
    "Client",
    "Instance",
    "SafeflowError",
    "ConfigurationError",
    "ShapeError",
    "SigningError",
    "SimulationRejected",
    "ProposalRejected",
    "VerificationFailed",
]
