"""Deployment metadata reclamation for the indexing node."""

__version__ = "0.1.0"
