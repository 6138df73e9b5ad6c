"""Core domain models and services for the CloudTrail alert stack builder."""

from .models import DependencyEdge, PolicyStatement, ResourceDeclaration, ResourceGraph, ResourceKind

__all__ = ["DependencyEdge", "PolicyStatement", "ResourceDeclaration", "ResourceGraph", "ResourceKind"]
