"""Workspace manifests and the in-order driver over their target graph."""
