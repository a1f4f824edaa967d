"""Shared runtime helpers: context, logging, structured file loading and path math."""
