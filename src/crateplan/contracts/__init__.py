"""JSON schemas for workspace/toolchain inputs and CLI output payloads."""
