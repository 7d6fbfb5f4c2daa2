"""Workspace provisioning and the manifest registry."""
