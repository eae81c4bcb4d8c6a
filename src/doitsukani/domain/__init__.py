"""Synonym synchronization domain: policies, delta computation and run orchestration."""
