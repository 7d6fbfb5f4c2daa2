"""Global guard -- backups, write policy, and restore for the global token tier.

This package provides the primitives for:
- Backup store: append-only, byte-exact snapshots taken before each mutation
- Global guard: the policy gate every token write passes through
- Restore engine: reversing a mutation from its snapshot
"""
