"""Vault storage backends.

Provides the collaborator capabilities the sorter relies on:
- InMemoryVault: entries kept in memory, for hosts with their own file tree
- LocalVault: a markdown vault on the local filesystem
"""

from .base import VaultStorage, VaultEntry, VaultFile, VaultFolder
from .memory import InMemoryVault
from .local import LocalVault

__all__ = [
    'VaultStorage',
    'VaultEntry',
    'VaultFile',
    'VaultFolder',
    'InMemoryVault',
    'LocalVault',
]
