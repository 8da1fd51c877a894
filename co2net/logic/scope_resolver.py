"""Scope resolution: find a block property's effective value.

A property may be set on the block, on its branch, on the branch's group, or
in the network's global table. The innermost level wins and the result records
which level supplied the value. A None value at any level counts as unset.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

from ..models import Block, Branch, Group, Network, ResolvedProperty, Scope
from .query_path import NotFoundError

logger = logging.getLogger(__name__)


@dataclass
class _Context:
    """Everything the level lookups need for one block."""
    network: Network
    branch: Branch
    block: Block
    group: Optional[Group]


def _lookup_block(ctx: _Context, name: str) -> Any:
    return ctx.block.properties.get(name)


def _lookup_branch(ctx: _Context, name: str) -> Any:
    return ctx.branch.properties.get(name)


def _lookup_group(ctx: _Context, name: str) -> Any:
    return ctx.group.properties.get(name) if ctx.group is not None else None


def _lookup_global(ctx: _Context, name: str) -> Any:
    return ctx.network.global_properties.get(name)


# Innermost first. Resolution stops at the first level holding a value.
SCOPE_LOOKUPS: list[tuple[Scope, Callable[[_Context, str], Any]]] = [
    (Scope.BLOCK, _lookup_block),
    (Scope.BRANCH, _lookup_branch),
    (Scope.GROUP, _lookup_group),
    (Scope.GLOBAL, _lookup_global),
]


def find_group_for_branch(network: Network, branch: Branch) -> Optional[Group]:
    """The branch's containing group.

    ``parent_id`` wins when it names a group; otherwise the first group listing
    the branch as a member. Unknown ids are skipped.
    """
    if branch.parent_id:
        parent = network.get_group(branch.parent_id)
        if parent is not None:
            return parent
        logger.debug(f"[Scope] Branch '{branch.id}' has unknown parent '{branch.parent_id}'")
    for group in network.groups():
        if branch.id in group.branches:
            return group
    return None


class ScopeResolver:
    """Resolves properties against one immutable snapshot."""

    def __init__(self, network: Network):
        self.network = network

    def _context(self, branch_id: str, block_index: int) -> _Context:
        branch = self.network.get_branch(branch_id)
        if branch is None:
            raise NotFoundError(f"Branch '{branch_id}' not found")
        if not 0 <= block_index < len(branch.blocks):
            raise NotFoundError(f"Block {block_index} not found on branch '{branch_id}'")
        return _Context(
            network=self.network,
            branch=branch,
            block=branch.blocks[block_index],
            group=find_group_for_branch(self.network, branch),
        )

    def block_at(self, branch_id: str, block_index: int) -> Block:
        """The block at an address; raises NotFoundError for unknown ids and indices."""
        return self._context(branch_id, block_index).block

    @staticmethod
    def _resolve_in(ctx: _Context, name: str) -> Optional[ResolvedProperty]:
        for scope, lookup in SCOPE_LOOKUPS:
            value = lookup(ctx, name)
            if value is not None:
                return ResolvedProperty(value=value, scope=scope)
        return None

    def resolve(self, branch_id: str, block_index: int, name: str) -> Optional[ResolvedProperty]:
        """Effective value of ``name`` for a block, or None when no level sets it."""
        result = self._resolve_in(self._context(branch_id, block_index), name)
        if result is not None:
            logger.debug(f"[Scope] {branch_id}/blocks/{block_index}/{name} <- {result.scope.value}")
        return result

    def resolve_block_properties(self, branch_id: str, block_index: int,
                                 names: Iterable[str]) -> dict[str, ResolvedProperty]:
        """Resolve several properties at once; unresolved names are left out."""
        ctx = self._context(branch_id, block_index)
        results = {}
        for name in names:
            resolved = self._resolve_in(ctx, name)
            if resolved is not None:
                results[name] = resolved
        return results

    def resolve_from_schema(self, branch_id: str, block_index: int,
                            required: Optional[list[str]] = None,
                            optional: Optional[list[str]] = None) -> dict[str, ResolvedProperty]:
        """Resolve a schema's properties, or the block's own fields when there is no schema."""
        names = list(required or []) + list(optional or [])
        if not names:
            block = self._context(branch_id, block_index).block
            names = [name for name, value in block.properties.items() if value is not None]
        return self.resolve_block_properties(branch_id, block_index, names)

    def enriched_block(self, branch_id: str, block_index: int, names: Iterable[str]) -> Block:
        """The block with inherited values filled in where it has none."""
        block = self._context(branch_id, block_index).block
        for name, resolved in self.resolve_block_properties(branch_id, block_index, names).items():
            if block.properties.get(name) is None:
                block = block.with_property(name, resolved.value)
        return block
