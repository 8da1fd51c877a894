"""Path query language over network snapshots.

Paths are ``/``-separated segments walking network -> nodes -> node -> blocks
-> block -> property::

    network/nodes
    network/edges
    branch-1/blocks
    branch-1/blocks/0
    branch-1/blocks/0/length
    branch-1/blocks[type=Pipe]
    branch-1/blocks/0/length?units=length:km

A bracket filter keeps the elements of an array whose field equals the value,
in their original order. The ``?units=`` suffix is stripped before parsing and
returned as per-property unit overrides.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import unquote

from ..models import Block, Branch, Edge, Group, Network

logger = logging.getLogger(__name__)


class NotFoundError(LookupError):
    """A path segment does not address anything in the snapshot."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class _Missing:
    """Marker for an absent property, distinct from an explicit None."""

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()

_SEGMENT_PATTERN = re.compile(r"^(?P<name>[^\[\]]*)(?:\[(?P<prop>[^=\]]+)=(?P<value>[^\]]*)\])?$")
_UNITS_PATTERN = re.compile(r"[?&]units=([^&]+)")


@dataclass(frozen=True)
class Segment:
    name: str
    filter_property: Optional[str] = None
    filter_value: Optional[str] = None

    @property
    def is_index(self) -> bool:
        return self.name.isdigit() and self.filter_property is None

    @property
    def has_filter(self) -> bool:
        return self.filter_property is not None


@dataclass
class QueryPath:
    """A parsed query: structural segments plus unit overrides."""
    raw: str
    path: str
    segments: list[Segment] = field(default_factory=list)
    unit_overrides: dict[str, str] = field(default_factory=dict)

    @property
    def is_network_path(self) -> bool:
        return bool(self.segments) and self.segments[0].name == "network"

    @property
    def branch_id(self) -> Optional[str]:
        if not self.segments or self.is_network_path:
            return None
        return self.segments[0].name

    @property
    def addresses_blocks(self) -> bool:
        return len(self.segments) >= 2 and self.branch_id is not None and self.segments[1].name == "blocks"

    @property
    def is_filtered(self) -> bool:
        return any(segment.has_filter for segment in self.segments)

    @property
    def block_index(self) -> Optional[int]:
        """Index of a single addressed block, e.g. ``b/blocks/2`` -> 2."""
        if (self.addresses_blocks and not self.segments[1].has_filter
                and len(self.segments) >= 3 and self.segments[2].is_index):
            return int(self.segments[2].name)
        return None

    @property
    def property_name(self) -> Optional[str]:
        """Property addressed by ``b/blocks/<n>/<prop>``."""
        if self.block_index is not None and len(self.segments) == 4:
            return self.segments[3].name
        return None

    @property
    def block_path(self) -> Optional[str]:
        if self.block_index is None:
            return None
        return f"{self.branch_id}/blocks/{self.block_index}"


# =============================================================================
# PARSING
# =============================================================================

def parse_unit_overrides(query: str) -> dict[str, str]:
    """``?units=length:km,diameter:mm`` -> ``{"length": "km", "diameter": "mm"}``."""
    overrides: dict[str, str] = {}
    match = _UNITS_PATTERN.search(query)
    if not match:
        return overrides
    for pair in unquote(match.group(1)).split(","):
        prop, _, unit = pair.partition(":")
        prop, unit = prop.strip(), unit.strip()
        if prop and unit:
            overrides[prop] = unit
    return overrides


def _split_segments(path: str) -> list[str]:
    """Split on ``/`` outside of brackets."""
    parts = []
    depth = 0
    current = []
    for char in path:
        if char == "[":
            depth += 1
        elif char == "]":
            depth = max(depth - 1, 0)
        if char == "/" and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    parts.append("".join(current))
    return parts


def parse_query(query: str) -> QueryPath:
    """Parse a query string. Raises ``NotFoundError`` for a malformed path."""
    path = query.split("?", 1)[0].split("&", 1)[0].strip().strip("/")
    if not path:
        raise NotFoundError("Empty query path", query)

    segments = []
    for text in _split_segments(path):
        match = _SEGMENT_PATTERN.match(text.strip())
        if not match or (not match.group("name") and match.group("prop") is None):
            raise NotFoundError(f"Invalid path segment '{text}'", query)
        prop = match.group("prop")
        segments.append(Segment(
            name=match.group("name"),
            filter_property=prop.strip() if prop is not None else None,
            filter_value=match.group("value").strip() if prop is not None else None,
        ))

    return QueryPath(raw=query, path=path, segments=segments, unit_overrides=parse_unit_overrides(query))


# =============================================================================
# EVALUATION
# =============================================================================

def _node_field(node: Any, name: str) -> Any:
    if name in ("id", "type", "label"):
        return getattr(node, name)
    if isinstance(node, Branch):
        if name == "blocks":
            return list(node.blocks)
        if name in ("parentId", "parent_id"):
            return node.parent_id
    if isinstance(node, Group) and name == "branches":
        return list(node.branches)
    raise NotFoundError(f"Node '{node.id}' has no field '{name}'")


def _network_field(network: Network, name: str) -> Any:
    if name == "nodes":
        return list(network.nodes)
    if name == "edges":
        return list(network.edges)
    if name in ("id", "label"):
        return getattr(network, name)
    raise NotFoundError(f"Network has no field '{name}'")


def _field_value(item: Any, name: str) -> Any:
    """Field lookup used by filters; absence is MISSING rather than an error."""
    if isinstance(item, Block):
        return item.get(name, MISSING)
    if isinstance(item, (Branch, Group)):
        try:
            return _node_field(item, name)
        except NotFoundError:
            return MISSING
    if isinstance(item, Edge):
        return getattr(item, name, MISSING)
    if isinstance(item, dict):
        return item.get(name, MISSING)
    return MISSING


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _filter_matches(field_value: Any, value: str) -> bool:
    """Numbers compare by value (``150.0`` matches ``150``), everything else as text."""
    if isinstance(field_value, (int, float)) and not isinstance(field_value, bool):
        try:
            return float(value) == field_value
        except ValueError:
            return False
    return _as_text(field_value) == value


def apply_filter(items: list, prop: str, value: str) -> list:
    """Elements of ``items`` whose ``prop`` equals ``value``, order preserved."""
    matches = []
    for item in items:
        field_value = _field_value(item, prop)
        if field_value is not MISSING and _filter_matches(field_value, value):
            matches.append(item)
    return matches


def _step(current: Any, segment: Segment, default: Any) -> Any:
    name = segment.name

    if isinstance(current, list):
        if segment.is_index:
            index = int(name)
            if index >= len(current):
                raise NotFoundError(f"Index {index} out of range ({len(current)} items)")
            return current[index]
        if name.startswith("-") and name[1:].isdigit():
            raise NotFoundError(f"Negative index {name} is not allowed")
        if not name:
            result = current
        else:
            result = [_step(item, Segment(name), default) for item in current]
    elif isinstance(current, Network):
        result = _network_field(current, name)
    elif isinstance(current, (Branch, Group)):
        result = _node_field(current, name)
    elif isinstance(current, Block):
        result = current.get(name, default)
    elif isinstance(current, Edge):
        if name not in ("source", "target", "id"):
            raise NotFoundError(f"Edge has no field '{name}'")
        result = getattr(current, name)
    elif isinstance(current, dict):
        result = current.get(name, default)
    else:
        raise NotFoundError(f"Cannot descend into value with '{name}'")

    if segment.has_filter:
        if not isinstance(result, list):
            raise NotFoundError(f"Filter on '{name}' requires an array")
        result = apply_filter(result, segment.filter_property, segment.filter_value)
    return result


def evaluate(network: Network, query: Any, default: Any = None) -> Any:
    """Evaluate a query path against a snapshot.

    ``query`` may be a string or a parsed ``QueryPath``. Absent block properties
    evaluate to ``default``; pass ``MISSING`` to tell absence from an explicit
    null. Raises ``NotFoundError`` for unknown ids and out-of-range indices.
    """
    parsed = query if isinstance(query, QueryPath) else parse_query(query)
    first, rest = parsed.segments[0], parsed.segments[1:]

    if first.name == "network":
        current: Any = network
        if first.has_filter:
            raise NotFoundError("Filter not allowed on 'network'", parsed.raw)
    else:
        node = network.get_node(first.name)
        if node is None:
            raise NotFoundError(f"Node '{first.name}' not found", parsed.raw)
        current = node

    for segment in rest:
        if current is MISSING:
            raise NotFoundError(f"Cannot descend into absent value with '{segment.name}'", parsed.raw)
        try:
            current = _step(current, segment, default)
        except NotFoundError as e:
            raise NotFoundError(f"{e} in '{parsed.path}'", parsed.raw) from e

    logger.debug(f"[Query] Evaluated '{parsed.path}'")
    return current


# =============================================================================
# FILTERED BLOCK INDEX RECOVERY
# =============================================================================

def match_original_indices(filtered: list[Block], all_blocks: list[Block]) -> list[int]:
    """Recover each filtered block's index in the unfiltered list.

    Blocks match on type plus every other field. Equal blocks are claimed
    first-come-first-served, so each original occurrence is used once. A block
    with no match keeps its position in the filtered list.
    """
    claimed: set[int] = set()
    indices = []
    for position, block in enumerate(filtered):
        found = None
        for index, candidate in enumerate(all_blocks):
            if index in claimed:
                continue
            if candidate.type == block.type and candidate.properties == block.properties:
                found = index
                break
        if found is None:
            logger.debug(f"[Query] No original index for filtered block {position} ({block.type})")
            indices.append(position)
        else:
            claimed.add(found)
            indices.append(found)
    return indices


# =============================================================================
# SERIALIZATION
# =============================================================================

def to_data(value: Any) -> Any:
    """Convert an evaluation result into plain JSON-ready data."""
    if value is MISSING:
        return None
    if isinstance(value, Block):
        return value.model_dump()
    if isinstance(value, (Branch, Group, Network)):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, Edge):
        return value.model_dump(exclude_none=True)
    if isinstance(value, list):
        return [to_data(item) for item in value]
    if isinstance(value, dict):
        return {key: to_data(item) for key, item in value.items()}
    return value


def _block_selection_length(parsed: QueryPath) -> Optional[int]:
    """Number of leading segments that select blocks, or None.

    That is everything up to the last ``blocks`` segment, plus an index that
    directly follows it: ``network/nodes[type=branch]/blocks`` and
    ``b/blocks[type=Pipe]/1`` are both block selections.
    """
    for position in range(len(parsed.segments) - 1, 0, -1):
        if parsed.segments[position].name == "blocks":
            end = position + 1
            if end < len(parsed.segments) and parsed.segments[end].is_index:
                end += 1
            return end
    return None


def addressed_property(parsed: QueryPath) -> Optional[str]:
    """Property named right after a block selection.

    ``b/blocks/0/length`` and ``b/blocks[type=Pipe]/length`` both address
    ``length``. Paths that stop at blocks, or go deeper, address none.
    """
    end = _block_selection_length(parsed)
    if end is None or len(parsed.segments) != end + 1:
        return None
    segment = parsed.segments[end]
    return None if segment.has_filter or segment.is_index else segment.name


def _flatten_blocks(value: Any) -> list[Block]:
    if isinstance(value, Block):
        return [value]
    if isinstance(value, list):
        return [block for item in value for block in _flatten_blocks(item)]
    return []


def _locate_blocks(network: Network, blocks: list[Block]) -> list[tuple[str, int]]:
    """Find evaluated blocks in the snapshot by identity."""
    positions = {
        id(block): (branch.id, index)
        for branch in network.branches()
        for index, block in enumerate(branch.blocks)
    }
    return [positions[id(block)] for block in blocks if id(block) in positions]


def _node_addresses(network: Network, target: Any) -> list[tuple[str, int]]:
    """All blocks of the branches a node-level result covers.

    Groups contribute their member branches; ids with no branch are skipped.
    """
    if isinstance(target, Network):
        target = list(target.nodes)
    items = target if isinstance(target, list) else [target]
    addresses: dict[tuple[str, int], None] = {}
    for item in items:
        if isinstance(item, Group):
            branches = [network.get_branch(branch_id) for branch_id in item.branches]
        elif isinstance(item, Branch):
            branches = [item]
        else:
            branches = []
        for branch in branches:
            if branch is None:
                continue
            for index in range(len(branch.blocks)):
                addresses[(branch.id, index)] = None
    return list(addresses)


def block_addresses(network: Network, parsed: QueryPath) -> list[tuple[str, int]]:
    """``(branch_id, index)`` of every block a query addresses.

    Single-block paths keep their literal index. Block selections rooted at a
    branch are mapped back with ``match_original_indices``; selections across
    several branches are located in the snapshot directly. Node-level paths
    cover every block of the branches (and group members) they reach.
    """
    if parsed.block_index is not None:
        return [(parsed.branch_id, parsed.block_index)]

    end = _block_selection_length(parsed)
    if end is None:
        return _node_addresses(network, evaluate(network, parsed))

    selection = QueryPath(raw=parsed.raw, path=parsed.path, segments=parsed.segments[:end])
    blocks = _flatten_blocks(evaluate(network, selection))
    if parsed.addresses_blocks:
        branch = network.get_branch(parsed.branch_id)
        if branch is None:
            return []
        return [(branch.id, index) for index in match_original_indices(blocks, branch.blocks)]
    return _locate_blocks(network, blocks)
