"""Pydantic models for network snapshots and engine results.

Snapshot models are frozen all the way down: property tables are read-only
mappings and node, edge and block sequences are tuples. Edits go through the
``with_*`` helpers, which return new snapshots.
"""

from enum import Enum
from types import MappingProxyType
from typing import Annotated, Any, Literal, Mapping, Optional, Union

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    model_serializer,
    model_validator,
)


def _freeze(values: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(dict(values))


def _thaw(values: Mapping[str, Any]) -> dict[str, Any]:
    return dict(values)


def _empty_properties() -> Mapping[str, Any]:
    return MappingProxyType({})


PropertyTable = Annotated[dict[str, Any], AfterValidator(_freeze), PlainSerializer(_thaw)]


# =============================================================================
# NETWORK SNAPSHOT
# =============================================================================

class Block(BaseModel):
    """A typed unit of equipment on a branch.

    Built from and serialized to a flat mapping: ``{"type": "Pipe", "length": "1 mi"}``.
    """
    model_config = ConfigDict(frozen=True)

    type: str
    properties: PropertyTable = Field(default_factory=_empty_properties)

    @model_validator(mode="before")
    @classmethod
    def fold_flat_mapping(cls, data: Any) -> Any:
        if isinstance(data, dict) and "properties" not in data:
            data = dict(data)
            block_type = data.pop("type", None)
            return {"type": block_type, "properties": data}
        return data

    @model_serializer
    def serialize_flat(self) -> dict[str, Any]:
        return {"type": self.type, **self.properties}

    def has(self, name: str) -> bool:
        return name in self.properties

    def get(self, name: str, default: Any = None) -> Any:
        if name == "type":
            return self.type
        return self.properties.get(name, default)

    def with_property(self, name: str, value: Any) -> "Block":
        return Block(type=self.type, properties={**self.properties, name: value})

    def without_property(self, name: str) -> "Block":
        return Block(type=self.type, properties={k: v for k, v in self.properties.items() if k != name})


class Edge(BaseModel):
    """Directed connection between two branches."""
    model_config = ConfigDict(frozen=True)

    source: str
    target: str
    id: Optional[str] = None


class Branch(BaseModel):
    """Ordered sequence of blocks plus branch-level property defaults."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: Literal["branch"] = "branch"
    id: str
    label: Optional[str] = None
    parent_id: Optional[str] = Field(default=None, alias="parentId")
    blocks: tuple[Block, ...] = ()
    properties: PropertyTable = Field(default_factory=_empty_properties)

    def with_block(self, index: int, block: Block) -> "Branch":
        if not 0 <= index < len(self.blocks):
            raise IndexError(f"Block index {index} out of range for branch '{self.id}'")
        blocks = list(self.blocks)
        blocks[index] = block
        return self.model_copy(update={"blocks": tuple(blocks)})

    def with_property(self, name: str, value: Any) -> "Branch":
        return self.model_copy(update={"properties": _freeze({**self.properties, name: value})})

    def without_property(self, name: str) -> "Branch":
        remaining = {k: v for k, v in self.properties.items() if k != name}
        return self.model_copy(update={"properties": _freeze(remaining)})


class Group(BaseModel):
    """Labeled grouping of branches with group-level property defaults."""
    model_config = ConfigDict(frozen=True)

    type: Literal["group"] = "group"
    id: str
    label: Optional[str] = None
    branches: tuple[str, ...] = ()
    properties: PropertyTable = Field(default_factory=_empty_properties)

    def with_property(self, name: str, value: Any) -> "Group":
        return self.model_copy(update={"properties": _freeze({**self.properties, name: value})})

    def without_property(self, name: str) -> "Group":
        remaining = {k: v for k, v in self.properties.items() if k != name}
        return self.model_copy(update={"properties": _freeze(remaining)})


Node = Annotated[Union[Branch, Group], Field(discriminator="type")]


class Network(BaseModel):
    """Immutable snapshot of a network. Edits return a new snapshot."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = "network"
    label: Optional[str] = None
    nodes: tuple[Node, ...] = ()
    edges: tuple[Edge, ...] = ()
    global_properties: PropertyTable = Field(default_factory=_empty_properties, alias="globalProperties")

    @model_validator(mode="before")
    @classmethod
    def infer_node_types(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("nodes"), (list, tuple)):
            nodes = []
            for node in data["nodes"]:
                if isinstance(node, dict) and "type" not in node:
                    node = {**node, "type": "group" if "branches" in node else "branch"}
                nodes.append(node)
            data = {**data, "nodes": nodes}
        return data

    @model_validator(mode="after")
    def check_unique_node_ids(self) -> "Network":
        seen = set()
        for node in self.nodes:
            if node.id in seen:
                raise ValueError(f"Duplicate node id '{node.id}'")
            seen.add(node.id)
        return self

    def get_node(self, node_id: str) -> Optional[Union[Branch, Group]]:
        return next((node for node in self.nodes if node.id == node_id), None)

    def get_branch(self, branch_id: str) -> Optional[Branch]:
        node = self.get_node(branch_id)
        return node if isinstance(node, Branch) else None

    def get_group(self, group_id: str) -> Optional[Group]:
        node = self.get_node(group_id)
        return node if isinstance(node, Group) else None

    def branches(self) -> list[Branch]:
        return [node for node in self.nodes if isinstance(node, Branch)]

    def groups(self) -> list[Group]:
        return [node for node in self.nodes if isinstance(node, Group)]

    def with_node(self, node: Union[Branch, Group]) -> "Network":
        """Replace the node with the same id, or append it."""
        nodes = [node if existing.id == node.id else existing for existing in self.nodes]
        if self.get_node(node.id) is None:
            nodes.append(node)
        return self.model_copy(update={"nodes": tuple(nodes)})

    def with_global_property(self, name: str, value: Any) -> "Network":
        return self.model_copy(update={"global_properties": _freeze({**self.global_properties, name: value})})

    def without_global_property(self, name: str) -> "Network":
        remaining = {k: v for k, v in self.global_properties.items() if k != name}
        return self.model_copy(update={"global_properties": _freeze(remaining)})


# =============================================================================
# RESULTS
# =============================================================================

class Scope(str, Enum):
    """Level of the hierarchy that supplied a resolved value."""
    BLOCK = "block"
    BRANCH = "branch"
    GROUP = "group"
    GLOBAL = "global"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class ValidationKind(str, Enum):
    VALID = "valid"
    MISSING_REQUIRED = "missing_required"
    CONSTRAINT_VIOLATION = "constraint_violation"
    TYPE_MISMATCH = "type_mismatch"
    SCHEMA_NOT_FOUND = "schema_not_found"


class ResolvedProperty(BaseModel):
    """A property value and the scope it came from."""
    value: Any
    scope: Scope


class ValidationResult(BaseModel):
    """Outcome of validating one property of one block."""
    is_valid: bool
    kind: ValidationKind = ValidationKind.VALID
    severity: Optional[Severity] = None
    message: Optional[str] = None
    value: Optional[str] = Field(default=None, description="Value formatted in the preferred unit")
    raw_value: Any = Field(default=None, description="Value as resolved, before formatting")
    scope: Optional[Scope] = None
