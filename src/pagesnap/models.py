# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Pydantic models for the CDP payloads consumed by PageSnap.

Field names follow Python conventions; aliases carry the protocol's
camelCase names so raw ``cdp.send()`` results validate directly.

- Accessibility.getFullAXTree  -> AxNode / AxProperty / AxValue
- DOMSnapshot.captureSnapshot  -> DomSnapshot / DocumentSnapshot / NodeTreeSnapshot / LayoutTreeSnapshot
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .roles import Role

logger = logging.getLogger(__name__)


class _CDPModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# ---------------------------------------------------------------------------
# Accessibility tree
# ---------------------------------------------------------------------------


class AxValue(_CDPModel):
    type: str = ""
    value: Any = None

    def text(self) -> str:
        """String form of the value; undefined and falsy values read as ''."""
        if self.type == "valueUndefined" or not self.value:
            return ""
        if self.value is True:
            return "true"
        if isinstance(self.value, float) and self.value.is_integer():
            return str(int(self.value))
        return str(self.value)


class AxProperty(_CDPModel):
    name: str
    value: AxValue = Field(default_factory=AxValue)


class AxNode(_CDPModel):
    """One node of ``Accessibility.getFullAXTree``."""

    node_id: str = Field(alias="nodeId")
    ignored: bool = False
    parent_id: str | None = Field(default=None, alias="parentId")
    child_ids: list[str] = Field(default_factory=list, alias="childIds")
    role: AxValue | None = None
    name: AxValue | None = None
    description: AxValue | None = None
    value: AxValue | None = None
    properties: list[AxProperty] = Field(default_factory=list)
    backend_dom_node_id: int | None = Field(default=None, alias="backendDOMNodeId")
    frame_id: str | None = Field(default=None, alias="frameId")

    @property
    def role_name(self) -> str:
        return self.role.text() if self.role else ""

    @property
    def role_kind(self) -> Role:
        return Role.parse(self.role_name)

    @property
    def label(self) -> str:
        return self.name.text() if self.name else ""

    @property
    def value_text(self) -> str:
        return self.value.text() if self.value else ""

    def prop(self, name: str) -> str:
        """Value of the named property as a string ('' when absent)."""
        for p in self.properties:
            if p.name == name:
                return p.value.text()
        return ""


def parse_ax_nodes(raw_nodes: list[dict]) -> list[AxNode]:
    """Validate raw CDP AX nodes, dropping entries that do not parse."""
    nodes: list[AxNode] = []
    for raw in raw_nodes:
        try:
            nodes.append(AxNode.model_validate(raw))
        except ValidationError:
            logger.debug("Dropping malformed AX node: %r", raw.get("nodeId") if isinstance(raw, dict) else raw)
    return nodes


# ---------------------------------------------------------------------------
# DOM snapshot (columnar)
# ---------------------------------------------------------------------------


class RareStringData(_CDPModel):
    index: list[int] = Field(default_factory=list)
    value: list[int] = Field(default_factory=list)

    def as_map(self) -> dict[int, int]:
        return dict(zip(self.index, self.value, strict=False))


class RareIntegerData(RareStringData):
    pass


class RareBooleanData(_CDPModel):
    index: list[int] = Field(default_factory=list)

    def as_set(self) -> set[int]:
        return set(self.index)


class NodeTreeSnapshot(_CDPModel):
    parent_index: list[int] = Field(default_factory=list, alias="parentIndex")
    node_type: list[int] = Field(default_factory=list, alias="nodeType")
    node_name: list[int] = Field(default_factory=list, alias="nodeName")
    node_value: list[int] = Field(default_factory=list, alias="nodeValue")
    backend_node_id: list[int] = Field(default_factory=list, alias="backendNodeId")
    attributes: list[list[int]] = Field(default_factory=list)
    text_value: RareStringData = Field(default_factory=RareStringData, alias="textValue")
    input_value: RareStringData = Field(default_factory=RareStringData, alias="inputValue")
    input_checked: RareBooleanData = Field(default_factory=RareBooleanData, alias="inputChecked")
    option_selected: RareBooleanData = Field(default_factory=RareBooleanData, alias="optionSelected")
    content_document_index: RareIntegerData = Field(default_factory=RareIntegerData, alias="contentDocumentIndex")
    shadow_root_type: RareStringData = Field(default_factory=RareStringData, alias="shadowRootType")
    is_clickable: RareBooleanData = Field(default_factory=RareBooleanData, alias="isClickable")

    @model_validator(mode="after")
    def _side_tables_in_range(self) -> NodeTreeSnapshot:
        count = len(self.parent_index)
        tables = {
            "textValue": self.text_value.index,
            "inputValue": self.input_value.index,
            "inputChecked": self.input_checked.index,
            "optionSelected": self.option_selected.index,
            "contentDocumentIndex": self.content_document_index.index,
            "shadowRootType": self.shadow_root_type.index,
            "isClickable": self.is_clickable.index,
        }
        for table, indices in tables.items():
            bad = [i for i in indices if not 0 <= i < count]
            if bad:
                raise ValueError(f"{table} references node index {bad[0]} outside 0..{count - 1}")
        return self

    def __len__(self) -> int:
        return len(self.parent_index)


class LayoutTreeSnapshot(_CDPModel):
    node_index: list[int] = Field(default_factory=list, alias="nodeIndex")
    styles: list[list[int]] = Field(default_factory=list)


class DocumentSnapshot(_CDPModel):
    nodes: NodeTreeSnapshot = Field(default_factory=NodeTreeSnapshot)
    layout: LayoutTreeSnapshot = Field(default_factory=LayoutTreeSnapshot)

    @model_validator(mode="after")
    def _layout_in_range(self) -> DocumentSnapshot:
        count = len(self.nodes)
        bad = [i for i in self.layout.node_index if not 0 <= i < count]
        if bad:
            raise ValueError(f"layout references node index {bad[0]} outside 0..{count - 1}")
        return self


class DomSnapshot(_CDPModel):
    documents: list[DocumentSnapshot] = Field(default_factory=list)
    strings: list[str] = Field(default_factory=list)
