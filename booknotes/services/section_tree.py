"""Section outline trees: parsing, pruning and editor form round-trips.

A book's outline is an ordered list of sections, each holding its own
ordered list of child sections with no depth limit. Every tree handed out
by this module is freshly built, so no node is ever shared between two
parents and no cycle can exist.

Editor forms address nodes with dotted index paths::

    sections.0.name                 -> first top-level section
    sections.0.sections.2.pageNo    -> third child of the first section

and ``append_section`` uses the bare index path (``"0.2"``) to pick the
parent that receives a new empty child.
"""
from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Set, Union

PageNo = Union[int, str]

_FORM_KEY_RE = re.compile(r"^sections((?:\.\d+\.sections)*)\.(\d+)\.(id|name|pageNo)$")


class SectionTreeError(ValueError):
    """Raised when a submitted section tree is malformed."""


@dataclass
class Section:
    id: str
    name: str = ""
    page_no: PageNo = ""
    sections: List["Section"] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "pageNo": self.page_no,
            "sections": [child.to_dict() for child in self.sections],
        }


def _timestamp_id() -> int:
    return int(time.time() * 1000)


def iter_sections(tree: Iterable[Section]) -> Iterator[Section]:
    """Depth-first, parents before children."""
    for node in tree:
        yield node
        yield from iter_sections(node.sections)


def collect_ids(tree: Iterable[Section]) -> Set[str]:
    return {node.id for node in iter_sections(tree)}


def new_section(existing_ids: Iterable[str] = ()) -> Section:
    """Empty section with a millisecond-timestamp id unique within ``existing_ids``."""
    taken = set(existing_ids)
    candidate = _timestamp_id()
    while str(candidate) in taken:
        candidate += 1
    return Section(id=str(candidate))


def is_empty(section: Section) -> bool:
    return section.name.strip() == "" and str(section.page_no).strip() == ""


def prune_empty_sections(tree: Iterable[Section]) -> List[Section]:
    """Drop empty nodes at every depth; a dropped node takes its subtree along."""
    return [
        Section(
            id=node.id,
            name=node.name,
            page_no=node.page_no,
            sections=prune_empty_sections(node.sections),
        )
        for node in tree
        if not is_empty(node)
    ]


def _coerce_page_no(raw: Any, where: str) -> PageNo:
    if raw is None:
        return ""
    if isinstance(raw, bool):
        raise SectionTreeError(f"{where}: pageNo must be a number or string")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float) and raw.is_integer():
        return int(raw)
    if isinstance(raw, str):
        return raw
    raise SectionTreeError(f"{where}: pageNo must be a number or string")


def _parse_node(raw: Any, where: str, seen: Set[str]) -> Section:
    if not isinstance(raw, Mapping):
        raise SectionTreeError(f"{where}: section must be an object")
    raw_id = raw.get("id")
    if isinstance(raw_id, bool) or not isinstance(raw_id, (str, int)) or str(raw_id).strip() == "":
        raise SectionTreeError(f"{where}: section id is required")
    section_id = str(raw_id)
    if section_id in seen:
        raise SectionTreeError(f"{where}: duplicate section id {section_id}")
    seen.add(section_id)
    name = raw.get("name")
    if name is None:
        name = ""
    if not isinstance(name, str):
        raise SectionTreeError(f"{where}: name must be a string")
    children = raw.get("sections")
    if children is None:
        children = []
    if not isinstance(children, list):
        raise SectionTreeError(f"{where}: sections must be a list")
    return Section(
        id=section_id,
        name=name,
        page_no=_coerce_page_no(raw.get("pageNo"), where),
        sections=[_parse_node(child, f"{where}.sections.{i}", seen) for i, child in enumerate(children)],
    )


def sections_from_payload(raw: Any) -> List[Section]:
    """Build a fresh tree from JSON data, rejecting malformed nodes and reused ids."""
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise SectionTreeError("sections must be a list")
    seen: Set[str] = set()
    return [_parse_node(node, f"sections.{i}", seen) for i, node in enumerate(raw)]


def sections_to_payload(tree: Iterable[Section]) -> List[Dict[str, Any]]:
    return [node.to_dict() for node in tree]


def _parse_path(path: Optional[str]) -> List[int]:
    cleaned = (path or "").strip()
    if not cleaned:
        return []
    try:
        indexes = [int(part) for part in cleaned.split(".")]
    except ValueError as exc:
        raise SectionTreeError(f"invalid section path {path!r}") from exc
    if any(i < 0 for i in indexes):
        raise SectionTreeError(f"invalid section path {path!r}")
    return indexes


def find_children(tree: List[Section], path: Optional[str]) -> List[Section]:
    """Child list of the node at ``path`` (the top level for an empty path)."""
    children = tree
    for index in _parse_path(path):
        if index >= len(children):
            raise SectionTreeError(f"section path {path!r} does not exist")
        children = children[index].sections
    return children


def append_section(tree: List[Section], path: Optional[str] = None) -> Section:
    """Append a new empty section under ``path`` in place and return it."""
    children = find_children(tree, path)
    created = new_section(collect_ids(tree))
    children.append(created)
    return created


def sections_from_form(form: Mapping[str, Any]) -> List[Section]:
    """Rebuild a tree from the editor's flat ``sections.<i>...`` fields.

    Index gaps are closed and order follows the numeric indexes. Nodes
    without a submitted id get a fresh one.
    """
    nodes: Dict[tuple, Dict[str, Any]] = {}
    for key in form.keys():
        match = _FORM_KEY_RE.match(key)
        if not match:
            continue
        middle, last, attr = match.groups()
        path = tuple(int(i) for i in re.findall(r"\.(\d+)\.sections", middle)) + (int(last),)
        # Register ancestors too, so a parent with only nested fields survives.
        for depth in range(1, len(path) + 1):
            nodes.setdefault(path[:depth], {})
        nodes[path][attr] = form.get(key)

    children_of: Dict[tuple, List[tuple]] = {}
    for node_path in nodes:
        children_of.setdefault(node_path[:-1], []).append(node_path)

    def _build(prefix: tuple, taken: Set[str]) -> List[Section]:
        built: List[Section] = []
        for child_path in sorted(children_of.get(prefix, ())):
            fields = nodes[child_path]
            raw_id = str(fields.get("id") or "").strip()
            if not raw_id or raw_id in taken:
                raw_id = new_section(taken).id
            taken.add(raw_id)
            built.append(
                Section(
                    id=raw_id,
                    name=str(fields.get("name") or ""),
                    page_no=str(fields.get("pageNo") or "").strip(),
                    sections=_build(child_path, taken),
                )
            )
        return built

    return _build((), set())


__all__ = [
    "Section",
    "SectionTreeError",
    "iter_sections",
    "collect_ids",
    "new_section",
    "is_empty",
    "prune_empty_sections",
    "sections_from_payload",
    "sections_to_payload",
    "find_children",
    "append_section",
    "sections_from_form",
]
