# catalog/services/category_tree.py
"""Pure helpers that turn flat category records into a forest and back.

Nothing here talks to the store; every function takes the records it needs
and returns new objects, so callers can discard results freely.
"""
from typing import Dict, Iterable, List, Optional
from ..exceptions import BrokenReferenceError, IntegrityError
from ..models.category import CategoryNode, CategoryOption, CategoryRecord


def _index_children(records: List[CategoryRecord]) -> Dict[Optional[int], List[CategoryRecord]]:
    children: Dict[Optional[int], List[CategoryRecord]] = {}
    for record in records:
        children.setdefault(record.parent_id, []).append(record)
    return children


def build_tree(records: Iterable[CategoryRecord]) -> List[CategoryNode]:
    """Nest records under their parents, keeping the supplied relative order.

    Raises BrokenReferenceError for a record whose parent is unknown and
    IntegrityError when some records sit on a cycle and never hang off a root.
    """
    records = list(records)
    by_id = {record.category_id: record for record in records}

    for record in records:
        if record.parent_id is not None and record.parent_id not in by_id:
            raise BrokenReferenceError(record.category_id, record.parent_id)

    children = _index_children(records)
    nodes = {
        record.category_id: CategoryNode(**record.model_dump(exclude={'subcategories'}))
        for record in records
    }
    roots = [nodes[record.category_id] for record in children.get(None, [])]
    placed = set()
    stack = list(roots)

    while stack:
        node = stack.pop()
        placed.add(node.category_id)
        node.subcategories = [nodes[child.category_id]
                              for child in children.get(node.category_id, [])]
        stack.extend(node.subcategories)

    if len(placed) != len(by_id):
        stray = next(cid for cid in by_id if cid not in placed)
        raise IntegrityError(
            f"Category {stray} is not reachable from any top-level category",
            category_id=stray
        )
    return roots


def flatten(nodes: Iterable[CategoryNode]) -> List[CategoryRecord]:
    """Pre-order listing of the forest: node first, then each child subtree"""
    result: List[CategoryRecord] = []
    stack = list(reversed(list(nodes)))
    while stack:
        node = stack.pop()
        result.append(node.to_record())
        stack.extend(reversed(node.subcategories))
    return result


def render_options(nodes: Iterable[CategoryNode], marker: str = "—",
                   exclude_id: Optional[int] = None) -> List[CategoryOption]:
    """Depth-indented labels for a parent picker, in pre-order"""
    options: List[CategoryOption] = []
    stack = [(node, 0) for node in reversed(list(nodes))]

    while stack:
        node, depth = stack.pop()
        if node.category_id == exclude_id:
            continue
        prefix = f"{marker * depth} " if depth else ""
        options.append(CategoryOption(
            category_id=node.category_id,
            label=f"{prefix}{node.name}",
            depth=depth
        ))
        stack.extend((child, depth + 1) for child in reversed(node.subcategories))
    return options


def descendant_ids(category_id: int, records: Iterable[CategoryRecord]) -> List[int]:
    """Ids of every record below category_id, in pre-order"""
    children = _index_children(list(records))
    result: List[int] = []
    seen = {category_id}
    stack = [child.category_id for child in reversed(children.get(category_id, []))]

    while stack:
        current = stack.pop()
        if current in seen:
            raise IntegrityError(
                f"Category {current} is reachable twice below {category_id}",
                category_id=current
            )
        seen.add(current)
        result.append(current)
        stack.extend(child.category_id for child in reversed(children.get(current, [])))
    return result


def ancestor_chain(category_id: int, records: Iterable[CategoryRecord]) -> List[CategoryRecord]:
    """Records from the top level down to the direct parent of category_id.

    The walk is capped at the number of records so a corrupt graph fails
    with IntegrityError instead of looping.
    """
    by_id = {record.category_id: record for record in records}
    chain: List[CategoryRecord] = []
    current = by_id.get(category_id)
    steps = 0

    while current is not None and current.parent_id is not None:
        steps += 1
        if steps > len(by_id):
            raise IntegrityError(
                f"Ancestor walk from category {category_id} does not terminate",
                category_id=category_id
            )
        parent = by_id.get(current.parent_id)
        if parent is None:
            raise IntegrityError(
                f"Category {current.category_id} points at missing parent {current.parent_id}",
                category_id=current.category_id
            )
        chain.append(parent)
        current = parent

    chain.reverse()
    return chain
