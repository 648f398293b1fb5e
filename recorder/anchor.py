"""Merkle Tree Aggregation for Localized Tamper Detection

Builds the binary hash tree over a receipt ledger and records the
anchored commitment that later verification compares against.

Odd levels promote their last node unchanged (no duplication), so the
tree shape is a function of the leaf count alone.
"""

import time
from dataclasses import dataclass
from typing import Any, Iterator, Optional, Sequence

from .core import dual_hash, emit_receipt

EMPTY_TREE_HASH = dual_hash(b"empty_tree")


@dataclass
class MerkleNode:
    """A node in the Merkle tree."""
    id: str
    hash: str
    is_leaf: bool = False
    left: Optional['MerkleNode'] = None
    right: Optional['MerkleNode'] = None
    receipt: Optional[Any] = None      # Leaves only
    is_affected: bool = False


@dataclass(frozen=True)
class LedgerAnchor:
    """Recorded Merkle commitment of a ledger snapshot."""
    root: str
    leaf_hashes: tuple[str, ...]
    size: int
    depth: int


def tree_depth(n: int) -> int:
    """Number of levels between the leaves and the root.

    Equals ceil(log2(n)) for n >= 2 and 0 for n <= 1.
    """
    if n <= 1:
        return 0
    return (n - 1).bit_length()


def leaf_depths(n: int) -> list[int]:
    """Depth of every leaf in a tree of n leaves.

    Promoted nodes skip a pairing, so leaves on the right edge of an
    odd-sized tree may sit higher than the rest.
    """
    groups = [[i] for i in range(n)]
    depths = [0] * n

    while len(groups) > 1:
        next_level = []
        for i in range(0, len(groups), 2):
            if i + 1 == len(groups):
                next_level.append(groups[i])
                continue
            merged = groups[i] + groups[i + 1]
            for leaf in merged:
                depths[leaf] += 1
            next_level.append(merged)
        groups = next_level

    return depths


def build_merkle_tree(receipts: Sequence[Any],
                      affected_indices: Sequence[int] = (),
                      leaf_hashes: Optional[Sequence[str]] = None) -> MerkleNode:
    """Build the tree bottom-up and return its root.

    Args:
        receipts: Ledger snapshot; each leaf takes the receipt's content_hash
        affected_indices: Leaf indices to mark, propagated up to the root
        leaf_hashes: Optional leaf hashes overriding the stored content hashes

    Returns:
        Root node, or the empty-tree sentinel for an empty ledger
    """
    if leaf_hashes is None:
        leaf_hashes = [r.content_hash for r in receipts]

    if not leaf_hashes:
        return MerkleNode(id="root", hash=EMPTY_TREE_HASH)

    affected = set(affected_indices)
    level = [
        MerkleNode(
            id=f"leaf-{i}",
            hash=h,
            is_leaf=True,
            receipt=receipts[i] if i < len(receipts) else None,
            is_affected=i in affected,
        )
        for i, h in enumerate(leaf_hashes)
    ]

    height = 0
    while len(level) > 1:
        height += 1
        next_level = []

        for i in range(0, len(level), 2):
            if i + 1 == len(level):
                next_level.append(level[i])
                continue

            left, right = level[i], level[i + 1]
            next_level.append(MerkleNode(
                id=f"node-{height}-{i // 2}",
                hash=dual_hash(left.hash + right.hash),
                left=left,
                right=right,
                is_affected=left.is_affected or right.is_affected,
            ))

        level = next_level

    root = level[0]
    if not root.is_leaf:
        root.id = "root"
    return root


def merkle_root(leaf_hashes: Sequence[str]) -> str:
    """Root hash over a list of leaf hashes."""
    return build_merkle_tree([], leaf_hashes=leaf_hashes).hash


def iter_nodes(root: MerkleNode) -> Iterator[MerkleNode]:
    """Pre-order walk of the tree."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        if node.right is not None:
            stack.append(node.right)
        if node.left is not None:
            stack.append(node.left)


def collect_affected(root: MerkleNode) -> list[str]:
    """Ids of every node flagged as affected, root first."""
    return [node.id for node in iter_nodes(root) if node.is_affected]


def count_nodes(root: MerkleNode) -> int:
    return sum(1 for _ in iter_nodes(root))


def anchor_ledger(receipts: Sequence[Any]) -> LedgerAnchor:
    """Record the Merkle commitment of a ledger snapshot.

    Args:
        receipts: Ledger snapshot

    Returns:
        LedgerAnchor with root, leaf hashes, size and depth
    """
    leaves = tuple(r.content_hash for r in receipts)
    return LedgerAnchor(
        root=merkle_root(leaves),
        leaf_hashes=leaves,
        size=len(leaves),
        depth=tree_depth(len(leaves)),
    )


def merkle_proof(leaf_hashes: Sequence[str], index: int) -> list[tuple[str, str]]:
    """Generate O(log N) inclusion proof for the leaf at index.

    Args:
        leaf_hashes: All leaf hashes of the tree
        index: Index of the leaf to prove

    Returns:
        List of (sibling_hash, direction) tuples. Direction is 'L' or 'R'
        for the side the sibling is on. Levels where the node was promoted
        contribute no entry.

    Raises:
        IndexError: If index is out of range
    """
    if index < 0 or index >= len(leaf_hashes):
        raise IndexError(f"Leaf index {index} out of range for {len(leaf_hashes)} leaves")

    proof = []
    level = list(leaf_hashes)
    current_index = index

    while len(level) > 1:
        if current_index % 2 == 0:
            if current_index + 1 < len(level):
                proof.append((level[current_index + 1], 'R'))
        else:
            proof.append((level[current_index - 1], 'L'))

        level = [
            dual_hash(level[i] + level[i + 1]) if i + 1 < len(level) else level[i]
            for i in range(0, len(level), 2)
        ]
        current_index //= 2

    return proof


def verify_proof(leaf_hash: str, proof: list[tuple[str, str]], expected_root: str) -> bool:
    """Validate an inclusion proof against an expected root.

    Args:
        leaf_hash: Hash of the leaf being proven
        proof: Proof from merkle_proof
        expected_root: The anchored root

    Returns:
        True if the proof walks up to expected_root
    """
    current = leaf_hash

    for sibling_hash, direction in proof:
        if direction == 'R':
            combined = current + sibling_hash
        else:
            combined = sibling_hash + current
        current = dual_hash(combined)

    return current == expected_root


def emit_anchor_receipt(anchor: LedgerAnchor) -> dict:
    """Emit an anchor receipt for a sealed ledger.

    Args:
        anchor: The recorded commitment

    Returns:
        Anchor receipt dict
    """
    start_time = time.perf_counter()
    recomputed = merkle_root(anchor.leaf_hashes)
    proof_time_ms = (time.perf_counter() - start_time) * 1000

    return emit_receipt("anchor", {
        "merkle_root": anchor.root,
        "hash_algos": ["SHA256", "BLAKE3"],
        "tree_size": anchor.size,
        "tree_depth": anchor.depth,
        "root_consistent": recomputed == anchor.root,
        "proof_time_ms": proof_time_ms
    }, silent=True)
