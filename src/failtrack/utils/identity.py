"""
Test Identity.

Derives a stable, opaque identifier for a test from its file path and its
full name. The identifier keys the mapping database, so it must not change
between runs, machines or operating systems.
"""

import hashlib

# Separator used by Jest-style runners between ancestor titles
ANCESTOR_SEPARATOR = " › "

# Separator used by pytest node ids
NODE_ID_SEPARATOR = "::"


def normalize_path(test_file_path: str) -> str:
    """Normalize path separators so identities match across platforms."""
    return test_file_path.replace("\\", "/")


def identify(test_file_path: str, test_name: str) -> str:
    """Compute the identity of a test.

    The path is length-prefixed before hashing, so ("a", "b:c") and
    ("a:b", "c") cannot produce the same input.

    Args:
        test_file_path: Path of the file defining the test
        test_name: Full test name including suite ancestry

    Returns:
        64-character lowercase hex SHA-256 digest
    """
    path = normalize_path(test_file_path)
    digest = hashlib.sha256()
    digest.update(f"{len(path)}:{path}".encode("utf-8"))
    digest.update(b"\0")
    digest.update(test_name.encode("utf-8"))
    return digest.hexdigest()


def describe(test_name: str) -> str:
    """Return the leaf test name without its suite ancestry.

    Examples:
        describe("Suite › nested › works") -> "works"
        describe("tests/test_x.py::TestA::test_b") -> "test_b"
        describe("standalone") -> "standalone"
    """
    if not test_name:
        return ""
    for separator in (ANCESTOR_SEPARATOR, NODE_ID_SEPARATOR):
        if separator in test_name:
            leaf = test_name.rsplit(separator, 1)[1]
            if leaf:
                return leaf
    return test_name


def full_test_name(ancestors: list[str], title: str) -> str:
    """Join suite ancestry and a test title into a full test name."""
    parts = [a for a in ancestors if a]
    parts.append(title)
    return ANCESTOR_SEPARATOR.join(parts)
