"""Property-based tests for object tree construction."""

import posixpath
import random

from hypothesis import given
from hypothesis import strategies as st

from s3_index.exclusions import Exclusions, has_prefix, has_suffix
from s3_index.models import S3Object
from s3_index.object_tree import INVALID_DIR_NAMES, ObjectTreeConfig, new_object_tree_with_objects

segment_strategy = st.text(
    alphabet="abcdefghijklmnopqrstuvwxyz0123456789._-", min_size=1, max_size=8
).filter(lambda s: s not in INVALID_DIR_NAMES)

key_strategy = st.lists(segment_strategy, min_size=1, max_size=5).map("/".join)

# Segments including ".", ".." and empty ones from doubled slashes
raw_key_strategy = st.lists(
    st.one_of(segment_strategy, st.sampled_from(["", ".", ".."])), min_size=1, max_size=5
).map("/".join)


def tree_shape(tree):
    return (
        sorted(o.key for o in tree.objects),
        {name: tree_shape(child) for name, child in tree.children.items()},
    )


def is_included(key, exclusions):
    parts = key.split("/")
    return all(
        p not in INVALID_DIR_NAMES and exclusions.include(p) for p in parts[:-1]
    ) and exclusions.include(key)


# **Property: object count is preserved through tree construction**
@given(keys=st.lists(key_strategy, max_size=40))
def test_object_count_matches_input(keys):
    """Property: without exclusions every inserted object ends up in the tree."""
    tree = new_object_tree_with_objects(ObjectTreeConfig(), [S3Object(key=k) for k in keys])
    assert tree.count_objects() == len(keys)


# **Property: object count respects exclusions**
@given(keys=st.lists(key_strategy, max_size=40))
def test_object_count_respects_exclusions(keys):
    """Property: the tree holds exactly the objects whose key and directories
    are all included."""
    exclusions = Exclusions([has_prefix("."), has_suffix(".tmp")])
    tree = new_object_tree_with_objects(
        ObjectTreeConfig(exclusions=exclusions), [S3Object(key=k) for k in keys]
    )
    expected = sum(1 for k in keys if is_included(k, exclusions))
    assert tree.count_objects() == expected


# **Property: insertion order does not change the tree**
@given(keys=st.lists(key_strategy, max_size=30), seed=st.integers())
def test_tree_shape_independent_of_order(keys, seed):
    """Property: inserting the same keys in any order builds the same tree."""
    shuffled = list(keys)
    random.Random(seed).shuffle(shuffled)

    first = new_object_tree_with_objects(ObjectTreeConfig(), [S3Object(key=k) for k in keys])
    second = new_object_tree_with_objects(ObjectTreeConfig(), [S3Object(key=k) for k in shuffled])

    assert tree_shape(first) == tree_shape(second)


# **Property: no node resolves outside its parent directory**
@given(keys=st.lists(raw_key_strategy, max_size=30))
def test_node_paths_stay_below_parent(keys):
    """Property: dot and empty segments never become nodes, so every node's
    path is already normalized and ends in its own directory name."""
    tree = new_object_tree_with_objects(ObjectTreeConfig(), [S3Object(key=k) for k in keys])

    def check(node):
        if node.full_path != "/":
            assert posixpath.normpath(node.full_path) == node.full_path
            assert posixpath.basename(node.full_path) == node.dir_name
        for name, child in node.children.items():
            assert name not in INVALID_DIR_NAMES
            assert child.parent_full_path == node.full_path

    tree.walk(check)

    expected = sum(1 for k in keys if is_included(k, Exclusions()))
    assert tree.count_objects() == expected
