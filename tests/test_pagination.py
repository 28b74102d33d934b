"""Tests for marker based listings."""

from __future__ import annotations

import pytest

from voltvault.core import SnapshotSecretsMetadataStore
from voltvault.core.pagination import paginate_sorted, validate_max_results
from voltvault.errors import IllegalStateError, NotFoundError


def test_paginate_sorted_exact_fit_has_no_marker() -> None:
    page, marker = paginate_sorted(["a", "b"], lambda item: item, 2, None)
    assert page == ["a", "b"]
    assert marker is None


@pytest.mark.parametrize("bad", [0, -1, True, 2.5, "3"])
def test_max_results_must_be_positive_int(bad) -> None:
    with pytest.raises(ValueError):
        validate_max_results(bad)


def test_max_results_defaults() -> None:
    assert validate_max_results(None) == 25


def test_get_secrets_walks_in_name_order(store: SnapshotSecretsMetadataStore) -> None:
    for name in ["d", "b", "e", "a", "c"]:
        store.set_secret(name, f"value-{name}")

    page1, marker1 = store.get_secrets(2, "")
    assert [v.name for v in page1] == ["a", "b"]
    assert marker1 == "b"

    store.set_secret("x", "late")
    store.set_secret("y", "late")

    page2, marker2 = store.get_secrets(2, marker1)
    assert [v.name for v in page2] == ["c", "d"]

    store.set_secret("aa", "behind the cursor")

    page3, marker3 = store.get_secrets(1, marker2)
    assert [v.name for v in page3] == ["e"]
    rest, final = store.get_secrets(5, marker3)
    assert [v.name for v in rest] == ["x", "y"]
    assert final is None


def test_get_secrets_three_page_walk(store: SnapshotSecretsMetadataStore) -> None:
    for name in "abcde":
        store.set_secret(name, name)

    names = []
    page, marker = store.get_secrets(2, "")
    names.append([v.name for v in page])
    page, marker = store.get_secrets(2, marker)
    names.append([v.name for v in page])
    page, marker = store.get_secrets(2, marker)
    names.append([v.name for v in page])
    assert names == [["a", "b"], ["c", "d"], ["e"]]
    assert marker is None


def test_get_secrets_projects_latest_and_skips_deleted(store: SnapshotSecretsMetadataStore) -> None:
    store.set_secret("a", "old")
    latest = store.set_secret("a", "new")
    store.set_secret("b", "gone")
    store.delete_secret("b")

    page, marker = store.get_secrets(10, None)
    assert page == [latest]
    assert marker is None


def test_marker_survives_deletion_of_last_seen(store: SnapshotSecretsMetadataStore) -> None:
    for name in "abcd":
        store.set_secret(name, name)
    _, marker = store.get_secrets(2, "")
    store.delete_secret(marker)
    page, _ = store.get_secrets(10, marker)
    assert [v.name for v in page] == ["c", "d"]


def test_get_secret_versions_pages_in_creation_order(store: SnapshotSecretsMetadataStore) -> None:
    created = [store.set_secret("svc", str(i)) for i in range(5)]

    page1, marker1 = store.get_secret_versions("svc", 2, "")
    assert page1 == created[:2]
    assert marker1 == created[1].version

    store.set_secret("svc", "5")

    page2, marker2 = store.get_secret_versions("svc", 3, marker1)
    assert page2 == created[2:5]
    page3, marker3 = store.get_secret_versions("svc", 3, marker2)
    assert [v.value for v in page3] == ["5"]
    assert marker3 is None


def test_get_secret_versions_unknown_marker(store: SnapshotSecretsMetadataStore) -> None:
    store.set_secret("svc", "v")
    with pytest.raises(NotFoundError):
        store.get_secret_versions("svc", 5, "f" * 32)


def test_get_deleted_secrets(store: SnapshotSecretsMetadataStore) -> None:
    for name in "cab":
        store.set_secret(name, name)
        store.delete_secret(name)
    store.set_secret("live", "v")

    page, marker = store.get_deleted_secrets(2, None)
    assert [entry.name for entry in page] == ["a", "b"]
    assert marker == "b"
    page, marker = store.get_deleted_secrets(2, marker)
    assert [entry.name for entry in page] == ["c"]
    assert marker is None


def test_closed_store_rejects_listing_before_page_size(store_path) -> None:
    closed = SnapshotSecretsMetadataStore(store_path, autosave=False)
    closed.init()
    closed.set_secret("svc", "v")
    closed.close()
    with pytest.raises(IllegalStateError):
        closed.get_secret_versions("svc", 0)
    with pytest.raises(IllegalStateError):
        closed.get_secrets(0)
    with pytest.raises(IllegalStateError):
        closed.get_deleted_secrets(0)
