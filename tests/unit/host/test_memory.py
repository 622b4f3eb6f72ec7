"""Tests for InMemoryAnnotationHost."""

from __future__ import annotations

import pytest
from shapely.geometry import box

from tlszones.host import Annotation, InMemoryAnnotationHost, PixelCalibration


@pytest.fixture
def host() -> InMemoryAnnotationHost:
    return InMemoryAnnotationHost(
        [
            Annotation(id="a", label="Tumor", geometry=box(0, 0, 1, 1)),
            Annotation(id="b", label="TLS", geometry=box(0, 0, 2, 2)),
        ],
        PixelCalibration(0.5, 0.5),
    )


def test_lists_in_insertion_order(host: InMemoryAnnotationHost) -> None:
    assert [a.id for a in host.list_annotations()] == ["a", "b"]
    assert len(host) == 2


def test_calibration(host: InMemoryAnnotationHost) -> None:
    assert host.get_calibration() == PixelCalibration(0.5, 0.5)
    assert InMemoryAnnotationHost().get_calibration() is None


def test_duplicate_ids_rejected() -> None:
    annotation = Annotation(id="a", label=None, geometry=box(0, 0, 1, 1))
    with pytest.raises(ValueError, match="Duplicate annotation id"):
        InMemoryAnnotationHost([annotation, annotation])


def test_add_annotation(host: InMemoryAnnotationHost) -> None:
    new_id = host.add_annotation(box(0, 0, 5, 5), "Center", (255, 0, 0), True)
    added = host.get(new_id)
    assert added.name == "Center"
    assert added.color == (255, 0, 0)
    assert added.locked is True
    assert added.label is None
    assert host.mutations[-1] == (
        "add",
        {"id": new_id, "name": "Center", "locked": True},
    )


def test_add_annotation_ids_are_unique(host: InMemoryAnnotationHost) -> None:
    first = host.add_annotation(box(0, 0, 1, 1), "x", (0, 0, 0), False)
    second = host.add_annotation(box(0, 0, 1, 1), "x", (0, 0, 0), False)
    assert first != second


def test_remove_annotation(host: InMemoryAnnotationHost) -> None:
    host.remove_annotation("a")
    assert [a.id for a in host.list_annotations()] == ["b"]
    assert host.mutations == [("remove", {"id": "a"})]
    with pytest.raises(KeyError):
        host.get("a")


def test_remove_unknown_raises(host: InMemoryAnnotationHost) -> None:
    with pytest.raises(KeyError):
        host.remove_annotation("missing")


def test_set_label_keeps_geometry(host: InMemoryAnnotationHost) -> None:
    before = host.get("b")
    host.set_annotation_label("b", "TLS_Center")
    after = host.get("b")
    assert after.label == "TLS_Center"
    assert after.geometry is before.geometry
    assert before.label == "TLS"


def test_notify_changed(host: InMemoryAnnotationHost) -> None:
    host.notify_changed()
    host.notify_changed()
    assert host.change_notifications == 2
    assert host.mutations == []


def test_repr(host: InMemoryAnnotationHost) -> None:
    assert repr(host) == "InMemoryAnnotationHost(annotations=2)"
