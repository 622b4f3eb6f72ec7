"""In-memory annotation host.

Holds annotations in a dict keyed by identity and records every mutation,
which makes it the natural host for unit tests and for embedding the
pipeline in other tools.
"""

from __future__ import annotations

import dataclasses
import uuid
from collections.abc import Iterable, Sequence
from typing import Any

from shapely.geometry.base import BaseGeometry

from tlszones.host.types import RGB, Annotation, PixelCalibration


class InMemoryAnnotationHost:
    """Annotation host backed by a plain dict.

    Attributes:
        mutations: Ordered log of (operation, payload) tuples for every
            call that changed the annotation set.
        change_notifications: Number of notify_changed() calls.
    """

    def __init__(
        self,
        annotations: Iterable[Annotation] = (),
        calibration: PixelCalibration | None = None,
    ) -> None:
        self._annotations: dict[str, Annotation] = {}
        for annotation in annotations:
            if annotation.id in self._annotations:
                raise ValueError(f"Duplicate annotation id {annotation.id!r}")
            self._annotations[annotation.id] = annotation
        self._calibration = calibration
        self.mutations: list[tuple[str, dict[str, Any]]] = []
        self.change_notifications = 0

    def list_annotations(self) -> Sequence[Annotation]:
        return list(self._annotations.values())

    def get_calibration(self) -> PixelCalibration | None:
        return self._calibration

    def get(self, annotation_id: str) -> Annotation:
        """Return the annotation with the given identity.

        Raises:
            KeyError: If no such annotation exists.
        """
        return self._annotations[annotation_id]

    def remove_annotation(self, annotation_id: str) -> None:
        del self._annotations[annotation_id]
        self.mutations.append(("remove", {"id": annotation_id}))

    def add_annotation(
        self,
        geometry: BaseGeometry,
        display_name: str,
        color: RGB,
        locked: bool,
    ) -> str:
        annotation_id = str(uuid.uuid4())
        self._annotations[annotation_id] = Annotation(
            id=annotation_id,
            label=None,
            geometry=geometry,
            name=display_name,
            color=color,
            locked=locked,
        )
        self.mutations.append(
            ("add", {"id": annotation_id, "name": display_name, "locked": locked})
        )
        return annotation_id

    def set_annotation_label(self, annotation_id: str, label: str) -> None:
        current = self._annotations[annotation_id]
        self._annotations[annotation_id] = dataclasses.replace(current, label=label)
        self.mutations.append(("label", {"id": annotation_id, "label": label}))

    def notify_changed(self) -> None:
        self.change_notifications += 1

    def __len__(self) -> int:
        return len(self._annotations)

    def __repr__(self) -> str:
        return f"InMemoryAnnotationHost(annotations={len(self._annotations)})"
