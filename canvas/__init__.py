"""
canvas package

PyQt6 graphics items, scene, and view for the floor plan canvas.
"""

from canvas.mixins import LinkedMixin, MetaMixin
from canvas.items import LinePreviewItem, MeasurementLabelItem, MetaLineItem
from canvas.scene import AnnotatorScene
from canvas.view import AnnotatorView

__all__ = [
    "LinkedMixin",
    "MetaMixin",
    "LinePreviewItem",
    "MeasurementLabelItem",
    "MetaLineItem",
    "AnnotatorScene",
    "AnnotatorView",
]
