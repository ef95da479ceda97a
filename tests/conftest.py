import pytest

from psd_server.core.config import Settings
from psd_server.models import (
    Bounds,
    ImageData,
    LayerType,
    ParsedDocument,
    ParsedLayer,
    ShapeData,
    TextData,
)


class FakePsdLayer:
    """Minimal stand-in for a psd-tools layer."""

    def __init__(
        self,
        name="Layer",
        kind="pixel",
        children=None,
        bbox=(0, 0, 10, 10),
        visible=True,
        opacity=255,
        blend_mode=None,
        text=None,
        engine_dict=None,
        resource_dict=None,
        vector_mask=False,
        stroke=False,
        image=None,
        origination=None,
    ):
        self.name = name
        self.kind = kind
        self.bbox = bbox
        self.visible = visible
        self.opacity = opacity
        self.blend_mode = blend_mode
        self.text = text
        self.engine_dict = engine_dict or {}
        self.resource_dict = resource_dict or {}
        self.origination = origination or []
        self._children = children
        self._vector_mask = vector_mask
        self._stroke = stroke
        self._image = image

    def is_group(self):
        return self._children is not None

    def __iter__(self):
        return iter(self._children or [])

    def __len__(self):
        return len(self._children or [])

    def has_vector_mask(self):
        return self._vector_mask

    def has_stroke(self):
        return self._stroke

    def has_pixels(self):
        return self._image is not None

    def topil(self):
        return self._image


class FakePsd:
    def __init__(self, layers, width=800, height=600, color_mode=None, depth=8):
        self._layers = layers
        self.width = width
        self.height = height
        self.color_mode = color_mode
        self.depth = depth

    def __iter__(self):
        return iter(self._layers)

    def __len__(self):
        return len(self._layers)


@pytest.fixture
def fake_layer():
    return FakePsdLayer


@pytest.fixture
def fake_psd():
    return FakePsd


@pytest.fixture
def make_layer():
    """Factory for parsed layers with sensible defaults per type."""
    counter = {"next": 0}

    def _make(layer_type, name="Layer", **kwargs):
        counter["next"] += 1
        kwargs.setdefault("id", f"layer-{counter['next']}")
        kwargs.setdefault("bounds", Bounds(10, 20, 110, 70))
        if layer_type == LayerType.GROUP:
            kwargs.setdefault("children", [])
        return ParsedLayer(name=name, type=layer_type, **kwargs)

    return _make


@pytest.fixture
def make_document():
    def _make(layers, name="Design", width=800, height=600):
        return ParsedDocument(name=name, width=width, height=height, layers=layers)

    return _make


@pytest.fixture
def text_data():
    return TextData(content="Hello", font_size=24, font_family="Arial")


@pytest.fixture
def shape_data():
    return ShapeData(shape_type="rectangle", corner_radius=4.0)


@pytest.fixture
def image_data():
    # 2x2 opaque red
    return ImageData(buffer=bytes([255, 0, 0, 255]) * 4, width=2, height=2)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        upload_dir=tmp_path / "uploads",
        export_dir=tmp_path / "exported",
        figma_access_token=None,
        figma_team_id=None,
    )
