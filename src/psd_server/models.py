"""
Data models for parsed documents, scene nodes, reports and jobs.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple


class LayerType(str, Enum):
    GROUP = "group"
    TEXT = "text"
    SHAPE = "shape"
    IMAGE = "image"
    SMART_OBJECT = "smartObject"
    ADJUSTMENT = "adjustment"
    UNKNOWN = "unknown"


class NodeType(str, Enum):
    FRAME = "FRAME"
    TEXT = "TEXT"
    RECTANGLE = "RECTANGLE"
    IMAGE = "IMAGE"


class JobStatus(str, Enum):
    PENDING = "pending"
    PARSING = "parsing"
    CONVERTING = "converting"
    PUBLISHING = "publishing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_finished(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


# Parsed document


@dataclass(frozen=True)
class Bounds:
    left: int = 0
    top: int = 0
    right: int = 0
    bottom: int = 0

    @property
    def width(self) -> int:
        return self.right - self.left

    @property
    def height(self) -> int:
        return self.bottom - self.top

    def to_dict(self) -> Dict[str, int]:
        return {
            "left": self.left,
            "top": self.top,
            "right": self.right,
            "bottom": self.bottom,
        }


@dataclass(frozen=True)
class Color:
    """RGB channels as 0-255 integers, alpha as a 0-1 float."""

    r: int = 0
    g: int = 0
    b: int = 0
    a: float = 1.0

    @classmethod
    def from_unit(cls, r: float, g: float, b: float, a: float = 1.0) -> "Color":
        """Build a color from 0-1 float channels."""
        return cls(r=round(r * 255), g=round(g * 255), b=round(b * 255), a=a)

    def to_unit(self) -> Dict[str, float]:
        """Return the channels as 0-1 floats for the target format."""
        return {
            "r": self.r / 255,
            "g": self.g / 255,
            "b": self.b / 255,
            "a": self.a,
        }


BLACK = Color(0, 0, 0, 1.0)


@dataclass(frozen=True)
class TextData:
    content: str
    font_size: float = 12
    font_family: str = "Arial"
    font_weight: str = "normal"
    font_style: str = "normal"
    color: Color = BLACK
    alignment: str = "left"
    line_height: Optional[float] = None
    letter_spacing: Optional[float] = None


@dataclass(frozen=True)
class ShapeData:
    shape_type: str = "unknown"
    corner_radius: Optional[float] = None


@dataclass(frozen=True)
class ImageData:
    buffer: bytes = field(repr=False)
    width: int
    height: int
    format: str = "png"


@dataclass(frozen=True)
class ParsedLayer:
    id: str
    name: str
    type: LayerType
    bounds: Bounds = field(default_factory=Bounds)
    visible: bool = True
    opacity: float = 1.0
    blend_mode: Optional[str] = None
    children: Optional[List["ParsedLayer"]] = None
    text_data: Optional[TextData] = None
    shape_data: Optional[ShapeData] = None
    image_data: Optional[ImageData] = None

    def __post_init__(self):
        if (self.children is not None) != (self.type == LayerType.GROUP):
            raise ValueError(
                f"Layer {self.name!r}: children must be set exactly for group layers"
            )

        payloads = {
            LayerType.TEXT: self.text_data,
            LayerType.SHAPE: self.shape_data,
            LayerType.IMAGE: self.image_data,
        }
        for layer_type, payload in payloads.items():
            if payload is None:
                continue
            if layer_type == LayerType.IMAGE and self.type in RASTER_TYPES:
                continue
            if layer_type != self.type:
                raise ValueError(
                    f"Layer {self.name!r}: payload does not match type {self.type.value}"
                )

    def walk(self):
        """Yield this layer and its descendants in pre-order."""
        yield self
        for child in self.children or []:
            yield from child.walk()


RASTER_TYPES = (LayerType.IMAGE, LayerType.SMART_OBJECT, LayerType.UNKNOWN)


@dataclass(frozen=True)
class ParsedDocument:
    name: str
    width: int
    height: int
    color_mode: str = "RGB"
    bit_depth: int = 8
    layers: List[ParsedLayer] = field(default_factory=list)

    def iter_layers(self):
        for layer in self.layers:
            yield from layer.walk()


# Scene graph


@dataclass(frozen=True)
class Paint:
    type: str = "SOLID"
    color: Optional[Dict[str, float]] = None
    scale_mode: Optional[str] = None
    image_hash: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.type}
        if self.color is not None:
            data["color"] = dict(self.color)
        if self.scale_mode is not None:
            data["scaleMode"] = self.scale_mode
        if self.image_hash is not None:
            data["imageHash"] = self.image_hash
        return data


@dataclass(frozen=True)
class TextProperties:
    characters: str
    font_size: float
    font_family: str
    font_style: str
    fills: List[Paint]
    text_align_horizontal: str = "LEFT"
    line_height: Optional[float] = None
    letter_spacing: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "characters": self.characters,
            "fontSize": self.font_size,
            "fontName": {"family": self.font_family, "style": self.font_style},
            "fills": [paint.to_dict() for paint in self.fills],
            "textAlignHorizontal": self.text_align_horizontal,
        }
        if self.line_height:
            data["lineHeight"] = {"value": self.line_height, "unit": "PIXELS"}
        if self.letter_spacing:
            data["letterSpacing"] = {"value": self.letter_spacing, "unit": "PERCENT"}
        return data


@dataclass(frozen=True)
class ShapeProperties:
    fills: List[Paint]
    corner_radius: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"fills": [paint.to_dict() for paint in self.fills]}
        if self.corner_radius is not None:
            data["cornerRadius"] = self.corner_radius
        return data


@dataclass(frozen=True)
class ImageProperties:
    image_ref: str
    fills: List[Paint]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "imageRef": self.image_ref,
            "fills": [paint.to_dict() for paint in self.fills],
        }


@dataclass(frozen=True)
class FrameProperties:
    layout_mode: str = "NONE"
    clips_content: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"layoutMode": self.layout_mode, "clipsContent": self.clips_content}


@dataclass(frozen=True)
class SceneNode:
    type: NodeType
    name: str
    bounds: Bounds
    visible: bool = True
    opacity: float = 1.0
    blend_mode: Optional[str] = None
    children: Optional[List["SceneNode"]] = None
    text_properties: Optional[TextProperties] = None
    shape_properties: Optional[ShapeProperties] = None
    image_properties: Optional[ImageProperties] = None
    frame_properties: Optional[FrameProperties] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "type": self.type.value,
            "name": self.name,
            "bounds": self.bounds.to_dict(),
            "visible": self.visible,
            "opacity": self.opacity,
        }
        if self.blend_mode:
            data["blendMode"] = self.blend_mode
        if self.children is not None:
            data["children"] = [child.to_dict() for child in self.children]
        if self.text_properties is not None:
            data["textProperties"] = self.text_properties.to_dict()
        if self.shape_properties is not None:
            data["shapeProperties"] = self.shape_properties.to_dict()
        if self.image_properties is not None:
            data["imageProperties"] = self.image_properties.to_dict()
        if self.frame_properties is not None:
            data["frameProperties"] = self.frame_properties.to_dict()
        return data


# Image export


@dataclass(frozen=True)
class RawImage:
    width: int
    height: int
    pixel_buffer: bytes = field(repr=False)


@dataclass(frozen=True)
class ExportedImage:
    file_path: Path
    width: int
    height: int
    format: str = "png"


# Metrics and reports


@dataclass(frozen=True)
class UnsupportedFeature:
    layer_name: str
    feature: str
    reason: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "layerName": self.layer_name,
            "feature": self.feature,
            "reason": self.reason,
        }


@dataclass
class ConversionMetrics:
    """Running counters filled in while the converter walks the layer tree."""

    total_layers: int = 0
    editable_layers: int = 0
    flattened_layers: int = 0
    unsupported_features: List[UnsupportedFeature] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ConversionReport:
    """
    Summary of a finished conversion.

    Attributes:
        total_layers: Source layers visited, at any depth
        editable_layers: Layers converted into editable nodes
        flattened_layers: Layers replaced by placeholders
        unsupported_features: Why each placeholder was produced
        processing_time_ms: Wall-clock time of the whole job
        warnings: Non-fatal problems, such as layers that failed to convert
    """

    total_layers: int
    editable_layers: int
    flattened_layers: int
    unsupported_features: Tuple[UnsupportedFeature, ...]
    processing_time_ms: int
    warnings: Tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalLayers": self.total_layers,
            "editableLayers": self.editable_layers,
            "flattenedLayers": self.flattened_layers,
            "unsupportedFeatures": [f.to_dict() for f in self.unsupported_features],
            "processingTimeMs": self.processing_time_ms,
            "warnings": list(self.warnings),
        }


# Publishing and jobs


@dataclass(frozen=True)
class PublishResult:
    artifact_id: str
    artifact_url: str
    root_node_id: Optional[str] = None


@dataclass(frozen=True)
class JobError:
    code: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


@dataclass(frozen=True)
class ConversionResult:
    success: bool
    report: ConversionReport
    artifact_url: Optional[str] = None
    artifact_key: Optional[str] = None
    root_node_id: Optional[str] = None
    error: Optional[JobError] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "success": self.success,
            "report": self.report.to_dict(),
        }
        if self.artifact_url is not None:
            data["artifactUrl"] = self.artifact_url
        if self.artifact_key is not None:
            data["artifactKey"] = self.artifact_key
        if self.root_node_id is not None:
            data["rootNodeId"] = self.root_node_id
        if self.error is not None:
            data["error"] = self.error.to_dict()
        return data


@dataclass(frozen=True)
class ConversionJob:
    id: str
    status: JobStatus
    file_name: str
    file_path: Path
    created_at: datetime
    updated_at: datetime
    started_at: Optional[datetime] = None
    parsed_data: Optional[ParsedDocument] = field(default=None, repr=False)
    result: Optional[ConversionResult] = None
    error: Optional[JobError] = None


@dataclass(frozen=True)
class JobStatusView:
    id: str
    status: str
    message: str
    result: Optional[ConversionResult] = None
    error_message: Optional[str] = None
