"""
Converts a parsed PSD layer tree into target-format scene nodes.

Every source layer becomes either an editable node (frame, text, rectangle,
image) or a flattened placeholder rectangle. Conversion statistics are
accumulated in a ``ConversionMetrics`` instance threaded through the walk in
pre-order, so unsupported features are reported parent before children.
"""

from pathlib import Path
from typing import List, Optional, Tuple, Union

from .core.config import get_logger
from .core.exceptions import ExportError
from .image_exporter import ImageExporter
from .models import (
    Bounds,
    ConversionMetrics,
    FrameProperties,
    ImageProperties,
    LayerType,
    NodeType,
    Paint,
    ParsedDocument,
    ParsedLayer,
    RawImage,
    SceneNode,
    ShapeProperties,
    TextProperties,
    UnsupportedFeature,
)

logger = get_logger("converter")

SHAPE_FILL = {"r": 0.5, "g": 0.5, "b": 0.5, "a": 1}
FLATTENED_FILL = {"r": 0.9, "g": 0.9, "b": 0.9, "a": 0.5}
NO_DATA_FILL = {"r": 0.9, "g": 0.9, "b": 0.9, "a": 0.3}

TEXT_ALIGNMENTS = {
    "left": "LEFT",
    "center": "CENTER",
    "right": "RIGHT",
    "justified": "JUSTIFIED",
}

def font_style_name(font_weight: str, font_style: str) -> str:
    is_bold = font_weight == "bold"
    is_italic = font_style == "italic"

    if is_bold and is_italic:
        return "Bold Italic"
    if is_bold:
        return "Bold"
    if is_italic:
        return "Italic"
    return "Regular"


def map_text_alignment(alignment: str) -> str:
    return TEXT_ALIGNMENTS.get(alignment, "LEFT")


class Converter:
    """Walks a ParsedDocument and produces the scene graph."""

    def __init__(
        self,
        exporter: Optional[ImageExporter] = None,
        export_dir: Union[str, Path] = Path("./uploads/exported"),
    ):
        self.exporter = exporter or ImageExporter()
        self.export_dir = Path(export_dir)

    async def convert(
        self, document: ParsedDocument
    ) -> Tuple[List[SceneNode], ConversionMetrics]:
        """Convert a parsed document.

        Returns:
            Tuple of (nodes, metrics) where nodes holds a single root FRAME
            sized to the document canvas
        """
        logger.info("Starting conversion of %s", document.name)
        metrics = ConversionMetrics()

        children = await self._convert_children(document.layers, metrics)
        root = SceneNode(
            type=NodeType.FRAME,
            name=document.name,
            bounds=Bounds(0, 0, document.width, document.height),
            visible=True,
            opacity=1.0,
            children=children,
            frame_properties=FrameProperties(layout_mode="NONE", clips_content=False),
        )

        logger.info(
            "Conversion metrics: total=%d editable=%d flattened=%d unsupported=%d",
            metrics.total_layers,
            metrics.editable_layers,
            metrics.flattened_layers,
            len(metrics.unsupported_features),
        )
        return [root], metrics

    async def _convert_children(
        self, layers: List[ParsedLayer], metrics: ConversionMetrics
    ) -> List[SceneNode]:
        children = []
        for layer in layers:
            node = await self._convert_layer(layer, metrics)
            if node is not None:
                children.append(node)
        return children

    async def _convert_layer(
        self, layer: ParsedLayer, metrics: ConversionMetrics
    ) -> Optional[SceneNode]:
        metrics.total_layers += 1

        try:
            match layer.type:
                case LayerType.GROUP:
                    return await self._convert_group(layer, metrics)
                case LayerType.TEXT:
                    return await self._convert_text(layer, metrics)
                case LayerType.SHAPE:
                    return await self._convert_shape(layer, metrics)
                case LayerType.IMAGE | LayerType.SMART_OBJECT | LayerType.UNKNOWN:
                    return await self._convert_raster(layer, metrics)
                case LayerType.ADJUSTMENT:
                    return await self._convert_adjustment(layer, metrics)
                case _:
                    return self._flatten(layer, metrics, "Unknown layer type")
        except Exception as e:
            logger.warning("Failed to convert layer: %s (%s)", layer.name, e)
            metrics.warnings.append(f"Failed to convert layer: {layer.name}")
            return None

    async def _convert_group(
        self, layer: ParsedLayer, metrics: ConversionMetrics
    ) -> SceneNode:
        children = await self._convert_children(layer.children or [], metrics)

        metrics.editable_layers += 1
        return SceneNode(
            type=NodeType.FRAME,
            name=layer.name,
            bounds=layer.bounds,
            visible=layer.visible,
            opacity=layer.opacity,
            blend_mode=layer.blend_mode,
            children=children,
            frame_properties=FrameProperties(layout_mode="NONE", clips_content=False),
        )

    async def _convert_text(
        self, layer: ParsedLayer, metrics: ConversionMetrics
    ) -> SceneNode:
        text = layer.text_data
        if text is None:
            return self._flatten(layer, metrics, "Text layer missing text data")

        properties = TextProperties(
            characters=text.content,
            font_size=text.font_size,
            font_family=text.font_family,
            font_style=font_style_name(text.font_weight, text.font_style),
            fills=[Paint(type="SOLID", color=text.color.to_unit())],
            text_align_horizontal=map_text_alignment(text.alignment),
            line_height=text.line_height,
            letter_spacing=text.letter_spacing,
        )

        metrics.editable_layers += 1
        return SceneNode(
            type=NodeType.TEXT,
            name=layer.name,
            bounds=layer.bounds,
            visible=layer.visible,
            opacity=layer.opacity,
            blend_mode=layer.blend_mode,
            text_properties=properties,
        )

    async def _convert_shape(
        self, layer: ParsedLayer, metrics: ConversionMetrics
    ) -> SceneNode:
        # Vector paths are not reconstructed, only the bounding box.
        corner_radius = layer.shape_data.corner_radius if layer.shape_data else None

        metrics.editable_layers += 1
        return SceneNode(
            type=NodeType.RECTANGLE,
            name=layer.name,
            bounds=layer.bounds,
            visible=layer.visible,
            opacity=layer.opacity,
            blend_mode=layer.blend_mode,
            shape_properties=ShapeProperties(
                fills=[Paint(type="SOLID", color=dict(SHAPE_FILL))],
                corner_radius=corner_radius,
            ),
        )

    async def _convert_raster(
        self, layer: ParsedLayer, metrics: ConversionMetrics
    ) -> SceneNode:
        image = layer.image_data
        if image is None:
            logger.debug("Raster layer %r has no image data", layer.name)
            return self._placeholder(layer, metrics, "No pixel data available")

        try:
            exported = await self.exporter.export(
                RawImage(width=image.width, height=image.height, pixel_buffer=image.buffer),
                layer.name,
                self.export_dir,
            )
        except ExportError as e:
            logger.warning("Image export failed for layer %s: %s", layer.name, e)
            exported = None

        if exported is None:
            metrics.warnings.append(f"Failed to export image for layer: {layer.name}")
            return self._placeholder(layer, metrics, "Image export failed")

        image_ref = str(exported.file_path)
        metrics.editable_layers += 1
        logger.debug(
            "Converted %s layer %s (%dx%d)",
            layer.type.value,
            layer.name,
            exported.width,
            exported.height,
        )
        return SceneNode(
            type=NodeType.IMAGE,
            name=layer.name,
            bounds=layer.bounds,
            visible=layer.visible,
            opacity=layer.opacity,
            blend_mode=layer.blend_mode,
            image_properties=ImageProperties(
                image_ref=image_ref,
                fills=[Paint(type="IMAGE", scale_mode="FILL", image_hash=image_ref)],
            ),
        )

    async def _convert_adjustment(
        self, layer: ParsedLayer, metrics: ConversionMetrics
    ) -> SceneNode:
        return self._flatten(layer, metrics, "Adjustment layers are not supported")

    def _flatten(
        self, layer: ParsedLayer, metrics: ConversionMetrics, reason: str
    ) -> SceneNode:
        """Replace a layer with a placeholder rectangle and record why."""
        feature = getattr(layer.type, "value", str(layer.type))
        return self._rectangle_placeholder(
            layer, metrics, feature, reason, f"{layer.name} (Flattened)", FLATTENED_FILL
        )

    def _placeholder(
        self, layer: ParsedLayer, metrics: ConversionMetrics, reason: str
    ) -> SceneNode:
        return self._rectangle_placeholder(
            layer, metrics, "Raster Image", reason, f"{layer.name} (No Data)", NO_DATA_FILL
        )

    def _rectangle_placeholder(
        self,
        layer: ParsedLayer,
        metrics: ConversionMetrics,
        feature: str,
        reason: str,
        name: str,
        fill: dict,
    ) -> SceneNode:
        node = SceneNode(
            type=NodeType.RECTANGLE,
            name=name,
            bounds=layer.bounds,
            visible=layer.visible,
            opacity=layer.opacity,
            shape_properties=ShapeProperties(fills=[Paint(type="SOLID", color=dict(fill))]),
        )

        metrics.flattened_layers += 1
        metrics.unsupported_features.append(
            UnsupportedFeature(layer_name=layer.name, feature=feature, reason=reason)
        )
        return node
