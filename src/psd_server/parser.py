"""
PSD parser.

Decodes Photoshop documents with psd-tools and turns the layer tree into
the intermediate ``ParsedDocument`` representation used by the converter.
"""

import uuid
from io import BytesIO
from pathlib import Path
from typing import Any, Iterable, List, Optional, Union

from psd_tools import PSDImage
from psd_tools.api.layers import AdjustmentLayer

from .core.config import get_logger
from .core.exceptions import ParseError
from .models import (
    BLACK,
    Bounds,
    Color,
    ImageData,
    LayerType,
    ParsedDocument,
    ParsedLayer,
    RASTER_TYPES,
    ShapeData,
    TextData,
)

logger = get_logger("parser")

# Paragraph justification codes stored in the engine data
ALIGNMENTS = {0: "left", 1: "right", 2: "center", 3: "justified"}

# Origination types of live shapes
SHAPE_TYPES = {1: "rectangle", 2: "rectangle", 4: "line", 5: "ellipse"}

ADJUSTMENT_KINDS = {
    "brightnesscontrast",
    "levels",
    "curves",
    "exposure",
    "vibrance",
    "huesaturation",
    "colorbalance",
    "blackandwhite",
    "photofilter",
    "channelmixer",
    "colorlookup",
    "invert",
    "posterize",
    "threshold",
    "selectivecolor",
    "gradientmap",
}


def parse(data: bytes, name: str = "Untitled") -> ParsedDocument:
    """Parse PSD bytes into a ParsedDocument.

    Args:
        data: Raw bytes of the PSD file
        name: Document name used for the root frame

    Returns:
        ParsedDocument with the full layer tree

    Raises:
        ParseError: If the bytes are not a readable PSD document
    """
    if not data:
        raise ParseError("PSD parsing failed: file is empty")

    try:
        psd = PSDImage.open(BytesIO(data))
    except Exception as e:
        logger.error("Failed to decode PSD %s: %s", name, e)
        raise ParseError(f"PSD parsing failed: {e}", {"document": name}) from e

    return build_document(psd, name)


def parse_file(file_path: Union[str, Path]) -> ParsedDocument:
    """Read and parse a PSD file, naming the document after the file."""
    path = Path(file_path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ParseError(f"Cannot read PSD file: {path}", {"file_path": str(path)}) from e
    return parse(data, document_name(path.name))


def document_name(file_name: str) -> str:
    """Strip the directory and .psd extension from a file name."""
    name = Path(file_name).name
    if name.lower().endswith(".psd"):
        name = name[: -len(".psd")]
    return name or "Untitled"


def build_document(psd: Any, name: str) -> ParsedDocument:
    """Build a ParsedDocument from a decoded psd-tools document."""
    width = getattr(psd, "width", 0) or 0
    height = getattr(psd, "height", 0) or 0
    if width <= 0 or height <= 0:
        raise ParseError(
            "PSD parsing failed: missing canvas dimensions",
            {"width": width, "height": height},
        )

    logger.debug("PSD dimensions: %dx%d", width, height)

    return ParsedDocument(
        name=name,
        width=width,
        height=height,
        color_mode=_enum_name(getattr(psd, "color_mode", None)) or "RGB",
        bit_depth=getattr(psd, "depth", None) or 8,
        layers=parse_layers(psd),
    )


def parse_layers(layers: Iterable[Any]) -> List[ParsedLayer]:
    parsed = []
    for layer in layers:
        result = parse_layer(layer)
        if result is not None:
            parsed.append(result)
    return parsed


def parse_layer(layer: Any) -> Optional[ParsedLayer]:
    """Parse one layer, returning None when it cannot be extracted."""
    name = getattr(layer, "name", None) or "Unnamed Layer"
    try:
        layer_type = classify_layer(layer)

        children = None
        if layer_type == LayerType.GROUP:
            children = parse_layers(layer)

        return ParsedLayer(
            id=str(uuid.uuid4()),
            name=name,
            type=layer_type,
            bounds=extract_bounds(layer),
            visible=bool(getattr(layer, "visible", True)),
            opacity=extract_opacity(layer),
            blend_mode=extract_blend_mode(layer),
            children=children,
            text_data=extract_text_data(layer) if layer_type == LayerType.TEXT else None,
            shape_data=extract_shape_data(layer) if layer_type == LayerType.SHAPE else None,
            image_data=extract_image_data(layer) if layer_type in RASTER_TYPES else None,
        )
    except Exception as e:
        logger.warning("Failed to parse layer: %s (%s)", name, e)
        return None


def classify_layer(layer: Any) -> LayerType:
    """Classify a layer; the first matching rule wins."""
    if _is_group(layer) and len(layer) > 0:
        return LayerType.GROUP

    if _kind(layer) == "type" and getattr(layer, "text", None):
        return LayerType.TEXT

    if _kind(layer) == "smartobject":
        return LayerType.SMART_OBJECT

    if isinstance(layer, AdjustmentLayer) or _kind(layer) in ADJUSTMENT_KINDS:
        return LayerType.ADJUSTMENT

    if _call(layer, "has_vector_mask") or _call(layer, "has_stroke"):
        return LayerType.SHAPE

    if _call(layer, "has_pixels"):
        return LayerType.IMAGE

    return LayerType.UNKNOWN


def extract_bounds(layer: Any) -> Bounds:
    bbox = getattr(layer, "bbox", None) or (0, 0, 0, 0)
    left, top, right, bottom = (int(value or 0) for value in bbox)
    return Bounds(left=left, top=top, right=right, bottom=bottom)


def extract_opacity(layer: Any) -> float:
    opacity = getattr(layer, "opacity", None)
    if opacity is None:
        return 1.0
    return opacity / 255


def extract_blend_mode(layer: Any) -> Optional[str]:
    name = _enum_name(getattr(layer, "blend_mode", None))
    if not name:
        return None
    return name.lower().replace("_", " ")


def extract_text_data(layer: Any) -> Optional[TextData]:
    content = getattr(layer, "text", None)
    if not content:
        return None

    style = _first_run(layer.engine_dict, "StyleRun", "StyleSheet", "StyleSheetData")
    paragraph = _first_run(
        layer.engine_dict, "ParagraphRun", "ParagraphSheet", "Properties"
    )

    font_family = _font_name(layer, style.get("Font")) or "Arial"

    faux_bold = _plain(style.get("FauxBold"))
    faux_italic = _plain(style.get("FauxItalic"))
    if faux_bold is None and faux_italic is None:
        is_bold = "Bold" in font_family
        is_italic = "Italic" in font_family
    else:
        is_bold = bool(faux_bold)
        is_italic = bool(faux_italic)

    return TextData(
        content=str(content).replace("\r", "\n"),
        font_size=float(_plain(style.get("FontSize")) or 12),
        font_family=font_family,
        font_weight="bold" if is_bold else "normal",
        font_style="italic" if is_italic else "normal",
        color=extract_color(style.get("FillColor")),
        alignment=extract_alignment(_plain(paragraph.get("Justification"))),
        line_height=_optional_float(style.get("Leading")),
        letter_spacing=_optional_float(style.get("Tracking")),
    )


def extract_color(fill_color: Any) -> Color:
    """Convert an engine-data ARGB color with 0-1 channels."""
    if not fill_color:
        return BLACK

    values = [float(_plain(value)) for value in _plain(fill_color.get("Values")) or []]
    if len(values) != 4:
        return BLACK

    a, r, g, b = values
    return Color.from_unit(r, g, b, a)


def extract_alignment(code: Any) -> str:
    return ALIGNMENTS.get(code, "left")


def extract_shape_data(layer: Any) -> ShapeData:
    origination = list(getattr(layer, "origination", None) or [])
    if not origination:
        return ShapeData(shape_type="path")

    first = origination[0]
    shape_type = SHAPE_TYPES.get(_plain(getattr(first, "origin_type", None)), "path")

    corner_radius = None
    radii = getattr(first, "radii", None)
    if radii:
        values = [float(_plain(value)) for value in radii.values()]
        corner_radius = max(values) if values else None

    return ShapeData(shape_type=shape_type, corner_radius=corner_radius)


def extract_image_data(layer: Any) -> Optional[ImageData]:
    """Extract RGBA pixels when the layer carries raster data."""
    if not _call(layer, "has_pixels"):
        return None

    image = layer.topil()
    if image is None:
        return None

    if image.mode != "RGBA":
        image = image.convert("RGBA")

    width, height = image.size
    if width == 0 or height == 0:
        return None

    return ImageData(buffer=image.tobytes(), width=width, height=height, format="png")


def _is_group(layer: Any) -> bool:
    is_group = getattr(layer, "is_group", None)
    return bool(is_group()) if callable(is_group) else False


def _kind(layer: Any) -> Optional[str]:
    return getattr(layer, "kind", None)


def _call(layer: Any, method: str) -> bool:
    func = getattr(layer, method, None)
    return bool(func()) if callable(func) else False


def _plain(value: Any) -> Any:
    """Unwrap psd-tools engine data values."""
    return getattr(value, "value", value)


def _optional_float(value: Any) -> Optional[float]:
    value = _plain(value)
    return float(value) if value is not None else None


def _enum_name(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(getattr(value, "name", value))


def _first_run(engine_dict: Any, run_key: str, sheet_key: str, data_key: str) -> dict:
    try:
        run = engine_dict[run_key]["RunArray"][0]
        return run[sheet_key][data_key]
    except (KeyError, IndexError, TypeError):
        return {}


def _font_name(layer: Any, font_index: Any) -> Optional[str]:
    index = _plain(font_index)
    if index is None:
        return None
    try:
        font = layer.resource_dict["FontSet"][int(index)]
    except (KeyError, IndexError, TypeError):
        return None
    return str(_plain(font.get("Name"))).strip("\x00 ") or None
