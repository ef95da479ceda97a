"""
Builds the Figma file document structure from scene nodes.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List

from ..models import NodeType, SceneNode


def build_document(document_name: str, nodes: List[SceneNode]) -> Dict[str, Any]:
    """Wrap converted nodes into a Figma-style file structure.

    Top-level nodes get ids ``1:<n>``; nested nodes append ``:<n>`` to their
    parent's id.
    """
    return {
        "name": document_name,
        "lastModified": datetime.now(timezone.utc).isoformat(),
        "version": "1.0",
        "document": {
            "id": "0:0",
            "name": "Document",
            "type": "DOCUMENT",
            "children": [
                convert_node(node, f"1:{index}") for index, node in enumerate(nodes, start=1)
            ],
        },
    }


def convert_node(node: SceneNode, node_id: str) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "id": node_id,
        "name": node.name,
        "type": node.type.value,
        "visible": node.visible,
        "opacity": node.opacity,
        "absoluteBoundingBox": {
            "x": node.bounds.left,
            "y": node.bounds.top,
            "width": node.bounds.width,
            "height": node.bounds.height,
        },
    }

    if node.type == NodeType.FRAME:
        if node.children is not None:
            data["children"] = [
                convert_node(child, f"{node_id}:{index}")
                for index, child in enumerate(node.children, start=1)
            ]
        if node.frame_properties is not None:
            data["clipsContent"] = node.frame_properties.clips_content

    elif node.type == NodeType.TEXT:
        text = node.text_properties
        if text is not None:
            data["characters"] = text.characters
            data["style"] = {
                "fontFamily": text.font_family,
                "fontPostScriptName": text.font_style,
                "fontWeight": 700 if "Bold" in text.font_style else 400,
                "fontSize": text.font_size,
                "textAlignHorizontal": text.text_align_horizontal,
            }
            data["fills"] = [paint.to_dict() for paint in text.fills]

    elif node.type in (NodeType.RECTANGLE, NodeType.IMAGE):
        # The file format has no image node; images are rectangles with an image fill
        data["type"] = NodeType.RECTANGLE.value
        if node.shape_properties is not None:
            data["fills"] = [paint.to_dict() for paint in node.shape_properties.fills]
            data["cornerRadius"] = node.shape_properties.corner_radius or 0
        if node.image_properties is not None:
            data["fills"] = [
                {
                    "type": "IMAGE",
                    "scaleMode": "FILL",
                    "imageRef": node.image_properties.image_ref,
                }
            ]

    return data
