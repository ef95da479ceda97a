import asyncio
import json
from pathlib import Path
from typing import Any, Dict, List, Union

from .base_publisher import BasePublisher, ROOT_NODE_ID, file_url, generate_file_key
from .payloads import build_document
from ..core.config import get_logger
from ..core.exceptions import PublishError
from ..models import PublishResult, SceneNode

logger = get_logger("publishers.file")


class FileStructurePublisher(BasePublisher):
    """Writes the Figma file structure to disk for manual or plugin import."""

    def __init__(self, output_dir: Union[str, Path]):
        self.output_dir = Path(output_dir)

    async def publish(self, document_name: str, nodes: List[SceneNode]) -> PublishResult:
        file_key = generate_file_key()
        structure = build_document(document_name, nodes)
        path = self.output_dir / f"figma-structure-{file_key}.json"

        loop = asyncio.get_event_loop()
        await loop.run_in_executor(None, self._write_structure, path, structure)

        logger.info("Saved file structure to: %s", path)
        return PublishResult(
            artifact_id=file_key,
            artifact_url=file_url(file_key, document_name),
            root_node_id=ROOT_NODE_ID,
        )

    def _write_structure(self, path: Path, structure: Dict[str, Any]) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(structure, indent=2), encoding="utf-8")
        except OSError as e:
            raise PublishError(
                f"Failed to write file structure: {e}",
                {"path": str(path)},
                kind="unknown",
            ) from e
