from .base_publisher import BasePublisher
from .figma_publisher import FigmaPublisher
from .file_publisher import FileStructurePublisher
from ..core.config import Settings


def create_publisher(settings: Settings) -> BasePublisher:
    """Pick the Figma API publisher when a token is configured."""
    fallback = FileStructurePublisher(settings.upload_dir)
    if not settings.figma_access_token:
        return fallback

    return FigmaPublisher(
        access_token=settings.figma_access_token,
        fallback=fallback,
        team_id=settings.figma_team_id,
        api_base=settings.figma_api_base,
        timeout=settings.publish_timeout_seconds,
    )


__all__ = [
    "BasePublisher",
    "FigmaPublisher",
    "FileStructurePublisher",
    "create_publisher",
]
