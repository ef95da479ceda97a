import secrets
import string
from abc import ABC, abstractmethod
from typing import List
from urllib.parse import quote

from ..models import PublishResult, SceneNode

FILE_KEY_ALPHABET = string.ascii_letters + string.digits
FILE_KEY_LENGTH = 22
ROOT_NODE_ID = "0:1"


def generate_file_key() -> str:
    """Generate a Figma-style file key."""
    return "".join(secrets.choice(FILE_KEY_ALPHABET) for _ in range(FILE_KEY_LENGTH))


def file_url(file_key: str, document_name: str) -> str:
    return f"https://www.figma.com/file/{file_key}/{quote(document_name, safe='')}"


class BasePublisher(ABC):
    @abstractmethod
    async def publish(self, document_name: str, nodes: List[SceneNode]) -> PublishResult:
        pass
