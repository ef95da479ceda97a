import json
import string

import httpx
import pytest

from psd_server.core.config import Settings
from psd_server.core.exceptions import PublishError
from psd_server.models import (
    Bounds,
    FrameProperties,
    ImageProperties,
    NodeType,
    Paint,
    SceneNode,
    ShapeProperties,
    TextProperties,
)
from psd_server.publishers import (
    FigmaPublisher,
    FileStructurePublisher,
    create_publisher,
)
from psd_server.publishers.base_publisher import file_url, generate_file_key
from psd_server.publishers.payloads import build_document


@pytest.fixture
def scene():
    text = SceneNode(
        type=NodeType.TEXT,
        name="Title",
        bounds=Bounds(10, 10, 110, 40),
        text_properties=TextProperties(
            characters="Hello",
            font_size=24,
            font_family="Arial",
            font_style="Bold",
            fills=[Paint(color={"r": 0, "g": 0, "b": 0, "a": 1})],
        ),
    )
    image = SceneNode(
        type=NodeType.IMAGE,
        name="Photo",
        bounds=Bounds(0, 50, 200, 150),
        image_properties=ImageProperties(
            image_ref="/tmp/photo.png",
            fills=[Paint(type="IMAGE", scale_mode="FILL", image_hash="/tmp/photo.png")],
        ),
    )
    box = SceneNode(
        type=NodeType.RECTANGLE,
        name="Box",
        bounds=Bounds(0, 0, 5, 5),
        shape_properties=ShapeProperties(fills=[Paint(color={"r": 0.5, "g": 0.5, "b": 0.5, "a": 1})]),
    )
    group = SceneNode(
        type=NodeType.FRAME,
        name="Group",
        bounds=Bounds(0, 0, 200, 150),
        children=[image, box],
        frame_properties=FrameProperties(),
    )
    root = SceneNode(
        type=NodeType.FRAME,
        name="Design",
        bounds=Bounds(0, 0, 800, 600),
        children=[text, group],
        frame_properties=FrameProperties(),
    )
    return [root]


class TestBuildDocument:
    def test_structure_and_ids(self, scene):
        structure = build_document("Design", scene)

        assert structure["name"] == "Design"
        assert structure["document"]["type"] == "DOCUMENT"
        root = structure["document"]["children"][0]
        assert root["id"] == "1:1"
        assert root["absoluteBoundingBox"] == {"x": 0, "y": 0, "width": 800, "height": 600}
        assert root["clipsContent"] is False

        text, group = root["children"]
        assert text["id"] == "1:1:1"
        assert text["characters"] == "Hello"
        assert text["style"]["fontFamily"] == "Arial"
        assert text["style"]["fontSize"] == 24

        image, box = group["children"]
        assert image["id"] == "1:1:2:1"
        assert box["id"] == "1:1:2:2"

    def test_images_become_rectangles_with_image_fill(self, scene):
        structure = build_document("Design", scene)
        image = structure["document"]["children"][0]["children"][1]["children"][0]

        assert image["type"] == "RECTANGLE"
        assert image["fills"] == [
            {"type": "IMAGE", "scaleMode": "FILL", "imageRef": "/tmp/photo.png"}
        ]

    def test_is_json_serializable(self, scene):
        json.dumps(build_document("Design", scene))


class TestFileKeys:
    def test_generate_file_key(self):
        key = generate_file_key()

        assert len(key) == 22
        assert set(key) <= set(string.ascii_letters + string.digits)

    def test_file_url_quotes_name(self):
        assert file_url("abc", "My Design/v2") == "https://www.figma.com/file/abc/My%20Design%2Fv2"


class TestFileStructurePublisher:
    async def test_writes_structure(self, tmp_path, scene):
        result = await FileStructurePublisher(tmp_path).publish("Design", scene)

        path = tmp_path / f"figma-structure-{result.artifact_id}.json"
        assert path.exists()
        assert json.loads(path.read_text())["name"] == "Design"
        assert result.artifact_url == f"https://www.figma.com/file/{result.artifact_id}/Design"
        assert result.root_node_id == "0:1"


def figma_transport(routes, calls=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        key = (request.method, request.url.path)
        if key not in routes:
            return httpx.Response(404, json={"error": "not found"})
        status, body = routes[key]
        return httpx.Response(status, json=body)

    return httpx.MockTransport(handler)


class TestFigmaPublisher:
    def make_publisher(self, tmp_path, transport, team_id="team-1"):
        return FigmaPublisher(
            access_token="figd_token",
            fallback=FileStructurePublisher(tmp_path),
            team_id=team_id,
            transport=transport,
        )

    async def test_creates_file_in_first_project(self, tmp_path, scene):
        calls = []
        transport = figma_transport(
            {
                ("GET", "/v1/me"): (200, {"email": "dev@example.com"}),
                ("GET", "/v1/teams/team-1/projects"): (200, {"projects": [{"id": "p1"}, {"id": "p2"}]}),
                ("POST", "/v1/projects/p1/files"): (200, {"file": {"key": "KEY123"}}),
            },
            calls,
        )

        result = await self.make_publisher(tmp_path, transport).publish("Design", scene)

        assert result.artifact_id == "KEY123"
        assert result.artifact_url == "https://www.figma.com/file/KEY123/Design"
        assert result.root_node_id == "0:1"
        assert all(call.headers["X-Figma-Token"] == "figd_token" for call in calls)
        assert json.loads(calls[-1].content) == {"name": "Design"}

    async def test_without_team_writes_structure(self, tmp_path, scene):
        transport = figma_transport({("GET", "/v1/me"): (200, {"email": "dev@example.com"})})

        result = await self.make_publisher(tmp_path, transport, team_id=None).publish(
            "Design", scene
        )

        assert (tmp_path / f"figma-structure-{result.artifact_id}.json").exists()

    @pytest.mark.parametrize("status,kind", [(401, "auth"), (403, "auth"), (500, "unknown")])
    async def test_auth_check_failures(self, tmp_path, scene, status, kind):
        transport = figma_transport({("GET", "/v1/me"): (status, {"status": status})})

        with pytest.raises(PublishError) as exc_info:
            await self.make_publisher(tmp_path, transport).publish("Design", scene)

        assert exc_info.value.kind == kind
        assert exc_info.value.details["status_code"] == status

    async def test_missing_team_is_not_found(self, tmp_path, scene):
        transport = figma_transport({("GET", "/v1/me"): (200, {"email": "dev@example.com"})})

        with pytest.raises(PublishError) as exc_info:
            await self.make_publisher(tmp_path, transport).publish("Design", scene)

        assert exc_info.value.kind == "not_found"

    async def test_team_without_projects(self, tmp_path, scene):
        transport = figma_transport(
            {
                ("GET", "/v1/me"): (200, {"email": "dev@example.com"}),
                ("GET", "/v1/teams/team-1/projects"): (200, {"projects": []}),
            }
        )

        with pytest.raises(PublishError) as exc_info:
            await self.make_publisher(tmp_path, transport).publish("Design", scene)

        assert exc_info.value.kind == "not_found"
        assert "No projects" in str(exc_info.value)

    async def test_network_failure_is_transport(self, tmp_path, scene):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(PublishError) as exc_info:
            await self.make_publisher(tmp_path, httpx.MockTransport(handler)).publish(
                "Design", scene
            )

        assert exc_info.value.kind == "transport"


class TestCreatePublisher:
    def test_without_token_uses_file_publisher(self, tmp_path):
        publisher = create_publisher(Settings(upload_dir=tmp_path, figma_access_token=None))
        assert isinstance(publisher, FileStructurePublisher)

    def test_with_token_uses_figma(self, tmp_path):
        publisher = create_publisher(
            Settings(upload_dir=tmp_path, figma_access_token="figd_x", figma_team_id="t")
        )

        assert isinstance(publisher, FigmaPublisher)
        assert publisher.team_id == "t"
        assert publisher.fallback.output_dir == tmp_path
