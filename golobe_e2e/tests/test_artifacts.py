import pytest
from PIL import Image

from golobe_e2e.artifacts import ArtifactSink, sanitize_label
from golobe_e2e.config import settings
from golobe_e2e.interaction import navigate


@pytest.mark.parametrize(
    "label, expected",
    [
        ("theme before switch", "theme-before-switch"),
        ("failed-click booking_download", "failed-click-booking_download"),
        ("../../etc/passwd", "etc-passwd"),
        ("", "capture"),
    ],
)
def test_sanitize_label(label, expected):
    assert sanitize_label(label) == expected


@pytest.mark.asyncio
class TestCapture:
    async def test_png_capture_is_numbered(self, handle, tmp_path):
        await navigate(handle, settings.url("/"))
        sink = ArtifactSink(tmp_path, prefix="auth.login")
        first = await sink.capture(handle, "before")
        second = await sink.capture(handle, "after")
        assert first.name == "auth.login-01-before.png"
        assert second.name == "auth.login-02-after.png"
        assert sink.captured == [first, second]

    async def test_webp_capture_converts_with_pillow(self, handle, tmp_path):
        await navigate(handle, settings.url("/"))
        sink = ArtifactSink(tmp_path, image_format="webp")
        path = await sink.capture(handle, "home")
        assert path.suffix == ".webp"
        with Image.open(path) as img:
            assert img.format == "WEBP"
        assert not list(tmp_path.glob("*.temp.png"))

    async def test_capture_never_raises(self, manager, tmp_path):
        async with manager.page("gone") as handle:
            pass
        sink = ArtifactSink(tmp_path)
        assert await sink.capture(handle, "after release") is None
        assert sink.captured == []

    async def test_scoped_sink_shares_directory(self, tmp_path):
        sink = ArtifactSink(tmp_path, image_format="png")
        scoped = sink.scoped("stays.details")
        assert scoped.directory == tmp_path
        assert scoped.prefix == "stays.details"
        assert scoped.image_format == "png"
