"""Tests for the primary/viewer message protocol."""

from mermaidpad.channel import POPUP_READY, RENDER_SVG, SecondaryViewer, ViewerChannel
from mermaidpad.export import ExportSink
from mermaidpad.surface import DocumentSurface
from tests.helpers import SIMPLE_SVG, FakeInteraction, FakePort, FakeRasterizer


class TestViewerChannel:
    def test_only_latest_pending_payload_is_delivered(self):
        port = FakePort()
        channel = ViewerChannel()
        channel.bind(port)
        channel.send("<svg>1</svg>")
        channel.send("<svg>2</svg>")
        channel.send("<svg>3</svg>")
        assert port.posted == []
        assert channel.pending == "<svg>3</svg>"

        channel.on_message(port, {"type": POPUP_READY})
        assert port.posted == [{"type": RENDER_SVG, "svg": "<svg>3</svg>"}]
        assert channel.pending is None

    def test_send_after_ready_is_immediate(self):
        port = FakePort()
        channel = ViewerChannel()
        channel.bind(port)
        channel.on_message(port, {"type": POPUP_READY})
        channel.send("<svg>a</svg>")
        assert port.posted == [{"type": RENDER_SVG, "svg": "<svg>a</svg>"}]

    def test_ready_from_unknown_source_is_ignored(self):
        port = FakePort()
        stranger = FakePort()
        channel = ViewerChannel()
        channel.bind(port)
        channel.send("<svg/>")
        channel.on_message(stranger, {"type": POPUP_READY})
        assert not channel.ready
        assert port.posted == []

    def test_unknown_message_type_ignored(self):
        port = FakePort()
        channel = ViewerChannel()
        channel.bind(port)
        channel.on_message(port, {"type": "hello"})
        channel.on_message(port, "popup-ready")
        assert not channel.ready

    def test_ready_callbacks(self):
        port = FakePort()
        channel = ViewerChannel()
        seen = []
        channel.on_ready(lambda: seen.append("ready"))
        channel.bind(port)
        channel.on_message(port, {"type": POPUP_READY})
        assert seen == ["ready"]

    def test_closed_viewer_discards_session(self):
        port = FakePort()
        channel = ViewerChannel()
        channel.bind(port)
        channel.send("<svg/>")
        port.closed = True
        assert not channel.is_live
        assert channel.handle is None
        assert channel.pending is None

    def test_rebinding_closes_previous_viewer(self):
        first, second = FakePort(), FakePort()
        channel = ViewerChannel()
        channel.bind(first)
        channel.on_message(first, {"type": POPUP_READY})
        channel.bind(second)
        assert first.closed
        assert not channel.ready
        channel.on_message(first, {"type": POPUP_READY})
        assert not channel.ready

    def test_close(self):
        port = FakePort()
        channel = ViewerChannel()
        channel.bind(port)
        channel.close()
        assert port.closed
        assert not channel.is_live


def make_viewer(tmp_path, rasterizer=None):
    opener = FakePort()
    interaction = FakeInteraction()
    viewer = SecondaryViewer(
        DocumentSurface(),
        interaction,
        opener,
        rasterizer=rasterizer or FakeRasterizer(),
        sink=ExportSink(tmp_path),
    )
    return viewer, opener, interaction


class TestSecondaryViewer:
    def test_start_announces_ready(self, tmp_path):
        viewer, opener, _ = make_viewer(tmp_path)
        viewer.start()
        assert opener.posted == [{"type": POPUP_READY}]

    def test_render_replaces_content_and_reattaches(self, tmp_path):
        viewer, _, interaction = make_viewer(tmp_path)
        viewer.handle_message({"type": RENDER_SVG, "svg": SIMPLE_SVG})
        viewer.handle_message({"type": RENDER_SVG, "svg": SIMPLE_SVG.replace("rect", "circle")})
        assert len(interaction.handles) == 2
        assert interaction.handles[0].destroyed
        assert not interaction.handles[1].destroyed
        assert interaction.handles[1].calls == ["resize", "fit", "center"]
        assert "circle" in viewer.surface.svg
        assert 'preserveAspectRatio="xMidYMid meet"' in viewer.surface.svg
        assert viewer.status.message == "Scroll to zoom, drag to pan"

    def test_render_without_svg(self, tmp_path):
        viewer, _, interaction = make_viewer(tmp_path)
        viewer.render_svg("Syntax error")
        assert viewer.status.is_error
        assert viewer.status.message == "No SVG found to render."
        assert interaction.handles == []

    def test_save_without_graphic(self, tmp_path):
        viewer, _, _ = make_viewer(tmp_path)
        assert viewer.save() is None
        assert viewer.status.message == "No SVG to save."

    def test_save_png(self, tmp_path):
        viewer, _, _ = make_viewer(tmp_path)
        viewer.render_svg(SIMPLE_SVG)
        result = viewer.save()
        assert result.format == "png"
        assert result.path == tmp_path / "diagram.png"
        assert viewer.status.message == "Saved PNG."
