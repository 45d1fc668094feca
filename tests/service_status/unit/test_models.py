"""Unit tests for presentation profiles and i3bar blocks."""

from service_status.config import StateColors
from service_status.models import (
    BlockState,
    PresentationProfile,
    RenderedStatus,
    StatusBlock,
)


class TestPresentationProfile:
    """Test profile rendering."""

    def test_render_substitutes_service(self):
        profile = PresentationProfile(state=BlockState.IDLE, format=" $service active ")
        status = profile.render("cups")

        assert status == RenderedStatus(state=BlockState.IDLE, text=" cups active ")

    def test_render_braced_placeholder(self):
        profile = PresentationProfile(state=BlockState.GOOD, format="${service}d up")
        assert profile.render("ssh").text == "sshd up"

    def test_render_leaves_unknown_placeholders(self):
        """Icons and other placeholders belong to other layers."""
        profile = PresentationProfile(state=BlockState.WARNING, format=" no ^icon_tea $icon ")
        assert profile.render("cups").text == " no ^icon_tea $icon "

    def test_render_empty_format(self):
        profile = PresentationProfile(state=BlockState.IDLE, format="")
        assert profile.render("shadow").text == ""


class TestRenderedStatus:
    """Test conversion to i3bar blocks."""

    def test_to_status_block_critical(self):
        colors = StateColors()
        block = RenderedStatus(BlockState.CRITICAL, "cups inactive").to_status_block("cups", colors)

        assert block.name == "service_status"
        assert block.instance == "cups"
        assert block.full_text == "cups inactive"
        assert block.color == colors.critical
        assert block.urgent is True

    def test_to_status_block_idle_uses_bar_default(self):
        block = RenderedStatus(BlockState.IDLE, "cups active").to_status_block("cups", StateColors())

        assert block.color is None
        assert block.urgent is False


class TestStatusBlock:
    """Test i3bar JSON serialization."""

    def test_to_json_omits_unset_fields(self):
        block = StatusBlock(full_text="cups active", name="service_status", instance="cups")
        data = block.to_json()

        assert data == {
            "full_text": "cups active",
            "name": "service_status",
            "instance": "cups",
            "separator": True,
            "separator_block_width": 15,
            "markup": "none",
        }

    def test_to_json_includes_urgent_and_color(self):
        block = StatusBlock(full_text="x", name="service_status", color="#f38ba8", urgent=True)
        data = block.to_json()

        assert data["urgent"] is True
        assert data["color"] == "#f38ba8"
