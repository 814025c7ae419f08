from deploy_tracker.badge import (
    BADGE_LABEL,
    BUTTON_LABEL,
    BUTTON_TEMPLATE,
    TEMPLATE_DIR,
    badge_svg,
    button_svg,
    format_number,
    render_badge,
    render_button,
    to_svg,
)


def test_badge_geometry():
    g = render_badge("Bluemix Deployments", "5")

    assert (g.left_width, g.right_width, g.total_width) == (133.5, 17.5, 151.0)
    assert (g.left_x, g.right_x) == (67.75, 141.25)


def test_button_geometry_includes_logo_offset():
    g = render_button("Deploy to Bluemix", "5")

    assert (g.left_width, g.right_width, g.total_width) == (255, 28, 283)
    assert (g.left_x, g.right_x) == (152.5, 268)


def test_geometry_is_deterministic():
    assert render_badge(BADGE_LABEL, "5") == render_badge(BADGE_LABEL, "5")
    assert badge_svg(5) == badge_svg(5)
    assert button_svg(12) == button_svg(12)


def test_changing_count_only_moves_right_side():
    for render, label in ((render_badge, BADGE_LABEL), (render_button, BUTTON_LABEL)):
        small, large = render(label, "5"), render(label, "12345")

        assert small.left_width == large.left_width
        assert small.left_x == large.left_x
        assert small.right_width != large.right_width
        assert small.right_x != large.right_x
        assert small.total_width != large.total_width


def test_format_number_matches_javascript_printing():
    assert format_number(151.0) == "151"
    assert format_number(133.5) == "133.5"
    assert format_number(67.75) == "67.75"


def test_svg_carries_geometry_and_labels():
    svg = badge_svg(5)

    assert svg.startswith("<svg")
    assert 'width="151"' in svg
    assert 'x="67.75"' in svg
    assert 'x="141.25"' in svg
    assert ">Bluemix Deployments</text>" in svg
    assert ">5</text>" in svg


def test_svg_escapes_labels():
    svg = to_svg(render_badge("<a&b>", "1"))

    assert "&lt;a&amp;b&gt;" in svg
    assert "<a&b>" not in svg


def test_button_escapes_labels():
    svg = to_svg(render_button("<x>", "1&2"), BUTTON_TEMPLATE)

    assert "&lt;x&gt;" in svg
    assert "1&amp;2" in svg
    assert "<x>" not in svg


def test_templates_ship_with_the_package():
    assert sorted(p.name for p in TEMPLATE_DIR.glob("*.svg")) == ["badge.svg", "button.svg"]
    assert 'width="283"' in button_svg(5)
