# deploy_tracker/badge.py
"""Badge and button geometry for the per-repository SVG images.

Widths come from a fixed per-character heuristic rather than real text
shaping. Badge URLs are embedded in READMEs and cached by image proxies, so
the same labels must always produce the same numbers.
"""
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from deploy_tracker.models import BadgeGeometry

BADGE_LABEL = "Bluemix Deployments"
BUTTON_LABEL = "Deploy to Bluemix"

BADGE_LEFT_CHAR_WIDTH = 6.5
BADGE_RIGHT_CHAR_WIDTH = 7.5
BADGE_PADDING = 10

BUTTON_LEFT_CHAR_WIDTH = 11
BUTTON_RIGHT_CHAR_WIDTH = 12
BUTTON_LEFT_PADDING = 20
BUTTON_RIGHT_PADDING = 16
BUTTON_LOGO_OFFSET = 48


def _geometry(left: str, right: str, left_width: float, right_width: float, offset: float = 0) -> BadgeGeometry:
    left_x = left_width / 2 + 1
    right_x = left_width + right_width / 2 - 1
    return BadgeGeometry(
        left=left,
        right=right,
        left_width=left_width + offset,
        right_width=right_width,
        total_width=left_width + right_width + offset,
        left_x=left_x + offset,
        right_x=right_x + offset,
    )


def render_badge(left: str, right: str) -> BadgeGeometry:
    return _geometry(
        left,
        right,
        len(left) * BADGE_LEFT_CHAR_WIDTH + BADGE_PADDING,
        len(right) * BADGE_RIGHT_CHAR_WIDTH + BADGE_PADDING,
    )


def render_button(left: str, right: str) -> BadgeGeometry:
    # The left run is shifted right to leave room for the logo glyph.
    return _geometry(
        left,
        right,
        len(left) * BUTTON_LEFT_CHAR_WIDTH + BUTTON_LEFT_PADDING,
        len(right) * BUTTON_RIGHT_CHAR_WIDTH + BUTTON_RIGHT_PADDING,
        offset=BUTTON_LOGO_OFFSET,
    )


def format_number(value: float) -> str:
    """Print a number the way the badge templates always have: ``10`` not ``10.0``."""
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


TEMPLATE_DIR = Path(__file__).parent / "templates"
BADGE_TEMPLATE = "badge.svg"
BUTTON_TEMPLATE = "button.svg"

env = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    autoescape=select_autoescape(["svg", "xml"]),
)
env.filters["number"] = format_number


def to_svg(geometry: BadgeGeometry, template_name: str = BADGE_TEMPLATE) -> str:
    template = env.get_template(template_name)
    return template.render(**geometry.model_dump())


def badge_svg(count: int) -> str:
    return to_svg(render_badge(BADGE_LABEL, str(count)), BADGE_TEMPLATE)


def button_svg(count: int) -> str:
    return to_svg(render_button(BUTTON_LABEL, str(count)), BUTTON_TEMPLATE)
