import pytest

from instasaver.core.classifier import classify_menu, match_button_menu, match_role_menu
from instasaver.core.page_context import find_reel_shortcode
from instasaver.models.data_models import MenuKind
from instasaver.models.dom import DomNode

STORY_URL = "https://www.instagram.com/stories/alice/123/"
FEED_URL = "https://www.instagram.com/"

STORY_MENU = """
<div role="dialog">
  <div class="menu">
    <button> Report </button>
    <button>About this account</button>
    <button>Cancel</button>
  </div>
</div>
"""

REEL_MENU = """
<div class="sheet">
  <div role="button"><div><span><span>Report</span></span></div></div>
  <a role="link" href="/reel/C1a2B3c4D5e/">Go to post</a>
  <div role="button"><span>Copy link</span></div>
  <div role="button"><span>About this account</span></div>
</div>
"""


def test_story_menu_on_story_route():
    match = classify_menu(DomNode.from_html(STORY_MENU), STORY_URL)
    assert match.kind == MenuKind.STORY
    assert match.element.class_name == "menu"


def test_same_labels_off_story_route_is_post():
    match = classify_menu(DomNode.from_html(STORY_MENU), FEED_URL)
    assert match.kind == MenuKind.POST


def test_post_menu():
    html = """
    <div>
      <button>Unfollow</button>
      <button>Add to favorites</button>
      <button>Go to post</button>
      <button>Cancel</button>
    </div>
    """
    assert classify_menu(DomNode.from_html(html), FEED_URL).kind == MenuKind.POST


def test_cancel_is_required():
    html = "<div><button>Report</button><button>Go to post</button></div>"
    assert classify_menu(DomNode.from_html(html), FEED_URL) is None


def test_single_button_is_not_a_menu():
    html = "<div><button>Cancel</button></div>"
    assert classify_menu(DomNode.from_html(html), FEED_URL) is None


def test_reel_menu():
    match = classify_menu(DomNode.from_html(REEL_MENU), "https://www.instagram.com/reels/C1a2B3c4D5e/")
    assert match.kind == MenuKind.REEL
    assert match.element.class_name == "sheet"


def test_reel_shortcode_from_go_to_post_link():
    match = classify_menu(DomNode.from_html(REEL_MENU), FEED_URL)
    assert find_reel_shortcode(match.element, FEED_URL) == "C1a2B3c4D5e"


@pytest.mark.parametrize("labels", [
    ["Like", "Share", "Save"],
    ["Report", "Not interested", "Save"],
    ["Go to post", "Copy link", "Embed"],
])
def test_generic_role_lists_are_not_reels(labels):
    items = "".join(f'<div role="button">{label}</div>' for label in labels)
    assert classify_menu(DomNode.from_html(f"<div>{items}</div>"), FEED_URL) is None


def test_role_menu_needs_three_items():
    html = '<div><div role="button">Report</div><div role="link">Copy link</div></div>'
    assert classify_menu(DomNode.from_html(html), FEED_URL) is None


def test_menu_with_injected_control_is_skipped():
    html = """
    <div>
      <button>Report</button>
      <button data-insta-saver="c1">Download Story</button>
      <button>Cancel</button>
    </div>
    """
    assert classify_menu(DomNode.from_html(html), STORY_URL) is None


def test_unrelated_markup_is_a_miss():
    html = "<div><p>Hello</p><img src='a.jpg'></div>"
    assert classify_menu(DomNode.from_html(html), FEED_URL) is None


def test_rules_are_pure_functions_of_element_and_url():
    menu = DomNode(tag="div", children=[
        DomNode(tag="button", text="Report"),
        DomNode(tag="button", text="Cancel"),
    ])
    assert match_button_menu(menu, STORY_URL) == MenuKind.STORY
    assert match_button_menu(menu, FEED_URL) == MenuKind.POST
    assert match_role_menu(menu, FEED_URL) is None
