from __future__ import annotations

import pytest

from activity_slides.domain.links import LinkKind, LinkRole, classify, links_valid

COLLAB = "https://www.canva.com/design/DAF1/abc/edit?utm_content=DAF1&utm_medium=link2"
TEMPLATE = "https://www.canva.com/design/DAF1/abc/view?utm_content=DAF1&mode=preview"
PUBLIC = "https://www.canva.com/design/DAF1/abc/view?utm_content=DAF1&utm_source=sharebutton"


def test_empty_string_is_empty_not_unknown() -> None:
    assert classify("") is LinkKind.EMPTY
    assert classify(None) is LinkKind.EMPTY


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        (COLLAB, LinkKind.COLLABORATION),
        (TEMPLATE, LinkKind.TEMPLATE),
        (PUBLIC, LinkKind.PUBLIC_VIEW),
        ("https://example.com/some/page", LinkKind.UNKNOWN),
        ("   ", LinkKind.UNKNOWN),
    ],
)
def test_classify_recognises_share_link_shapes(url: str, expected: LinkKind) -> None:
    assert classify(url) is expected


def test_collaboration_pattern_wins_over_view_patterns() -> None:
    url = "https://host/design/x/edit?next=/view?mode=preview"
    assert classify(url) is LinkKind.COLLABORATION


def test_preview_mode_anywhere_after_view_means_template() -> None:
    assert classify("https://host/x/view?a=1&b=2&mode=preview&c=3") is LinkKind.TEMPLATE
    assert classify("https://host/x/view?a=1&b=2&mode=edit") is LinkKind.PUBLIC_VIEW


def test_view_without_query_string_is_unknown() -> None:
    assert classify("https://host/x/view") is LinkKind.UNKNOWN


def test_links_valid_requires_each_role_to_hold_its_own_kind() -> None:
    good = {
        LinkRole.COLLABORATION: COLLAB,
        LinkRole.TEMPLATE: TEMPLATE,
        LinkRole.PUBLIC_VIEW: PUBLIC,
    }
    assert links_valid(good) is True

    swapped = dict(good)
    swapped[LinkRole.TEMPLATE] = PUBLIC
    swapped[LinkRole.PUBLIC_VIEW] = TEMPLATE
    assert links_valid(swapped) is False

    missing = dict(good)
    del missing[LinkRole.COLLABORATION]
    assert links_valid(missing) is False
