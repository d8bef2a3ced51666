"""
Image tag derivation tests.
"""
import pytest

from feedbot_infra.core.exceptions import InvalidRevision
from feedbot_infra.tags import TAG_LENGTH, resolve_tag


def test_long_revision_is_truncated_to_seven_characters():
    assert resolve_tag("a1b2c3d4e5f6") == "a1b2c3d"


def test_short_revision_is_returned_unchanged():
    assert resolve_tag("ab") == "ab"


@pytest.mark.parametrize(
    "revision",
    ["0123456", "0123456789abcdef0123456789abcdef01234567", "v1.2.3-rc1", "abcdefg"],
)
def test_resolve_is_a_prefix_and_idempotent(revision):
    tag = resolve_tag(revision)
    assert len(tag) == TAG_LENGTH
    assert revision.startswith(tag)
    assert resolve_tag(tag) == tag


@pytest.mark.parametrize("revision", ["a", "abc", "abcdef"])
def test_revisions_under_seven_characters_pass_through(revision):
    assert resolve_tag(revision) == revision


@pytest.mark.parametrize("revision", ["", None])
def test_empty_revision_is_invalid(revision):
    with pytest.raises(InvalidRevision) as excinfo:
        resolve_tag(revision)
    assert excinfo.value.step == "ResolveTag"
    assert excinfo.value.code == "invalid_revision"


@pytest.mark.parametrize(
    "revision, expected",
    [("   ", "   "), (" abcdefgh", " abcdef"), ("abc1234\n", "abc1234")],
)
def test_whitespace_is_kept_like_cut(revision, expected):
    assert resolve_tag(revision) == expected
