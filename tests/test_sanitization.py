import pytest

from tattoo_crm.utils.sanitization import TEXT_MAX_LENGTH, sanitize_text


def test_strips_tags_but_keeps_text():
    assert sanitize_text("  hello <i>there</i> ") == "hello there"


def test_does_not_escape_plain_characters():
    assert sanitize_text("Tom & Jerry <3") == "Tom & Jerry <3"
    assert sanitize_text('say "hi" & wave') == 'say "hi" & wave'


def test_removes_control_characters():
    assert sanitize_text("line\x00one\x07") == "lineone"


def test_none_passes_through():
    assert sanitize_text(None) is None


def test_rejects_text_over_limit():
    with pytest.raises(ValueError):
        sanitize_text("x" * (TEXT_MAX_LENGTH + 1))
