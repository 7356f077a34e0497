import pytest
from p100.services.validation import (
    sanitize_input, is_valid_username, is_valid_character_id, sanitize_file_name, slugify,
)
from p100.services.media import validate_image, content_type_for_name
from conftest import png_bytes


def test_sanitize_strips_scripts_and_escapes():
    assert sanitize_input("  hello<script>alert(1)</script> ") == "hello"
    assert sanitize_input("javascript:alert(1)") == "alert(1)"
    assert sanitize_input("<b>hi</b>") == "&lt;b&gt;hi&lt;/b&gt;"
    assert sanitize_input(None) == ""


@pytest.mark.parametrize("name,ok", [
    ("Player_One-2 x", True),
    ("a", True),
    ("a" * 50, True),
    ("a" * 51, False),
    ("", False),
    ("bad!name", False),
    ("emoji🙂", False),
])
def test_username_rules(name, ok):
    assert is_valid_username(name) is ok


def test_character_id_rules():
    assert is_valid_character_id("the-trapper")
    assert not is_valid_character_id("the trapper")
    assert not is_valid_character_id("")


def test_sanitize_file_name():
    assert sanitize_file_name("My%20Art (1).png") == "My-Art-1.png"
    assert sanitize_file_name("ok_name-2.webp") == "ok_name-2.webp"


def test_slugify():
    assert slugify("Jane  Doe") == "jane-doe"
    assert slugify("") == "unknown"


def test_validate_image_accepts_png():
    assert validate_image(png_bytes(), 10 * 1024 * 1024) == "image/png"


def test_validate_image_rejects():
    with pytest.raises(ValueError, match="required"):
        validate_image(b"", 1024)
    with pytest.raises(ValueError, match="JPEG, PNG, and WebP"):
        validate_image(b"GIF89a not really", 1024)
    with pytest.raises(ValueError, match="less than"):
        validate_image(png_bytes(), 10)


def test_content_type_for_name():
    assert content_type_for_name("a.JPEG") == "image/jpeg"
    assert content_type_for_name("a.webp") == "image/webp"
    assert content_type_for_name("notes") == "application/octet-stream"
