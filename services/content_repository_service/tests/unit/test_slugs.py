"""Unit tests for slug, filename and hash helpers."""

from __future__ import annotations

import pytest

from services.content_repository_service.slugs import (
    MAX_FILENAME_LENGTH,
    compute_content_hash,
    extension_for_mime,
    generate_short_id,
    is_processable_image,
    is_video,
    sanitize_filename,
    slugify,
)


class TestSlugify:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("Hello, Wörld!", "hello-world"),
            ("  Spaces   everywhere ", "spaces-everywhere"),
            ("snake_case_title", "snake-case-title"),
            ("Trip (Copy)", "trip-copy"),
            ("already-a-slug", "already-a-slug"),
            ("!!!", ""),
        ],
    )
    def test_slugify(self, text: str, expected: str) -> None:
        assert slugify(text) == expected

    def test_slug_is_fixed_point(self) -> None:
        slug = slugify("Crème Brûlée -- Recipe")
        assert slugify(slug) == slug


class TestSanitizeFilename:
    def test_strips_extension_and_punctuation(self) -> None:
        assert sanitize_filename("My Photo (2023) - Beach Sunset!.JPG") == (
            "my-photo-2023-beach-sunset"
        )

    def test_truncates_long_names(self) -> None:
        assert len(sanitize_filename("a" * 300 + ".png")) == MAX_FILENAME_LENGTH

    def test_name_without_usable_characters_is_empty(self) -> None:
        assert sanitize_filename("!!!.jpg") == ""


class TestHelpers:
    def test_short_id_is_four_hex_characters(self) -> None:
        short_id = generate_short_id()
        assert len(short_id) == 4
        int(short_id, 16)

    def test_content_hash_is_stable(self) -> None:
        assert compute_content_hash(b"abc") == compute_content_hash(b"abc")
        assert compute_content_hash(b"abc") == "900150983cd24fb0d6963f7d28e17f72"

    @pytest.mark.parametrize(
        "mime, original_name, expected",
        [
            ("image/jpeg", "x.jpeg", ".jpg"),
            ("video/mp4", "clip", ".mp4"),
            ("application/x-custom", "notes.TXT", ".txt"),
            ("application/x-custom", "noext", ".bin"),
        ],
    )
    def test_extension_for_mime(self, mime: str, original_name: str, expected: str) -> None:
        assert extension_for_mime(mime, original_name) == expected

    def test_mime_classification(self) -> None:
        assert is_processable_image("image/PNG")
        assert not is_processable_image("image/svg+xml")
        assert is_video("video/quicktime")
        assert not is_video("image/gif")
