"""Tests for prompt construction and text helpers."""

from datetime import datetime, timezone

from specgen.generation.prompt_builder import (
    FICTION_CLOSING,
    FICTION_PREAMBLE,
    IMAGE_PREAMBLE,
    IMAGE_PROMPT_MAX_LENGTH,
    build_fiction_prompt,
    build_image_prompt,
    count_words,
    extract_title,
)


class TestBuildFictionPrompt:
    """Tests for build_fiction_prompt."""

    def test_full_prompt(self):
        prompt = build_fiction_prompt(
            {"science-fiction": {"technology-level": "Advanced", "alien_life": True}},
            year=2150,
        )
        assert prompt == "\n".join([
            FICTION_PREAMBLE,
            "",
            "Setting: Year 2150",
            "technology level: Advanced",
            "alien life: yes",
            "",
            FICTION_CLOSING,
        ])

    def test_without_year(self):
        prompt = build_fiction_prompt({"fantasy": {"magic": "High"}})
        assert "Setting:" not in prompt
        assert "magic: High" in prompt

    def test_list_values_joined(self):
        prompt = build_fiction_prompt({"cast": {"species": ["Human", "Android"]}})
        assert "species: Human, Android" in prompt

    def test_none_values_and_non_dict_categories_skipped(self):
        prompt = build_fiction_prompt({"a": {"x": None}, "b": "not-a-dict"})
        assert prompt == "\n".join([FICTION_PREAMBLE, "", "", FICTION_CLOSING])

    def test_deterministic(self):
        params = {"science-fiction": {"technology-level": "Advanced"}}
        assert build_fiction_prompt(params, 2200) == build_fiction_prompt(params, 2200)


class TestBuildImagePrompt:
    """Tests for build_image_prompt."""

    def test_grounded_in_generated_text(self):
        prompt = build_image_prompt(
            year=2150,
            generated_text="Raj walked through the ancient temple under a golden glow",
            style_suffix="Cinematic lighting.",
        )
        assert prompt == (
            f"{IMAGE_PREAMBLE} showing: Raj, ancient temple, golden glow "
            "Set in year 2150. Cinematic lighting."
        )

    def test_without_text_or_year(self):
        assert build_image_prompt(style_suffix="Watercolour.") == f"{IMAGE_PREAMBLE} Watercolour."

    def test_no_visual_elements(self):
        prompt = build_image_prompt(generated_text="Nothing to see.")
        assert prompt == IMAGE_PREAMBLE

    def test_truncated(self):
        prompt = build_image_prompt(style_suffix="x" * 5000)
        assert len(prompt) == IMAGE_PROMPT_MAX_LENGTH


class TestExtractTitle:
    """Tests for extract_title."""

    def test_title_marker(self):
        assert extract_title("**Title: The Last Signal**\n\nStory text") == "The Last Signal"

    def test_marker_not_on_first_line(self):
        assert extract_title("Preface\n**Title: Deep Orbit**\nText") == "Deep Orbit"

    def test_short_first_line(self):
        assert extract_title("# Echoes of Mars\n\nStory text") == "Echoes of Mars"

    def test_bold_first_line(self):
        assert extract_title("**Starfall**\nStory") == "Starfall"

    def test_long_first_line_falls_back_to_date(self):
        today = datetime(2026, 3, 14, tzinfo=timezone.utc)
        assert extract_title("word " * 40, today=today) == "Fiction 2026-03-14"

    def test_empty_content_falls_back_to_date(self):
        today = datetime(2026, 3, 14, tzinfo=timezone.utc)
        assert extract_title("", today=today) == "Fiction 2026-03-14"


class TestCountWords:
    """Tests for count_words."""

    def test_whitespace_delimited(self):
        assert count_words("one two\nthree\tfour  five") == 5

    def test_empty(self):
        assert count_words("") == 0
        assert count_words("   \n ") == 0
