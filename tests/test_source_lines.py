"""
Tests for repository line handling — activity, normalization,
deduplication planning and component insertion.
"""

from pathlib import Path

from devbox.core.services.sources.lines import (
    ensure_components,
    is_active,
    normalize,
    plan_deduplication,
)

# ── Active lines ─────────────────────────────────────────────────────


class TestIsActive:
    def test_deb_line(self):
        assert is_active("deb https://deb.debian.org/debian bookworm main")

    def test_deb_with_tab(self):
        assert is_active("deb\thttps://example.com/repo bookworm main")

    def test_comment_is_inactive(self):
        assert not is_active("# deb https://example.com/repo bookworm main")

    def test_deb_src_is_inactive(self):
        assert not is_active("deb-src https://deb.debian.org/debian bookworm main")

    def test_leading_space_is_inactive(self):
        assert not is_active("  deb https://example.com/repo bookworm main")

    def test_blank_and_malformed(self):
        assert not is_active("")
        assert not is_active("\n")
        assert not is_active("debhttps://example.com")
        assert not is_active("deb")
        assert not is_active("deb\n")
        assert not is_active("deb\r\n")


class TestNormalize:
    def test_collapses_whitespace(self):
        assert normalize("deb   https://example.com/repo\tbookworm  main\n") == (
            "deb https://example.com/repo bookworm main"
        )

    def test_field_order_is_significant(self):
        a = normalize("deb https://example.com/repo bookworm main contrib")
        b = normalize("deb https://example.com/repo bookworm contrib main")
        assert a != b

    def test_case_is_significant(self):
        assert normalize("deb https://Example.com/repo bookworm main") != normalize(
            "deb https://example.com/repo bookworm main"
        )


# ── Deduplication planning ───────────────────────────────────────────


class TestPlanDeduplication:
    LINE = "deb https://example.com/repo bookworm main\n"

    def test_duplicate_within_one_file(self):
        plans = plan_deduplication([(Path("a.list"), self.LINE + self.LINE)])
        assert plans[0].kept == [self.LINE]
        assert plans[0].removed == [self.LINE.strip()]

    def test_first_file_wins(self):
        plans = plan_deduplication([
            (Path("a.list"), self.LINE),
            (Path("b.list"), "deb  https://example.com/repo   bookworm main\n"),
        ])
        assert plans[0].kept == [self.LINE]
        assert not plans[0].changed
        assert plans[1].kept == []
        assert plans[1].changed
        assert plans[1].empty

    def test_survivor_follows_file_order_not_content(self):
        spaced = "deb https://example.com/repo    bookworm main\n"
        for first, second in ((self.LINE, spaced), (spaced, self.LINE)):
            plans = plan_deduplication([(Path("a.list"), first), (Path("b.list"), second)])
            assert plans[0].kept == [first]
            assert plans[1].kept == []

    def test_comments_and_blanks_pass_through(self):
        text = "# header\n\n" + self.LINE + "# again\n\n" + self.LINE + "# footer\n"
        plans = plan_deduplication([(Path("a.list"), text)])
        assert "".join(plans[0].kept) == "# header\n\n" + self.LINE + "# again\n\n# footer\n"

    def test_identical_comments_are_not_deduplicated(self):
        text = "# same\n# same\n"
        plans = plan_deduplication([(Path("a.list"), text)])
        assert plans[0].kept == ["# same\n", "# same\n"]
        assert not plans[0].changed

    def test_deb_src_duplicates_kept(self):
        src = "deb-src https://example.com/repo bookworm main\n"
        plans = plan_deduplication([(Path("a.list"), src + src)])
        assert plans[0].kept == [src, src]

    def test_line_endings_preserved(self):
        text = "# dos\r\n" + "deb https://example.com/repo bookworm main\r\n"
        plans = plan_deduplication([(Path("a.list"), text)])
        assert "".join(plans[0].kept) == text

    def test_file_without_active_entries_is_empty(self):
        plans = plan_deduplication([(Path("a.list"), "# only a comment\n")])
        assert plans[0].empty
        assert not plans[0].changed


# ── Component insertion ──────────────────────────────────────────────


class TestEnsureComponents:
    def test_adds_non_free_and_firmware(self):
        line = "deb https://deb.debian.org/debian bookworm main"
        assert ensure_components(line, "non-free") == (
            "deb https://deb.debian.org/debian bookworm main non-free non-free-firmware"
        )

    def test_bare_keyword_untouched(self):
        assert ensure_components("deb\n", "non-free") == "deb\n"

    def test_second_application_is_unchanged(self):
        line = "deb https://deb.debian.org/debian bookworm main"
        once = ensure_components(line, "non-free")
        assert ensure_components(once, "non-free") == once

    def test_inserts_before_existing_firmware(self):
        line = "deb https://deb.debian.org/debian bookworm main non-free-firmware\n"
        assert ensure_components(line, "non-free") == (
            "deb https://deb.debian.org/debian bookworm main non-free non-free-firmware\n"
        )

    def test_firmware_is_not_mistaken_for_non_free(self):
        line = "deb https://deb.debian.org/debian bookworm main non-free-firmware"
        assert " non-free " in ensure_components(line, "non-free")

    def test_only_missing_firmware_appended(self):
        line = "deb https://deb.debian.org/debian bookworm main non-free"
        assert ensure_components(line, "non-free") == line + " non-free-firmware"

    def test_component_without_companions(self):
        line = "deb https://deb.debian.org/debian bookworm main"
        assert ensure_components(line, "contrib") == line + " contrib"

    def test_keeps_line_ending(self):
        line = "deb https://deb.debian.org/debian bookworm main\r\n"
        assert ensure_components(line, "contrib").endswith(" contrib\r\n")

    def test_comment_untouched(self):
        line = "# deb https://deb.debian.org/debian bookworm main\n"
        assert ensure_components(line, "non-free") == line

    def test_deb_src_untouched(self):
        line = "deb-src https://deb.debian.org/debian bookworm main\n"
        assert ensure_components(line, "non-free") == line

    def test_options_block_preserved(self):
        line = "deb [arch=amd64 signed-by=/usr/share/keyrings/debian.gpg] https://deb.debian.org/debian bookworm main"
        out = ensure_components(line, "non-free")
        assert out.startswith("deb [arch=amd64 signed-by=/usr/share/keyrings/debian.gpg] ")
        assert out.endswith("main non-free non-free-firmware")
