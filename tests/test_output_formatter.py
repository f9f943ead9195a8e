"""
Unit Tests — Output Formatter
=============================
Validates byte-perfect output string generation. Every assertion uses
exact string equality.
"""
from paastel_build.core.output_formatter import (
    ARROW,
    format_build_done,
    format_build_error,
    format_detail,
    format_fatal,
    format_push_done,
    format_push_error,
    format_push_status,
    format_stage,
)


# ---------------------------------------------------------------------------
# 1. Arrow constant sanity checks
# ---------------------------------------------------------------------------
class TestArrowConstant:

    def test_arrow_is_unicode_2192(self):
        """The arrow must be the Unicode RIGHT ARROW U+2192, not ASCII '->'."""
        assert ord(ARROW) == 0x2192

    def test_arrow_is_single_character(self):
        assert len(ARROW) == 1


# ---------------------------------------------------------------------------
# 2. Push status lines
# ---------------------------------------------------------------------------
class TestPushStatus:

    def test_status_with_progress(self):
        assert format_push_status("Pushing", "[==>   ] 1MB/5MB") == "→ Pushing | [==>   ] 1MB/5MB"

    def test_status_only(self):
        assert format_push_status("Pushed") == "→ Pushed"

    def test_empty_progress_keeps_separator(self):
        assert format_push_status("Preparing", "") == "→ Preparing | "

    def test_no_ascii_arrow(self):
        assert "->" not in format_push_status("Pushing", "[=>]")


# ---------------------------------------------------------------------------
# 3. Errors and narration
# ---------------------------------------------------------------------------
class TestMessages:

    def test_build_error(self):
        assert format_build_error("boom") == "Docker build error: boom"

    def test_push_error(self):
        assert format_push_error("denied") == "❌ Docker push error: denied"

    def test_fatal(self):
        assert format_fatal("Dockerfile missing") == "paastel-build error: Dockerfile missing"

    def test_stage(self):
        assert format_stage("Preparing build context") == "==> Preparing build context"

    def test_detail_label_padded(self):
        assert format_detail("Tag", "dev") == "    Tag       : dev"

    def test_done_lines(self):
        assert format_build_done("app:dev") == "✅ Build finished for image: app:dev"
        assert format_push_done("app:dev") == "✅ Push finished for app:dev"
