from __future__ import annotations

from treepatch.textdiff import diff_stats, format_unified_diff, split_lines, unified_diff


def test_identical_text_has_no_hunks() -> None:
    assert unified_diff("a\nb\n", "a\nb\n") == []
    assert format_unified_diff([], "a/f", "b/f") == ""


def test_split_lines_keeps_unterminated_tail() -> None:
    assert split_lines("") == []
    assert split_lines("a\nb") == ["a\n", "b"]
    assert split_lines("a\r\nb\n") == ["a\r\n", "b\n"]
    assert split_lines("form\x0cfeed\n") == ["form\x0cfeed\n"]


def test_single_line_change_formats_unified_diff() -> None:
    hunks = unified_diff("a\nb\nc\n", "a\nB\nc\n", ignore_whitespace=False)

    document = format_unified_diff(hunks, "a/f.txt", "b/f.txt")

    assert document == "--- a/f.txt\n+++ b/f.txt\n@@ -1,3 +1,3 @@\n a\n-b\n+B\n c\n"
    assert diff_stats(hunks) == (1, 1)


def test_context_window_is_three_lines() -> None:
    original = "".join(f"line {index}\n" for index in range(20))
    modified = original.replace("line 10\n", "line ten\n")

    hunks = unified_diff(original, modified)

    assert len(hunks) == 1
    assert hunks[0].header() == "@@ -8,7 +8,7 @@"


def test_distant_changes_produce_separate_hunks() -> None:
    original = "".join(f"line {index}\n" for index in range(30))
    modified = original.replace("line 2\n", "line two\n").replace("line 25\n", "line 25!\n")

    assert len(unified_diff(original, modified)) == 2


def test_added_file_header_uses_empty_original_range() -> None:
    hunks = unified_diff("", "hi\n")

    assert format_unified_diff(hunks, "/dev/null", "b/hello.txt") == (
        "--- /dev/null\n+++ b/hello.txt\n@@ -0,0 +1 @@\n+hi\n"
    )


def test_deleted_file_header_uses_empty_modified_range() -> None:
    hunks = unified_diff("one\ntwo\n", "")

    assert format_unified_diff(hunks, "a/gone.txt", "/dev/null") == (
        "--- a/gone.txt\n+++ /dev/null\n@@ -1,2 +0,0 @@\n-one\n-two\n"
    )


def test_whitespace_only_changes_are_ignored_by_default() -> None:
    original = "a\n  b\n"
    modified = "a\nb  \n"

    assert unified_diff(original, modified) == []
    assert unified_diff(original, modified, ignore_whitespace=False) != []


def test_missing_final_newline_is_marked() -> None:
    hunks = unified_diff("a", "b", ignore_whitespace=False)

    assert hunks[0].lines == [
        "-a",
        "\\ No newline at end of file",
        "+b",
        "\\ No newline at end of file",
    ]


def test_final_newline_counts_even_when_ignoring_whitespace() -> None:
    hunks = unified_diff("a\nb", "a\nb\nc\n")

    assert "-b" in hunks[0].lines
    assert "+b" in hunks[0].lines


def test_crlf_lines_are_written_with_lf() -> None:
    hunks = unified_diff("a\r\nb\r\n", "a\r\nc\r\n", ignore_whitespace=False)
    document = format_unified_diff(hunks, "a/f", "b/f")

    assert "\r" not in document
    assert " a\n-b\n+c\n" in document
