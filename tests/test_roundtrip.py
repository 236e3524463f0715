from __future__ import annotations

import zipfile
from pathlib import Path

from treepatch.apply import PatchApplicator
from treepatch.config import ApplyOptions, GenerateOptions
from treepatch.generate import PatchGenerator
from treepatch.sources import materialize, open_tree_source

from conftest import TreePair


def _replay(pair: TreePair, root: Path, work: Path) -> dict[str, bytes]:
    with open_tree_source(root) as source:
        materialize(source, work)
    PatchApplicator(ApplyOptions(target=work, patches=pair.patches)).run()
    return pair.snapshot(work)


def test_apply_reconstructs_target_from_directory_root(tree_pair: TreePair, tmp_path: Path) -> None:
    PatchGenerator(
        GenerateOptions(root_dir=tree_pair.original, target=tree_pair.target, patches=tree_pair.patches)
    ).run()

    rebuilt = _replay(tree_pair, tree_pair.original, tmp_path / "work")

    assert rebuilt == tree_pair.snapshot(tree_pair.target)


def test_apply_reconstructs_target_from_archive_root(tree_pair: TreePair, tmp_path: Path) -> None:
    archive = tmp_path / "upstream.zip"
    with zipfile.ZipFile(archive, "w") as handle:
        for relative, data in tree_pair.snapshot(tree_pair.original).items():
            handle.writestr(relative, data)

    PatchGenerator(GenerateOptions(root_zip=archive, target=tree_pair.target, patches=tree_pair.patches)).run()

    rebuilt = _replay(tree_pair, archive, tmp_path / "work")

    assert rebuilt == tree_pair.snapshot(tree_pair.target)


def test_generation_is_idempotent(tree_pair: TreePair, tmp_path: Path) -> None:
    first = tmp_path / "first"
    second = tmp_path / "second"

    for store in (first, second):
        PatchGenerator(GenerateOptions(root_dir=tree_pair.original, target=tree_pair.target, patches=store)).run()

    assert tree_pair.snapshot(first) == tree_pair.snapshot(second)
    assert tree_pair.snapshot(first)


def test_new_text_file_scenario(tmp_path: Path) -> None:
    original = tmp_path / "original"
    target = tmp_path / "target"
    patches = tmp_path / "patches"
    original.mkdir()
    target.mkdir()
    (target / "hello.txt").write_bytes(b"hi\n")

    PatchGenerator(GenerateOptions(root_dir=original, target=target, patches=patches)).run()

    artifact = (patches / "hello.txt.patch").read_text(encoding="utf-8")
    assert artifact.splitlines()[:2] == ["--- /dev/null", "+++ b/hello.txt"]

    empty = tmp_path / "empty"
    empty.mkdir()
    PatchApplicator(ApplyOptions(target=empty, patches=patches)).run()
    assert (empty / "hello.txt").read_bytes() == b"hi\n"


def test_deleted_binary_file_scenario(tmp_path: Path) -> None:
    original = tmp_path / "original"
    target = tmp_path / "target"
    patches = tmp_path / "patches"
    original.mkdir()
    target.mkdir()
    (original / "img.bin").write_bytes(bytes([0x00, 0x01, 0x02]))

    PatchGenerator(GenerateOptions(root_dir=original, target=target, patches=patches)).run()
    assert (patches / "img.bin.diff").exists()

    work = tmp_path / "work"
    work.mkdir()
    (work / "img.bin").write_bytes(bytes([0x00, 0x01, 0x02]))
    PatchApplicator(ApplyOptions(target=work, patches=patches)).run()
    assert not (work / "img.bin").exists()


def test_identical_trees_leave_patch_store_empty(tmp_path: Path) -> None:
    original = tmp_path / "original"
    target = tmp_path / "target"
    patches = tmp_path / "patches"
    for root in (original, target):
        (root / "src").mkdir(parents=True)
        (root / "src" / "same.txt").write_text("same\n", encoding="utf-8")
        (root / "blob.bin").write_bytes(b"\x00\x01")

    report = PatchGenerator(GenerateOptions(root_dir=original, target=target, patches=patches)).run()

    assert report.written == []
    assert list(patches.rglob("*")) == []


def _round_trip(
    tmp_path: Path,
    original_files: dict[str, bytes],
    target_files: dict[str, bytes],
    **options: object,
) -> dict[str, bytes]:
    pair = TreePair(original=tmp_path / "original", target=tmp_path / "target", patches=tmp_path / "patches")
    pair.original.mkdir()
    pair.target.mkdir()
    for relative, data in original_files.items():
        pair.write("original", relative, data)
    for relative, data in target_files.items():
        pair.write("target", relative, data)

    PatchGenerator(GenerateOptions(root_dir=pair.original, target=pair.target, patches=pair.patches, **options)).run()

    return _replay(pair, pair.original, tmp_path / "work")


def test_latin1_text_survives_round_trip(tmp_path: Path) -> None:
    original = b"caf\xe9 menu\nline two\nline three\nline four\nline five\n"
    modified = original.replace(b"line five", b"line 5 \xa7")

    rebuilt = _round_trip(tmp_path, {"menu.txt": original}, {"menu.txt": modified})

    assert rebuilt == {"menu.txt": modified}


def test_crlf_text_survives_round_trip(tmp_path: Path) -> None:
    original = b"alpha\r\nbeta\r\ngamma\r\n"
    modified = b"alpha\r\nBETA\r\ninserted\r\ngamma\r\n"

    rebuilt = _round_trip(tmp_path, {"win.txt": original}, {"win.txt": modified}, ignore_whitespace=False)

    assert rebuilt == {"win.txt": modified}


def test_empty_files_survive_round_trip(tmp_path: Path) -> None:
    rebuilt = _round_trip(
        tmp_path,
        {"gone.txt": b"", "kept.txt": b"kept\n"},
        {"fresh.txt": b"", "kept.txt": b"kept\n"},
    )

    assert rebuilt == {"fresh.txt": b"", "kept.txt": b"kept\n"}
