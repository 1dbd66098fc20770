import itertools

import pytest

from quickform.core.errors import AlreadyExists, DiskIOError, InvalidPath, NotADirectory, NotFound
from quickform.fs import memfs
from quickform.fs.memfs import VirtualFileSystem


def test_write_then_read_returns_same_bytes():
    fs = VirtualFileSystem()
    fs.write_file("test_dir/hello.txt", b"Hello, World!")

    assert fs.read_file("test_dir/hello.txt") == b"Hello, World!"
    assert fs.list_directory("test_dir") == {"hello.txt"}


def test_empty_components_are_ignored():
    fs = VirtualFileSystem()
    fs.write_file("/a//b/", "text")

    assert fs.read_file("a/b") == b"text"
    assert fs.read_text("a//b") == "text"


def test_missing_paths_raise_not_found():
    fs = VirtualFileSystem()
    fs.write_file("a/file.txt", b"x")

    with pytest.raises(NotFound):
        fs.read_file("missing.txt")
    with pytest.raises(NotFound):
        fs.list_directory("missing")
    with pytest.raises(NotFound):
        fs.read_file("a/file.txt/inner")
    with pytest.raises(NotFound):
        fs.list_directory("a/file.txt/inner")


def test_read_file_on_directory_is_not_found():
    fs = VirtualFileSystem()
    fs.create_directory("docs")

    with pytest.raises(NotFound):
        fs.read_file("docs")


def test_list_directory_on_file_is_not_a_directory():
    fs = VirtualFileSystem()
    fs.write_file("notes.txt", b"")

    with pytest.raises(NotADirectory):
        fs.list_directory("notes.txt")


def test_create_directory_twice_fails():
    fs = VirtualFileSystem()
    fs.create_directory("a/b")

    with pytest.raises(AlreadyExists):
        fs.create_directory("a/b")
    assert fs.list_directory("a/b") == set()


def test_create_directory_over_file_fails():
    fs = VirtualFileSystem()
    fs.write_file("a", b"")

    with pytest.raises(AlreadyExists):
        fs.create_directory("a")


def test_write_creates_missing_ancestors():
    fs = VirtualFileSystem()
    fs.write_file("a/b/c.txt", b"deep")

    assert fs.list_directory("a") == {"b"}
    assert fs.list_directory("a/b") == {"c.txt"}
    assert fs.is_dir("a/b")
    assert fs.is_file("a/b/c.txt")


def test_write_through_file_is_not_a_directory():
    fs = VirtualFileSystem()
    fs.write_file("a", b"file")

    with pytest.raises(NotADirectory) as excinfo:
        fs.write_file("a/b.txt", b"")
    assert excinfo.value.path == "a"


def test_write_over_directory_is_rejected():
    fs = VirtualFileSystem()
    fs.create_directory("a")

    with pytest.raises(AlreadyExists):
        fs.write_file("a", b"")
    assert fs.is_dir("a")


def test_root_path_semantics():
    fs = VirtualFileSystem()
    fs.write_file("top.txt", b"")

    assert fs.list_directory("") == {"top.txt"}
    assert fs.list_directory("/") == {"top.txt"}
    assert fs.exists("")
    with pytest.raises(InvalidPath):
        fs.create_directory("")
    with pytest.raises(InvalidPath):
        fs.write_file("//", b"")
    with pytest.raises(InvalidPath):
        fs.read_file("")


def test_dot_components_are_invalid():
    fs = VirtualFileSystem()

    with pytest.raises(InvalidPath):
        fs.write_file("../escape.txt", b"")
    with pytest.raises(InvalidPath):
        fs.create_directory("a/./b")


def test_overwrite_keeps_creation_time(monkeypatch):
    ticks = itertools.count(100)
    monkeypatch.setattr(memfs.time, "time", lambda: float(next(ticks)))

    fs = VirtualFileSystem()
    fs.write_file("f.txt", b"one")
    first = fs.stat("f.txt")
    fs.write_file("f.txt", b"two")

    info = fs.stat("f.txt")
    assert info.kind == "file"
    assert info.created == first.created
    assert info.modified > first.modified
    assert info.size == 3
    assert fs.read_file("f.txt") == b"two"


def test_create_file_is_strict():
    fs = VirtualFileSystem()
    fs.create_file("new.txt", "first")

    with pytest.raises(AlreadyExists):
        fs.create_file("new.txt", "second")
    assert fs.read_text("new.txt") == "first"


def test_stat_directory_reports_children():
    fs = VirtualFileSystem()
    fs.write_file("src/a.py", b"")
    fs.write_file("src/b.py", b"")

    info = fs.stat("src")
    assert info.kind == "directory"
    assert info.child_count == 2
    assert info.size is None


def test_walk_is_depth_first_in_name_order():
    fs = VirtualFileSystem()
    fs.write_file("b.txt", b"2")
    fs.write_file("a/z.txt", b"1")
    fs.write_file("a/sub/y.txt", b"0")

    assert [path for path, _ in fs.walk()] == ["a/sub/y.txt", "a/z.txt", "b.txt"]
    assert len(fs) == 3


def test_import_then_export_round_trip(tmp_path):
    source = tmp_path / "source"
    (source / "test_dir" / "nested").mkdir(parents=True)
    (source / "empty").mkdir()
    (source / "test_dir" / "file1.txt").write_text("Hello")
    (source / "test_dir" / "nested" / "file2.txt").write_text("World")
    (source / "blob.bin").write_bytes(bytes(range(256)))

    fs = VirtualFileSystem.import_from_disk(source)

    assert fs.list_directory("") == {"test_dir", "empty", "blob.bin"}
    assert fs.list_directory("test_dir") == {"file1.txt", "nested"}
    assert fs.read_file("test_dir/nested/file2.txt") == b"World"

    target = tmp_path / "target"
    written = fs.export_to_disk(target)

    assert written == 3
    assert (target / "empty").is_dir()
    assert (target / "test_dir" / "file1.txt").read_bytes() == b"Hello"
    assert (target / "test_dir" / "nested" / "file2.txt").read_bytes() == b"World"
    assert (target / "blob.bin").read_bytes() == bytes(range(256))

    again = VirtualFileSystem.import_from_disk(target)
    assert sorted(again.walk()) == sorted(fs.walk())


def test_export_keeps_unrelated_files(tmp_path):
    target = tmp_path / "out"
    target.mkdir()
    (target / "keep.txt").write_text("keep")

    fs = VirtualFileSystem()
    fs.write_file("new.txt", b"new")
    fs.export_to_disk(target)

    assert (target / "keep.txt").read_text() == "keep"
    assert (target / "new.txt").read_text() == "new"


def test_export_overwrites_atomically_with_file_mode(tmp_path):
    target = tmp_path / "out"
    (target / "src").mkdir(parents=True)
    (target / "src" / "app.ts").write_text("stale")

    fs = VirtualFileSystem()
    fs.write_file("src/app.ts", "fresh")
    fs.export_to_disk(target, file_mode=0o600)

    assert (target / "src" / "app.ts").read_text() == "fresh"
    assert (target / "src" / "app.ts").stat().st_mode & 0o777 == 0o600
    assert sorted(p.name for p in (target / "src").iterdir()) == ["app.ts"]


def test_import_missing_directory_fails(tmp_path):
    with pytest.raises(DiskIOError):
        VirtualFileSystem.import_from_disk(tmp_path / "nope")


def test_export_failure_is_reported(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("I am a file")

    fs = VirtualFileSystem()
    fs.write_file("a.txt", b"")

    with pytest.raises(DiskIOError) as excinfo:
        fs.export_to_disk(blocker)
    assert isinstance(excinfo.value.__cause__, OSError)
