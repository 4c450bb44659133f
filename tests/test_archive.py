import gzip
import io
import os
import tarfile
import zipfile

import pytest

from fabriclog.archive import (
    MAX_FILE_SIZE,
    MAX_FILES,
    MAX_TOTAL_BYTES,
    ArchiveLimits,
    SourceFile,
    read_small_file,
    read_source,
)
from fabriclog.errors import BadArgumentsError, NotFoundError

FILES = {
    "nodes.csv": "node_guid,node_desc,node_type\nnode-1,host-a,1\n",
    "ports.csv": "node_guid,port_guid,port_num,port_state\nnode-1,port-1,1,4\n",
}


def write_zip(path, files):
    with zipfile.ZipFile(path, "w") as archive:
        for name in sorted(files or {}):
            archive.writestr(name, files[name])


def write_tar(path, files, gzipped):
    with tarfile.open(path, "w:gz" if gzipped else "w") as archive:
        for name in sorted(files):
            data = files[name].encode()
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o644
            archive.addfile(info, io.BytesIO(data))


def write_gzip(path, data):
    with gzip.open(path, "wb") as stream:
        stream.write(data.encode())


@pytest.fixture
def sources(tmp_path):
    source_dir = tmp_path / "source-dir"
    source_dir.mkdir()
    for name, data in FILES.items():
        (source_dir / name).write_text(data)
    write_zip(tmp_path / "source.zip", FILES)
    write_tar(tmp_path / "source.tar", FILES, False)
    write_tar(tmp_path / "source.tar.gz", FILES, True)
    write_gzip(tmp_path / "nodes.csv.gz", FILES["nodes.csv"])
    (tmp_path / "plain.log").write_text("node_guid=node-plain\n")
    return tmp_path


@pytest.mark.parametrize(
    "path, want_files, want_name",
    [
        ("source-dir", 2, "nodes.csv"),
        ("source.zip", 2, "nodes.csv"),
        ("source.tar", 2, "nodes.csv"),
        ("source.tar.gz", 2, "nodes.csv"),
        ("nodes.csv.gz", 1, "nodes.csv"),
        ("plain.log", 1, "plain.log"),
    ],
)
def test_read_source_reads_supported_sources(sources, path, want_files, want_name):
    got = read_source(sources / path)
    assert len(got) == want_files
    assert got[0].name == want_name
    assert len(got[0].data) > 0


def test_read_source_keeps_content(sources):
    got = read_source(sources / "source.zip")
    assert got == [SourceFile(name, FILES[name].encode()) for name in sorted(FILES)]


def test_read_source_directory_uses_relative_names(tmp_path):
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "x.log").write_text("node_guid=a\n")
    (tmp_path / "a.log").write_text("node_guid=b\n")
    names = [item.name for item in read_source(tmp_path)]
    assert names == ["a.log", os.path.join("sub", "x.log")]


def test_read_source_tar_skips_directories(tmp_path):
    path = tmp_path / "dirs.tar"
    with tarfile.open(path, "w") as archive:
        folder = tarfile.TarInfo("logs")
        folder.type = tarfile.DIRTYPE
        archive.addfile(folder)
        data = b"node_guid=a\n"
        info = tarfile.TarInfo("logs/a.log")
        info.size = len(data)
        archive.addfile(info, io.BytesIO(data))
    assert read_source(path) == [SourceFile("logs/a.log", b"node_guid=a\n")]


def test_read_source_missing_file(tmp_path):
    with pytest.raises(NotFoundError):
        read_source(tmp_path / "missing.zip")


def test_read_source_corrupt_zip(tmp_path):
    path = tmp_path / "bad.zip"
    path.write_bytes(b"not a zip")
    with pytest.raises(zipfile.BadZipFile):
        read_source(path)


def test_read_source_too_large_plain_file(tmp_path):
    path = tmp_path / "huge.log"
    with open(path, "wb") as handle:
        handle.truncate(MAX_FILE_SIZE + 1)
    with pytest.raises(BadArgumentsError):
        read_source(path)


def test_read_small_file_rejects_large_file(tmp_path):
    path = tmp_path / "huge.log"
    with open(path, "wb") as handle:
        handle.truncate(MAX_FILE_SIZE + 1)
    with pytest.raises(BadArgumentsError):
        read_small_file(path)


def test_read_source_too_many_archive_files(tmp_path):
    path = tmp_path / "too-many.zip"
    files = {f"logs/{i}.log": "node_guid=node\n" for i in range(MAX_FILES + 1)}
    write_zip(path, files)
    with pytest.raises(BadArgumentsError):
        read_source(path)


def test_archive_limits_too_large_single_file():
    with pytest.raises(BadArgumentsError):
        ArchiveLimits().add_file("huge.log", MAX_FILE_SIZE + 1)


def test_archive_limits_too_large_total_size():
    limits = ArchiveLimits()
    size = MAX_TOTAL_BYTES // 2
    limits.add_file("one.log", size)
    limits.add_file("two.log", size)
    assert limits.total == MAX_TOTAL_BYTES
    with pytest.raises(BadArgumentsError):
        limits.add_file("three.log", 1)


def test_archive_limits_counts_negative_size_as_zero():
    limits = ArchiveLimits()
    limits.add_file("odd.log", -5)
    assert (limits.files, limits.total) == (1, 0)