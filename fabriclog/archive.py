"""Reading log sources: plain files, directories and archives."""

from __future__ import annotations

import gzip
import os
import tarfile
import zipfile
from collections.abc import Iterator
from dataclasses import dataclass

from fabriclog.errors import BadArgumentsError, NotFoundError

MAX_FILE_SIZE = 64 << 20
MAX_FILES = 1000
MAX_TOTAL_BYTES = 128 << 20


@dataclass(frozen=True)
class SourceFile:
    """One file of a log source, with its name inside the source."""

    name: str
    data: bytes


@dataclass
class ArchiveLimits:
    """Running count of files and bytes read from one source."""

    files: int = 0
    total: int = 0

    def add_file(self, name: str, size: int) -> None:
        """Account for one more file, raising if a limit would be exceeded."""
        size = max(size, 0)
        if size > MAX_FILE_SIZE:
            raise BadArgumentsError(f"archive file {name} is too large")
        if self.files + 1 > MAX_FILES:
            raise BadArgumentsError("archive contains too many files")
        if self.total + size > MAX_TOTAL_BYTES:
            raise BadArgumentsError("archive total size is too large")
        self.files += 1
        self.total += size


def read_source(path: str | os.PathLike[str]) -> list[SourceFile]:
    """Read every file of a source chosen by its kind and extension."""
    path = os.fspath(path)
    try:
        st = os.stat(path)
    except FileNotFoundError:
        raise NotFoundError() from None

    if os.path.isdir(path):
        return _read_dir(path)

    base = os.path.basename(path)
    name = base.lower()
    if name.endswith(".zip"):
        return _read_zip(path)
    if name.endswith(".tar"):
        return _read_tar(path, gzipped=False)
    if name.endswith((".tar.gz", ".tgz")):
        return _read_tar(path, gzipped=True)
    if name.endswith(".gz"):
        return _read_gzip(path)

    del st
    return [SourceFile(base, read_small_file(path))]


def read_small_file(path: str | os.PathLike[str]) -> bytes:
    """Read a whole file, refusing one larger than the per-file limit."""
    path = os.fspath(path)
    if os.stat(path).st_size > MAX_FILE_SIZE:
        raise BadArgumentsError(f"file {path} is too large")
    with open(path, "rb") as handle:
        return handle.read()


def _walk_files(directory: str) -> Iterator[os.DirEntry[str]]:
    with os.scandir(directory) as scan:
        entries = sorted(scan, key=lambda entry: entry.name)
    for entry in entries:
        if entry.is_dir(follow_symlinks=False):
            yield from _walk_files(entry.path)
        else:
            yield entry


def _read_dir(root: str) -> list[SourceFile]:
    files: list[SourceFile] = []
    limits = ArchiveLimits()
    for entry in _walk_files(root):
        limits.add_file(entry.path, entry.stat(follow_symlinks=False).st_size)
        data = read_small_file(entry.path)
        try:
            rel = os.path.relpath(entry.path, root)
        except ValueError:
            rel = os.path.basename(entry.path)
        files.append(SourceFile(rel, data))
    return files


def _read_limited(stream, name: str) -> bytes:
    data = stream.read(MAX_FILE_SIZE + 1)
    if len(data) > MAX_FILE_SIZE:
        raise BadArgumentsError(f"archive file {name} is too large")
    return data


def _read_zip(path: str) -> list[SourceFile]:
    files: list[SourceFile] = []
    limits = ArchiveLimits()
    with zipfile.ZipFile(path) as archive:
        for info in archive.infolist():
            if info.is_dir():
                continue
            if info.file_size > MAX_FILE_SIZE:
                raise BadArgumentsError(f"archive file {info.filename} is too large")
            limits.add_file(info.filename, info.file_size)
            with archive.open(info) as stream:
                files.append(SourceFile(info.filename, _read_limited(stream, info.filename)))
    return files


def _read_tar(path: str, *, gzipped: bool) -> list[SourceFile]:
    files: list[SourceFile] = []
    limits = ArchiveLimits()
    with tarfile.open(path, "r:gz" if gzipped else "r:") as archive:
        for member in archive:
            if member.isdir():
                continue
            limits.add_file(member.name, member.size)
            data = b""
            if member.isfile():
                stream = archive.extractfile(member)
                if stream is not None:
                    with stream:
                        data = _read_limited(stream, member.name)
            files.append(SourceFile(member.name, data))
    return files


def _read_gzip(path: str) -> list[SourceFile]:
    with gzip.open(path, "rb") as stream:
        data = stream.read(MAX_FILE_SIZE + 1)
    if len(data) > MAX_FILE_SIZE:
        raise BadArgumentsError("gzip file is too large")

    name = os.path.basename(path)
    if name.endswith(".gz"):
        name = name[: -len(".gz")]
    ArchiveLimits().add_file(name, len(data))
    return [SourceFile(name, data)]