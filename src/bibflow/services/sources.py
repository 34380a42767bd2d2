"""Byte stream sources: local files, stdin and remote (optionally zipped) links."""

from __future__ import annotations

import sys
import tempfile
import zipfile
from collections.abc import Iterator
from contextlib import ExitStack, contextmanager
from pathlib import Path
from typing import IO, BinaryIO, Union

import httpx
import structlog

from bibflow.errors import StreamFatal

logger = structlog.get_logger(__name__)

STDIN = "-"


class ArchiveMembers:
    """The files of a zip archive, opened one at a time in archive order.

    Each member is a stream of its own: several XML documents cannot be
    glued into one byte stream.
    """

    def __init__(self, archive: zipfile.ZipFile) -> None:
        self._archive = archive
        self._infos = [info for info in archive.infolist() if not info.is_dir()]

    def __len__(self) -> int:
        return len(self._infos)

    @property
    def names(self) -> list[str]:
        return [info.filename for info in self._infos]

    def __iter__(self) -> Iterator[IO[bytes]]:
        for info in self._infos:
            logger.debug("source.member", name=info.filename, bytes=info.file_size)
            with self._archive.open(info) as member:
                yield member


Source = Union[BinaryIO, ArchiveMembers]


def is_remote(location: str) -> bool:
    return location.startswith(("http://", "https://"))


def download(link: str, target: BinaryIO, client: httpx.Client) -> int:
    """Stream a remote resource into ``target`` and return the byte count."""
    written = 0
    with client.stream("GET", link) as response:
        response.raise_for_status()
        for chunk in response.iter_bytes():
            target.write(chunk)
            written += len(chunk)
    return written


@contextmanager
def open_source(
    location: str | Path,
    *,
    client: httpx.Client | None = None,
    timeout: float = 60.0,
) -> Iterator[Source]:
    """Open a location as a binary stream.

    ``-`` reads stdin, ``http(s)://`` links are downloaded to a temporary
    file first. Zip archives, local or remote, yield ``ArchiveMembers``
    instead of a single stream.

    Raises:
        StreamFatal: The location cannot be opened or fetched.
    """
    location = str(location)
    if location == STDIN:
        yield sys.stdin.buffer
        return

    with ExitStack() as stack:
        if is_remote(location):
            handle = stack.enter_context(
                tempfile.NamedTemporaryFile(prefix="bibflow-", suffix=".download")
            )
            http = client or stack.enter_context(
                httpx.Client(timeout=timeout, follow_redirects=True)
            )
            try:
                size = download(location, handle, http)
            except httpx.HTTPError as exc:
                raise StreamFatal(f"cannot fetch {location}: {exc}") from exc
            handle.flush()
            logger.info("source.downloaded", link=location, bytes=size)
            path = Path(handle.name)
        else:
            path = Path(location).expanduser()
            if not path.is_file():
                raise StreamFatal(f"{path} does not exist or is not a file")

        if zipfile.is_zipfile(path):
            try:
                archive = stack.enter_context(zipfile.ZipFile(path))
            except (zipfile.BadZipFile, OSError) as exc:
                raise StreamFatal(f"cannot read archive {path}: {exc}") from exc
            members = ArchiveMembers(archive)
            logger.info("source.archive", path=str(path), members=len(members))
            yield members
            return

        try:
            stream = stack.enter_context(path.open("rb"))
        except OSError as exc:
            raise StreamFatal(f"cannot open {path}: {exc}") from exc
        yield stream
