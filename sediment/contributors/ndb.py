# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import pathlib
import queue
import struct
import threading
from typing import Dict, Iterator, List, NamedTuple, Optional, Union

from loguru import logger

# RPM "ndb" package database (var/lib/rpm/Packages.db), all integers little-endian
NDB_MAGIC = int.from_bytes(b"RpmP", "little")
NDB_SLOT_MAGIC = int.from_bytes(b"Slot", "little")
NDB_BLOB_MAGIC = int.from_bytes(b"BlbS", "little")
NDB_DB_VERSION = 0
NDB_HEADER_SIZE = 32
NDB_SLOT_ENTRY_SIZE = 16
NDB_BLOB_HEADER_SIZE = 16
NDB_PAGE_SIZE = 4096
NDB_SLOTS_PER_PAGE = NDB_PAGE_SIZE // NDB_SLOT_ENTRY_SIZE
# the database header occupies the first two slots of page zero
NDB_HEADER_SLOTS = 2
NDB_BLOCK_SIZE = 16
NDB_MAX_SLOT_PAGES = 2048

_HEADER = struct.Struct("<8I")
_SLOT = struct.Struct("<4I")
_BLOB_HEADER = struct.Struct("<4I")

# how long a blocked producer waits before it checks for cancellation again
_PUT_TIMEOUT = 0.1


class NdbFormatError(ValueError):
    """Raised for a structurally invalid ndb database."""


class NdbEntry(NamedTuple):
    """One element of an ndb stream: a header blob, an error, or (both None) the end of stream."""

    blob: Optional[bytes] = None
    error: Optional[Exception] = None

    @property
    def is_end(self) -> bool:
        return self.blob is None and self.error is None


END_OF_STREAM = NdbEntry()


class NdbSlot(NamedTuple):
    pkg_index: int
    blk_offset: int
    blk_count: int


def read_header(f) -> int:
    """Validates the database header and returns the number of slot pages."""
    data = f.read(NDB_HEADER_SIZE)
    if len(data) < NDB_HEADER_SIZE:
        raise NdbFormatError("truncated database header")
    magic, version, generation, slot_npages, *_ = _HEADER.unpack(data)
    if magic != NDB_MAGIC:
        raise NdbFormatError(f"bad database magic 0x{magic:08x}")
    if version != NDB_DB_VERSION:
        raise NdbFormatError(f"unsupported database version {version}")
    if slot_npages == 0 or slot_npages > NDB_MAX_SLOT_PAGES:
        raise NdbFormatError(f"implausible slot page count {slot_npages}")
    logger.debug(f"ndb database generation {generation} with {slot_npages} slot pages")
    return slot_npages


class NdbStream:
    """Consumer side of an ndb read.

    Iterating yields NdbEntry values until the end of the stream; the end marker itself is not
    yielded. Entries with an error are yielded like any other entry and the consumer decides
    whether to continue. Leaving a ``with`` block, or calling cancel(), stops the producer.
    """

    def __init__(self, entries: "queue.Queue[NdbEntry]", cancelled: threading.Event, worker: threading.Thread):
        self._entries = entries
        self._cancelled = cancelled
        self._worker = worker
        self._finished = False

    def __iter__(self) -> Iterator[NdbEntry]:
        while not self._finished:
            entry = self._entries.get()
            if entry.is_end:
                self._finished = True
                break
            yield entry

    def cancel(self, timeout: Optional[float] = 5.0) -> None:
        """Stops the producer and waits for its thread to exit."""
        self._cancelled.set()
        self._worker.join(timeout)
        if self._worker.is_alive():
            logger.warning("ndb reader thread did not stop in time")
        self._finished = True

    def __enter__(self) -> "NdbStream":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cancel()


class NdbReader:
    """Streams the package header blobs of an RPM ndb database from a background thread.

    Args:
        path (Union[str, pathlib.Path]): Location of the Packages.db file.
        queue_size (int): Maximum number of blobs buffered ahead of the consumer.
    """

    def __init__(self, path: Union[str, pathlib.Path], queue_size: int = 64):
        if queue_size < 1:
            raise ValueError("queue_size must be at least 1")
        self.path = pathlib.Path(path)
        self.queue_size = queue_size

    def read(self) -> NdbStream:
        entries: "queue.Queue[NdbEntry]" = queue.Queue(maxsize=self.queue_size)
        cancelled = threading.Event()
        worker = threading.Thread(
            target=self._produce,
            args=(entries, cancelled),
            name=f"ndb-reader-{self.path.name}",
            daemon=True,
        )
        worker.start()
        return NdbStream(entries, cancelled, worker)

    def read_all(self) -> List[bytes]:
        """Reads every blob, raising the first error encountered."""
        blobs = []
        with self.read() as stream:
            for entry in stream:
                if entry.error is not None:
                    raise entry.error
                blobs.append(entry.blob)
        return blobs

    @staticmethod
    def _put(entries: "queue.Queue[NdbEntry]", cancelled: threading.Event, entry: NdbEntry) -> bool:
        while not cancelled.is_set():
            try:
                entries.put(entry, timeout=_PUT_TIMEOUT)
                return True
            except queue.Full:
                continue
        return False

    def _produce(self, entries: "queue.Queue[NdbEntry]", cancelled: threading.Event) -> None:
        try:
            with open(self.path, "rb") as f:
                for entry in self._parse(f):
                    if not self._put(entries, cancelled, entry):
                        return
                    if entry.error is not None:
                        break
        except (OSError, struct.error, ValueError) as e:
            if not self._put(entries, cancelled, NdbEntry(error=e)):
                return
        self._put(entries, cancelled, END_OF_STREAM)

    def _parse(self, f) -> Iterator[NdbEntry]:
        try:
            slot_npages = read_header(f)
        except NdbFormatError as e:
            yield NdbEntry(error=e)
            return

        slots: List[NdbSlot] = []
        for _ in range(slot_npages * NDB_SLOTS_PER_PAGE - NDB_HEADER_SLOTS):
            data = f.read(NDB_SLOT_ENTRY_SIZE)
            if len(data) < NDB_SLOT_ENTRY_SIZE:
                yield NdbEntry(error=NdbFormatError("truncated slot table"))
                return
            slot_magic, pkg_index, blk_offset, blk_count = _SLOT.unpack(data)
            if slot_magic != NDB_SLOT_MAGIC:
                yield NdbEntry(error=NdbFormatError(f"bad slot magic 0x{slot_magic:08x}"))
                return
            if pkg_index == 0:
                continue
            slots.append(NdbSlot(pkg_index, blk_offset, blk_count))

        for slot in slots:
            f.seek(slot.blk_offset * NDB_BLOCK_SIZE)
            data = f.read(NDB_BLOB_HEADER_SIZE)
            if len(data) < NDB_BLOB_HEADER_SIZE:
                yield NdbEntry(error=NdbFormatError(f"truncated blob header for package {slot.pkg_index}"))
                return
            blob_magic, pkg_index, _checksum, blob_len = _BLOB_HEADER.unpack(data)
            if blob_magic != NDB_BLOB_MAGIC:
                yield NdbEntry(error=NdbFormatError(f"bad blob magic 0x{blob_magic:08x}"))
                return
            if pkg_index != slot.pkg_index:
                yield NdbEntry(
                    error=NdbFormatError(f"blob index {pkg_index} does not match slot {slot.pkg_index}")
                )
                return
            blob = f.read(blob_len)
            if len(blob) < blob_len:
                yield NdbEntry(error=NdbFormatError(f"truncated blob for package {pkg_index}"))
                return
            yield NdbEntry(blob=blob)


# RPM header tags and types used to describe an installed package
RPMTAG_NAME = 1000
RPMTAG_VERSION = 1001
RPMTAG_RELEASE = 1002
RPMTAG_EPOCH = 1003
RPMTAG_LICENSE = 1014
RPMTAG_ARCH = 1022
RPMTAG_SOURCERPM = 1044
RPMTAG_DIRINDEXES = 1116
RPMTAG_BASENAMES = 1117
RPMTAG_DIRNAMES = 1118

RPM_INT32_TYPE = 4
RPM_STRING_TYPE = 6
RPM_STRING_ARRAY_TYPE = 8
RPM_I18NSTRING_TYPE = 9

_INDEX_ENTRY = struct.Struct(">4i")


def _read_strings(store: bytes, offset: int, count: int) -> List[str]:
    strings = []
    for _ in range(count):
        end = store.find(b"\0", offset)
        if end < 0:
            raise NdbFormatError(f"unterminated string at offset {offset}")
        strings.append(store[offset:end].decode("utf-8", errors="replace"))
        offset = end + 1
    return strings


def parse_rpm_header(blob: bytes) -> Dict[str, object]:
    """Decodes the package fields of an RPM header blob as stored in the package database.

    Returns:
        Dict[str, object]: Name, Version, Release, Epoch, Arch, License and Source RPM when
        present, plus "Files", the absolute paths of the installed files.
    """
    if len(blob) < 8:
        raise NdbFormatError("header blob too short")
    index_count, store_size = struct.unpack(">2i", blob[:8])
    store_start = 8 + index_count * _INDEX_ENTRY.size
    if index_count < 0 or store_size < 0 or store_start + store_size > len(blob):
        raise NdbFormatError("header blob sizes out of range")
    store = blob[store_start : store_start + store_size]

    values: Dict[int, object] = {}
    for i in range(index_count):
        tag, tag_type, offset, count = _INDEX_ENTRY.unpack_from(blob, 8 + i * _INDEX_ENTRY.size)
        if offset < 0 or offset >= len(store):
            continue
        if tag_type in (RPM_STRING_TYPE, RPM_I18NSTRING_TYPE):
            values[tag] = _read_strings(store, offset, 1)[0]
        elif tag_type == RPM_STRING_ARRAY_TYPE:
            if count < 0:
                raise NdbFormatError(f"negative count for tag {tag}")
            values[tag] = _read_strings(store, offset, count)
        elif tag_type == RPM_INT32_TYPE:
            if count < 0 or offset + 4 * count > len(store):
                raise NdbFormatError(f"int32 array of tag {tag} exceeds the data store")
            values[tag] = list(struct.unpack_from(f">{count}i", store, offset))

    info: Dict[str, object] = {}
    for tag, key in (
        (RPMTAG_NAME, "Name"),
        (RPMTAG_VERSION, "Version"),
        (RPMTAG_RELEASE, "Release"),
        (RPMTAG_ARCH, "Arch"),
        (RPMTAG_LICENSE, "License"),
        (RPMTAG_SOURCERPM, "Source RPM"),
    ):
        if isinstance(values.get(tag), str):
            info[key] = values[tag]
    epoch = values.get(RPMTAG_EPOCH)
    if isinstance(epoch, list) and epoch:
        info["Epoch"] = str(epoch[0])

    basenames = values.get(RPMTAG_BASENAMES) or []
    dirnames = values.get(RPMTAG_DIRNAMES) or []
    dirindexes = values.get(RPMTAG_DIRINDEXES) or []
    files = []
    for basename, dirindex in zip(basenames, dirindexes):
        if 0 <= dirindex < len(dirnames):
            files.append(dirnames[dirindex] + basename)
    info["Files"] = files
    return info
