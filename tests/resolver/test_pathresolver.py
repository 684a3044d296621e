import pytest

from sediment.pathresolver import (
    PathResolver,
    ResolverPathHolder,
    ResolverStatus,
    SymlinkTableError,
)


def _has_link_prefix(path, symlinks):
    parts = path.strip("/").split("/")
    return any("/" + "/".join(parts[:i]) in symlinks for i in range(1, len(parts) + 1))


def test_sbin_link():
    """An absolute directory link is substituted for the matching prefix."""
    resolver = PathResolver({"/sbin": "/usr/sbin"})
    assert resolver.resolve("/sbin/ldconfig") == ("/usr/sbin/ldconfig", ResolverStatus.DONE)


def test_relative_sbin_link():
    """A relative target is joined with the directory holding the link."""
    resolver = PathResolver({"/sbin": "usr/sbin"})
    assert resolver.resolve("/sbin/ldconfig") == ("/usr/sbin/ldconfig", ResolverStatus.DONE)


def test_path_without_links_is_normalized():
    resolver = PathResolver({"/sbin": "/usr/sbin"})
    assert resolver.resolve("//usr//lib/./libc.so/") == ("/usr/lib/libc.so", ResolverStatus.DONE)
    assert resolver.resolve("/") == ("/", ResolverStatus.DONE)


def test_dot_dot_within_root():
    resolver = PathResolver({})
    assert resolver.resolve("/usr/lib/../bin/sh") == ("/usr/bin/sh", ResolverStatus.DONE)
    assert resolver.resolve("/usr/..") == ("/", ResolverStatus.DONE)


def test_link_back_to_root_repeated():
    symlinks = {"/iamlink": "/iamtarget", "/iamtarget/iamlink": "/"}
    resolver = PathResolver(symlinks)
    path, status = resolver.resolve("/iamlink" * 9 + "/file.txt")
    assert status == ResolverStatus.DONE
    assert path == "/iamtarget/file.txt"
    assert not _has_link_prefix(path, symlinks)


def test_relative_links_with_parent_target():
    symlinks = {"/iamlink": "iamtarget", "/iamtarget/iamlink": "../"}
    resolver = PathResolver(symlinks)
    assert resolver.resolve("/iamlink/iamlink/file.txt") == ("/file.txt", ResolverStatus.DONE)


def test_link_to_own_directory():
    symlinks = {"/iamlink": "/iamtarget", "/iamtarget/iamlink": "/iamtarget"}
    resolver = PathResolver(symlinks)
    path, status = resolver.resolve("/iamlink/iamlink/iamlink/file.txt")
    assert (path, status) == ("/iamtarget/file.txt", ResolverStatus.DONE)


def test_alternating_links():
    symlinks = {"/iamlink": "/iamtarget", "/iamtarget/iamlink": "/iamlink"}
    resolver = PathResolver(symlinks)
    path, status = resolver.resolve("/iamlink" * 6 + "/file.txt")
    assert (path, status) == ("/iamtarget/file.txt", ResolverStatus.DONE)


def test_escaping_root_is_bad_traversal():
    resolver = PathResolver({"/iamlink": "../../"})
    _, status = resolver.resolve("/iamlink/file.txt")
    assert status == ResolverStatus.BAD_TRAVERSAL


def test_dot_dot_above_root_is_bad_traversal():
    resolver = PathResolver({})
    assert resolver.resolve("/../etc/passwd")[1] == ResolverStatus.BAD_TRAVERSAL


def test_self_referencing_link_is_cyclic():
    resolver = PathResolver({"/iamlink": "/iamlink"})
    assert resolver.resolve("/iamlink")[1] == ResolverStatus.CYCLIC
    assert resolver.resolve("/iamlink/file.txt")[1] == ResolverStatus.CYCLIC


def test_mutual_links_are_cyclic():
    resolver = PathResolver({"/iamlink": "/iamtarget/iamlink", "/iamtarget/iamlink": "/iamlink"})
    assert resolver.resolve("/iamlink/file.txt")[1] == ResolverStatus.CYCLIC


def test_three_link_cycle():
    resolver = PathResolver({"/a": "/b", "/b": "c", "/c": "/a"})
    assert resolver.resolve("/a/x")[1] == ResolverStatus.CYCLIC


def test_exhausting_max_depth_is_cyclic():
    chain = {f"/a{i}": f"/a{i + 1}" for i in range(10)}
    assert PathResolver(chain, max_depth=5).resolve("/a0")[1] == ResolverStatus.CYCLIC
    assert PathResolver(chain, max_depth=128).resolve("/a0") == ("/a10", ResolverStatus.DONE)


def test_relative_input_rejected():
    resolver = PathResolver({})
    with pytest.raises(ValueError):
        resolver.resolve("usr/bin")


@pytest.mark.parametrize(
    "symlinks",
    [
        {"relative/link": "/target"},
        {"/a/../b": "/target"},
        {"/a/..": "/target"},
        {"/a\0b": "/target"},
        {"/a": "/tar\0get"},
        {"/a": None},
    ],
)
def test_invalid_table_fails_construction(symlinks):
    with pytest.raises(SymlinkTableError):
        PathResolver(symlinks)


def test_table_keys_are_normalized():
    resolver = PathResolver({"//sbin/": "/usr/sbin"})
    assert resolver.resolve("/sbin/ldconfig") == ("/usr/sbin/ldconfig", ResolverStatus.DONE)


def test_finished_holder_is_frozen():
    holder = ResolverPathHolder("/a")
    holder.set_current_path("/b")
    holder.set_status(ResolverStatus.DONE)
    with pytest.raises(RuntimeError):
        holder.set_current_path("/c")
    with pytest.raises(RuntimeError):
        holder.set_status(ResolverStatus.CYCLIC)
    assert holder.current_path == "/b"
