#!/usr/bin/env python3

"""
Pytest coverage for the virtual filesystem simulator and glob patterns.
"""

# Standard Library
import os
import sys
import tempfile

# PIP3 modules
import pytest

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

# local repo modules
from soundpipelib.core import errors
from soundpipelib.core import patterns
from soundpipelib.core import virtual_fs

#============================================

def _touch(path: str) -> None:
	os.makedirs(os.path.dirname(path), exist_ok=True)
	with open(path, "w") as handle:
		handle.write("x")

#============================================

def _make_vfs(paths: list) -> virtual_fs.VirtualFileSystem:
	vfs = virtual_fs.VirtualFileSystem()
	for path in paths:
		vfs.apply(virtual_fs.CreateFile(path))
	return vfs

#============================================

def test_split_path_normalizes() -> None:
	"""
	Ensure dot components and backslashes are normalized.
	"""
	assert patterns.split_path("./a/./b//c.wav") == ["a", "b", "c.wav"]
	assert patterns.split_path("a\\b.wav") == ["a", "b.wav"]
	assert patterns.split_path("a/../b.wav") == ["b.wav"]
	assert patterns.normalize_path(".") == ""

#============================================

@pytest.mark.parametrize("path", ["../a.wav", "a/../../b.wav", "/abs/a.wav", "a\x00b"])
def test_split_path_rejects_escaping_paths(path: str) -> None:
	"""
	Ensure paths outside the working directory are rejected.
	"""
	with pytest.raises(errors.MalformedPath):
		patterns.split_path(path)

#============================================

def test_from_directory_mirrors_disk() -> None:
	"""
	Ensure seeding walks the real tree recursively.
	"""
	with tempfile.TemporaryDirectory() as temp_dir:
		_touch(os.path.join(temp_dir, "a.wav"))
		_touch(os.path.join(temp_dir, "sub", "deep", "b.mkv"))
		os.makedirs(os.path.join(temp_dir, "empty"))
		vfs = virtual_fs.VirtualFileSystem.from_directory(temp_dir)
		assert vfs.list_files() == ["a.wav", "sub/deep/b.mkv"]
		assert vfs.is_dir("empty")
		assert vfs.is_dir("sub/deep")
		assert not vfs.exists("missing.wav")

#============================================

def test_create_file_makes_parent_directories() -> None:
	"""
	Ensure CreateFile inserts intermediate directories.
	"""
	vfs = virtual_fs.VirtualFileSystem()
	assert vfs.apply(virtual_fs.CreateFile("./out/mp3/a.mp3", 12.5))
	assert vfs.is_dir("out")
	assert vfs.is_dir("out/mp3")
	assert vfs.is_file("out/mp3/a.mp3")
	assert vfs.duration_of("out/mp3/a.mp3") == 12.5

#============================================

def test_create_file_under_file_is_rejected() -> None:
	"""
	Ensure a file cannot be used as a directory.
	"""
	vfs = _make_vfs(["a.wav"])
	with pytest.raises(errors.MalformedPath):
		vfs.apply(virtual_fs.CreateFile("a.wav/b.wav"))

#============================================

def test_delete_absent_is_noop() -> None:
	"""
	Ensure deleting something that does not exist changes nothing.
	"""
	vfs = _make_vfs(["a.wav"])
	assert not vfs.apply(virtual_fs.DeleteFile("never.wav"))
	assert not vfs.apply(virtual_fs.DeleteDirectory("never", recursive=True))
	assert not vfs.apply(virtual_fs.DeleteFile("never/deeper.wav"))
	assert vfs.list_files() == ["a.wav"]

#============================================

def test_delete_directory_recursive_and_not() -> None:
	"""
	Ensure non-recursive deletes keep non-empty directories.
	"""
	vfs = _make_vfs(["splits/a.wav", "splits/b.wav"])
	assert not vfs.apply(virtual_fs.DeleteDirectory("splits", recursive=False))
	assert vfs.is_dir("splits")
	assert vfs.apply(virtual_fs.DeleteDirectory("splits", recursive=True))
	assert not vfs.exists("splits")
	assert vfs.list_files() == []

#============================================

def test_resolve_literal_and_glob() -> None:
	"""
	Ensure literal paths need existence and globs match one level.
	"""
	vfs = _make_vfs(["splits/a.wav", "splits/b.wav", "splits/c.mp3", "splits/sub/d.wav"])
	assert vfs.resolve("splits/a.wav") == {"splits/a.wav"}
	assert vfs.resolve("splits/zzz.wav") == set()
	assert vfs.resolve("splits/*.wav") == {"splits/a.wav", "splits/b.wav"}
	assert vfs.resolve("splits/[ab].*") == {"splits/a.wav", "splits/b.wav"}
	assert vfs.resolve("splits/?.mp3") == {"splits/c.mp3"}
	assert vfs.resolve("*/sub/*.wav") == {"splits/sub/d.wav"}

#============================================

def test_resolve_skips_hidden_names() -> None:
	"""
	Ensure wildcards do not match a leading dot.
	"""
	vfs = _make_vfs(["a.wav", ".hidden.wav"])
	assert vfs.resolve("*.wav") == {"a.wav"}
	assert vfs.resolve(".*.wav") == {".hidden.wav"}

#============================================

@pytest.mark.parametrize("pattern", ["**/a.wav", "a[bc.wav", "a[].wav"])
def test_resolve_rejects_bad_globs(pattern: str) -> None:
	"""
	Ensure recursive and unbalanced patterns raise GlobSyntaxError.
	"""
	vfs = _make_vfs(["a.wav"])
	with pytest.raises(errors.GlobSyntaxError):
		vfs.resolve(pattern)

#============================================

def test_resolve_on_disk_matches_simulator() -> None:
	"""
	Ensure the disk resolver agrees with the simulator.
	"""
	with tempfile.TemporaryDirectory() as temp_dir:
		for name in ("splits/a.wav", "splits/b.wav", "splits/.c.wav", "x.mkv"):
			_touch(os.path.join(temp_dir, name))
		vfs = virtual_fs.VirtualFileSystem.from_directory(temp_dir)
		disk_matches = patterns.resolve_on_disk(temp_dir, "splits/*.wav")
		assert disk_matches == ["splits/a.wav", "splits/b.wav"]
		assert set(disk_matches) == vfs.resolve("splits/*.wav")

#============================================

def test_resolve_prefers_existing_bracketed_names() -> None:
	"""
	Ensure a name with brackets matches itself before being read as a glob.
	"""
	vfs = _make_vfs(["splits/Song [Live].wav", "splits/Song L.wav", "take [1]/a.wav"])
	assert vfs.resolve("splits/Song [Live].wav") == {"splits/Song [Live].wav"}
	assert vfs.resolve("take [1]/*.wav") == {"take [1]/a.wav"}
	# no literal match, so the brackets are a character class
	assert vfs.resolve("splits/Song [KL].wav") == {"splits/Song L.wav"}

#============================================

def test_resolve_on_disk_prefers_existing_bracketed_names() -> None:
	"""
	Ensure the disk resolver takes existing bracketed names literally.
	"""
	with tempfile.TemporaryDirectory() as temp_dir:
		for name in ("splits/Song [Live].wav", "splits/Song L.wav", "take [1]/a.wav"):
			_touch(os.path.join(temp_dir, name))
		assert patterns.resolve_on_disk(temp_dir, "splits/Song [Live].wav") == [
			"splits/Song [Live].wav"]
		assert patterns.resolve_on_disk(temp_dir, "take [1]/*.wav") == ["take [1]/a.wav"]
		assert patterns.resolve_on_disk(temp_dir, "splits/Song [KL].wav") == ["splits/Song L.wav"]
