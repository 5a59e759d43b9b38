#!/usr/bin/env python3

"""
In-memory model of the working directory used to dry-run a pipeline.

Steps never touch disk here: each one declares effects (create a file,
create a directory, delete something) and the simulator absorbs them so
later steps can be checked against the state earlier steps leave behind.
"""

import os
from soundpipelib.core import errors
from soundpipelib.core import patterns

#============================================

class VirtualFile():
	def __init__(self, name: str, duration: float = None):
		self.name = name
		self.duration = duration

	#============================
	def is_dir(self) -> bool:
		return False

#============================================

class VirtualDirectory():
	def __init__(self, name: str):
		self.name = name
		self.children = {}

	#============================
	def is_dir(self) -> bool:
		return True

	#============================
	def walk_files(self, prefix: str = '') -> list:
		paths = []
		for name, node in self.children.items():
			child_path = f"{prefix}/{name}" if prefix else name
			if node.is_dir():
				paths += node.walk_files(child_path)
			else:
				paths.append(child_path)
		return paths

	#============================
	def walk_dirs(self, prefix: str = '') -> list:
		paths = []
		for name, node in self.children.items():
			if not node.is_dir():
				continue
			child_path = f"{prefix}/{name}" if prefix else name
			paths.append(child_path)
			paths += node.walk_dirs(child_path)
		return paths

#============================================
# effects

class CreateFile():
	def __init__(self, path: str, duration: float = None):
		self.path = path
		self.duration = duration

	def __repr__(self) -> str:
		return f"CreateFile({self.path!r})"

class CreateDirectory():
	def __init__(self, path: str):
		self.path = path

	def __repr__(self) -> str:
		return f"CreateDirectory({self.path!r})"

class DeleteFile():
	def __init__(self, path: str):
		self.path = path

	def __repr__(self) -> str:
		return f"DeleteFile({self.path!r})"

class DeleteDirectory():
	def __init__(self, path: str, recursive: bool = True):
		self.path = path
		self.recursive = recursive

	def __repr__(self) -> str:
		return f"DeleteDirectory({self.path!r}, recursive={self.recursive})"

#============================================

class VirtualFileSystem():
	def __init__(self):
		self.root = VirtualDirectory('')

	#============================
	@classmethod
	def from_directory(cls, root_dir: str, known_durations: dict = None):
		"""
		Seed a simulator from a recursive walk of a real directory.

		Args:
			root_dir: Working directory to mirror.
			known_durations: Optional relative path -> seconds mapping.

		Returns:
			VirtualFileSystem: Simulator mirroring root_dir.
		"""
		vfs = cls()
		if root_dir is None or not os.path.isdir(root_dir):
			return vfs
		for dirpath, dirnames, filenames in os.walk(root_dir):
			dirnames.sort()
			rel_dir = os.path.relpath(dirpath, root_dir)
			if rel_dir == '.':
				rel_dir = ''
			rel_dir = rel_dir.replace(os.sep, '/')
			for dirname in dirnames:
				vfs.apply(CreateDirectory(patterns.join_relative(rel_dir, dirname)))
			for filename in sorted(filenames):
				vfs.apply(CreateFile(patterns.join_relative(rel_dir, filename)))
		if known_durations:
			for path, duration in known_durations.items():
				vfs.set_duration(path, duration)
		return vfs

	#============================
	def _lookup(self, components: list):
		node = self.root
		for component in components:
			if not node.is_dir():
				return None
			node = node.children.get(component)
			if node is None:
				return None
		return node

	#============================
	def _lookup_path(self, path: str):
		components = patterns.split_path(path)
		if len(components) == 0:
			return self.root
		return self._lookup(components)

	#============================
	def exists(self, path: str) -> bool:
		return self._lookup_path(path) is not None

	#============================
	def is_file(self, path: str) -> bool:
		node = self._lookup_path(path)
		return node is not None and not node.is_dir()

	#============================
	def is_dir(self, path: str) -> bool:
		node = self._lookup_path(path)
		return node is not None and node.is_dir()

	#============================
	def duration_of(self, path: str):
		node = self._lookup_path(path)
		if node is None or node.is_dir():
			return None
		return node.duration

	#============================
	def set_duration(self, path: str, duration: float) -> None:
		node = self._lookup_path(path)
		if node is not None and not node.is_dir():
			node.duration = duration

	#============================
	def list_files(self) -> list:
		return sorted(self.root.walk_files())

	#============================
	def list_dirs(self) -> list:
		return sorted(self.root.walk_dirs())

	#============================
	def resolve(self, pattern: str) -> set:
		"""
		Resolve a literal path or glob pattern.

		A component naming an existing child is taken literally even when it
		contains glob characters.

		Args:
			pattern: Working-directory relative path or pattern.

		Returns:
			set: Matching relative paths; empty when nothing matches.
		"""
		compiled = patterns.compile_pattern(pattern)
		current = [([], self.root)]
		for component, regex in compiled:
			next_nodes = []
			for (prefix, node) in current:
				if not node.is_dir():
					continue
				child = node.children.get(component)
				if child is not None:
					next_nodes.append((prefix + [component], child))
					continue
				if regex is None:
					continue
				for name in sorted(node.children.keys()):
					if patterns.component_matches(regex, component, name):
						next_nodes.append((prefix + [name], node.children[name]))
			current = next_nodes
			if len(current) == 0:
				break
		return set(patterns.join_path(prefix) for (prefix, node) in current)

	#============================
	def apply(self, effect) -> bool:
		"""
		Apply one declared effect.

		Args:
			effect: CreateFile, CreateDirectory, DeleteFile or DeleteDirectory.

		Returns:
			bool: True when the tree changed.
		"""
		if isinstance(effect, CreateFile):
			return self._create_file(effect.path, effect.duration)
		if isinstance(effect, CreateDirectory):
			return self._create_directory(effect.path)
		if isinstance(effect, DeleteFile):
			return self._delete(effect.path, want_dir=False, recursive=False)
		if isinstance(effect, DeleteDirectory):
			return self._delete(effect.path, want_dir=True, recursive=effect.recursive)
		raise TypeError(f"unsupported effect {effect!r}")

	#============================
	def _make_dirs(self, path: str, components: list) -> VirtualDirectory:
		node = self.root
		for component in components:
			child = node.children.get(component)
			if child is None:
				child = VirtualDirectory(component)
				node.children[component] = child
			elif not child.is_dir():
				raise errors.MalformedPath(path, f"'{component}' is a file, not a directory")
			node = child
		return node

	#============================
	def _create_file(self, path: str, duration: float) -> bool:
		components = patterns.split_path(path)
		if len(components) == 0:
			raise errors.MalformedPath(path, "file path is empty")
		parent = self._make_dirs(path, components[:-1])
		name = components[-1]
		existing = parent.children.get(name)
		if existing is not None and existing.is_dir():
			raise errors.MalformedPath(path, "a directory already exists at this path")
		parent.children[name] = VirtualFile(name, duration)
		return True

	#============================
	def _create_directory(self, path: str) -> bool:
		components = patterns.split_path(path)
		if len(components) == 0:
			return False
		existed = self.is_dir(path)
		self._make_dirs(path, components)
		return not existed

	#============================
	def _delete(self, path: str, want_dir: bool, recursive: bool) -> bool:
		components = patterns.split_path(path)
		if len(components) == 0:
			raise errors.MalformedPath(path, "refusing to delete the working directory")
		parent = self._lookup(components[:-1])
		if parent is None or not parent.is_dir():
			return False
		node = parent.children.get(components[-1])
		if node is None:
			return False
		if node.is_dir() != want_dir:
			return False
		if want_dir and not recursive and len(node.children) > 0:
			return False
		del parent.children[components[-1]]
		return True
