#!/usr/bin/env python3

"""
Path normalization and single-level glob matching shared by the
simulator and the executor.
"""

import fnmatch
import os
import re
from soundpipelib.core import errors

GLOB_CHARS = ('*', '?', '[')

#============================================

def split_path(path: str) -> list:
	"""
	Split a working-directory relative path into components.

	Args:
		path: Relative path, optionally prefixed with './'.

	Returns:
		list: Path components with '.' entries removed.
	"""
	if path is None:
		raise errors.MalformedPath(path, "path is required")
	if not isinstance(path, str):
		raise errors.MalformedPath(path, "path must be a string")
	if '\x00' in path:
		raise errors.MalformedPath(path, "path contains a NUL byte")
	text = path.replace('\\', '/')
	if text.startswith('/'):
		raise errors.MalformedPath(path, "absolute paths are not supported")
	components = []
	for part in text.split('/'):
		if part in ('', '.'):
			continue
		if part == '..':
			if len(components) == 0:
				raise errors.MalformedPath(path, "path escapes the working directory")
			components.pop()
			continue
		components.append(part)
	return components

#============================================

def join_path(components: list) -> str:
	return '/'.join(components)

#============================================

def normalize_path(path: str) -> str:
	return join_path(split_path(path))

#============================================

def join_relative(directory: str, name: str) -> str:
	if directory is None or directory in ('', '.'):
		return normalize_path(name)
	return normalize_path(f"{directory}/{name}")

#============================================

def has_magic(text: str) -> bool:
	return any(char in text for char in GLOB_CHARS)

#============================================

def is_absolute(path) -> bool:
	return isinstance(path, str) and os.path.isabs(path)

#============================================

def check_component(pattern: str, component: str) -> None:
	if '**' in component:
		raise errors.GlobSyntaxError(pattern, "recursive '**' patterns are not supported")
	index = 0
	while index < len(component):
		char = component[index]
		if char == ']':
			index += 1
			continue
		if char != '[':
			index += 1
			continue
		close = index + 1
		if close < len(component) and component[close] in ('!', '^'):
			close += 1
		# a ']' right after the opening bracket is a literal member
		if close < len(component) and component[close] == ']':
			close += 1
		while close < len(component) and component[close] != ']':
			close += 1
		if close >= len(component):
			raise errors.GlobSyntaxError(pattern, "unterminated character class")
		members = component[index + 1:close]
		if members in ('', '!', '^'):
			raise errors.GlobSyntaxError(pattern, "empty character class")
		index = close + 1

#============================================

def compile_component(pattern: str, component: str):
	check_component(pattern, component)
	regex = re.compile(fnmatch.translate(component))
	return regex

#============================================

def component_matches(regex, component_pattern: str, name: str) -> bool:
	if name.startswith('.') and not component_pattern.startswith('.'):
		return False
	return regex.match(name) is not None

#============================================

def compile_pattern(pattern: str) -> list:
	"""
	Compile a relative glob pattern into per-component matchers.

	Args:
		pattern: Relative path or glob pattern.

	Returns:
		list: (component text, compiled regex or None) pairs; None marks a
		literal component.
	"""
	components = split_path(pattern)
	if len(components) == 0:
		raise errors.MalformedPath(pattern, "pattern is empty")
	compiled = []
	for component in components:
		if has_magic(component):
			compiled.append((component, compile_component(pattern, component)))
		else:
			compiled.append((component, None))
	return compiled

#============================================

def resolve_on_disk(root: str, pattern: str) -> list:
	"""
	Resolve a pattern against the real filesystem under root.

	Args:
		root: Working directory.
		pattern: Relative path or glob pattern.

	Returns:
		list: Sorted relative paths that exist.
	"""
	compiled = compile_pattern(pattern)
	current = ['']
	for component, regex in compiled:
		next_paths = []
		for rel_dir in current:
			abs_dir = os.path.join(root, rel_dir) if rel_dir else root
			# an existing name wins over reading it as a glob, e.g. "Song [Live].wav"
			candidate = f"{rel_dir}/{component}" if rel_dir else component
			if os.path.lexists(os.path.join(root, candidate)):
				next_paths.append(candidate)
				continue
			if regex is None:
				continue
			if not os.path.isdir(abs_dir):
				continue
			for name in sorted(os.listdir(abs_dir)):
				if component_matches(regex, component, name):
					next_paths.append(f"{rel_dir}/{name}" if rel_dir else name)
		current = next_paths
		if len(current) == 0:
			break
	return sorted(current)
