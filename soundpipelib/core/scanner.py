#!/usr/bin/env python3

import collections
import os
from concurrent.futures import ThreadPoolExecutor
from soundpipelib.core import errors
from soundpipelib.core import utils

Candidate = collections.namedtuple('Candidate', ['path', 'duration', 'delta'])

#============================================

def candidate_sort_key(candidate: Candidate) -> tuple:
	return (candidate.delta, candidate.path)

#============================================

class CandidateScanner():
	def __init__(self, prober, max_workers: int = 4):
		if max_workers < 1:
			raise ValueError("max_workers must be >= 1")
		self.prober = prober
		self.max_workers = max_workers

	#============================
	def list_media_files(self, directory: str, extensions, exclude=None) -> list:
		"""
		List regular files in one directory whose extension is accepted.

		Args:
			directory: Directory to list, not recursed.
			extensions: Accepted lowercase extensions without dots.
			exclude: Paths to leave out.

		Returns:
			list: Sorted file paths joined onto directory.
		"""
		accepted = set(ext.lower().lstrip('.') for ext in extensions)
		excluded = set(os.path.normpath(path) for path in (exclude or []))
		if not os.path.isdir(directory):
			return []
		paths = []
		for name in sorted(os.listdir(directory)):
			path = os.path.join(directory, name)
			if not os.path.isfile(path):
				continue
			extension = os.path.splitext(name)[1].lower().lstrip('.')
			if extension not in accepted:
				continue
			if os.path.normpath(path) in excluded:
				continue
			paths.append(path)
		return paths

	#============================
	def _probe_one(self, path: str):
		try:
			return self.prober.probe(path)
		except errors.ProbeError as exc:
			utils.detail(f"skipping candidate: {exc}")
			return None

	#============================
	def scan(self, directory: str, expected: float, extensions, exclude=None):
		"""
		Probe media files in a directory and rank them by closeness to an
		expected duration.

		Args:
			directory: Directory holding candidate files.
			expected: Expected duration in seconds.
			extensions: Accepted extensions.
			exclude: Paths to leave out, usually the mismatched input.

		Returns:
			iterator: Candidates ordered by (delta, path); consumed once.
		"""
		paths = self.list_media_files(directory, extensions, exclude)
		candidates = []
		if len(paths) > 0:
			workers = min(self.max_workers, len(paths))
			with ThreadPoolExecutor(max_workers=workers) as pool:
				durations = list(pool.map(self._probe_one, paths))
			for path, duration in zip(paths, durations):
				if duration is None:
					continue
				candidates.append(Candidate(path, duration, abs(duration - expected)))
		candidates.sort(key=candidate_sort_key)
		return iter(candidates)
