#!/usr/bin/env python3

"""
Static pipeline validation against a simulated working directory.

Steps are checked in order. Each step's inputs must exist in the state
left by the steps before it; the step's declared effects are then applied
so the next step sees them. Validation stops at the first failure.
"""

import os
from soundpipelib.core import errors
from soundpipelib.core import formats
from soundpipelib.core import patterns
from soundpipelib.core import timecode
from soundpipelib.core import virtual_fs

STATE_NOT_STARTED = 'not_started'
STATE_VALIDATING = 'validating'
STATE_VALID = 'valid'
STATE_INVALID = 'invalid'

# extract args that change the output length
TRIM_ARGS = ('-ss', '-sseof', '-t', '-to')
# slack for container rounding when comparing split ends with a known duration
DURATION_SLACK = 0.001

#============================================

class ValidationReport():
	def __init__(self, state: str, step_index: int = None, error: Exception = None,
		warnings: list = None, simulator=None):
		self.state = state
		self.step_index = step_index
		self.error = error
		self.warnings = warnings if warnings is not None else []
		self.simulator = simulator

	#============================
	def is_valid(self) -> bool:
		return self.state == STATE_VALID

#============================================

class PipelineValidator():
	def __init__(self, pipeline, selected_formats: list = None, working_dir: str = None,
		simulator=None, known_durations: dict = None):
		self.pipeline = pipeline
		self.selected_formats = list(selected_formats or [])
		self.working_dir = working_dir
		self.known_durations = dict(known_durations or {})
		self.external_durations = {}
		self.simulator = simulator
		self.state = STATE_NOT_STARTED
		self.step_index = None
		self.error = None
		self.warnings = []

	#============================
	def validate(self) -> ValidationReport:
		if self.simulator is None:
			self.simulator = virtual_fs.VirtualFileSystem.from_directory(self.working_dir)
		for path, duration in self.known_durations.items():
			# absolute extract inputs live outside the simulated tree
			if patterns.is_absolute(path):
				self.external_durations[os.path.normpath(path)] = duration
			else:
				self.simulator.set_duration(path, duration)
		self.state = STATE_VALIDATING
		for index, step in enumerate(self.pipeline.steps):
			self.step_index = index
			try:
				self._validate_step(index, step)
			except (errors.ConfigError, errors.UnresolvedDependency) as exc:
				self.state = STATE_INVALID
				self.error = exc
				return self._report()
		self.state = STATE_VALID
		self.step_index = None
		return self._report()

	#============================
	def _report(self) -> ValidationReport:
		return ValidationReport(self.state, self.step_index, self.error,
			list(self.warnings), self.simulator)

	#============================
	def _warn(self, index: int, step_type: str, message: str) -> None:
		self.warnings.append(f"step {index + 1} ({step_type}): {message}")

	#============================
	def _validate_step(self, index: int, step: dict) -> None:
		step_type = step['type']
		if step_type == 'ffmpeg':
			self._validate_ffmpeg(index, step)
		elif step_type == 'split':
			self._validate_split(index, step)
		elif step_type == 'transcode':
			self._validate_transcode(index, step)
		elif step_type == 'tag':
			self._validate_tag(index, step)
		elif step_type == 'cleanup':
			self._validate_cleanup(index, step)
		else:
			raise errors.ConfigError(f"step {index + 1}: unsupported step type {step_type}")

	#============================
	def _require_file(self, index: int, step_type: str, path: str) -> str:
		normalized = patterns.normalize_path(path)
		if normalized == '':
			raise errors.MalformedPath(path, "path is empty")
		if not self.simulator.is_file(normalized):
			raise errors.UnresolvedDependency(index, step_type, normalized)
		return normalized

	#============================
	def _output_path(self, path: str) -> str:
		normalized = patterns.normalize_path(path)
		if normalized == '':
			raise errors.MalformedPath(path, "output path is empty")
		return normalized

	#============================
	def _resolve_files(self, pattern: str) -> list:
		matches = self.simulator.resolve(pattern)
		return sorted(path for path in matches if self.simulator.is_file(path))

	#============================
	def _validate_ffmpeg(self, index: int, step: dict) -> None:
		if patterns.is_absolute(step['input']):
			# read-only source outside the working directory, checked on disk
			input_path = os.path.normpath(step['input'])
			if not os.path.isfile(input_path):
				raise errors.UnresolvedDependency(index, 'ffmpeg', input_path, "does not exist")
			input_duration = self.external_durations.get(input_path)
		else:
			input_path = self._require_file(index, 'ffmpeg', step['input'])
			input_duration = self.simulator.duration_of(input_path)
		output_path = self._output_path(step['output'])
		if output_path == input_path:
			raise errors.ConfigError(f"step {index + 1} (ffmpeg): output would overwrite its input")
		duration = None
		if not any(arg in TRIM_ARGS for arg in step['args']):
			duration = input_duration
		self.simulator.apply(virtual_fs.CreateFile(output_path, duration))

	#============================
	def _validate_split(self, index: int, step: dict) -> None:
		input_path = self._require_file(index, 'split', step['input'])
		input_duration = self.simulator.duration_of(input_path)
		output_dir = patterns.normalize_path(step['output_dir'])
		if output_dir != '':
			self.simulator.apply(virtual_fs.CreateDirectory(output_dir))
		planned = set()
		for entry in step['files']:
			if entry['file'].strip() == '':
				raise errors.MalformedPath(entry['file'], "split file name is empty")
			output_path = self._output_path(patterns.join_relative(output_dir, entry['file']))
			if output_path in planned:
				raise errors.ConfigError(
					f"step {index + 1} (split): {output_path} is written by more than one entry")
			if output_path == input_path:
				raise errors.ConfigError(f"step {index + 1} (split): {output_path} would overwrite its input")
			planned.add(output_path)
			start = timecode.parse(entry['start'])
			end = timecode.parse(entry['end'])
			if start >= end:
				raise errors.ConfigError(
					f"step {index + 1} (split): {entry['file']} starts at "
					f"{timecode.format(start)} which is not before its end {timecode.format(end)}")
			if input_duration is not None and end > input_duration + DURATION_SLACK:
				self._warn(index, 'split',
					f"{entry['file']} ends at {timecode.format(end)}, past the end of "
					f"{input_path} ({timecode.format(input_duration)})")
			self.simulator.apply(virtual_fs.CreateFile(output_path, end - start))

	#============================
	def _validate_transcode(self, index: int, step: dict) -> None:
		if len(self.selected_formats) == 0:
			raise errors.ConfigError(f"step {index + 1} (transcode): no output format selected")
		input_dir = patterns.normalize_path(step['input_dir'])
		output_dir = patterns.normalize_path(step['output_dir'])
		# output path -> input path, in plan order
		planned = {}
		for pattern in step['files']:
			matches = self._resolve_files(patterns.join_relative(input_dir, pattern))
			if len(matches) == 0:
				raise errors.UnresolvedDependency(index, 'transcode',
					patterns.join_relative(input_dir, pattern))
			for input_path in matches:
				for selected in self.selected_formats:
					output_path = patterns.join_relative(output_dir,
						formats.output_name(input_path, selected))
					if output_path == input_path:
						raise errors.ConfigError(
							f"step {index + 1} (transcode): {output_path} would overwrite its input")
					if output_path in planned:
						# overlapping patterns name the same file twice
						if planned[output_path] == input_path:
							continue
						raise errors.ConfigError(
							f"step {index + 1} (transcode): {planned[output_path]} and {input_path} "
							f"would both be written to {output_path}")
					planned[output_path] = input_path
		if output_dir != '':
			self.simulator.apply(virtual_fs.CreateDirectory(output_dir))
		for output_path, input_path in planned.items():
			self.simulator.apply(virtual_fs.CreateFile(output_path,
				self.simulator.duration_of(input_path)))

	#============================
	def _validate_tag(self, index: int, step: dict) -> None:
		input_dir = patterns.normalize_path(step['input_dir'])
		for entry in step['files']:
			pattern = patterns.join_relative(input_dir, entry['file'])
			matches = self._resolve_files(pattern)
			if len(matches) == 0:
				if step['optional']:
					self._warn(index, 'tag', f"'{pattern}' matched no files")
				else:
					raise errors.UnresolvedDependency(index, 'tag', pattern, "matched no files")
			if entry['album_art'] is not None:
				art_path = patterns.normalize_path(entry['album_art'])
				if not self.simulator.is_file(art_path):
					self._warn(index, 'tag', f"album art '{art_path}' not found")

	#============================
	def _validate_cleanup(self, index: int, step: dict) -> None:
		for pattern in step['files']:
			normalized = patterns.normalize_path(pattern)
			if normalized == '':
				raise errors.MalformedPath(pattern, "refusing to clean up the working directory")
			if self.simulator.exists(normalized):
				matches = [normalized]
			elif patterns.has_magic(normalized):
				matches = sorted(self.simulator.resolve(normalized))
			else:
				matches = []
			if len(matches) == 0:
				self._warn(index, 'cleanup', f"'{normalized}' does not exist, nothing to remove")
				continue
			for path in matches:
				if self.simulator.is_dir(path):
					self.simulator.apply(virtual_fs.DeleteDirectory(path, recursive=True))
				else:
					self.simulator.apply(virtual_fs.DeleteFile(path))
